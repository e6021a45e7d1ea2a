"""Lightweight job intake API: creates jobs and serves stored results as JSON."""

from __future__ import annotations

import json
import logging
import re
import threading
from dataclasses import asdict
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from airsweep.exceptions import StoreError
from airsweep.storage.sqlite_store import SqliteStore

logger = logging.getLogger(__name__)

_JOB_PATH = re.compile(r"^/api/jobs/(\d+)$")
_HISTORY_PATH = re.compile(r"^/api/jobs/(\d+)/history$")
_MAX_BODY = 64 * 1024


class JobIn(BaseModel):
    """Accepted body for ``POST /api/jobs``."""

    url_template: str = Field(
        min_length=1, validation_alias=AliasChoices("url_template", "url")
    )
    scrape_url: str = Field(min_length=1)
    amenities: list[str] = Field(default_factory=list)
    adults: int = Field(default=1, ge=1)
    min_bedrooms: int = Field(default=0, ge=0)
    price_max: int | None = Field(default=None, ge=0)
    days: int = Field(
        default=7, ge=0, validation_alias=AliasChoices("days", "weekly_offset")
    )
    nights: int = Field(default=1, ge=0)


class IntakeServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], store: SqliteStore) -> None:
        super().__init__(address, IntakeHandler)
        self.store = store


class IntakeHandler(BaseHTTPRequestHandler):
    server: IntakeServer

    def do_GET(self):
        path = urlparse(self.path).path.rstrip("/")
        store = self.server.store
        try:
            if path == "/api/jobs":
                self._json_response([asdict(j) for j in store.list_jobs()])
                return
            m = _JOB_PATH.match(path)
            if m:
                job = store.get_job(int(m.group(1)))
                if job is None:
                    self._error(404, "job not found")
                else:
                    self._json_response(asdict(job))
                return
            m = _HISTORY_PATH.match(path)
            if m:
                self._json_response(store.list_history(int(m.group(1))))
                return
        except StoreError as exc:
            logger.warning("Intake read failed: %s", exc)
            self._error(503, str(exc))
            return
        self._error(404, "not found")

    def do_POST(self):
        if urlparse(self.path).path.rstrip("/") != "/api/jobs":
            self._error(404, "not found")
            return
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            self._error(400, "invalid Content-Length")
            return
        if length <= 0 or length > _MAX_BODY:
            self._error(400, "missing or oversized body")
            return
        try:
            payload = json.loads(self.rfile.read(length))
            job_in = JobIn.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            self._error(400, str(exc))
            return
        try:
            job = self.server.store.create_job(job_in.model_dump())
        except StoreError as exc:
            logger.warning("Intake create failed: %s", exc)
            self._error(503, str(exc))
            return
        self._json_response(asdict(job), status=201)

    def _json_response(self, data: Any, status: int = 200) -> None:
        body = json.dumps(data, default=str).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _error(self, status: int, message: str) -> None:
        self._json_response({"error": message}, status=status)

    def log_message(self, format, *args):
        logger.debug("intake: " + format, *args)


def start_intake_server(
    store: SqliteStore, host: str, port: int
) -> tuple[IntakeServer, threading.Thread]:
    """Serve the intake API from a daemon thread; returns the server and thread."""
    server = IntakeServer((host, port), store)
    thread = threading.Thread(
        target=server.serve_forever, name="intake-server", daemon=True
    )
    thread.start()
    logger.info("Job intake listening on http://%s:%d", *server.server_address[:2])
    return server, thread
