"""SQLite-backed job and history store with in-process creation events."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TypeVar

from airsweep.exceptions import StoreError
from airsweep.models import HistoryRecord, Job
from airsweep.storage.base import ChannelStatus, JobCallback, StatusCallback

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS jobs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    url_template    TEXT NOT NULL,
    scrape_url      TEXT NOT NULL,
    amenities       TEXT NOT NULL DEFAULT '[]',
    adults          INTEGER NOT NULL DEFAULT 1,
    min_bedrooms    INTEGER NOT NULL DEFAULT 0,
    price_max       INTEGER,
    days            INTEGER NOT NULL DEFAULT 7,
    nights          INTEGER NOT NULL DEFAULT 1,
    qtd             INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS history (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    job             INTEGER NOT NULL REFERENCES jobs(id),
    room_id         TEXT NOT NULL,
    price           REAL,
    position        INTEGER,
    available       INTEGER,
    checkin         TEXT NOT NULL,
    checkout        TEXT NOT NULL,
    source_url      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_history_job ON history(job);
"""

_JOB_FIELDS = (
    "url_template",
    "scrape_url",
    "amenities",
    "adults",
    "min_bedrooms",
    "price_max",
    "days",
    "nights",
    "qtd",
)


class _SqliteChannel:
    """Creation-event channel bound to the event loop that opened it."""

    def __init__(
        self,
        store: "SqliteStore",
        loop: asyncio.AbstractEventLoop,
        on_insert: JobCallback,
        on_status: StatusCallback,
    ) -> None:
        self._store = store
        self._loop = loop
        self._on_insert = on_insert
        self._on_status = on_status
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._store._detach(self)

    # Both helpers may be called from any thread.

    def deliver(self, job: Job) -> None:
        self._post(self._dispatch_insert, job)

    def report(self, status: ChannelStatus, error: Exception | None = None) -> None:
        self._post(self._dispatch_status, status, error)

    def _post(self, fn: Callable[..., None], *args: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            logger.warning("Event loop closed; dropping channel event.")

    def _dispatch_insert(self, job: Job) -> None:
        if self.active:
            self._on_insert(job)

    def _dispatch_status(self, status: ChannelStatus, error: Exception | None) -> None:
        if self.active:
            self._on_status(status, error)


class SqliteStore:
    """Persistent jobs and history stored in SQLite.

    Blocking ``sqlite3`` calls are serialised with a lock and run in a worker
    thread from the async methods, so the store can be shared between the
    event loop and the intake server thread.
    """

    def __init__(self, db_path: str | Path) -> None:
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._lock = threading.Lock()
        self._channels: list[_SqliteChannel] = []
        self._closed = False
        logger.info("Store database ready at %s.", db_path)

    # ---- plumbing ----

    def _call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        with self._lock:
            try:
                return fn(*args)
            except sqlite3.Error as exc:
                raise StoreError(operation, str(exc)) from exc

    async def _acall(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._call, operation, fn, *args)

    # ---- jobs ----

    def create_job(self, fields: Mapping[str, Any]) -> Job:
        """Insert a job row and fire a creation event on every open channel."""
        job = self._call("create_job", self._insert_job, dict(fields))
        logger.info("Created job %s.", job.id)
        for channel in list(self._channels):
            channel.deliver(job)
        return job

    def _insert_job(self, fields: dict[str, Any]) -> Job:
        fields.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        fields["amenities"] = json.dumps(list(fields.get("amenities") or []))
        columns = [c for c in (*_JOB_FIELDS, "created_at") if c in fields]
        cur = self._conn.execute(
            f"INSERT INTO jobs ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            [fields[c] for c in columns],
        )
        self._conn.commit()
        return self._fetch_job(cur.lastrowid)

    def _fetch_job(self, job_id: int) -> Job | None:
        row = self._conn.execute("SELECT * FROM jobs WHERE id=?", (job_id,)).fetchone()
        return _row_to_job(row) if row else None

    def get_job(self, job_id: int) -> Job | None:
        return self._call("get_job", self._fetch_job, job_id)

    def list_jobs(self) -> list[Job]:
        def _select() -> list[Job]:
            rows = self._conn.execute("SELECT * FROM jobs ORDER BY id").fetchall()
            return [_row_to_job(r) for r in rows]

        return self._call("list_jobs", _select)

    async def select_latest_job(self) -> Job | None:
        def _select() -> Job | None:
            row = self._conn.execute(
                "SELECT * FROM jobs ORDER BY created_at DESC, id DESC LIMIT 1"
            ).fetchone()
            return _row_to_job(row) if row else None

        return await self._acall("select_latest_job", _select)

    async def update_job(self, job_id: int, fields: dict[str, Any]) -> None:
        unknown = set(fields) - set(_JOB_FIELDS)
        if unknown:
            raise StoreError("update_job", f"unknown job field(s): {sorted(unknown)}")

        def _update() -> None:
            assignments = ", ".join(f"{k}=?" for k in fields)
            self._conn.execute(
                f"UPDATE jobs SET {assignments} WHERE id=?",
                [*fields.values(), job_id],
            )
            self._conn.commit()

        await self._acall("update_job", _update)

    # ---- history ----

    async def delete_history(self, job_id: int) -> None:
        def _delete() -> None:
            self._conn.execute("DELETE FROM history WHERE job=?", (job_id,))
            self._conn.commit()

        await self._acall("delete_history", _delete)

    async def insert_history(self, records: Sequence[HistoryRecord]) -> None:
        def _insert() -> None:
            self._conn.executemany(
                "INSERT INTO history (job, room_id, price, position, available, "
                "checkin, checkout, source_url) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        r.job,
                        r.room,
                        r.price,
                        r.position,
                        r.available,
                        r.checkin,
                        r.checkout,
                        r.source_url,
                    )
                    for r in records
                ],
            )
            self._conn.commit()

        await self._acall("insert_history", _insert)

    async def count_history(self, job_id: int) -> int:
        def _count() -> int:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM history WHERE job=?", (job_id,)
            ).fetchone()
            return row[0] if row else 0

        return await self._acall("count_history", _count)

    def list_history(self, job_id: int) -> list[dict[str, Any]]:
        def _select() -> list[dict[str, Any]]:
            rows = self._conn.execute(
                "SELECT room_id, price, position, available, checkin, checkout, "
                "source_url FROM history WHERE job=? ORDER BY checkin, id",
                (job_id,),
            ).fetchall()
            return [dict(r) for r in rows]

        return self._call("list_history", _select)

    # ---- creation events ----

    def subscribe_jobs(
        self, on_insert: JobCallback, on_status: StatusCallback
    ) -> _SqliteChannel:
        channel = _SqliteChannel(self, asyncio.get_running_loop(), on_insert, on_status)
        if self._closed:
            channel.report(
                ChannelStatus.CHANNEL_ERROR,
                StoreError("subscribe_jobs", "store is closed"),
            )
            return channel
        self._channels.append(channel)
        channel.report(ChannelStatus.SUBSCRIBED)
        return channel

    def _detach(self, channel: _SqliteChannel) -> None:
        if channel in self._channels:
            self._channels.remove(channel)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for channel in list(self._channels):
            channel.report(
                ChannelStatus.CHANNEL_ERROR, StoreError("close", "store closed")
            )
        self._channels.clear()
        with self._lock:
            self._conn.close()


def _row_to_job(row: sqlite3.Row) -> Job:
    data = dict(row)
    data["amenities"] = json.loads(data.get("amenities") or "[]")
    return Job.from_mapping(data)
