"""Entry point: ``python -m airsweep``."""

from __future__ import annotations

import asyncio
import logging
import sys

import httpx
from pydantic import ValidationError

from airsweep.engine.processor import JobProcessor
from airsweep.engine.subscription import SubscriptionManager
from airsweep.exceptions import ConfigurationError, StoreError
from airsweep.intake.server import start_intake_server
from airsweep.reporting.console import print_banner
from airsweep.scraping.page_fetcher import PageFetcher
from airsweep.settings import AppSettings
from airsweep.storage.sqlite_store import SqliteStore

logger = logging.getLogger("airsweep")


def _configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def _load_settings() -> AppSettings:
    try:
        return AppSettings.from_yaml()
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


async def run_batch(
    settings: AppSettings,
    store: SqliteStore,
    client: httpx.AsyncClient | None = None,
) -> None:
    """Process the most recently created job once.

    *client* replaces the fetcher's own HTTP client when given.
    """
    try:
        job = await store.select_latest_job()
    except StoreError as exc:
        logger.error("Could not load latest job: %s", exc)
        return
    if job is None:
        logger.info("No jobs configured; nothing to do.")
        return
    async with PageFetcher(timeout=settings.request_timeout, client=client) as fetcher:
        processor = JobProcessor(
            store, fetcher, page_count=settings.page_count, report=settings.report
        )
        await processor.process(job)


async def run_live(settings: AppSettings, store: SqliteStore) -> None:
    """Listen for new jobs until the process is stopped."""
    server = None
    if settings.intake_port:
        server, _ = start_intake_server(store, settings.intake_host, settings.intake_port)
    try:
        async with PageFetcher(timeout=settings.request_timeout) as fetcher:
            processor = JobProcessor(
                store, fetcher, page_count=settings.page_count, report=settings.report
            )
            manager = SubscriptionManager(
                store,
                processor,
                backoff_base_ms=settings.backoff_base_ms,
                backoff_cap_ms=settings.backoff_cap_ms,
            )
            await manager.run_forever()
    finally:
        if server is not None:
            await asyncio.to_thread(server.shutdown)
            server.server_close()


async def _async_main(settings: AppSettings) -> None:
    store = SqliteStore(settings.store_path)
    try:
        if settings.mode == "batch":
            await run_batch(settings, store)
        else:
            await run_live(settings, store)
    finally:
        store.close()


def main() -> None:
    try:
        settings = _load_settings()
    except ConfigurationError as exc:
        _configure_logging()
        logging.error("Invalid configuration: %s", exc)
        sys.exit(2)
    _configure_logging(settings.log_level)
    print_banner(settings.mode)
    try:
        asyncio.run(_async_main(settings))
    except KeyboardInterrupt:
        logging.info("Interrupted by user.")
        sys.exit(130)


if __name__ == "__main__":
    main()
