"""Job coordinator: plan windows → scrape pages → map → replace history."""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Callable

from airsweep.exceptions import StoreError
from airsweep.models import DateWindow, Job, PageOutcome, RunMetrics
from airsweep.planning.date_windows import plan_windows
from airsweep.reporting.console import print_run_report
from airsweep.scraping.query_builder import build_query_url
from airsweep.scraping.records import map_entries
from airsweep.scraping.window_scraper import Fetcher, scrape_window
from airsweep.storage.base import HistoryStore

logger = logging.getLogger(__name__)


class JobProcessor:
    """Runs one job end to end and replaces its stored history.

    ``process`` never raises: page and store failures are logged with the
    job, window and page they belong to and the run moves on. Pages that
    fail are not retried within a run.

    There is no per-job lock. Two runs of the same job at once may interleave
    their delete and inserts; different jobs never touch each other's rows.
    """

    def __init__(
        self,
        store: HistoryStore,
        fetcher: Fetcher,
        page_count: int = 4,
        today: Callable[[], date] = date.today,
        report: bool = False,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._page_count = page_count
        self._today = today
        self._report = report

    async def process(self, job: Job) -> RunMetrics:
        """Execute a full run for *job*."""
        metrics = RunMetrics(job_id=job.id)
        start = time.monotonic()
        logger.info(
            "Job %s: starting run (%d window(s), %d night(s), %d page(s) each).",
            job.id,
            job.days,
            job.nights,
            self._page_count,
        )
        try:
            await self._run(job, metrics)
        except Exception:
            logger.exception("Job %s: run aborted by unexpected error.", job.id)

        metrics.finalize(time.monotonic() - start)
        logger.info("Job %s completed in %.2f seconds.", job.id, metrics.duration_s)
        if self._report:
            print_run_report(metrics)
        return metrics

    # ---- internal stages ----

    async def _run(self, job: Job, metrics: RunMetrics) -> None:
        try:
            await self._store.delete_history(job.id)
        except StoreError as exc:
            logger.warning(
                "Job %s: could not clear previous history (%s); "
                "old and new rows may coexist.",
                job.id,
                exc,
            )

        for window in plan_windows(self._today(), job.days, job.nights):
            await self._process_window(job, window, metrics)
            metrics.windows += 1

        try:
            count = await self._store.count_history(job.id)
            await self._store.update_job(job.id, {"qtd": count})
        except StoreError as exc:
            logger.warning("Job %s: could not write back result count: %s", job.id, exc)
            return
        job.qtd = count
        metrics.final_count = count
        logger.info("Job %s: %d history row(s) stored.", job.id, count)

    async def _process_window(
        self, job: Job, window: DateWindow, metrics: RunMetrics
    ) -> None:
        query_url = build_query_url(job, window)
        logger.info("Job %s: scraping window %s.", job.id, window)
        outcomes = await scrape_window(
            self._fetcher, job.scrape_url, query_url, self._page_count
        )
        for outcome in outcomes:
            await self._store_outcome(job, window, query_url, outcome, metrics)

    async def _store_outcome(
        self,
        job: Job,
        window: DateWindow,
        query_url: str,
        outcome: PageOutcome,
        metrics: RunMetrics,
    ) -> None:
        if not outcome.ok:
            metrics.pages_failed += 1
            logger.warning(
                "Job %s: window %s page %d failed: %s: %s",
                job.id,
                window,
                outcome.page,
                type(outcome.error).__name__,
                outcome.error,
            )
            return

        metrics.pages_ok += 1
        records = map_entries(outcome.entries, job.id, window, query_url)
        if not records:
            logger.debug("Job %s: window %s page %d empty.", job.id, window, outcome.page)
            return
        try:
            await self._store.insert_history(records)
        except StoreError as exc:
            metrics.insert_failures += 1
            logger.warning(
                "Job %s: window %s page %d insert of %d row(s) failed: %s",
                job.id,
                window,
                outcome.page,
                len(records),
                exc,
            )
            return
        metrics.records_inserted += len(records)
