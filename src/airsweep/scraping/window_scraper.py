"""Concurrent fan-out of page fetches for one date window."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from airsweep.models import PageOutcome

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(
        self, scrape_url: str, query_url: str, page: int
    ) -> list[dict[str, Any]]:
        ...


async def _fetch_page(
    fetcher: Fetcher, scrape_url: str, query_url: str, page: int
) -> PageOutcome:
    try:
        entries = await fetcher.fetch(scrape_url, query_url, page)
    except Exception as exc:
        return PageOutcome(page=page, error=exc)
    return PageOutcome(page=page, entries=tuple(entries))


async def scrape_window(
    fetcher: Fetcher, scrape_url: str, query_url: str, page_count: int
) -> list[PageOutcome]:
    """Fetch pages ``0..page_count-1`` concurrently and wait for all of them.

    The result always has ``page_count`` items in page order; a failed page
    becomes a failed outcome instead of cancelling its siblings.
    """
    outcomes = await asyncio.gather(
        *(_fetch_page(fetcher, scrape_url, query_url, page) for page in range(page_count))
    )
    failed = sum(1 for o in outcomes if not o.ok)
    logger.debug("Window settled: %d page(s), %d failed.", len(outcomes), failed)
    return list(outcomes)
