"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from airsweep.models import Job
from airsweep.storage.sqlite_store import SqliteStore


@pytest.fixture()
def tmp_settings_yaml(tmp_path):
    """Write a minimal settings.yaml and return its path."""
    content = """\
mode: "Batch"
log_level: "debug"
report: false
store_path: "{store}"
page_count: 2
request_timeout: 15
backoff_base_ms: 500
backoff_cap_ms: 8000
intake_port: 0
""".format(store=str(tmp_path / "airsweep.db"))
    p = tmp_path / "settings.yaml"
    p.write_text(content)
    return p


@pytest.fixture()
def store(tmp_path):
    s = SqliteStore(tmp_path / "store.db")
    yield s
    s.close()


def make_job(**overrides: Any) -> Job:
    fields: dict[str, Any] = dict(
        id=1,
        url_template="https://www.airbnb.com/s/Lisbon/homes?tab_id=home_tab",
        scrape_url="https://scraper.example/scrape",
        amenities=("4", "7"),
        adults=2,
        min_bedrooms=1,
        price_max=None,
        days=2,
        nights=3,
    )
    fields.update(overrides)
    return Job(**fields)


class FakeFetcher:
    """Fetcher answering from a ``(checkin, page) -> entries | Exception`` table.

    Missing keys answer with an empty page. ``delays`` maps page index to a
    sleep in seconds so completion order can be forced.
    """

    def __init__(self, pages: dict[tuple[str, int], Any] | None = None, delays=None):
        self.pages = pages or {}
        self.delays = delays or {}
        self.calls: list[tuple[str, str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, scrape_url: str, query_url: str, page: int):
        self.calls.append((scrape_url, query_url, page))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(page, 0))
            checkin = query_url.split("&checkin=")[1].split("&")[0]
            result = self.pages.get((checkin, page), [])
            if isinstance(result, Exception):
                raise result
            return list(result)
        finally:
            self.in_flight -= 1


def entries(n: int, prefix: str = "room") -> list[dict[str, Any]]:
    return [
        {"room_id": f"{prefix}-{i}", "price": 100 + i, "position": i + 1, "available": True}
        for i in range(n)
    ]
