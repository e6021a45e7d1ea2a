"""Domain models for airsweep."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping


@dataclass
class Job:
    """One recurring date-swept collection task.

    Only ``qtd`` is ever written by the engine.
    """

    id: int
    url_template: str
    scrape_url: str
    amenities: tuple[str, ...] = ()
    adults: int = 1
    min_bedrooms: int = 0
    price_max: int | None = None
    days: int = 7
    nights: int = 1
    qtd: int = 0
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Job":
        """Build a Job from a store row or a creation-event payload."""
        amenities = data.get("amenities") or ()
        return cls(
            id=int(data["id"]),
            url_template=str(data.get("url_template") or ""),
            scrape_url=str(data.get("scrape_url") or ""),
            amenities=tuple(str(a) for a in amenities),
            adults=_as_int(data.get("adults"), 1),
            min_bedrooms=_as_int(data.get("min_bedrooms"), 0),
            price_max=_as_int(data.get("price_max"), None),
            days=_as_int(data.get("days"), 0),
            nights=_as_int(data.get("nights"), 0),
            qtd=_as_int(data.get("qtd"), 0),
            created_at=str(data.get("created_at") or ""),
        )


def _as_int(value: Any, default: int | None) -> int | None:
    if value is None or value == "":
        return default
    return int(value)


@dataclass(frozen=True)
class DateWindow:
    """One (checkin, checkout) pair derived for a single run."""

    checkin: date
    checkout: date

    @property
    def checkin_str(self) -> str:
        return self.checkin.isoformat()

    @property
    def checkout_str(self) -> str:
        return self.checkout.isoformat()

    def __str__(self) -> str:
        return f"{self.checkin_str}..{self.checkout_str}"


@dataclass(frozen=True)
class PageOutcome:
    """Result of fetching one page: entries on success, the error otherwise."""

    page: int
    entries: tuple[dict[str, Any], ...] = ()
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class HistoryRecord:
    """One persisted listing result tied to a job and window."""

    job: int
    room: Any
    price: Any
    position: Any
    available: Any
    checkin: str
    checkout: str
    source_url: str


@dataclass
class RunMetrics:
    """Aggregated counters for one JobProcessor run."""

    job_id: int
    started_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    ended_at: str = ""
    windows: int = 0
    pages_ok: int = 0
    pages_failed: int = 0
    records_inserted: int = 0
    insert_failures: int = 0
    final_count: int | None = None
    duration_s: float = 0.0

    def finalize(self, duration_s: float) -> None:
        self.ended_at = datetime.now(timezone.utc).isoformat()
        self.duration_s = duration_s
