"""Map raw listing entries to history records."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from airsweep.models import DateWindow, HistoryRecord

logger = logging.getLogger(__name__)


def map_entries(
    entries: Iterable[dict[str, Any]],
    job_id: int,
    window: DateWindow,
    query_url: str,
) -> list[HistoryRecord]:
    """Pass listing fields through unchanged; entries without a room id are dropped."""
    records: list[HistoryRecord] = []
    skipped = 0
    for entry in entries:
        if entry.get("room_id") is None:
            skipped += 1
            continue
        records.append(
            HistoryRecord(
                job=job_id,
                room=entry["room_id"],
                price=entry.get("price"),
                position=entry.get("position"),
                available=entry.get("available"),
                checkin=window.checkin_str,
                checkout=window.checkout_str,
                source_url=query_url,
            )
        )
    if skipped:
        logger.warning(
            "Job %s: window %s dropped %d entr(ies) without room_id.",
            job_id,
            window,
            skipped,
        )
    return records
