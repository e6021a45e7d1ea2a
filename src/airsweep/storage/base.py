"""Protocol definitions for the persistent store."""

from __future__ import annotations

import enum
from typing import Any, Callable, Protocol, Sequence, runtime_checkable

from airsweep.models import HistoryRecord, Job


class ChannelStatus(str, enum.Enum):
    """Status values reported by a job-creation channel."""

    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    TIMED_OUT = "TIMED_OUT"
    CLOSED = "CLOSED"


JobCallback = Callable[[Job], None]
StatusCallback = Callable[[ChannelStatus, "Exception | None"], None]


@runtime_checkable
class JobChannel(Protocol):
    """Live listener handle for job-creation events."""

    def unsubscribe(self) -> None:
        """Stop delivering events and statuses. Safe to call twice."""
        ...


@runtime_checkable
class HistoryStore(Protocol):
    """Store operations the engine needs.

    Every data method is async so callers ``await`` each round trip; all of
    them raise ``StoreError`` on failure.
    """

    async def select_latest_job(self) -> Job | None:
        """Return the most recently created job, or ``None``."""
        ...

    async def delete_history(self, job_id: int) -> None:
        """Delete every history row owned by *job_id*."""
        ...

    async def insert_history(self, records: Sequence[HistoryRecord]) -> None:
        """Bulk-insert *records* in one statement batch."""
        ...

    async def count_history(self, job_id: int) -> int:
        """Return the number of history rows owned by *job_id*."""
        ...

    async def update_job(self, job_id: int, fields: dict[str, Any]) -> None:
        """Write *fields* (e.g. ``{"qtd": 12}``) onto the job row."""
        ...

    def subscribe_jobs(
        self, on_insert: JobCallback, on_status: StatusCallback
    ) -> JobChannel:
        """Open a channel delivering each newly created job to *on_insert*.

        *on_status* receives the channel's status changes, starting with
        ``SUBSCRIBED`` or an error status.
        """
        ...
