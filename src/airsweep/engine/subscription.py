"""Self-healing listener for job-creation events."""

from __future__ import annotations

import asyncio
import enum
import logging

from airsweep.engine.processor import JobProcessor
from airsweep.exceptions import SubscriptionError
from airsweep.models import Job
from airsweep.storage.base import ChannelStatus, HistoryStore, JobChannel

logger = logging.getLogger(__name__)


class SubscriptionState(str, enum.Enum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    SUBSCRIBED = "SUBSCRIBED"


def backoff_delay_ms(retry_count: int, base_ms: int = 1000, cap_ms: int = 30000) -> int:
    """Return ``min(base * 2**retry_count, cap)``."""
    # avoid building huge ints once the cap is reached
    if retry_count >= 32:
        return cap_ms
    return min(base_ms * 2**retry_count, cap_ms)


class SubscriptionManager:
    """Keeps exactly one live job-creation channel open, forever.

    On ``CHANNEL_ERROR`` or ``TIMED_OUT`` the channel is retried after an
    exponential delay capped at ``backoff_cap_ms``; a successful subscription
    resets the retry counter. Each created job is handed to its own task
    without waiting for earlier jobs to finish.
    """

    def __init__(
        self,
        store: HistoryStore,
        processor: JobProcessor,
        backoff_base_ms: int = 1000,
        backoff_cap_ms: int = 30000,
    ) -> None:
        self._store = store
        self._processor = processor
        self._base_ms = backoff_base_ms
        self._cap_ms = backoff_cap_ms
        self._channel: JobChannel | None = None
        self._retry_timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._stopped = False
        self.state = SubscriptionState.DISCONNECTED
        self.retry_count = 0
        self.last_delay_ms: int | None = None

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # ---- lifecycle ----

    def connect(self, retry_count: int = 0) -> None:
        """Replace any current channel with a fresh one.

        Must be called from within the running event loop.
        """
        if self._stopped:
            return
        self._release()
        self.retry_count = retry_count
        self.state = SubscriptionState.CONNECTING
        logger.info("Subscribing to job creation events (attempt %d).", retry_count + 1)
        try:
            self._channel = self._store.subscribe_jobs(self._on_job, self._on_status)
        except Exception as exc:
            self._on_status(ChannelStatus.CHANNEL_ERROR, exc)

    async def run_forever(self) -> None:
        """Connect and park until cancelled; stop() runs on the way out."""
        self.connect()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Release the channel and wait for in-flight jobs."""
        self._stopped = True
        self._release()
        self.state = SubscriptionState.DISCONNECTED
        if self._tasks:
            logger.info("Waiting for %d in-flight job(s).", len(self._tasks))
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _release(self) -> None:
        if self._retry_timer is not None:
            self._retry_timer.cancel()
            self._retry_timer = None
        if self._channel is not None:
            channel, self._channel = self._channel, None
            try:
                channel.unsubscribe()
            except Exception:
                logger.warning("Failed to release previous channel.", exc_info=True)

    # ---- callbacks ----

    def _on_status(self, status: ChannelStatus, error: Exception | None = None) -> None:
        if status == ChannelStatus.SUBSCRIBED:
            self.state = SubscriptionState.SUBSCRIBED
            self.retry_count = 0
            logger.info("Subscribed to job creation events.")
        elif status in (ChannelStatus.CHANNEL_ERROR, ChannelStatus.TIMED_OUT):
            kind = "timeout" if status == ChannelStatus.TIMED_OUT else "channel-error"
            self._schedule_reconnect(SubscriptionError(kind, str(error) if error else ""))
        else:
            logger.info("Job channel status: %s.", status.value)

    def _schedule_reconnect(self, exc: SubscriptionError) -> None:
        if self._stopped:
            return
        self.state = SubscriptionState.CONNECTING
        delay = backoff_delay_ms(self.retry_count, self._base_ms, self._cap_ms)
        self.last_delay_ms = delay
        logger.warning(
            "Job channel %s (%s); reconnecting in %d ms.", exc.kind, exc, delay
        )
        if self._retry_timer is not None:
            self._retry_timer.cancel()
        loop = asyncio.get_running_loop()
        self._retry_timer = loop.call_later(
            delay / 1000, self.connect, self.retry_count + 1
        )

    def _on_job(self, job: Job) -> None:
        logger.info("Received new job %s.", job.id)
        task = asyncio.create_task(self._processor.process(job), name=f"job-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
