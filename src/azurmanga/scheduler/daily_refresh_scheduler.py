"""
Daily refresh scheduler.

Runs a refresh once immediately, once at the next local midnight, and
every 24 hours after that. The scheduler owns two timer tasks:

* the one-shot task that waits until the first midnight, and
* the repeating task armed by the one-shot task once it has fired.

:meth:`DailyRefreshScheduler.stop` cancels both. Refreshes themselves run
in separate tasks, so stopping never interrupts a refresh that is already
in flight; :meth:`DailyRefreshScheduler.shutdown` waits for it instead.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, time as dtime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable

from azurmanga.util.logger import get_logger

logger = get_logger("daily_refresh_scheduler")

DAY_SECONDS = 24 * 60 * 60


class SchedulerState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"
    STOPPED = "stopped"


def seconds_until_next_midnight(now: datetime) -> float:
    """Seconds from ``now`` until the following local midnight (always > 0)."""
    next_midnight = datetime.combine((now + timedelta(days=1)).date(), dtime.min, tzinfo=now.tzinfo)
    return (next_midnight - now).total_seconds()


class DailyRefreshScheduler:
    """
    Midnight-aligned periodic runner for a single async job.

    Args:
        refresh: Coroutine function run on every trigger.
        clock: Returns the current local time; injectable for tests.
        sleep: Awaitable delay function; injectable for tests.
        period: Seconds between triggers after the first midnight.

    Attributes:
        state (SchedulerState): Current lifecycle state.
        runs_started (int): Number of refreshes launched so far.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[Any]],
        *,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        period: float = DAY_SECONDS,
    ) -> None:
        self._refresh = refresh
        self._clock = clock
        self._sleep = sleep
        self.period = period
        self.state = SchedulerState.IDLE
        self.runs_started = 0
        self._oneshot_task: asyncio.Task[None] | None = None
        self._daily_task: asyncio.Task[None] | None = None
        self._refresh_task: asyncio.Task[Any] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Trigger an immediate refresh and arm the midnight timer."""
        if self.state in (SchedulerState.SCHEDULED, SchedulerState.RUNNING):
            logger.warning("[SCHEDULER] start() called while already running; ignoring")
            return

        self.state = SchedulerState.SCHEDULED
        self._trigger()

        delay = seconds_until_next_midnight(self._clock())
        logger.info("[SCHEDULER] Next refresh in %.0fs (local midnight)", delay)
        self._oneshot_task = asyncio.create_task(self._run_oneshot(delay), name="azurmanga-refresh-oneshot")

    def stop(self) -> None:
        """Cancel both timer handles. An in-flight refresh keeps running."""
        for task in (self._oneshot_task, self._daily_task):
            if task is not None and not task.done():
                task.cancel()
        self.state = SchedulerState.STOPPED
        logger.info("[SCHEDULER] Stopped")

    async def shutdown(self) -> None:
        """Stop, then wait for timer tasks and any in-flight refresh to finish."""
        self.stop()
        for task in (self._oneshot_task, self._daily_task):
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._refresh_task is not None and not self._refresh_task.done():
            await asyncio.gather(self._refresh_task, return_exceptions=True)
        self._oneshot_task = None
        self._daily_task = None
        logger.info("[SCHEDULER] Shutdown complete")

    @property
    def refresh_in_progress(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_oneshot(self, delay: float) -> None:
        await self._sleep(delay)
        if self.state is SchedulerState.STOPPED:
            return
        self._trigger()
        self._daily_task = asyncio.create_task(self._run_daily(), name="azurmanga-refresh-daily")

    async def _run_daily(self) -> None:
        while True:
            await self._sleep(self.period)
            if self.state is SchedulerState.STOPPED:
                return
            self._trigger()

    def _trigger(self) -> None:
        if self.refresh_in_progress:
            logger.warning("[SCHEDULER] Previous refresh still running; skipping this trigger")
            return
        self.runs_started += 1
        self.state = SchedulerState.RUNNING
        self._refresh_task = asyncio.create_task(self._refresh(), name="azurmanga-refresh")
        self._refresh_task.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, task: asyncio.Task[Any]) -> None:
        if self.state is SchedulerState.RUNNING:
            self.state = SchedulerState.SCHEDULED
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[SCHEDULER] Refresh task raised: %s", exc, exc_info=exc)
