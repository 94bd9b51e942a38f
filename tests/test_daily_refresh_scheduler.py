import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from azurmanga.scheduler.daily_refresh_scheduler import (
    DAY_SECONDS,
    DailyRefreshScheduler,
    SchedulerState,
    seconds_until_next_midnight,
)
from wiki_fixtures import FakeTimer, settle


def test_seconds_until_next_midnight() -> None:
    assert seconds_until_next_midnight(datetime(2026, 10, 17, 23, 59, 59)) == 1.0
    assert seconds_until_next_midnight(datetime(2026, 10, 17, 0, 0, 0)) == DAY_SECONDS
    assert seconds_until_next_midnight(datetime(2026, 12, 31, 12, 0, 0)) == 12 * 3600


@pytest.mark.asyncio
async def test_start_runs_immediately_then_at_midnight_then_daily() -> None:
    timer = FakeTimer(datetime(2026, 10, 17, 23, 59, 59))
    refresh = AsyncMock()
    scheduler = DailyRefreshScheduler(refresh, clock=timer.clock, sleep=timer.sleep)

    scheduler.start()
    await settle()
    assert refresh.await_count == 1

    assert await timer.fire_next() == 1.0
    assert timer.now == datetime(2026, 10, 18, 0, 0, 0)
    assert refresh.await_count == 2

    assert await timer.fire_next() == DAY_SECONDS
    assert await timer.fire_next() == DAY_SECONDS
    assert timer.now == datetime(2026, 10, 20, 0, 0, 0)
    assert refresh.await_count == 4
    assert scheduler.state is SchedulerState.SCHEDULED

    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_stop_before_midnight_cancels_oneshot_timer() -> None:
    timer = FakeTimer(datetime(2026, 10, 17, 12, 0, 0))
    refresh = AsyncMock()
    scheduler = DailyRefreshScheduler(refresh, clock=timer.clock, sleep=timer.sleep)

    scheduler.start()
    await settle()
    scheduler.stop()
    await settle()

    assert timer.pending() == []
    assert scheduler.state is SchedulerState.STOPPED
    assert refresh.await_count == 1
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_stop_cancels_daily_timer() -> None:
    timer = FakeTimer(datetime(2026, 10, 17, 23, 0, 0))
    refresh = AsyncMock()
    scheduler = DailyRefreshScheduler(refresh, clock=timer.clock, sleep=timer.sleep)

    scheduler.start()
    await timer.fire_next()
    assert refresh.await_count == 2

    scheduler.stop()
    await settle()

    assert timer.pending() == []
    assert refresh.await_count == 2
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_stop_does_not_interrupt_running_refresh() -> None:
    timer = FakeTimer(datetime(2026, 10, 17, 23, 0, 0))
    release = asyncio.Event()
    finished = []

    async def slow_refresh() -> None:
        await release.wait()
        finished.append(True)

    scheduler = DailyRefreshScheduler(slow_refresh, clock=timer.clock, sleep=timer.sleep)
    scheduler.start()
    await settle()
    assert scheduler.refresh_in_progress

    scheduler.stop()
    await settle()
    assert scheduler.refresh_in_progress

    release.set()
    await scheduler.shutdown()
    assert finished == [True]


@pytest.mark.asyncio
async def test_overlapping_trigger_is_skipped() -> None:
    timer = FakeTimer(datetime(2026, 10, 17, 23, 59, 0))
    release = asyncio.Event()
    calls = []

    async def slow_refresh() -> None:
        calls.append(timer.now)
        await release.wait()

    scheduler = DailyRefreshScheduler(slow_refresh, clock=timer.clock, sleep=timer.sleep)
    scheduler.start()
    await timer.fire_next()

    assert scheduler.runs_started == 1
    assert len(calls) == 1

    release.set()
    await settle()
    await timer.fire_next()
    assert scheduler.runs_started == 2

    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_failing_refresh_does_not_stop_schedule() -> None:
    timer = FakeTimer(datetime(2026, 10, 17, 23, 0, 0))
    refresh = AsyncMock(side_effect=RuntimeError("boom"))
    scheduler = DailyRefreshScheduler(refresh, clock=timer.clock, sleep=timer.sleep)

    scheduler.start()
    await timer.fire_next()
    await timer.fire_next()

    assert refresh.await_count == 3
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_start_twice_is_ignored() -> None:
    timer = FakeTimer(datetime(2026, 10, 17, 10, 0, 0))
    refresh = AsyncMock()
    scheduler = DailyRefreshScheduler(refresh, clock=timer.clock, sleep=timer.sleep)

    scheduler.start()
    scheduler.start()
    await settle()

    assert refresh.await_count == 1
    assert len(timer.pending()) == 1
    await scheduler.shutdown()
