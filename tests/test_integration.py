"""End-to-end: scrape three strips, pick at random, stop the schedule."""

import asyncio
import random
from collections import Counter
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from azurmanga.cog.commands.manga_cmds import MangaCog
from azurmanga.database.db_connection import ConnectionManager
from azurmanga.scheduler.daily_refresh_scheduler import DailyRefreshScheduler
from azurmanga.services.refresh_service import RefreshService
from azurmanga.store.manga_store import SqliteMangaStore
from wiki_fixtures import BASE_URL, LISTING_URL, FakeSession, FakeTimer, settle, wiki_pages


async def wait_for_refresh(scheduler: DailyRefreshScheduler) -> None:
    # aiosqlite finishes its work on a worker thread
    for _ in range(500):
        await settle()
        if not scheduler.refresh_in_progress:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("refresh did not finish")


@pytest_asyncio.fixture
async def db(tmp_path):
    manager = ConnectionManager()
    await manager.open(tmp_path / "manga.db")
    yield manager
    await manager.close()


@pytest.mark.asyncio
async def test_scrape_pick_and_stop(db: ConnectionManager) -> None:
    sessions: list[FakeSession] = []

    def session_factory() -> FakeSession:
        session = FakeSession(wiki_pages([101, 102, 103]))
        sessions.append(session)
        return session

    store = SqliteMangaStore(db, rng=random.Random(42))
    service = RefreshService(
        store,
        listing_url=LISTING_URL,
        base_url=BASE_URL,
        session_factory=session_factory,
        require_identifier=True,
        embed_images=True,
    )
    timer = FakeTimer(datetime(2026, 10, 17, 23, 59, 59))
    scheduler = DailyRefreshScheduler(service.refresh, clock=timer.clock, sleep=timer.sleep)

    scheduler.start()
    await wait_for_refresh(scheduler)
    assert len(sessions) == 1
    assert {item.identifier for item in await store.all()} == {101, 102, 103}

    counts = Counter([(await store.pick_random()).identifier for _ in range(1000)])
    assert set(counts) == {101, 102, 103}

    await timer.fire_next()
    await wait_for_refresh(scheduler)
    assert len(sessions) == 2
    assert await store.count() == 3

    scheduler.stop()
    await settle()
    assert timer.pending() == []
    assert len(sessions) == 2
    await scheduler.shutdown()

    cog = MangaCog(MagicMock(), store, lambda: True)
    ctx = MagicMock()
    ctx.respond = AsyncMock()
    await cog.send_random_manga(ctx)

    assert ctx.respond.await_args_list[0].args[0].startswith("当前图片：第10")
    assert ctx.respond.await_args_list[1].kwargs["file"].filename.startswith("manga_10")
