"""
Item stores holding the current set of manga strips.

Two interchangeable implementations:

* :class:`MemoryMangaStore` - a list rebuilt on every refresh and swapped
  in with a single assignment, so a reader sees either the old or the new
  list, never one half-built.
* :class:`SqliteMangaStore` - rows in the ``manga`` table, upserted by
  manga number inside one transaction per refresh.

Both deduplicate a refresh batch on ``(title, link)``: an item is dropped
when an item already accepted has the same title *and* the same link.
"""

from __future__ import annotations

import math
import random
from typing import Iterable, Protocol

from azurmanga.database.db_connection import ConnectionManager, db_connection
from azurmanga.datatypes.manga_datatypes import MangaItem
from azurmanga.exceptions import IdentifierDerivationError, NoItemsAvailableError
from azurmanga.repositories.manga_repo import manga_repo
from azurmanga.util.logger import get_logger

logger = get_logger("manga_store")


def random_index(length: int, rng: random.Random | None = None) -> int:
    """Uniform index in ``[0, length)`` computed as ``floor(random() * length)``."""
    source = rng or random
    return min(math.floor(source.random() * length), length - 1)


def deduplicate(items: Iterable[MangaItem]) -> list[MangaItem]:
    """Drop items whose ``(title, link)`` pair was already seen, keeping order."""
    seen: set[tuple[str, str]] = set()
    unique: list[MangaItem] = []
    for item in items:
        if item.key in seen:
            logger.debug("[STORE] Duplicate dropped: %s", item.title)
            continue
        seen.add(item.key)
        unique.append(item)
    return unique


class MangaStore(Protocol):
    """What the refresh service and the command handler need from a store."""

    async def apply(self, items: list[MangaItem]) -> int:
        """Store one refresh batch; returns the number of items written."""
        ...

    async def count(self) -> int:
        ...

    async def all(self) -> list[MangaItem]:
        ...

    async def pick_random(self) -> MangaItem:
        """Raises NoItemsAvailableError when empty."""
        ...


class MemoryMangaStore:
    """Process-local store; each refresh replaces the whole collection."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._items: tuple[MangaItem, ...] = ()
        self._rng = rng

    async def apply(self, items: list[MangaItem]) -> int:
        fresh = tuple(deduplicate(items))
        self._items = fresh
        logger.info("[STORE] Memory store replaced with %d items", len(fresh))
        return len(fresh)

    async def count(self) -> int:
        return len(self._items)

    async def all(self) -> list[MangaItem]:
        return list(self._items)

    async def pick_random(self) -> MangaItem:
        items = self._items
        if not items:
            raise NoItemsAvailableError("No manga has been loaded yet")
        return items[random_index(len(items), self._rng)]


class SqliteMangaStore:
    """Store backed by the ``manga`` table; rows are upserted, never removed."""

    def __init__(self, connection: ConnectionManager | None = None, rng: random.Random | None = None) -> None:
        self._db = connection or db_connection
        self._rng = rng

    async def apply(self, items: list[MangaItem]) -> int:
        """
        Upsert a refresh batch in a single transaction.

        Raises:
            IdentifierDerivationError: An item has no identifier; nothing is written.
        """
        unique = deduplicate(items)
        for item in unique:
            if item.identifier is None:
                raise IdentifierDerivationError(item.title)

        async with self._db.transaction() as conn:
            for item in unique:
                await manga_repo.upsert(conn, item)

        logger.info("[STORE] Upserted %d manga rows", len(unique))
        return len(unique)

    async def count(self) -> int:
        async with self._db.read() as conn:
            return await manga_repo.count(conn)

    async def all(self) -> list[MangaItem]:
        async with self._db.read() as conn:
            return await manga_repo.get_all(conn)

    async def pick_random(self) -> MangaItem:
        async with self._db.read() as conn:
            total = await manga_repo.count(conn)
            if total == 0:
                raise NoItemsAvailableError("No manga has been stored yet")
            item = await manga_repo.get_by_offset(conn, random_index(total, self._rng))
        if item is None:
            raise NoItemsAvailableError("Picked manga row disappeared")
        return item
