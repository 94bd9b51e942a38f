"""
Persistent storage for scraped manga strips.

Rows are keyed by the manga number derived from the title, so re-scraping
the same page overwrites rows in place. Rows for strips that disappear from
the wiki are never deleted.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from azurmanga.datatypes.manga_datatypes import MangaItem
from azurmanga.util.logger import get_logger

logger = get_logger("manga_repo")


def _row_to_item(row) -> MangaItem:
    return MangaItem(
        identifier=row[0],
        link=row[1],
        title=row[2],
        base64=row[3] or None,
    )


class MangaRepo:
    """Low-level CRUD for the ``manga`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, item: MangaItem) -> None:
        """Insert a row, or overwrite link/title/base64 of the row with the same id."""
        if item.identifier is None:
            raise ValueError(f"Cannot store manga without identifier: {item.title!r}")
        await conn.execute(
            """
            INSERT INTO manga (id, link, title, base64)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                link   = excluded.link,
                title  = excluded.title,
                base64 = excluded.base64
            """,
            (item.identifier, item.link, item.title, item.base64 or ""),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def count(conn: aiosqlite.Connection) -> int:
        cursor = await conn.execute("SELECT COUNT(*) FROM manga")
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    async def get_by_offset(conn: aiosqlite.Connection, offset: int) -> MangaItem | None:
        """Return the row at position ``offset`` in id order, or None."""
        cursor = await conn.execute(
            "SELECT id, link, title, base64 FROM manga ORDER BY id LIMIT 1 OFFSET ?",
            (offset,),
        )
        row = await cursor.fetchone()
        return _row_to_item(row) if row else None

    @staticmethod
    async def get_by_id(conn: aiosqlite.Connection, identifier: int) -> MangaItem | None:
        cursor = await conn.execute(
            "SELECT id, link, title, base64 FROM manga WHERE id = ?",
            (identifier,),
        )
        row = await cursor.fetchone()
        return _row_to_item(row) if row else None

    @staticmethod
    async def get_all(conn: aiosqlite.Connection) -> List[MangaItem]:
        cursor = await conn.execute("SELECT id, link, title, base64 FROM manga ORDER BY id")
        rows = await cursor.fetchall()
        return [_row_to_item(row) for row in rows]


# Module-level singleton
manga_repo = MangaRepo()
