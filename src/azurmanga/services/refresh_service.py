"""
One refresh cycle: scrape the wiki, then hand the batch to the store.

:meth:`RefreshService.refresh` is the entry point used by the scheduler;
it never raises (except for cancellation). :meth:`RefreshService.run_cycle`
does the same work but propagates errors, which is what tests and manual
callers usually want.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, Callable

from azurmanga.datatypes.manga_datatypes import MangaFailure, split_results
from azurmanga.exceptions import MangaError, RefreshAborted
from azurmanga.scraper.document_fetcher import create_session
from azurmanga.scraper.manga_extractor import extract_items
from azurmanga.store.manga_store import MangaStore
from azurmanga.util.logger import get_logger

logger = get_logger("refresh_service")

SessionFactory = Callable[[], AsyncContextManager[Any]]


@dataclass
class RefreshReport:
    """Outcome of a completed cycle."""
    stored: int
    failures: list[MangaFailure] = field(default_factory=list)
    duration: float = 0.0


class RefreshService:
    """
    Scrape the listing page and store the result.

    Args:
        store: Destination of the scraped items.
        listing_url: Wiki page enumerating the strips.
        base_url: Origin used to resolve relative links.
        session_factory: Zero-argument callable returning an async context
            manager that yields an aiohttp-compatible session.
        require_identifier: Treat titles without a number as failures.
        embed_images: Download each image and store it as a data URL.
        abort_on_item_error: Store nothing when any entry failed.
    """

    def __init__(
        self,
        store: MangaStore,
        *,
        listing_url: str,
        base_url: str,
        session_factory: SessionFactory,
        require_identifier: bool = False,
        embed_images: bool = False,
        abort_on_item_error: bool = False,
    ) -> None:
        self.store = store
        self.listing_url = listing_url
        self.base_url = base_url
        self._session_factory = session_factory
        self.require_identifier = require_identifier
        self.embed_images = embed_images
        self.abort_on_item_error = abort_on_item_error
        self.last_report: RefreshReport | None = None

    @classmethod
    def from_config(cls, store: MangaStore, config, *, require_identifier: bool) -> "RefreshService":
        """Build a service from an :class:`AppConfig`."""
        timeout = config.http_timeout
        user_agent = config.user_agent
        return cls(
            store,
            listing_url=config.listing_url,
            base_url=config.base_url,
            session_factory=lambda: create_session(timeout, user_agent),
            require_identifier=require_identifier,
            embed_images=config.embed_images,
            abort_on_item_error=config.abort_on_item_error,
        )

    async def run_cycle(self) -> RefreshReport:
        """
        Scrape and store one batch.

        Raises:
            FetchError / StructuralParseError: The listing page is unusable.
            RefreshAborted: Entries failed while ``abort_on_item_error`` is set.
        """
        started = time.monotonic()
        async with self._session_factory() as session:
            results = await extract_items(
                session,
                self.listing_url,
                base_url=self.base_url,
                require_identifier=self.require_identifier,
                embed_images=self.embed_images,
            )

        items, failures = split_results(results)
        if failures and self.abort_on_item_error:
            raise RefreshAborted(failures)

        stored = await self.store.apply(items)
        report = RefreshReport(stored=stored, failures=failures, duration=time.monotonic() - started)
        self.last_report = report
        return report

    async def refresh(self) -> RefreshReport | None:
        """Run one cycle, logging and swallowing every failure."""
        logger.info("[REFRESH] Updating manga from %s", self.listing_url)
        try:
            report = await self.run_cycle()
        except asyncio.CancelledError:
            raise
        except MangaError as exc:
            logger.error("[REFRESH] Refresh failed: %s", exc)
            return None
        except Exception:
            logger.exception("[REFRESH] Unexpected error during refresh")
            return None

        if report.failures:
            logger.warning("[REFRESH] %d entries skipped", len(report.failures))
        logger.info("[REFRESH] Update complete: %d items stored in %.1fs", report.stored, report.duration)
        return report
