"""HTTP helpers shared by the scraper: session creation and page retrieval."""

from __future__ import annotations

import asyncio

import aiohttp
from bs4 import BeautifulSoup

from azurmanga.exceptions import FetchError
from azurmanga.util.logger import get_logger

logger = get_logger("document_fetcher")


def create_session(timeout_seconds: float, user_agent: str) -> aiohttp.ClientSession:
    """Build the client session used for one refresh cycle.

    Every request made through the session is bounded by ``timeout_seconds``.
    The caller owns the session and must close it (``async with``).
    """
    return aiohttp.ClientSession(
        headers={"User-Agent": user_agent},
        timeout=aiohttp.ClientTimeout(total=timeout_seconds),
    )


async def _get(session: aiohttp.ClientSession, url: str, read):
    """GET ``url`` and return ``await read(response)`` for a 2xx answer."""
    try:
        async with session.get(url) as response:
            if not 200 <= response.status < 300:
                raise FetchError(url, f"HTTP {response.status}", status=response.status)
            return await read(response)
    except FetchError:
        raise
    except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as exc:
        raise FetchError(url, f"Request failed: {exc!r}") from exc


async def fetch_bytes(session: aiohttp.ClientSession, url: str) -> bytes:
    """GET ``url`` and return the raw body.

    Raises:
        FetchError: On connection failure, timeout or a non-2xx status.
    """
    return await _get(session, url, lambda response: response.read())


async def fetch_document(session: aiohttp.ClientSession, url: str) -> BeautifulSoup:
    """GET ``url`` and parse the body into a navigable tree.

    The body is decoded with the charset announced by the server.

    Raises:
        FetchError: On connection failure, timeout, a non-2xx status or an
            undecodable body.
    """
    logger.debug("[FETCH] GET %s", url)
    text = await _get(session, url, lambda response: response.text())
    return BeautifulSoup(text, "html.parser")
