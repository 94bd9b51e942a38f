"""
Extraction of manga entries from the BiliGame wiki.

Page layout assumptions live here and nowhere else:

* Listing page: the second element carrying the ``row`` class holds one
  ``<div>`` block per strip, oldest first. Each block links to the strip's
  file page with its first ``<a>``.
* Detail (file) page: the element with id ``file`` contains the
  full-resolution ``<img>``; its ``src`` is the image URL and its ``alt``
  the caption, e.g. ``第123话.jpg``.

A layout change on the wiki surfaces as :class:`StructuralParseError`
raised from :func:`locate_listing_container` or :func:`locate_detail_image`.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup, Tag

from azurmanga.datatypes.manga_datatypes import ExtractionResult, MangaFailure, MangaItem
from azurmanga.exceptions import IdentifierDerivationError, MangaError, StructuralParseError
from azurmanga.scraper.document_fetcher import fetch_document
from azurmanga.scraper.image_fetcher import fetch_as_embeddable_payload
from azurmanga.util.logger import get_logger

logger = get_logger("manga_extractor")

LISTING_CONTAINER_CLASS = "row"
LISTING_CONTAINER_INDEX = 1
DETAIL_CONTAINER_ID = "file"

_DIGITS = re.compile(r"\d+")


def extract_identifier(title: str) -> int:
    """
    Return the first run of digits in ``title`` as an integer.

    >>> extract_identifier("第123话")
    123

    Raises:
        IdentifierDerivationError: If ``title`` contains no digits.
    """
    match = _DIGITS.search(title or "")
    if match is None:
        raise IdentifierDerivationError(title)
    return int(match.group())


def locate_listing_container(document: BeautifulSoup) -> Tag:
    """Return the listing container (second ``.row`` element)."""
    rows = document.find_all(class_=LISTING_CONTAINER_CLASS)
    if len(rows) <= LISTING_CONTAINER_INDEX:
        raise StructuralParseError(
            f"Expected at least {LISTING_CONTAINER_INDEX + 1} '.{LISTING_CONTAINER_CLASS}' "
            f"elements on the listing page, found {len(rows)}"
        )
    return rows[LISTING_CONTAINER_INDEX]


def listing_blocks(container: Tag) -> list[Tag]:
    """Direct child ``<div>`` blocks of the container, newest first."""
    blocks = container.find_all("div", recursive=False)
    blocks.reverse()
    return blocks


def detail_url_for(block: Tag, base_url: str) -> str:
    """Absolute URL of the file page linked from a listing block."""
    anchor = block.find("a")
    if anchor is None:
        raise StructuralParseError("Listing block has no <a> element")
    href = anchor.get("href")
    if not href:
        raise StructuralParseError("Listing block anchor has no href")
    return urljoin(base_url, str(href))


def locate_detail_image(document: BeautifulSoup) -> tuple[str, str]:
    """Return ``(src, alt)`` of the full-resolution image on a file page."""
    container = document.find(id=DETAIL_CONTAINER_ID)
    if container is None:
        raise StructuralParseError(f"Detail page has no element with id '{DETAIL_CONTAINER_ID}'")
    img = container.find("img")
    if img is None:
        raise StructuralParseError(f"No <img> inside '#{DETAIL_CONTAINER_ID}'")
    src = img.get("src")
    alt = img.get("alt")
    if not src:
        raise StructuralParseError("Detail image has no src attribute")
    if alt is None:
        raise StructuralParseError("Detail image has no alt attribute")
    return str(src), str(alt)


async def resolve_detail(
    session: aiohttp.ClientSession,
    detail_url: str,
    *,
    require_identifier: bool = False,
    embed_images: bool = False,
) -> MangaItem:
    """
    Fetch one file page and build its :class:`MangaItem`.

    Args:
        session: Open HTTP session.
        detail_url: Absolute URL of the file page.
        require_identifier: Raise when the title carries no number instead of
            leaving ``identifier`` as None.
        embed_images: Also download the image and attach it as a data URL.

    Raises:
        FetchError, StructuralParseError, IdentifierDerivationError
    """
    document = await fetch_document(session, detail_url)
    link, title = locate_detail_image(document)

    try:
        identifier: int | None = extract_identifier(title)
    except IdentifierDerivationError:
        if require_identifier:
            raise
        identifier = None

    item = MangaItem(title=title, link=link, identifier=identifier)
    if embed_images:
        item = item.with_payload(await fetch_as_embeddable_payload(session, link))
    return item


async def extract_items(
    session: aiohttp.ClientSession,
    listing_url: str,
    *,
    base_url: str,
    require_identifier: bool = False,
    embed_images: bool = False,
) -> list[ExtractionResult]:
    """
    Resolve every entry of the listing page, newest first.

    Pages are fetched one after another. A failure inside a single block
    becomes a :class:`MangaFailure` in the returned list; only a failure to
    fetch or recognise the listing page itself is raised.

    Raises:
        FetchError: The listing page could not be retrieved.
        StructuralParseError: The listing container is missing.
    """
    document = await fetch_document(session, listing_url)
    blocks = listing_blocks(locate_listing_container(document))
    logger.info("[EXTRACT] Found %d listing blocks on %s", len(blocks), listing_url)

    results: list[ExtractionResult] = []
    for position, block in enumerate(blocks):
        try:
            detail_url = detail_url_for(block, base_url)
        except StructuralParseError as exc:
            logger.warning("[EXTRACT] Block %d skipped: %s", position, exc)
            results.append(MangaFailure(source_url=listing_url, reason=str(exc), error=exc))
            continue

        try:
            item = await resolve_detail(
                session,
                detail_url,
                require_identifier=require_identifier,
                embed_images=embed_images,
            )
        except MangaError as exc:
            logger.warning("[EXTRACT] %s failed: %s", detail_url, exc)
            results.append(MangaFailure(source_url=detail_url, reason=str(exc), error=exc))
            continue

        results.append(item)

    return results
