"""Download manga images and convert them to self-contained data URLs."""

from __future__ import annotations

import base64
import binascii

import aiohttp

from azurmanga.scraper.document_fetcher import fetch_bytes
from azurmanga.util.logger import get_logger

logger = get_logger("image_fetcher")

PAYLOAD_PREFIX = "data:image/png;base64,"


def encode_embeddable_payload(data: bytes) -> str:
    """Return ``data`` as a ``data:image/png;base64,`` URL."""
    return PAYLOAD_PREFIX + base64.b64encode(data).decode("ascii")


def decode_embeddable_payload(payload: str) -> bytes:
    """
    Inverse of :func:`encode_embeddable_payload`.

    Args:
        payload: A data URL, or a bare base64 string.

    Returns:
        bytes: The decoded image bytes.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    encoded = payload.split(",", 1)[1] if payload.startswith("data:") else payload
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid image payload: {exc}") from exc


async def fetch_as_embeddable_payload(session: aiohttp.ClientSession, image_url: str) -> str:
    """
    Download ``image_url`` and return it as an embeddable data URL.

    Raises:
        FetchError: On network failure or non-2xx status.
    """
    data = await fetch_bytes(session, image_url)
    logger.debug("[IMAGE] Downloaded %d bytes from %s", len(data), image_url)
    return encode_embeddable_payload(data)
