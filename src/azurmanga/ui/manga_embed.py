"""
Message building for manga strips.

Items carrying an embedded payload are sent as an attached PNG so the
command never touches the wiki; items without one point the embed at the
original image URL.
"""

import io
from typing import Any, Dict

import discord

from azurmanga.datatypes.manga_datatypes import MangaItem
from azurmanga.scraper.image_fetcher import decode_embeddable_payload
from azurmanga.util.logger import get_logger

logger = get_logger("manga_embed")

MANGA_COLOR = discord.Color.blue()


def caption_for(item: MangaItem) -> str:
    """Text line sent before the image when ``show_info`` is enabled."""
    return f"当前图片：{item.title}"


def attachment_name(item: MangaItem) -> str:
    if item.identifier is not None:
        return f"manga_{item.identifier}.png"
    return "manga.png"


def build_manga_message(item: MangaItem) -> Dict[str, Any]:
    """
    Build keyword arguments for ``ctx.respond`` showing one strip.

    Returns:
        dict: ``{"embed": ...}`` and, for embedded payloads, ``{"file": ...}``.
    """
    embed = discord.Embed(color=MANGA_COLOR)

    if item.has_payload:
        try:
            data = decode_embeddable_payload(item.base64 or "")
        except ValueError as exc:
            logger.warning("[MANGA EMBED] Stored payload for %s is unusable (%s); using link", item.title, exc)
        else:
            filename = attachment_name(item)
            embed.set_image(url=f"attachment://{filename}")
            return {"embed": embed, "file": discord.File(io.BytesIO(data), filename=filename)}

    embed.set_image(url=item.link)
    return {"embed": embed}
