"""
Manga command cog.

Exposes ``/random-azurlane-manga`` (localized for zh-CN as
``/随机航线一格漫``), which posts one random strip from the store.
"""

import asyncio
from typing import Callable

import discord
from discord.ext import commands

from azurmanga.exceptions import NoItemsAvailableError
from azurmanga.store.manga_store import MangaStore
from azurmanga.ui.manga_embed import build_manga_message, caption_for
from azurmanga.util.logger import get_logger

logger = get_logger("manga_commands")

COMMAND_NAME = "random-azurlane-manga"
COMMAND_LOCALIZATIONS = {"zh-CN": "随机航线一格漫"}
NOT_READY_MESSAGE = "漫画数据还在加载中，请稍后再试。"


class MangaCog(commands.Cog):
    """Serves random manga strips."""

    def __init__(self, discord_bot_instance, store: MangaStore, show_info: Callable[[], bool]):
        self.discord_bot_instance = discord_bot_instance
        self.store = store
        self.show_info = show_info
        logger.info("[MANGA CMDS] Manga cog loaded")

    async def send_random_manga(self, ctx: discord.ApplicationContext) -> None:
        try:
            try:
                item = await self.store.pick_random()
            except NoItemsAvailableError:
                await ctx.respond(NOT_READY_MESSAGE, ephemeral=True)
                return

            if self.show_info():
                await ctx.respond(caption_for(item))
            await ctx.respond(**build_manga_message(item))
        except asyncio.CancelledError:
            raise
        except discord.DiscordException as exc:
            logger.error("[MANGA CMDS] Failed to send manga: %s", exc)
        except Exception:
            logger.exception("[MANGA CMDS] Unexpected error while serving manga")

    @commands.slash_command(
        name=COMMAND_NAME,
        name_localizations=COMMAND_LOCALIZATIONS,
        description="Send a random Azur Lane one-panel manga.",
    )
    async def random_manga(self, ctx: discord.ApplicationContext):
        """Pick a random stored strip and post it."""
        await self.send_random_manga(ctx)


def setup(discord_bot_instance, store: MangaStore, show_info: Callable[[], bool]):
    """Register the manga cog."""
    discord_bot_instance.add_cog(MangaCog(discord_bot_instance, store, show_info))
