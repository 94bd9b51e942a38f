"""Cog that ties the daily refresh scheduler to the bot lifecycle."""

from __future__ import annotations

import discord
from discord.ext import commands

from azurmanga.scheduler.daily_refresh_scheduler import DailyRefreshScheduler, SchedulerState
from azurmanga.util.logger import get_logger

logger = get_logger("scheduler_cog")


class MangaSchedulerCog(commands.Cog):
    """
    Starts the refresh scheduler once the bot is ready and stops it when
    the cog is unloaded. ``on_ready`` can fire again after a reconnect;
    the scheduler is only started from the IDLE state.
    """

    def __init__(self, bot: discord.Bot, scheduler: DailyRefreshScheduler) -> None:
        self.bot = bot
        self.scheduler = scheduler

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        if self.scheduler.state is SchedulerState.IDLE:
            self.scheduler.start()
            logger.info("[MANGA SCHEDULER] Started")

    def cog_unload(self) -> None:
        self.scheduler.stop()
        logger.info("[MANGA SCHEDULER] Stopped")


def setup(bot: discord.Bot, scheduler: DailyRefreshScheduler) -> None:
    bot.add_cog(MangaSchedulerCog(bot, scheduler))
