"""
Azur Lane Manga Bot
===================

A Discord bot that scrapes the BiliGame wiki for Azur Lane one-panel manga
once a day and posts a random strip on ``/random-azurlane-manga``.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. AZURMANGA_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("AZURMANGA_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from azurmanga.configuration.app_configuration import AppConfig, app_config
from azurmanga.database.db_connection import db_connection
from azurmanga.scheduler.daily_refresh_scheduler import DailyRefreshScheduler
from azurmanga.services.refresh_service import RefreshService
from azurmanga.store.manga_store import MangaStore, MemoryMangaStore, SqliteMangaStore
from azurmanga.util.logger import get_logger, handle_exception


logger = get_logger("main")


@dataclass
class Runtime:
    """Everything the bot owns for its lifetime."""
    bot: discord.Bot
    store: MangaStore
    refresher: RefreshService
    scheduler: DailyRefreshScheduler


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


async def build_store(config: AppConfig) -> MangaStore:
    """Create the configured store, opening the database when needed."""
    if config.storage_backend == "memory":
        logger.info("Using in-memory manga store")
        return MemoryMangaStore()

    await db_connection.open(config.database_path)
    logger.info("Using SQLite manga store at %s", config.database_path)
    return SqliteMangaStore(db_connection)


def load_cogs(runtime: Runtime, config: AppConfig) -> None:
    """Register the manga command and scheduler cogs."""
    from azurmanga.cog.commands import manga_cmds
    from azurmanga.cog.listener import scheduler_cog

    manga_cmds.setup(runtime.bot, runtime.store, lambda: config.show_info)
    scheduler_cog.setup(runtime.bot, runtime.scheduler)

    logger.info("All cogs loaded successfully.")


async def create_runtime(config: AppConfig) -> Runtime:
    """Wire store, refresh service, scheduler and bot together."""
    store = await build_store(config)
    refresher = RefreshService.from_config(
        store,
        config,
        require_identifier=isinstance(store, SqliteMangaStore),
    )
    scheduler = DailyRefreshScheduler(refresher.refresh)
    bot = discord.Bot(intents=discord.Intents.default())

    runtime = Runtime(bot=bot, store=store, refresher=refresher, scheduler=scheduler)
    load_cogs(runtime, config)
    return runtime


async def shutdown_runtime(runtime: Runtime | None) -> None:
    """Stop the scheduler, close the bot and release the database."""
    if runtime is not None:
        try:
            await runtime.scheduler.shutdown()
        except Exception as exc:
            logger.exception("Error during scheduler shutdown: %s", exc)

        if not runtime.bot.is_closed():
            try:
                await runtime.bot.close()
            except Exception as exc:
                logger.exception("Error while closing the bot: %s", exc)

    await db_connection.close()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the runtime and run the bot, returning an exit code."""
    token = load_environment()

    try:
        runtime = await create_runtime(app_config)
    except Exception as exc:
        logger.critical("Failed to initialize bot runtime: %s", exc)
        await shutdown_runtime(None)
        return 1

    exit_code = 0
    logger.info("Attempting to connect to Discord…")
    try:
        await runtime.bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(runtime)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    logger.info("Starting Azur Lane Manga Bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        return code if isinstance(code, int) else 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
