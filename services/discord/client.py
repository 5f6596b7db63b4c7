"""
Discord Client

This module owns the Discord connection itself.
It is intentionally minimal and lifecycle-focused.

Responsibilities:
- connect to Discord
- handle ready / resume / disconnect events
- build the attendance store and register command surfaces
- expose a clean async run() / shutdown() contract

IMPORTANT:
- This client MUST NOT create its own event loop (core.discord_app owns it)
"""

from __future__ import annotations

import os
import asyncio
from typing import Optional

import discord
from discord.ext import commands

from dotenv import load_dotenv

from shared.config.attendance import AttendanceConfig, load_attendance_config
from shared.logging.logger import get_logger
from shared.storage.attendance import EventStore, JsonFileBackend
from runtime.version import as_string

from services.discord import commands as command_surfaces
from services.discord.commands.attendance import AttendanceCommandHandler
from services.discord.logging import DiscordLogAdapter

# NOTE: routed to Discord runtime log file
log = get_logger("discord.client", runtime="discord")

TOKEN_ENV = "DISCORD_TOKEN"


class DiscordClient:
    """
    Thin wrapper around discord.py Bot.

    This class provides:
    - async run() entrypoint
    - async shutdown()
    - lifecycle event logging
    - command surface wiring
    """

    def __init__(self, config: Optional[AttendanceConfig] = None):
        load_dotenv()

        token = os.getenv(TOKEN_ENV)
        if not token:
            raise RuntimeError(f"{TOKEN_ENV} not found in environment")

        self.config = config or load_attendance_config()
        missing = self.config.missing_discord_settings()
        if missing:
            raise RuntimeError(f"Missing settings: {', '.join(missing)}")

        self._token: str = token
        self._bot: Optional[commands.Bot] = None
        self._ready_event = asyncio.Event()

        # --------------------------------------------------
        # Shared services (one per runtime)
        # --------------------------------------------------
        self.logger = DiscordLogAdapter()
        self.store = EventStore(
            JsonFileBackend(self.config.data_path),
            timezone=self.config.timezone,
        )
        self.handler = AttendanceCommandHandler(
            store=self.store,
            config=self.config,
            logger=self.logger,
        )

    # --------------------------------------------------

    def _build_bot(self) -> commands.Bot:
        """
        Construct the discord.py Bot instance and register commands.
        """

        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = False
        intents.message_content = False  # slash-command focused

        bot = commands.Bot(
            command_prefix="!",
            intents=intents,
        )

        guild = discord.Object(id=int(self.config.guild_id))

        # --------------------------------------------------
        # Command Registration
        # --------------------------------------------------

        command_surfaces.setup(bot, handler=self.handler, guild=guild)

        # --------------------------------------------------
        # Lifecycle Events
        # --------------------------------------------------

        @bot.event
        async def on_ready():
            log.info(
                f"{as_string()} connected as {bot.user} "
                f"(id={bot.user.id}) "
                f"guilds={len(bot.guilds)}"
            )
            self.logger.log_startup()

            # Sync slash commands to the configured guild
            try:
                synced = await bot.tree.sync(guild=guild)
                log.info(f"Discord command tree synced ({len(synced)} commands)")
            except discord.HTTPException as e:
                log.error(f"Failed to sync Discord commands: {e}")

            self._ready_event.set()

        @bot.event
        async def on_resumed():
            log.info("Discord connection resumed")

        @bot.event
        async def on_disconnect():
            log.warning("Discord connection lost")

        return bot

    # --------------------------------------------------

    async def run(self):
        """
        Start the Discord client and block until shutdown.
        """
        if self._bot is not None:
            raise RuntimeError("Discord client already running")

        log.info("Initializing Discord client")

        self._bot = self._build_bot()

        try:
            await self._bot.start(self._token)
        except asyncio.CancelledError:
            log.info("Discord client task cancelled")
            raise
        except Exception as e:
            log.error(f"Discord client crashed: {e}")
            raise
        finally:
            log.info("Discord client stopped")

    # --------------------------------------------------

    async def shutdown(self):
        """
        Gracefully close the Discord connection.
        """
        if not self._bot:
            return

        log.info("Closing Discord connection")

        try:
            await self._bot.close()
        except Exception as e:
            log.warning(f"Discord close error ignored: {e}")

        self.logger.log_shutdown()

        self._bot = None
        self._ready_event.clear()

    # --------------------------------------------------

    async def wait_until_ready(self):
        await self._ready_event.wait()

    @property
    def bot(self) -> Optional[commands.Bot]:
        """
        Expose bot instance (read-only) for runtime hooks.
        """
        return self._bot
