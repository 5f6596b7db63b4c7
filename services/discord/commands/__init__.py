"""
Discord Command Package

This package centralizes registration for the Discord command surfaces.

Command categories:
- attendance → call cards, response buttons, percent / leaderboard / rollcall

IMPORTANT DESIGN RULES:
- No command registration on import
- No Discord client ownership
- Explicit setup() calls only
"""

from __future__ import annotations

from typing import Optional

import discord
from discord.ext import commands

from shared.logging.logger import get_logger

from services.discord.commands import attendance_commands
from services.discord.commands.attendance import AttendanceCommandHandler

log = get_logger("discord.commands", runtime="discord")


def setup(
    bot: commands.Bot,
    *,
    handler: AttendanceCommandHandler,
    guild: Optional[discord.abc.Snowflake] = None,
):
    """
    Register all Discord command surfaces.

    This function is called exactly once by the Discord client
    during startup.
    """

    attendance_commands.setup(bot, handler=handler, guild=guild)

    log.info("Discord command surfaces initialized")
