"""
Discord Attendance Slash Command Registration

Thin registration layer exposing the attendance commands and the button
listener. ALL logic is delegated to AttendanceCommandHandler.

Responsibilities:
- Register slash commands on the bot tree
- Route attendance button clicks to the handler
- Perform Discord I/O (responses, card posts) ONLY at the boundary

IMPORTANT DESIGN RULES:
- NO scoring logic
- NO persistence
- NO Discord client creation
"""

from __future__ import annotations

from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from shared.attendance.errors import AttendanceError
from shared.logging.logger import get_logger

from services.discord.commands.attendance import AttendanceCommandHandler
from services.discord.embeds import (
    call_card_embed,
    error_embed,
    leaderboard_embed,
    percent_embed,
    rollcall_embed,
)
from services.discord.views import AttendanceButtons, parse_custom_id

log = get_logger("discord.commands.attendance.register", runtime="discord")

GENERIC_ERROR = "Something went wrong. Check the bot logs."


async def _send_error(interaction: discord.Interaction, message: str) -> None:
    embed = error_embed("❌ Error", message)
    try:
        if interaction.response.is_done():
            await interaction.followup.send(embed=embed, ephemeral=True)
        else:
            await interaction.response.send_message(embed=embed, ephemeral=True)
    except discord.HTTPException as e:
        log.warning(f"Failed to deliver error response: {e}")


def _guild_id(interaction: discord.Interaction) -> Optional[int]:
    return interaction.guild.id if interaction.guild else None


# ==================================================
# Registration Entry Point
# ==================================================

def setup(
    bot: commands.Bot,
    *,
    handler: AttendanceCommandHandler,
    guild: Optional[discord.abc.Snowflake] = None,
):
    """
    Register the attendance slash commands and the button listener.

    When a guild is given, commands are scoped to it so syncing is instant.
    """

    # --------------------------------------------------
    # /call
    # --------------------------------------------------

    @app_commands.command(name="call", description="Post a CAD call card")
    @app_commands.describe(
        location="Location",
        date='Date/time: "2026-03-02 21:40"',
        type="Type of call (ex: STRUCTURE FIRE, MVA, ALARM)",
        points="Points",
        counts_against="Counts against if missed (default true)",
        details="Extra details (optional)",
    )
    @app_commands.choices(points=[
        app_commands.Choice(name="0", value=0.0),
        app_commands.Choice(name="0.5", value=0.5),
        app_commands.Choice(name="1", value=1.0),
    ])
    async def call(
        interaction: discord.Interaction,
        location: str,
        date: str,
        type: str,
        points: app_commands.Choice[float],
        counts_against: bool = True,
        details: Optional[str] = None,
    ):
        channel_id = handler.config.log_channel_id
        channel = None
        if channel_id:
            try:
                channel = interaction.client.get_channel(int(channel_id)) or await interaction.client.fetch_channel(int(channel_id))
            except discord.HTTPException as e:
                log.error(f"Failed to fetch log channel {channel_id}: {e}")
        if channel is None:
            await _send_error(interaction, "LOG_CHANNEL_ID is not configured correctly.")
            return

        result = await handler.cmd_call(
            user_id=interaction.user.id,
            guild_id=_guild_id(interaction),
            location=location,
            date=date,
            call_type=type,
            points=points.value,
            counts_against=counts_against,
            details=details,
        )
        if not result["ok"]:
            await _send_error(interaction, result["error"])
            return

        event = result["event"]
        await interaction.response.send_message("✅ Call posted.", ephemeral=True)
        await channel.send(embed=call_card_embed(event), view=AttendanceButtons(event))

    # --------------------------------------------------
    # /percent
    # --------------------------------------------------

    @app_commands.command(name="percent", description="Show your percent (This Month + This Quarter)")
    async def percent(interaction: discord.Interaction):
        result = await handler.cmd_percent(
            user_id=interaction.user.id,
            guild_id=_guild_id(interaction),
        )
        await interaction.response.send_message(embed=percent_embed(result), ephemeral=True)

    # --------------------------------------------------
    # /resetpercent
    # --------------------------------------------------

    @app_commands.command(name="resetpercent", description="Reset YOUR attendance and percent")
    async def resetpercent(interaction: discord.Interaction):
        await handler.cmd_reset(
            user_id=interaction.user.id,
            guild_id=_guild_id(interaction),
        )
        await interaction.response.send_message(
            "✅ Your attendance has been reset. Your percent is now reset.",
            ephemeral=True,
        )

    # --------------------------------------------------
    # /leaderboard
    # --------------------------------------------------

    @app_commands.command(name="leaderboard", description="Show this month’s leaderboard")
    async def leaderboard(interaction: discord.Interaction):
        result = await handler.cmd_leaderboard(
            user_id=interaction.user.id,
            guild_id=_guild_id(interaction),
        )
        if not result["entries"]:
            await interaction.response.send_message(
                "No attendance logged yet this month.",
                ephemeral=True,
            )
            return

        await interaction.response.send_message(embed=leaderboard_embed(result))

    # --------------------------------------------------
    # /rollcall
    # --------------------------------------------------

    @app_commands.command(name="rollcall", description="Show who made/silent/missed for a CAD number")
    @app_commands.describe(cad="CAD Number")
    async def rollcall(interaction: discord.Interaction, cad: int):
        result = await handler.cmd_rollcall(
            user_id=interaction.user.id,
            guild_id=_guild_id(interaction),
            cad=cad,
        )
        if not result["ok"]:
            await _send_error(interaction, f"No record found for CAD {cad}.")
            return

        await interaction.response.send_message(embed=rollcall_embed(result["event"]), ephemeral=True)

    # --------------------------------------------------
    # Attendance buttons
    # --------------------------------------------------

    async def on_interaction(interaction: discord.Interaction):
        if interaction.type is not discord.InteractionType.component:
            return

        parsed = parse_custom_id((interaction.data or {}).get("custom_id"))
        if parsed is None:
            return
        event_id, state = parsed

        try:
            result = await handler.cmd_respond(
                user_id=interaction.user.id,
                guild_id=_guild_id(interaction),
                event_id=event_id,
                state=state.value,
            )
        except AttendanceError as e:
            log.error(f"Failed to record response for event {event_id}: {e}")
            await _send_error(interaction, GENERIC_ERROR)
            return

        if not result["ok"]:
            await _send_error(interaction, "Call not found.")
            return

        event = result["event"]
        await interaction.response.edit_message(
            embed=call_card_embed(event),
            view=AttendanceButtons(event),
        )

    # --------------------------------------------------
    # Error reporting
    # --------------------------------------------------

    async def on_app_command_error(
        interaction: discord.Interaction,
        error: app_commands.AppCommandError,
    ):
        original = getattr(error, "original", error)
        command = interaction.command.name if interaction.command else "unknown"
        log.error(f"Attendance command /{command} failed: {original}")
        await _send_error(interaction, GENERIC_ERROR)

    # --------------------------------------------------
    # Register Commands
    # --------------------------------------------------

    for command in (call, percent, resetpercent, leaderboard, rollcall):
        bot.tree.add_command(command, guild=guild)

    bot.tree.error(on_app_command_error)
    bot.add_listener(on_interaction, "on_interaction")

    log.info("Discord attendance commands registered")
