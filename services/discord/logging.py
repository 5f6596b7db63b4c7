"""
Discord Logging Adapter

Normalizes Discord-originated events (commands, button clicks, lifecycle)
into structured records on the discord runtime log.

IMPORTANT:
- This module MUST NOT depend on discord.py objects directly
- Callers pass raw ids and plain data only
"""

from __future__ import annotations

from typing import Optional, Dict, Any

from shared.logging.logger import get_logger

log = get_logger("discord.logging", runtime="discord")


class DiscordLogAdapter:
    """
    Structured logger for Discord runtime events.
    """

    def __init__(self):
        self._enabled: bool = True

    # --------------------------------------------------
    # Lifecycle / Control
    # --------------------------------------------------

    def enable(self):
        self._enabled = True
        log.debug("DiscordLogAdapter enabled")

    def disable(self):
        self._enabled = False
        log.debug("DiscordLogAdapter disabled")

    @property
    def enabled(self) -> bool:
        return self._enabled

    # --------------------------------------------------
    # Structured Event Hooks
    # --------------------------------------------------

    def log_event(
        self,
        *,
        event: str,
        level: str = "info",
        guild_id: Optional[int] = None,
        user_id: Optional[int] = None,
        channel_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Record a structured Discord event and return the payload written.
        """

        if not self._enabled:
            return None

        payload = {
            "event": event,
            "guild_id": guild_id,
            "user_id": user_id,
            "channel_id": channel_id,
            "data": data or {},
        }

        if level == "debug":
            log.debug(f"Discord event: {payload}")
        elif level == "warning":
            log.warning(f"Discord event: {payload}")
        elif level == "error":
            log.error(f"Discord event: {payload}")
        else:
            log.info(f"Discord event: {payload}")

        return payload

    # --------------------------------------------------
    # Convenience Helpers
    # --------------------------------------------------

    def log_startup(self):
        self.log_event(event="discord_startup")

    def log_shutdown(self):
        self.log_event(event="discord_shutdown")

    def log_command(
        self,
        *,
        command: str,
        guild_id: Optional[int],
        user_id: Optional[int],
        success: bool,
        extra: Optional[Dict[str, Any]] = None,
    ):
        """Log a Discord slash command or button execution."""
        return self.log_event(
            event="discord_command",
            level="info" if success else "warning",
            data={
                "command": command,
                "success": success,
                "extra": extra or {},
            },
            guild_id=guild_id,
            user_id=user_id,
        )
