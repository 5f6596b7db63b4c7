"""
Discord Attendance Commands

Handler for the attendance command surface (/call, /percent, /resetpercent,
/leaderboard, /rollcall and the Made / Silent / Missed buttons).

IMPORTANT CONSTRAINTS:
- This module MUST NOT register commands on import
- This module MUST NOT import discord.py; results are plain dicts
- Lookup and validation failures become {"ok": False, "error": ...}
- StorageFailure propagates so the registration layer can report it
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from shared.attendance.errors import EventNotFound, InvalidInput
from shared.attendance.periods import format_local, month_key_label, parse_timestamp, period_keys
from shared.attendance.scoring import meets_minimum, rank_period, score
from shared.config.attendance import AttendanceConfig
from shared.logging.logger import get_logger
from shared.storage.attendance.store import EventStore
from services.discord.logging import DiscordLogAdapter

log = get_logger("discord.commands.attendance", runtime="discord")


class AttendanceCommandHandler:
    """
    Callable handlers wired by services.discord.commands.attendance_commands.
    """

    def __init__(
        self,
        *,
        store: EventStore,
        config: AttendanceConfig,
        logger: Optional[DiscordLogAdapter] = None,
    ):
        self._store = store
        self._config = config
        self._logger = logger or DiscordLogAdapter()

    @property
    def config(self) -> AttendanceConfig:
        return self._config

    def _fail(self, command: str, *, user_id, guild_id, error: Exception) -> Dict[str, Any]:
        self._logger.log_command(
            command=command,
            guild_id=guild_id,
            user_id=user_id,
            success=False,
            extra={"error": str(error)},
        )
        return {"ok": False, "error": str(error)}

    # --------------------------------------------------
    # /call
    # --------------------------------------------------

    async def cmd_call(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        location: str,
        date: str,
        call_type: str,
        points: float,
        counts_against: bool = True,
        details: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a call event. Posting the card is left to the caller.
        """

        try:
            location = (location or "").strip()
            call_type = (call_type or "").strip()
            if not location:
                raise InvalidInput("location is required")
            if not call_type:
                raise InvalidInput("type is required")

            occurs_at = parse_timestamp(date, self._config.timezone)
            shown_at = occurs_at if occurs_at is not None else self._store.now()

            event = self._store.create_event(
                points,
                counts_against,
                occurs_at=occurs_at,
                metadata={
                    "type": call_type,
                    "typeShort": call_type.upper(),
                    "location": location,
                    "details": (details or "").strip(),
                    "displayDate": format_local(shown_at, self._config.timezone),
                    "createdBy": str(user_id),
                },
            )
        except InvalidInput as e:
            return self._fail("call", user_id=user_id, guild_id=guild_id, error=e)

        self._logger.log_command(
            command="call",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"event_id": event.id, "points": event.point_value},
        )

        return {"ok": True, "event": event}

    # --------------------------------------------------
    # Attendance buttons
    # --------------------------------------------------

    async def cmd_respond(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        event_id: int,
        state: str,
    ) -> Dict[str, Any]:
        try:
            event = self._store.record_response(event_id, user_id, state)
        except (EventNotFound, InvalidInput) as e:
            return self._fail("respond", user_id=user_id, guild_id=guild_id, error=e)

        self._logger.log_command(
            command="respond",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"event_id": event.id, "state": event.response_for(user_id).value},
        )

        return {"ok": True, "event": event}

    # --------------------------------------------------
    # /percent
    # --------------------------------------------------

    async def cmd_percent(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
    ) -> Dict[str, Any]:
        """
        Score the caller for the current month and quarter.
        """

        keys = period_keys(self._store.now(), self._config.timezone)
        min_percent = self._config.min_percent

        month = score(user_id, self._store.events_for_period(month=keys.month))
        quarter = score(user_id, self._store.events_for_period(quarter=keys.quarter))

        self._logger.log_command(
            command="percent",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
        )

        return {
            "ok": True,
            "min_percent": min_percent,
            "month": {
                "key": keys.month,
                "label": month_key_label(keys.month),
                "result": month,
                "passed": meets_minimum(month, min_percent),
            },
            "quarter": {
                "key": keys.quarter,
                "label": keys.quarter,
                "result": quarter,
                "passed": meets_minimum(quarter, min_percent),
            },
        }

    # --------------------------------------------------
    # /resetpercent
    # --------------------------------------------------

    async def cmd_reset(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
    ) -> Dict[str, Any]:
        removed = self._store.reset_user_responses(user_id)

        self._logger.log_command(
            command="resetpercent",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"removed": removed},
        )

        return {"ok": True, "removed": removed}

    # --------------------------------------------------
    # /leaderboard
    # --------------------------------------------------

    async def cmd_leaderboard(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
    ) -> Dict[str, Any]:
        """
        Rank this month's responders, truncated to the configured limit.
        """

        month_key = period_keys(self._store.now(), self._config.timezone).month
        ranked = rank_period(self._store.events_for_period(month=month_key))
        min_percent = self._config.min_percent

        entries = [
            {
                "rank": position,
                "user_id": entry.user_id,
                "result": entry.result,
                "passed": meets_minimum(entry.result, min_percent),
            }
            for position, entry in enumerate(ranked[: self._config.leaderboard_limit], start=1)
        ]

        self._logger.log_command(
            command="leaderboard",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"ranked": len(ranked)},
        )

        return {
            "ok": True,
            "period": {"key": month_key, "label": month_key_label(month_key)},
            "min_percent": min_percent,
            "entries": entries,
            "total": len(ranked),
        }

    # --------------------------------------------------
    # /rollcall
    # --------------------------------------------------

    async def cmd_rollcall(
        self,
        *,
        user_id: int,
        guild_id: Optional[int],
        cad: int,
    ) -> Dict[str, Any]:
        try:
            event = self._store.get_event(cad)
        except (EventNotFound, InvalidInput) as e:
            return self._fail("rollcall", user_id=user_id, guild_id=guild_id, error=e)

        self._logger.log_command(
            command="rollcall",
            guild_id=guild_id,
            user_id=user_id,
            success=True,
            extra={"event_id": event.id},
        )

        return {"ok": True, "event": event, "responders": event.responders()}
