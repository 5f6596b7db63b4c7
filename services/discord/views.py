"""
Attendance buttons for call cards.

Buttons carry a stable custom id ("att:<event id>:<STATE>") and no callback.
Clicks are routed by the on_interaction listener in
services.discord.commands.attendance_commands, which keeps old cards
working across bot restarts.
"""

from __future__ import annotations

from typing import Optional, Tuple

import discord

from shared.attendance.models import SILENT_CREDIT_CAP, Event, ResponseState
from services.discord.embeds import fmt_points

CUSTOM_ID_PREFIX = "att"


def build_custom_id(event_id: int, state: ResponseState) -> str:
    return f"{CUSTOM_ID_PREFIX}:{event_id}:{state.value}"


def parse_custom_id(custom_id: Optional[str]) -> Optional[Tuple[int, ResponseState]]:
    """
    Decode an attendance button id. Returns None for anything that is not
    a well-formed attendance button.
    """
    parts = (custom_id or "").split(":")
    if len(parts) != 3 or parts[0] != CUSTOM_ID_PREFIX:
        return None

    _, raw_id, raw_state = parts
    if not raw_id.isdigit():
        return None

    try:
        state = ResponseState(raw_state)
    except ValueError:
        return None
    if not state.recordable:
        return None

    return int(raw_id), state


class AttendanceButtons(discord.ui.View):
    def __init__(self, event: Event):
        super().__init__(timeout=None)

        points = event.point_value
        buttons = (
            (ResponseState.MADE, f"Made ({fmt_points(points)})", discord.ButtonStyle.success),
            (ResponseState.SILENT, f"Silent ({fmt_points(min(SILENT_CREDIT_CAP, points))})", discord.ButtonStyle.secondary),
            (ResponseState.MISSED, "Missed (0)", discord.ButtonStyle.danger),
        )
        for state, label, style in buttons:
            self.add_item(
                discord.ui.Button(
                    label=label,
                    style=style,
                    custom_id=build_custom_id(event.id, state),
                )
            )
