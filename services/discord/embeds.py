from __future__ import annotations

from typing import Any, Dict, Iterable, List

import discord

from shared.attendance.models import Event, ResponseState
from shared.attendance.periods import month_key_label
from shared.attendance.scoring import ScoreResult

TITLE_LIMIT = 256
DESCRIPTION_LIMIT = 4096
FIELD_LIMIT = 1024
FOOTER_LIMIT = 2048


def info_embed(title: str, description: str | None = None) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.blurple(),
    )


def success_embed(title: str, description: str | None = None) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.green(),
    )


def error_embed(title: str, description: str | None = None) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.red(),
    )


# --------------------------------------------------
# Formatting helpers
# --------------------------------------------------

def clip(text: Any, limit: int) -> str:
    text = "" if text is None else str(text)
    return text if len(text) <= limit else text[: limit - 1] + "…"


def non_empty(value: Any, fallback: str = "N/A") -> str:
    text = "" if value is None else str(value).strip()
    return text or fallback


def fmt_points(points: float) -> str:
    return f"{points:g}"


def mention_list(user_ids: Iterable[str]) -> str:
    ids = list(user_ids)
    return "\n".join(f"<@{uid}>" for uid in ids) if ids else "_None_"


def score_line(result: ScoreResult) -> str:
    return (
        f"**{result.percentage:.1f}%** — {result.earned:.1f} / {result.possible:.1f}\n"
        f"Made: {result.made} • Silent: {result.silent} • Missed: {result.missed}"
    )


def pass_mark(passed: bool) -> str:
    return "✅" if passed else "❌"


# --------------------------------------------------
# Attendance embeds
# --------------------------------------------------

def call_card_embed(event: Event) -> discord.Embed:
    meta = event.metadata
    responders = event.responders()
    points = fmt_points(event.point_value)

    detail_block = f"{non_empty(meta.get('type'), 'Unknown Type')}\n{non_empty(meta.get('location'), 'Unknown Location')}"
    details = str(meta.get("details") or "").strip()
    if details:
        detail_block += f"\n{details}"

    if event.penalizes_absence:
        miss_line = f"If missed, counts against as **{points}** point(s)"
    else:
        miss_line = "If missed, **does not** count against."

    description = (
        f"**CAD Number =** {event.id}\n"
        f"**{non_empty(meta.get('displayDate'), 'Unknown date/time')}**\n\n"
        f"**Will Count Towards:**\n{month_key_label(event.period_keys.month)}\n\n"
        f"**Points:**\nWorth **{points}** point(s) if made.\n{miss_line}\n\n"
        f"**Detail:**\n{detail_block}"
    )

    embed = discord.Embed(
        title=clip(f"🚨 {non_empty(meta.get('typeShort'), 'ALARM').upper()} 🚨", TITLE_LIMIT),
        description=clip(description, DESCRIPTION_LIMIT),
        color=discord.Color.red(),
        timestamp=event.created_at,
    )
    embed.add_field(name="✅ Made", value=clip(mention_list(responders[ResponseState.MADE]), FIELD_LIMIT), inline=True)
    embed.add_field(name="🔇 Silent", value=clip(mention_list(responders[ResponseState.SILENT]), FIELD_LIMIT), inline=True)
    embed.add_field(name="❌ Missed", value=clip(mention_list(responders[ResponseState.MISSED]), FIELD_LIMIT), inline=True)
    embed.set_footer(text=clip(f"Event ID: {event.id}", FOOTER_LIMIT))
    return embed


def percent_embed(result: Dict[str, Any]) -> discord.Embed:
    month = result["month"]
    quarter = result["quarter"]

    embed = info_embed(
        "📊 % Tracker",
        f"Minimum required: **{result['min_percent']:g}%**",
    )
    embed.add_field(
        name=f"This Month ({month['label']}) {pass_mark(month['passed'])}",
        value=score_line(month["result"]),
        inline=False,
    )
    embed.add_field(
        name=f"This Quarter ({quarter['label']}) {pass_mark(quarter['passed'])}",
        value=score_line(quarter["result"]),
        inline=False,
    )
    embed.timestamp = discord.utils.utcnow()
    return embed


def leaderboard_embed(result: Dict[str, Any]) -> discord.Embed:
    lines: List[str] = []
    for entry in result["entries"]:
        score_result: ScoreResult = entry["result"]
        lines.append(
            f"**{entry['rank']}.** {pass_mark(entry['passed'])} <@{entry['user_id']}> — "
            f"**{score_result.percentage:.1f}%** "
            f"({score_result.earned:.1f} / {score_result.possible:.1f})"
        )

    embed = info_embed(
        f"🏆 Leaderboard — {result['period']['label']}",
        clip("\n".join(lines), DESCRIPTION_LIMIT),
    )
    embed.timestamp = discord.utils.utcnow()
    return embed


def rollcall_embed(event: Event) -> discord.Embed:
    responders = event.responders()
    description = (
        f"**{non_empty(event.metadata.get('displayDate'), 'Unknown date/time')}**\n"
        f"**Will Count Towards:** {month_key_label(event.period_keys.month)}\n\n"
        f"✅ **Made**\n{mention_list(responders[ResponseState.MADE])}\n\n"
        f"🔇 **Silent**\n{mention_list(responders[ResponseState.SILENT])}\n\n"
        f"❌ **Missed**\n{mention_list(responders[ResponseState.MISSED])}"
    )
    embed = info_embed(f"🧾 Roll Call — CAD {event.id}", clip(description, DESCRIPTION_LIMIT))
    embed.timestamp = discord.utils.utcnow()
    return embed
