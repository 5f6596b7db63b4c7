import asyncio

import pytest

from conftest import make_event
from shared.attendance.models import ResponseState
from shared.attendance.scoring import ScoreResult
from services.discord.embeds import call_card_embed, clip, leaderboard_embed, mention_list
from services.discord.views import AttendanceButtons, build_custom_id, parse_custom_id


@pytest.mark.parametrize(
    "custom_id, expected",
    [
        ("att:12:MADE", (12, ResponseState.MADE)),
        ("att:3:SILENT", (3, ResponseState.SILENT)),
        ("att:3:MISSED", (3, ResponseState.MISSED)),
        ("att:3:NO_RESPONSE", None),
        ("att:x:MADE", None),
        ("att:3:maybe", None),
        ("poll:3:MADE", None),
        ("att:3", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_custom_id(custom_id, expected):
    assert parse_custom_id(custom_id) == expected


def test_custom_id_round_trip():
    assert parse_custom_id(build_custom_id(7, ResponseState.SILENT)) == (7, ResponseState.SILENT)


@pytest.mark.parametrize(
    "points, labels",
    [
        (1.0, ["Made (1)", "Silent (0.5)", "Missed (0)"]),
        (0.5, ["Made (0.5)", "Silent (0.5)", "Missed (0)"]),
        (0.0, ["Made (0)", "Silent (0)", "Missed (0)"]),
    ],
)
def test_attendance_buttons(points, labels):
    async def build():
        return AttendanceButtons(make_event(event_id=5, points=points))

    view = asyncio.run(build())

    assert view.timeout is None
    assert [item.label for item in view.children] == labels
    assert [item.custom_id for item in view.children] == ["att:5:MADE", "att:5:SILENT", "att:5:MISSED"]


def test_call_card_lists_responders():
    event = make_event(event_id=9, penalizes=False, attendance={"111": "MADE", "222": "SILENT"})
    event.metadata.update({"type": "MVA", "location": "Route 4", "displayDate": "Monday, March 2, 2026 at 9:40 PM"})

    embed = call_card_embed(event)

    assert embed.title == "🚨 ALARM 🚨"
    assert "**CAD Number =** 9" in embed.description
    assert "03 / 2026" in embed.description
    assert "**does not** count against" in embed.description
    assert [field.value for field in embed.fields] == ["<@111>", "<@222>", "_None_"]
    assert embed.footer.text == "Event ID: 9"


def test_leaderboard_embed_lines():
    embed = leaderboard_embed({
        "period": {"key": "2026-03", "label": "03 / 2026"},
        "entries": [
            {"rank": 1, "user_id": "3", "result": ScoreResult(earned=1.5, possible=2.0, percentage=75.0), "passed": True},
            {"rank": 2, "user_id": "2", "result": ScoreResult(possible=2.0), "passed": False},
        ],
    })
    assert embed.title == "🏆 Leaderboard — 03 / 2026"
    assert embed.description.splitlines() == [
        "**1.** ✅ <@3> — **75.0%** (1.5 / 2.0)",
        "**2.** ❌ <@2> — **0.0%** (0.0 / 2.0)",
    ]


def test_formatting_helpers():
    assert mention_list([]) == "_None_"
    assert clip("abcdef", 4) == "abc…"
    assert clip("abc", 4) == "abc"
