"""
Scoring engine and leaderboard aggregation.

Both functions are pure: callers pass an event set already filtered to one
period (see shared.attendance.periods.in_month / in_quarter) and get plain
results back. Neither knows about periods or compliance thresholds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from shared.attendance.models import SILENT_CREDIT_CAP, Event, ResponseState, lookup_user_id


@dataclass(frozen=True)
class ScoreResult:
    earned: float = 0.0
    possible: float = 0.0
    percentage: float = 0.0
    made: int = 0
    silent: int = 0
    missed: int = 0

    @property
    def counts(self) -> Dict[str, int]:
        return {"made": self.made, "silent": self.silent, "missed": self.missed}

    def to_document(self) -> Dict[str, Any]:
        return {
            "earned": self.earned,
            "possible": self.possible,
            "percentage": self.percentage,
            "counts": self.counts,
        }


@dataclass(frozen=True)
class RankedEntry:
    user_id: str
    result: ScoreResult


def score(user_id: Any, events: Iterable[Event]) -> ScoreResult:
    uid = lookup_user_id(user_id)
    earned = 0.0
    possible = 0.0
    made = silent = missed = 0

    for event in events:
        points = event.point_value
        # Zero-point events are informational only.
        if points == 0:
            continue

        state = event.response_for(uid)

        if state is ResponseState.MADE:
            made += 1
            earned += points
            possible += points
        elif state is ResponseState.SILENT:
            silent += 1
            earned += min(SILENT_CREDIT_CAP, points)
            possible += points
        else:
            missed += 1
            if event.penalizes_absence:
                possible += points

    percentage = (earned / possible) * 100 if possible > 0 else 0.0
    return ScoreResult(
        earned=earned,
        possible=possible,
        percentage=percentage,
        made=made,
        silent=silent,
        missed=missed,
    )


def rank_period(events: Iterable[Event]) -> List[RankedEntry]:
    """
    Rank every user with at least one recorded response.

    Ordered by percentage, highest first. Ties keep first-appearance order
    (events in input order, then attendance insertion order).
    """
    events = list(events)

    user_ids: Dict[str, None] = {}
    for event in events:
        for uid in event.attendance:
            user_ids.setdefault(uid, None)

    entries = [RankedEntry(user_id=uid, result=score(uid, events)) for uid in user_ids]
    entries.sort(key=lambda entry: entry.result.percentage, reverse=True)
    return entries


def meets_minimum(result: ScoreResult, min_percent: float) -> bool:
    return result.percentage >= min_percent
