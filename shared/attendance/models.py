"""
Attendance ledger data model.

An Event is one call or drill members are expected to answer. The only
mutable part of an event is its attendance map (user id -> response state);
everything else is fixed when the event is created.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from shared.attendance.errors import InvalidInput
from shared.attendance.periods import PeriodKeys, period_keys

ALLOWED_POINT_VALUES = (0.0, 0.5, 1.0)
SILENT_CREDIT_CAP = 0.5


class ResponseState(str, Enum):
    MADE = "MADE"
    SILENT = "SILENT"
    MISSED = "MISSED"
    # Implicit state: the user has no entry in the attendance map.
    NO_RESPONSE = "NO_RESPONSE"

    @property
    def recordable(self) -> bool:
        return self is not ResponseState.NO_RESPONSE

    @classmethod
    def parse(cls, value: Any) -> "ResponseState":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as e:
            raise InvalidInput(f"Unknown response state: {value!r}") from e


RECORDABLE_STATES = tuple(s for s in ResponseState if s.recordable)


def iso_utc(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def lookup_user_id(user_id: Any) -> str:
    return "" if user_id is None else str(user_id).strip()


def normalize_user_id(user_id: Any) -> str:
    uid = lookup_user_id(user_id)
    if not uid:
        raise InvalidInput("user id is required")
    return uid


def normalize_point_value(value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidInput(f"Invalid point value: {value!r}")
    try:
        points = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Invalid point value: {value!r}") from e
    if points not in ALLOWED_POINT_VALUES:
        raise InvalidInput(
            f"Point value must be one of {ALLOWED_POINT_VALUES}, got {value!r}"
        )
    return points


@dataclass
class Event:
    id: int
    created_at: datetime
    occurs_at: datetime
    point_value: float
    penalizes_absence: bool
    period_keys: PeriodKeys
    attendance: Dict[str, ResponseState] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def response_for(self, user_id: Any) -> ResponseState:
        return self.attendance.get(lookup_user_id(user_id), ResponseState.NO_RESPONSE)

    def responders(self) -> Dict[ResponseState, List[str]]:
        """Group recorded user ids by state, in insertion order."""
        grouped: Dict[ResponseState, List[str]] = {s: [] for s in RECORDABLE_STATES}
        for uid, state in self.attendance.items():
            grouped[state].append(uid)
        return grouped

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": iso_utc(self.created_at),
            "occursAt": iso_utc(self.occurs_at),
            "pointValue": self.point_value,
            "penalizesAbsence": self.penalizes_absence,
            "periodKeys": self.period_keys.to_document(),
            "attendance": {uid: state.value for uid, state in self.attendance.items()},
            "metadata": copy.deepcopy(self.metadata),
        }

    @classmethod
    def from_document(cls, raw: Dict[str, Any], tz: Optional[str] = None) -> "Event":
        """
        Load an event document.

        Documents written by the original bot ("points", "countsAgainst",
        "monthSort", "quarter" and flat descriptive fields) are upgraded.
        """
        if "pointValue" in raw:
            created_at = parse_iso(raw["createdAt"])
            occurs_at = parse_iso(raw.get("occursAt") or raw["createdAt"])
            return cls(
                id=int(raw["id"]),
                created_at=created_at,
                occurs_at=occurs_at,
                point_value=float(raw["pointValue"]),
                penalizes_absence=bool(raw.get("penalizesAbsence", True)),
                period_keys=PeriodKeys.from_document(raw["periodKeys"]),
                attendance=_load_attendance(raw.get("attendance")),
                metadata=dict(raw.get("metadata") or {}),
            )

        created_at = parse_iso(raw["createdAt"])
        if raw.get("monthSort") and raw.get("quarter"):
            keys = PeriodKeys(month=str(raw["monthSort"]), quarter=str(raw["quarter"]))
        else:
            keys = period_keys(created_at, tz)

        metadata = {
            key: raw[key]
            for key in ("cad", "type", "typeShort", "location", "details", "ridgeDate", "countTowards")
            if key in raw
        }
        if "ridgeDate" in metadata:
            metadata["displayDate"] = metadata.pop("ridgeDate")

        # Legacy calls without points scored as zero.
        points = raw.get("points") or 0
        return cls(
            id=int(raw["id"]),
            created_at=created_at,
            occurs_at=created_at,
            point_value=float(points),
            penalizes_absence=bool(raw.get("countsAgainst")),
            period_keys=keys,
            attendance=_load_attendance(raw.get("attendance")),
            metadata=metadata,
        )


def _load_attendance(raw: Any) -> Dict[str, ResponseState]:
    if not isinstance(raw, dict):
        return {}
    attendance: Dict[str, ResponseState] = {}
    for uid, value in raw.items():
        try:
            state = ResponseState.parse(value)
        except InvalidInput:
            continue
        if state.recordable:
            attendance[str(uid)] = state
    return attendance
