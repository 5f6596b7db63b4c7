"""
Calendar bucketing for attendance events.

Month and quarter keys are always derived in a fixed reference time zone so
the same instant lands in the same period no matter where the process runs.
Keys are computed once when an event is created and stored with it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shared.attendance.errors import InvalidInput

DEFAULT_TIMEZONE = "America/New_York"


@dataclass(frozen=True)
class PeriodKeys:
    """Sortable month ("2026-02") and quarter ("2026-Q1") identifiers."""

    month: str
    quarter: str

    def to_document(self) -> Dict[str, str]:
        return {"month": self.month, "quarter": self.quarter}

    @classmethod
    def from_document(cls, raw: Dict[str, Any]) -> "PeriodKeys":
        return cls(month=str(raw["month"]), quarter=str(raw["quarter"]))


def resolve_zone(name: str | None = None) -> ZoneInfo:
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidInput(f"Unknown time zone: {name!r}") from e


def to_local(ts: datetime, tz: str | None = None) -> datetime:
    """
    Convert a timestamp into the reference zone.

    Naive datetimes are read as wall-clock time in the reference zone.
    """
    if not isinstance(ts, datetime):
        raise InvalidInput(f"Expected a datetime, got {type(ts).__name__}")

    zone = resolve_zone(tz)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=zone)
    return ts.astimezone(zone)


def period_keys(ts: datetime, tz: str | None = None) -> PeriodKeys:
    local = to_local(ts, tz)
    quarter = (local.month - 1) // 3 + 1
    return PeriodKeys(
        month=f"{local.year:04d}-{local.month:02d}",
        quarter=f"{local.year:04d}-Q{quarter}",
    )


def month_label(ts: datetime, tz: str | None = None) -> str:
    """Human month label, e.g. "03 / 2026"."""
    local = to_local(ts, tz)
    return f"{local.month:02d} / {local.year:04d}"


def month_key_label(key: str) -> str:
    """Turn a month key ("2026-03") back into its label ("03 / 2026")."""
    year, _, month = key.partition("-")
    return f"{month} / {year}"


def format_local(ts: datetime, tz: str | None = None) -> str:
    """Render e.g. "Monday, March 2, 2026 at 9:40 PM" in the reference zone."""
    local = to_local(ts, tz)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return (
        f"{local.strftime('%A')}, {local.strftime('%B')} {local.day}, {local.year} "
        f"at {hour}:{local.minute:02d} {meridiem}"
    )


def parse_timestamp(text: Optional[str], tz: str | None = None) -> Optional[datetime]:
    """
    Parse a user-entered timestamp ("2026-03-02 21:40", ISO-8601).

    Empty input returns None, meaning "now". Malformed input is rejected.
    """
    raw = (text or "").strip()
    if not raw:
        return None

    candidate = raw.replace(" ", "T", 1)
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as e:
        raise InvalidInput(f"Malformed timestamp: {raw!r}") from e

    return to_local(parsed, tz)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def in_month(key: str) -> Callable[[Any], bool]:
    return lambda event: event.period_keys.month == key


def in_quarter(key: str) -> Callable[[Any], bool]:
    return lambda event: event.period_keys.quarter == key
