"""
Attendance ledger package.

Exposes the event model, period keying, and the pure scoring functions.
Persistence lives in shared.storage.attendance.
"""

from .errors import AttendanceError, EventNotFound, InvalidInput, StorageFailure
from .models import ALLOWED_POINT_VALUES, Event, ResponseState
from .periods import PeriodKeys, period_keys
from .scoring import RankedEntry, ScoreResult, meets_minimum, rank_period, score

__all__ = [
    "ALLOWED_POINT_VALUES",
    "AttendanceError",
    "Event",
    "EventNotFound",
    "InvalidInput",
    "PeriodKeys",
    "RankedEntry",
    "ResponseState",
    "ScoreResult",
    "StorageFailure",
    "meets_minimum",
    "period_keys",
    "rank_period",
    "score",
]
