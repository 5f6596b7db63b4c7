import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("CALLTRACKER_LOG_DIR", tempfile.mkdtemp(prefix="calltracker-logs-"))

from shared.attendance.models import Event, ResponseState
from shared.attendance.periods import PeriodKeys
from shared.config.attendance import AttendanceConfig
from shared.storage.attendance import EventStore, MemoryBackend

# Sunday, March 15 2026, 12:00 UTC (08:00 in New York)
FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_event(
    event_id=1,
    points=1.0,
    penalizes=True,
    attendance=None,
    month="2026-03",
    quarter="2026-Q1",
):
    return Event(
        id=event_id,
        created_at=FIXED_NOW,
        occurs_at=FIXED_NOW,
        point_value=points,
        penalizes_absence=penalizes,
        period_keys=PeriodKeys(month=month, quarter=quarter),
        attendance={uid: ResponseState(state) for uid, state in (attendance or {}).items()},
    )


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def backend():
    return MemoryBackend()


@pytest.fixture()
def store(backend, clock):
    return EventStore(backend, clock=clock)


@pytest.fixture()
def config():
    return AttendanceConfig(guild_id="1", log_channel_id="2")
