"""
Event store for the attendance ledger.

Every operation (reads included) runs as one load -> mutate -> save cycle
under a single lock, so concurrent responses to the same event are never
lost and readers never see a half-applied write. Events handed back to
callers are detached copies; mutating them does not touch stored state.
"""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Tuple

from shared.attendance.errors import EventNotFound, InvalidInput, StorageFailure
from shared.attendance.models import (
    Event,
    ResponseState,
    normalize_point_value,
    normalize_user_id,
)
from shared.attendance.periods import (
    DEFAULT_TIMEZONE,
    in_month,
    in_quarter,
    period_keys,
    resolve_zone,
    to_local,
    utc_now,
)
from shared.storage.attendance.backends import AttendanceBackend, MemoryBackend

EventPredicate = Callable[[Event], bool]


class EventStore:
    def __init__(
        self,
        backend: Optional[AttendanceBackend] = None,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        clock: Callable[[], datetime] = utc_now,
    ):
        resolve_zone(timezone)
        self._backend = backend if backend is not None else MemoryBackend()
        self._timezone = timezone
        self._clock = clock
        self._lock = Lock()

    @property
    def timezone(self) -> str:
        return self._timezone

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Document codec
    # ------------------------------------------------------------------

    def _load(self) -> Tuple[int, List[Event]]:
        document = self._backend.load()
        raw_events = document.get("events")
        if raw_events is None:
            # Documents written by the original bot keep events under "calls".
            raw_events = document.get("calls", [])

        try:
            events = [Event.from_document(raw, self._timezone) for raw in raw_events]
            next_id = int(document.get("nextId", 1))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise StorageFailure(f"malformed attendance document: {e!r}") from e

        highest = max((event.id for event in events), default=0)
        return max(next_id, highest + 1), events

    def _save(self, next_id: int, events: List[Event]) -> None:
        self._backend.save({
            "nextId": next_id,
            "events": [event.to_document() for event in events],
        })

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_event(
        self,
        point_value: Any,
        penalizes_absence: bool,
        occurs_at: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Event:
        points = normalize_point_value(point_value)
        if not isinstance(penalizes_absence, bool):
            raise InvalidInput(f"penalizes_absence must be a bool, got {penalizes_absence!r}")
        if metadata is not None and not isinstance(metadata, dict):
            raise InvalidInput("metadata must be a mapping")

        created_at = self.now()
        occurs = to_local(occurs_at, self._timezone) if occurs_at is not None else created_at

        with self._lock:
            next_id, events = self._load()
            event = Event(
                id=next_id,
                created_at=created_at,
                occurs_at=occurs,
                point_value=points,
                penalizes_absence=penalizes_absence,
                period_keys=period_keys(occurs, self._timezone),
                attendance={},
                metadata=dict(metadata or {}),
            )
            events.append(event)
            self._save(next_id + 1, events)

        return Event.from_document(event.to_document())

    def record_response(self, event_id: int, user_id: Any, state: Any) -> Event:
        uid = normalize_user_id(user_id)
        response = ResponseState.parse(state)
        if not response.recordable:
            raise InvalidInput(f"{response.value} cannot be recorded")

        with self._lock:
            next_id, events = self._load()
            event = _find(events, event_id)
            if event.attendance.get(uid) is not response:
                event.attendance[uid] = response
                self._save(next_id, events)

        return Event.from_document(event.to_document())

    def reset_user_responses(self, user_id: Any) -> int:
        """Hard-delete a user's responses from every event."""
        uid = normalize_user_id(user_id)

        with self._lock:
            next_id, events = self._load()
            removed = 0
            for event in events:
                if event.attendance.pop(uid, None) is not None:
                    removed += 1
            if removed:
                self._save(next_id, events)

        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_event(self, event_id: int) -> Event:
        with self._lock:
            _, events = self._load()
        return _find(events, event_id)

    def list_events(self, predicate: Optional[EventPredicate] = None) -> List[Event]:
        with self._lock:
            _, events = self._load()
        if predicate is None:
            return events
        return [event for event in events if predicate(event)]

    def events_for_period(
        self,
        *,
        month: Optional[str] = None,
        quarter: Optional[str] = None,
    ) -> List[Event]:
        if month is not None:
            return self.list_events(in_month(month))
        if quarter is not None:
            return self.list_events(in_quarter(quarter))
        raise InvalidInput("events_for_period needs a month or quarter key")


def _find(events: List[Event], event_id: Any) -> Event:
    try:
        wanted = int(event_id)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Invalid event id: {event_id!r}") from e

    for event in events:
        if event.id == wanted:
            return event
    raise EventNotFound(wanted)
