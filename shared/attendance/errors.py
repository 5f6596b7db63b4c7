"""Typed errors raised by the attendance ledger and its storage backends."""

from __future__ import annotations


class AttendanceError(Exception):
    """Base class for attendance ledger failures."""


class EventNotFound(AttendanceError, LookupError):
    """An operation referenced an event id that does not exist."""

    def __init__(self, event_id: int):
        super().__init__(f"Event {event_id} not found")
        self.event_id = event_id


class InvalidInput(AttendanceError, ValueError):
    """Input rejected before any mutation took place."""


class StorageFailure(AttendanceError):
    """The backing store could not complete a read or write."""
