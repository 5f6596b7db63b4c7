"""Durable storage for the attendance ledger."""

from .backends import AttendanceBackend, JsonFileBackend, MemoryBackend, empty_document
from .store import EventStore

__all__ = [
    "AttendanceBackend",
    "EventStore",
    "JsonFileBackend",
    "MemoryBackend",
    "empty_document",
]
