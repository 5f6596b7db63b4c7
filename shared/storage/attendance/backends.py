"""
Storage backends for the attendance ledger.

A backend persists one whole document:

    {"nextId": int, "events": [Event document, ...]}

load() returns the current document (the empty document when nothing has
been stored yet) and save() replaces it atomically. Both raise
StorageFailure instead of guessing; a corrupt file is never treated as empty.
"""

from __future__ import annotations

import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from shared.attendance.errors import StorageFailure
from shared.logging.logger import get_logger

log = get_logger("storage.attendance.backends")

DEFAULT_DATA_PATH = Path("data/attendance.json")


def empty_document() -> Dict[str, Any]:
    return {"nextId": 1, "events": []}


class AttendanceBackend(Protocol):
    def load(self) -> Dict[str, Any]:
        ...

    def save(self, document: Dict[str, Any]) -> None:
        ...


class MemoryBackend:
    """
    In-process backend. Documents are deep-copied in and out so callers
    never share state with the stored snapshot.
    """

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        self._document = copy.deepcopy(document) if document else empty_document()
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        return copy.deepcopy(self._document)

    def save(self, document: Dict[str, Any]) -> None:
        self._document = copy.deepcopy(document)
        self.saves += 1


class JsonFileBackend:
    """
    Single JSON document on disk, written via temp file + fsync + replace so
    readers see either the old or the new document, never a partial one.
    """

    def __init__(self, path: Path | str = DEFAULT_DATA_PATH):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return empty_document()

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.error(f"Failed to read attendance store {self._path}: {e}")
            raise StorageFailure(f"Could not read {self._path}: {e}") from e

        if not isinstance(payload, dict):
            log.error(f"Attendance store {self._path} is not a JSON object")
            raise StorageFailure(f"{self._path}: root JSON value must be an object")

        return payload

    def save(self, document: Dict[str, Any]) -> None:
        try:
            self._write_atomic(self._path, document)
        except (OSError, TypeError, ValueError) as e:
            log.error(f"Failed to persist attendance store {self._path}: {e}")
            raise StorageFailure(f"Could not write {self._path}: {e}") from e

    def _write_atomic(self, path: Path, payload: Any) -> None:
        serialized = json.dumps(payload, indent=2)
        path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, delete=False, encoding="utf-8"
        ) as tmp:
            tmp.write(serialized)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)

        temp_path.replace(path)
