"""State Marker Store — durable record of completed phases.

A marker exists for a phase exactly when that phase completed (or was
adopted from external evidence). The phase sequencer is the only writer.
There is no removal API: operator resets go through ``oneclick reset``,
which deletes marker storage out of band.

Backends:
    FileMarkerStore   one ``<phase>.done`` JSON file per phase. Writes go to a
                      temp file, are fsynced, renamed into place, and the
                      directory is fsynced, so a crash never leaves a torn
                      marker.
    SqliteMarkerStore stdlib sqlite3, table ``phase_markers``.
    MemoryMarkerStore tests and dry runs.

Marker references:
    Service units wait for markers before doing real work. ``marker_ref()``
    returns what ``oneclick await-marker`` accepts for the backend: a file
    path for the file store, the phase id otherwise.

Tags:
    state, idempotence, persistence, fsync, sqlite
"""

from __future__ import annotations

import json
import os
import re
import sqlite3
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from oneclick.core.errors import InvalidConfigError, StorageError
from oneclick.core.logging import get_logger

logger = get_logger(__name__)

PHASE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
MARKER_SUFFIX = ".done"


def validate_phase_id(phase_id: str) -> str:
    if not PHASE_ID_RE.match(phase_id):
        raise InvalidConfigError("phase_id", phase_id, f"Unsafe phase id: {phase_id!r}")
    return phase_id


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class MarkerRecord:
    """A completed phase."""

    phase_id: str
    completed_at: str = field(default_factory=_now)
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"phase": self.phase_id, "completed_at": self.completed_at, "details": self.details}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MarkerRecord:
        return cls(
            phase_id=data["phase"],
            completed_at=data.get("completed_at") or _now(),
            details=data.get("details") or {},
        )


@runtime_checkable
class MarkerStore(Protocol):
    def is_complete(self, phase_id: str) -> bool: ...

    def mark_complete(self, phase_id: str, details: dict[str, Any] | None = None) -> MarkerRecord: ...

    def completed(self) -> dict[str, MarkerRecord]: ...

    def marker_ref(self, phase_id: str) -> str: ...


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class FileMarkerStore:
    """One marker file per phase under ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def marker_path(self, phase_id: str) -> Path:
        return self.directory / f"{validate_phase_id(phase_id)}{MARKER_SUFFIX}"

    def marker_ref(self, phase_id: str) -> str:
        return str(self.marker_path(phase_id))

    def is_complete(self, phase_id: str) -> bool:
        return self.marker_path(phase_id).is_file()

    def mark_complete(self, phase_id: str, details: dict[str, Any] | None = None) -> MarkerRecord:
        record = MarkerRecord(phase_id, details=dict(details or {}))
        path = self.marker_path(phase_id)
        payload = json.dumps(record.to_dict(), indent=2, sort_keys=True, default=str)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{phase_id}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
            self._fsync_directory()
        except OSError as exc:
            raise StorageError(f"Cannot write marker {path}", cause=exc).with_context(phase=phase_id) from exc
        logger.info("marker.written", phase=phase_id, path=str(path))
        return record

    def completed(self) -> dict[str, MarkerRecord]:
        if not self.directory.is_dir():
            return {}
        records: dict[str, MarkerRecord] = {}
        for path in sorted(self.directory.glob(f"*{MARKER_SUFFIX}")):
            phase_id = path.name[: -len(MARKER_SUFFIX)]
            try:
                records[phase_id] = MarkerRecord.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError):
                # Presence is what counts; keep unreadable markers as bare records
                records[phase_id] = MarkerRecord(phase_id, completed_at="")
        return records

    def _fsync_directory(self) -> None:
        fd = os.open(self.directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def __repr__(self) -> str:
        return f"FileMarkerStore({str(self.directory)!r})"


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


SCHEMA = """
CREATE TABLE IF NOT EXISTS phase_markers (
    phase_id     TEXT PRIMARY KEY,
    completed_at TEXT NOT NULL,
    details      TEXT NOT NULL DEFAULT '{}'
)
"""


class SqliteMarkerStore:
    """Markers in a SQLite database (one row per completed phase)."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path)
        except (OSError, sqlite3.Error) as exc:
            raise StorageError(f"Cannot open marker database {self.path}", cause=exc) from exc
        try:
            conn.execute(SCHEMA)
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Marker database error: {exc}", cause=exc) from exc
        finally:
            conn.close()

    def marker_ref(self, phase_id: str) -> str:
        return validate_phase_id(phase_id)

    def is_complete(self, phase_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM phase_markers WHERE phase_id = ?", (validate_phase_id(phase_id),)
            ).fetchone()
        return row is not None

    def mark_complete(self, phase_id: str, details: dict[str, Any] | None = None) -> MarkerRecord:
        record = MarkerRecord(validate_phase_id(phase_id), details=dict(details or {}))
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO phase_markers (phase_id, completed_at, details) VALUES (?, ?, ?)",
                (record.phase_id, record.completed_at, json.dumps(record.details, default=str)),
            )
        logger.info("marker.written", phase=phase_id, path=str(self.path))
        return record

    def completed(self) -> dict[str, MarkerRecord]:
        if not self.path.exists():
            return {}
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT phase_id, completed_at, details FROM phase_markers ORDER BY completed_at"
            ).fetchall()
        return {
            phase_id: MarkerRecord(phase_id, completed_at, json.loads(details or "{}"))
            for phase_id, completed_at, details in rows
        }

    def __repr__(self) -> str:
        return f"SqliteMarkerStore({str(self.path)!r})"


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------


class MemoryMarkerStore:
    def __init__(self, completed: list[str] | None = None) -> None:
        self._records: dict[str, MarkerRecord] = {p: MarkerRecord(p) for p in completed or []}

    def marker_ref(self, phase_id: str) -> str:
        return validate_phase_id(phase_id)

    def is_complete(self, phase_id: str) -> bool:
        return phase_id in self._records

    def mark_complete(self, phase_id: str, details: dict[str, Any] | None = None) -> MarkerRecord:
        record = MarkerRecord(validate_phase_id(phase_id), details=dict(details or {}))
        self._records[phase_id] = record
        return record

    def completed(self) -> dict[str, MarkerRecord]:
        return dict(self._records)


__all__ = [
    "MarkerStore",
    "MarkerRecord",
    "FileMarkerStore",
    "SqliteMarkerStore",
    "MemoryMarkerStore",
    "validate_phase_id",
    "PHASE_ID_RE",
]
