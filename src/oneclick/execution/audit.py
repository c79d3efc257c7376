"""Append-only audit log of step attempts.

Every attempt the step executor makes, every readiness wait and every phase
transition is appended as one JSON object per line. The file is never
rewritten or truncated by the core; ``oneclick log`` reads it back.

Record layout::

    {"timestamp": "2026-01-05T10:00:00+00:00", "run_id": "3f9c2a1b7d4e",
     "kind": "attempt", "phase": "packages", "step": "install-base-packages",
     "attempt": 2, "outcome": "failed", "error": "dnf exited 1",
     "category": "COMMAND", "duration_s": 41.2}

Tags:
    audit, append-only, jsonl, diagnosis
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from oneclick.core.errors import StorageError


class RecordKind(str, Enum):
    """What an audit record describes."""

    ATTEMPT = "attempt"
    READINESS = "readiness"
    PHASE = "phase"
    SEQUENCE = "sequence"


class AuditRecord(BaseModel):
    """One line of the audit log."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str | None = None
    kind: RecordKind = RecordKind.ATTEMPT
    phase: str | None = None
    step: str | None = None
    attempt: int | None = None
    outcome: str
    error: str | None = None
    category: str | None = None
    duration_s: float | None = None
    detail: dict[str, Any] = Field(default_factory=dict)


class AuditLog:
    """JSON-lines audit log.

    Parameters
    ----------
    path
        Log file. ``None`` keeps records in memory only (dry runs, tests).
    run_id
        Identifier stamped on every record written through this instance.
    """

    def __init__(self, path: Path | str | None = None, run_id: str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self.run_id = run_id
        self._memory: list[AuditRecord] = []

    def append(self, record: AuditRecord) -> AuditRecord:
        """Append one record and flush it to durable storage."""
        if record.run_id is None and self.run_id is not None:
            record = record.model_copy(update={"run_id": self.run_id})
        if self.path is None:
            self._memory.append(record)
            return record
        line = record.model_dump_json(exclude_none=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(line + "\n")
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as exc:
            raise StorageError(f"Cannot append to audit log {self.path}", cause=exc) from exc
        return record

    def record(self, outcome: str, **fields: Any) -> AuditRecord:
        """Build and append a record in one call."""
        return self.append(AuditRecord(outcome=outcome, **fields))

    def records(self) -> Iterator[AuditRecord]:
        """Iterate over all records, oldest first. Unparseable lines are skipped."""
        if self.path is None:
            yield from self._memory
            return
        if not self.path.exists():
            return
        with open(self.path, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield AuditRecord.model_validate(json.loads(line))
                except (json.JSONDecodeError, ValueError):
                    continue

    def tail(self, count: int) -> list[AuditRecord]:
        """Return the last ``count`` records."""
        if count <= 0:
            return []
        return list(self.records())[-count:]

    def __repr__(self) -> str:
        return f"AuditLog(path={self.path!s}, run_id={self.run_id!r})"


__all__ = ["AuditLog", "AuditRecord", "RecordKind"]
