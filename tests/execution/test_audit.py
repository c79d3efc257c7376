"""Tests for the append-only audit log."""

import json
from unittest.mock import patch

import pytest

from oneclick.core.errors import StorageError
from oneclick.execution.audit import AuditLog, AuditRecord, RecordKind


class TestMemoryAuditLog:
    """path=None keeps records in memory."""

    def test_record_stamps_run_id(self):
        audit = AuditLog(run_id="run-1")
        record = audit.record("succeeded", phase="packages", step="install", attempt=1)
        assert record.run_id == "run-1"
        assert record.kind == RecordKind.ATTEMPT
        assert list(audit.records()) == [record]

    def test_explicit_run_id_wins(self):
        audit = AuditLog(run_id="run-1")
        record = audit.append(AuditRecord(outcome="failed", run_id="other"))
        assert record.run_id == "other"

    def test_tail(self):
        audit = AuditLog()
        for n in range(5):
            audit.record("failed", attempt=n + 1)
        assert [r.attempt for r in audit.tail(2)] == [4, 5]
        assert audit.tail(0) == []


class TestFileAuditLog:
    """JSON-lines on disk."""

    def test_appends_one_json_object_per_line(self, tmp_path):
        path = tmp_path / "logs" / "audit.jsonl"
        audit = AuditLog(path, run_id="r")
        audit.record("failed", phase="packages", step="install", attempt=1, error="exit 1", category="COMMAND")
        audit.record("succeeded", phase="packages", step="install", attempt=2)

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["outcome"] == "failed"
        assert first["attempt"] == 1
        assert first["run_id"] == "r"
        assert "duration_s" not in first

    def test_never_truncates_existing_records(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        AuditLog(path, run_id="first").record("completed", kind=RecordKind.SEQUENCE)
        AuditLog(path, run_id="second").record("completed", kind=RecordKind.SEQUENCE)
        assert [r.run_id for r in AuditLog(path).records()] == ["first", "second"]

    def test_skips_unparseable_lines(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        AuditLog(path).record("succeeded")
        with open(path, "a") as fh:
            fh.write("not json\n\n")
        AuditLog(path).record("failed")
        assert [r.outcome for r in AuditLog(path).records()] == ["succeeded", "failed"]

    def test_missing_file_has_no_records(self, tmp_path):
        assert list(AuditLog(tmp_path / "nope.jsonl").records()) == []

    def test_write_failure_raises_storage_error(self, tmp_path):
        audit = AuditLog(tmp_path / "audit.jsonl")
        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(StorageError):
                audit.record("succeeded")
