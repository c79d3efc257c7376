"""Tests for Phase / Step / result models."""

import pytest

from oneclick.core.errors import InvalidConfigError
from oneclick.execution.retry import NoRetry
from oneclick.orchestration.models import (
    EXIT_CODES,
    FailureClass,
    Phase,
    PhaseResult,
    PhaseStatus,
    SequenceResult,
    SequenceStatus,
    Step,
)


class TestStep:
    def test_defaults(self):
        step = Step("install", lambda: None)
        assert isinstance(step.retry, NoRetry)
        assert step.failure_class == FailureClass.FATAL
        assert step.tolerable is False
        assert step.ready_when is None

    def test_tolerated_signals_become_tuple(self):
        step = Step("s", lambda: None, tolerated_signals=["a", "b"])
        assert step.tolerated_signals == ("a", "b")

    def test_empty_id_rejected(self):
        with pytest.raises(InvalidConfigError):
            Step("", lambda: None)


class TestPhase:
    def test_depends_on_normalised(self):
        phase = Phase("database-config", depends_on={"database-container"})
        assert phase.depends_on == frozenset({"database-container"})

    def test_id_must_be_marker_safe(self):
        with pytest.raises(InvalidConfigError):
            Phase("Database Config")

    def test_mixed_case_id(self):
        assert Phase("ConfigureDB").id == "ConfigureDB"


class TestResults:
    def test_exit_codes(self):
        assert EXIT_CODES == {
            SequenceStatus.COMPLETED: 0,
            SequenceStatus.FAILED: 1,
            SequenceStatus.ABORTED: 2,
        }

    def test_phase_lookup(self):
        result = SequenceResult(SequenceStatus.FAILED, [PhaseResult("a", PhaseStatus.FAILED, error="boom")])
        assert result.phase("a").error == "boom"
        assert result.exit_code == 1
        with pytest.raises(KeyError):
            result.phase("b")

    def test_phase_result_to_dict_omits_empty_fields(self):
        assert PhaseResult("a", PhaseStatus.SKIPPED).to_dict() == {"phase": "a", "status": "skipped"}
        blocked = PhaseResult("b", PhaseStatus.BLOCKED, missing_dependencies=["a"]).to_dict()
        assert blocked["missing_dependencies"] == ["a"]
