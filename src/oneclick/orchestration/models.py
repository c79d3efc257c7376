"""Phase and step model for provisioning plans.

A plan is an ordered list of ``Phase`` objects. Each phase holds ordered
``Step`` objects; a step wraps a zero-argument action together with its
retry policy, failure class and optional readiness gate.

Key Concepts:
    Step: ``action`` raising means failure. ``failure_class`` decides whether
        an exhausted failure stops the phase (FATAL) or is recorded as a
        warning (TOLERABLE). ``tolerated_signals`` are regexes for output
        that is known to be harmless.
    Phase: ``depends_on`` is checked, never used to reorder. ``completed_when``
        is external evidence that the phase is already done.
    PhaseResult / SequenceResult: what the sequencer reports.

Example::

    install = Step("install-base-packages", lambda: dnf.install(["podman"]),
                   retry=LinearBackoff(max_attempts=5, base_delay=5.0))
    packages = Phase("packages", steps=[install])
    database = Phase("database-container", steps=[...], depends_on={"packages"})
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from oneclick.core.errors import InvalidConfigError
from oneclick.execution.executor import StepOutcome
from oneclick.execution.retry import NoRetry, RetryStrategy
from oneclick.readiness.probe import ReadinessCheck
from oneclick.state.markers import validate_phase_id


class FailureClass(str, Enum):
    FATAL = "fatal"
    TOLERABLE = "tolerable"


@dataclass
class Step:
    """One idempotent provisioning action."""

    id: str
    action: Callable[[], object]
    retry: RetryStrategy = field(default_factory=NoRetry)
    failure_class: FailureClass = FailureClass.FATAL
    ready_when: ReadinessCheck | None = None
    tolerated_signals: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidConfigError("step.id", self.id, "Step id must not be empty")
        self.tolerated_signals = tuple(self.tolerated_signals)

    @property
    def tolerable(self) -> bool:
        return self.failure_class == FailureClass.TOLERABLE


@dataclass
class Phase:
    """A named, ordered group of steps with one completion marker."""

    id: str
    steps: list[Step] = field(default_factory=list)
    depends_on: frozenset[str] = field(default_factory=frozenset)
    completed_when: Callable[[], bool] | None = None
    tolerate_failure: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        validate_phase_id(self.id)
        self.depends_on = frozenset(self.depends_on)
        self.steps = list(self.steps)


class PhaseStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    BLOCKED = "blocked"
    NOT_RUN = "not_run"


@dataclass
class PhaseResult:
    phase_id: str
    status: PhaseStatus
    steps: list[StepOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    adopted: bool = False
    error: str | None = None
    failed_step: str | None = None
    missing_dependencies: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        result: dict = {"phase": self.phase_id, "status": self.status.value}
        if self.adopted:
            result["adopted"] = True
        if self.steps:
            result["steps"] = [s.to_dict() for s in self.steps]
        if self.warnings:
            result["warnings"] = self.warnings
        if self.error:
            result["error"] = self.error
            result["failed_step"] = self.failed_step
        if self.missing_dependencies:
            result["missing_dependencies"] = self.missing_dependencies
        return result


class SequenceStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


EXIT_CODES = {
    SequenceStatus.COMPLETED: 0,
    SequenceStatus.FAILED: 1,
    SequenceStatus.ABORTED: 2,
}


@dataclass
class SequenceResult:
    status: SequenceStatus
    phases: list[PhaseResult] = field(default_factory=list)
    steps_executed: int = 0
    run_id: str | None = None
    duration_s: float = 0.0

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self.status]

    def phase(self, phase_id: str) -> PhaseResult:
        for result in self.phases:
            if result.phase_id == phase_id:
                return result
        raise KeyError(phase_id)

    def by_status(self, status: PhaseStatus) -> list[str]:
        return [p.phase_id for p in self.phases if p.status == status]

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "exit_code": self.exit_code,
            "run_id": self.run_id,
            "steps_executed": self.steps_executed,
            "duration_s": round(self.duration_s, 3),
            "phases": [p.to_dict() for p in self.phases],
        }


__all__ = [
    "FailureClass",
    "Step",
    "Phase",
    "PhaseStatus",
    "PhaseResult",
    "SequenceStatus",
    "SequenceResult",
    "EXIT_CODES",
]
