"""Phase Sequencer — run a provisioning plan phase by phase, idempotently.

The sequencer owns every phase transition and is the only writer of the
marker store. Phases run strictly in declared order; ``depends_on`` is
checked against the marker store, never used to reorder.

ARCHITECTURE
────────────
::

    PhaseSequencer.run(phases)
      │
      ├── validate()  ── DuplicatePhaseError / CycleDetectedError /
      │                  DependencyOrderError (raised, nothing executed)
      │
      └── for phase in phases:
            ├── marker present        → SKIPPED
            ├── completed_when() true → marker written, SKIPPED (adopted)
            ├── dependency incomplete → BLOCKED, sequence ABORTED (exit 2)
            └── run steps via StepExecutor
                  ├── FATAL failure     → FAILED, no marker, sequence FAILED (exit 1)
                  │                       unless phase.tolerate_failure
                  ├── TOLERABLE failure → warning, keep going
                  └── all done          → marker (warnings in details), COMPLETED

Re-running a completed plan is a no-op that exits 0. A phase interrupted
mid-way has no marker, so the next run reruns all of its steps.

Related Modules:
    - :mod:`oneclick.execution.executor` — retry loop and readiness gating
    - :mod:`oneclick.state.markers` — marker store backends
    - :mod:`oneclick.orchestration.models` — Phase, Step, results

Tags:
    orchestration, sequencing, idempotence, resume
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

from oneclick.core.logging import LogContext, get_logger
from oneclick.execution.audit import AuditLog, RecordKind
from oneclick.execution.executor import StepExecutor
from oneclick.orchestration.exceptions import (
    CycleDetectedError,
    DependencyOrderError,
    DuplicatePhaseError,
)
from oneclick.orchestration.models import (
    Phase,
    PhaseResult,
    PhaseStatus,
    SequenceResult,
    SequenceStatus,
)
from oneclick.state.markers import MarkerStore

logger = get_logger(__name__)


def validate_plan(phases: Sequence[Phase]) -> None:
    """Raise a ``PlanError`` for duplicate ids, cycles or late dependencies.

    Dependencies on phases outside the plan are allowed; they are satisfied
    by markers from earlier runs or the sequence aborts at that phase.
    """
    positions: dict[str, int] = {}
    for index, phase in enumerate(phases):
        if phase.id in positions:
            raise DuplicatePhaseError(phase.id)
        positions[phase.id] = index

    by_id = {p.id: p for p in phases}
    visiting: list[str] = []
    done: set[str] = set()

    def visit(phase_id: str) -> None:
        if phase_id in done:
            return
        if phase_id in visiting:
            start = visiting.index(phase_id)
            raise CycleDetectedError([*visiting[start:], phase_id])
        visiting.append(phase_id)
        for dep in sorted(by_id[phase_id].depends_on):
            if dep in by_id:
                visit(dep)
        visiting.pop()
        done.add(phase_id)

    for phase in phases:
        visit(phase.id)

    for phase in phases:
        for dep in sorted(phase.depends_on):
            if dep in positions and positions[dep] > positions[phase.id]:
                raise DependencyOrderError(phase.id, dep)


class PhaseSequencer:
    """Drives phases through the step executor and records markers.

    Parameters
    ----------
    store
        Marker store consulted at phase entry and written at phase exit.
    executor
        Step executor. Its audit log also receives phase records.
    clock
        Monotonic time source for the sequence duration.
    """

    def __init__(
        self,
        store: MarkerStore,
        executor: StepExecutor,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.executor = executor
        self._clock = clock

    @property
    def audit(self) -> AuditLog:
        return self.executor.audit

    def run(self, phases: Sequence[Phase]) -> SequenceResult:
        """Run ``phases`` in order. Raises only for an invalid plan or storage failure."""
        validate_plan(phases)

        started = self._clock()
        results: list[PhaseResult] = []
        steps_executed = 0
        status = SequenceStatus.COMPLETED

        logger.info("sequence.started", phases=len(phases), run_id=self.audit.run_id)

        for index, phase in enumerate(phases):
            with LogContext(phase=phase.id):
                result = self._enter(phase)
                if result is None:
                    result = self._run_phase(phase)
                    steps_executed += len(result.steps)
                results.append(result)

                if result.status == PhaseStatus.BLOCKED:
                    status = SequenceStatus.ABORTED
                elif result.status == PhaseStatus.FAILED:
                    if phase.tolerate_failure:
                        logger.warning("phase.failure_tolerated", step=result.failed_step, error=result.error)
                        continue
                    status = SequenceStatus.FAILED
                else:
                    continue

            results.extend(PhaseResult(p.id, PhaseStatus.NOT_RUN) for p in phases[index + 1:])
            break

        sequence = SequenceResult(
            status=status,
            phases=results,
            steps_executed=steps_executed,
            run_id=self.audit.run_id,
            duration_s=self._clock() - started,
        )
        self.audit.record(
            status.value,
            kind=RecordKind.SEQUENCE,
            duration_s=round(sequence.duration_s, 3),
            detail={"exit_code": sequence.exit_code, "steps_executed": steps_executed},
        )
        log = logger.info if status == SequenceStatus.COMPLETED else logger.error
        log(
            "sequence.finished",
            status=status.value,
            exit_code=sequence.exit_code,
            steps_executed=steps_executed,
            completed=sequence.by_status(PhaseStatus.COMPLETED),
            skipped=sequence.by_status(PhaseStatus.SKIPPED),
        )
        return sequence

    # ------------------------------------------------------------------
    # Phase entry
    # ------------------------------------------------------------------

    def _enter(self, phase: Phase) -> PhaseResult | None:
        """Decide whether ``phase`` needs to run. ``None`` means run it."""
        if self.store.is_complete(phase.id):
            logger.info("phase.skipped", reason="marker")
            self._record_phase(phase.id, "skipped")
            return PhaseResult(phase.id, PhaseStatus.SKIPPED)

        if phase.completed_when is not None and self._already_done(phase):
            self.store.mark_complete(phase.id, {"adopted": True})
            logger.info("phase.adopted")
            self._record_phase(phase.id, "adopted")
            return PhaseResult(phase.id, PhaseStatus.SKIPPED, adopted=True)

        missing = sorted(dep for dep in phase.depends_on if not self.store.is_complete(dep))
        if missing:
            logger.error("phase.blocked", missing=missing)
            self._record_phase(phase.id, "blocked", missing_dependencies=missing)
            return PhaseResult(
                phase.id,
                PhaseStatus.BLOCKED,
                error=f"Dependencies not complete: {', '.join(missing)}",
                missing_dependencies=missing,
            )
        return None

    @staticmethod
    def _already_done(phase: Phase) -> bool:
        try:
            return bool(phase.completed_when())
        except Exception as exc:
            logger.warning("phase.completion_check_failed", error=str(exc))
            return False

    # ------------------------------------------------------------------
    # Phase execution
    # ------------------------------------------------------------------

    def _run_phase(self, phase: Phase) -> PhaseResult:
        logger.info("phase.started", steps=len(phase.steps))
        result = PhaseResult(phase.id, PhaseStatus.COMPLETED)

        for step in phase.steps:
            outcome = self.executor.execute(step, phase.id)
            result.steps.append(outcome)
            if outcome.succeeded:
                continue

            if step.tolerable or outcome.tolerated_signal is not None:
                warning = f"{step.id}: {outcome.error}"
                result.warnings.append(warning)
                logger.warning("phase.step_tolerated", step=step.id, error=outcome.error)
                continue

            result.status = PhaseStatus.FAILED
            result.failed_step = step.id
            result.error = outcome.error
            logger.error("phase.failed", step=step.id, attempts=outcome.attempts, error=outcome.error)
            self._record_phase(phase.id, "failed", step=step.id, error=outcome.error)
            return result

        details = {"warnings": result.warnings} if result.warnings else None
        self.store.mark_complete(phase.id, details)
        logger.info("phase.completed", warnings=len(result.warnings))
        self._record_phase(phase.id, "completed", warnings=result.warnings or None)
        return result

    def _record_phase(self, phase_id: str, outcome: str, step: str | None = None, error: str | None = None, **detail) -> None:
        self.audit.record(
            outcome,
            kind=RecordKind.PHASE,
            phase=phase_id,
            step=step,
            error=error,
            detail={k: v for k, v in detail.items() if v is not None},
        )


__all__ = ["PhaseSequencer", "validate_plan"]
