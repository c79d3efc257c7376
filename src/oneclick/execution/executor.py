"""Step Executor — run one provisioning action under its retry policy.

The executor never raises for action errors. It returns a ``StepOutcome``
and leaves the fatal/tolerable decision to the phase sequencer, which owns
phase transitions.

Attempt loop::

    attempt = 1
    ┌─► action()
    │     ├── ok ──► ready_when? ──► prober.wait_for(check)
    │     │                           ├── READY      → SUCCEEDED
    │     │                           └── otherwise  → FAILED (action not re-run)
    │     └── raises
    │           ├── tolerated signal matched → FAILED, tolerated_signal set
    │           ├── not retryable            → FAILED
    │           ├── policy exhausted         → FAILED, exhausted=True
    └───────────└── sleep(policy.next_delay(attempt)); attempt += 1

Every attempt, and every readiness wait, is appended to the audit log.

Tags:
    execution, retry, idempotent, audit
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from oneclick.core.errors import (
    ErrorCategory,
    categorize_error,
    error_text,
    is_retryable,
)
from oneclick.core.logging import LogContext, get_logger
from oneclick.execution.audit import AuditLog, RecordKind
from oneclick.readiness.probe import ReadinessOutcome, ReadinessProber, ReadinessResult

if TYPE_CHECKING:
    from oneclick.orchestration.models import Step

logger = get_logger(__name__)


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class StepOutcome:
    """Result of executing one step."""

    step_id: str
    status: StepStatus
    attempts: int
    error: str | None = None
    error_category: ErrorCategory | None = None
    exhausted: bool = False
    tolerated_signal: str | None = None
    readiness: ReadinessResult | None = None
    duration_s: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCEEDED

    def to_dict(self) -> dict:
        result = {
            "step": self.step_id,
            "status": self.status.value,
            "attempts": self.attempts,
            "duration_s": round(self.duration_s, 3),
        }
        if self.error is not None:
            result["error"] = self.error
            result["category"] = self.error_category.value if self.error_category else None
        if self.exhausted:
            result["exhausted"] = True
        if self.tolerated_signal:
            result["tolerated_signal"] = self.tolerated_signal
        if self.readiness is not None:
            result["readiness"] = self.readiness.outcome.value
        return result


def match_tolerated_signal(error: Exception, patterns: tuple[str, ...] | list[str]) -> str | None:
    """Return the first pattern found in the error's text, if any."""
    text = error_text(error)
    for pattern in patterns:
        if re.search(pattern, text):
            return pattern
    return None


class StepExecutor:
    """Executes steps with retry, readiness gating and audit records.

    Parameters
    ----------
    audit
        Audit log receiving one record per attempt.
    prober
        Readiness prober for ``step.ready_when``. Built from ``clock`` and
        ``sleep`` when omitted.
    sleep
        Backoff sleep. Tests inject a fake.
    clock
        Monotonic time source used for attempt durations.
    """

    def __init__(
        self,
        audit: AuditLog,
        prober: ReadinessProber | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.audit = audit
        self._sleep = sleep
        self._clock = clock
        self.prober = prober or ReadinessProber(clock=clock, sleep=sleep)

    def execute(self, step: Step, phase_id: str) -> StepOutcome:
        """Run ``step`` until it succeeds or its retry policy gives up."""
        with LogContext(step=step.id):
            return self._execute(step, phase_id)

    def _execute(self, step: Step, phase_id: str) -> StepOutcome:
        policy = step.retry
        started = self._clock()
        attempt = 0

        logger.info("step.started", max_attempts=policy.max_attempts)

        while True:
            attempt += 1
            attempt_started = self._clock()
            try:
                step.action()
            except Exception as exc:
                duration = self._clock() - attempt_started
                category = categorize_error(exc)
                signal = match_tolerated_signal(exc, step.tolerated_signals)
                self.audit.record(
                    "failed",
                    kind=RecordKind.ATTEMPT,
                    phase=phase_id,
                    step=step.id,
                    attempt=attempt,
                    error=str(exc),
                    category=category.value,
                    duration_s=round(duration, 3),
                    detail={"tolerated_signal": signal} if signal else {},
                )

                if signal is not None:
                    logger.warning("step.tolerated_signal", attempt=attempt, signal=signal, error=str(exc))
                    return self._failed(step, attempt, exc, category, started, tolerated_signal=signal)

                if not is_retryable(exc):
                    logger.error("step.failed_permanent", attempt=attempt, error=str(exc), category=category.value)
                    return self._failed(step, attempt, exc, category, started)

                if not policy.should_retry(attempt, exc):
                    logger.error("step.retries_exhausted", attempts=attempt, error=str(exc))
                    return self._failed(step, attempt, exc, category, started, exhausted=True)

                delay = policy.next_delay(attempt)
                logger.warning(
                    "step.attempt_failed",
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    retry_in=delay,
                    error=str(exc),
                )
                self._sleep(delay)
                continue

            duration = self._clock() - attempt_started
            self.audit.record(
                "succeeded",
                kind=RecordKind.ATTEMPT,
                phase=phase_id,
                step=step.id,
                attempt=attempt,
                duration_s=round(duration, 3),
            )
            break

        readiness = None
        if step.ready_when is not None:
            readiness = self.prober.wait_for(step.ready_when)
            self.audit.record(
                readiness.outcome.value,
                kind=RecordKind.READINESS,
                phase=phase_id,
                step=step.id,
                duration_s=round(readiness.elapsed, 3),
                detail={"target": readiness.target, "polls": readiness.polls, "status": readiness.detail},
            )
            if not readiness.ready:
                error = (
                    f"{readiness.target} not ready after {readiness.elapsed:.0f}s"
                    if readiness.outcome == ReadinessOutcome.TIMED_OUT
                    else f"{readiness.target} failed: {readiness.detail}"
                )
                logger.error("step.readiness_failed", outcome=readiness.outcome.value, detail=readiness.detail)
                return StepOutcome(
                    step_id=step.id,
                    status=StepStatus.FAILED,
                    attempts=attempt,
                    error=error,
                    error_category=ErrorCategory.READINESS,
                    readiness=readiness,
                    duration_s=self._clock() - started,
                )

        logger.info("step.succeeded", attempts=attempt)
        return StepOutcome(
            step_id=step.id,
            status=StepStatus.SUCCEEDED,
            attempts=attempt,
            readiness=readiness,
            duration_s=self._clock() - started,
        )

    def _failed(
        self,
        step: Step,
        attempts: int,
        exc: Exception,
        category: ErrorCategory,
        started: float,
        exhausted: bool = False,
        tolerated_signal: str | None = None,
    ) -> StepOutcome:
        return StepOutcome(
            step_id=step.id,
            status=StepStatus.FAILED,
            attempts=attempts,
            error=str(exc),
            error_category=category,
            exhausted=exhausted,
            tolerated_signal=tolerated_signal,
            duration_s=self._clock() - started,
        )


__all__ = ["StepExecutor", "StepOutcome", "StepStatus", "match_tolerated_signal"]
