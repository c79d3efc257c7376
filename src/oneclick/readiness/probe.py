"""Readiness Prober — bounded polling of external conditions.

A ``ReadinessCheck`` names a target (a container, a listener, a marker file),
a predicate, a poll interval and a timeout. ``ReadinessProber.wait_for``
polls the predicate until it reports READY, reports FAILED (the target will
never become ready), or the timeout elapses. The timeout is mandatory, so a
wait always terminates.

ARCHITECTURE
────────────
::

    ReadinessProber.wait_for(check)
      │
      ├── poll: check.predicate() ──► ProbeResult(READY | NOT_READY | FAILED)
      │         (raises → NOT_READY, detail kept)
      ├── READY     → ReadinessResult(READY)
      ├── FAILED    → ReadinessResult(PERMANENT_FAILURE)
      ├── every N polls → log "readiness.progress"
      ├── elapsed ≥ timeout → ReadinessResult(TIMED_OUT)
      └── sleep(min(interval, remaining))

    any_of(p1, p2, ...)  ── first READY wins; else FAILED if any failed
    all_of(p1, p2, ...)  ── READY only when every sub-predicate is ready

Clock and sleep are injected so tests never wait on the wall clock.

Example::

    check = ReadinessCheck(
        target="23ai",
        predicate=any_of(container_healthy(runtime, "23ai"),
                         log_contains(runtime, "23ai", "DATABASE IS READY TO USE!")),
        interval=5,
        timeout=900,
    )
    result = ReadinessProber().wait_for(check)
    result.raise_for_outcome()

Tags:
    readiness, health, polling, timeout
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from oneclick.core.errors import (
    InvalidConfigError,
    ReadinessFailedError,
    ReadinessTimeoutError,
)
from oneclick.core.logging import get_logger

logger = get_logger(__name__)


class ProbeState(str, Enum):
    """What a single poll observed."""

    READY = "ready"
    NOT_READY = "not_ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ProbeResult:
    """Result of one predicate evaluation."""

    state: ProbeState
    detail: str = ""

    @classmethod
    def ready(cls, detail: str = "") -> ProbeResult:
        return cls(ProbeState.READY, detail)

    @classmethod
    def not_ready(cls, detail: str = "") -> ProbeResult:
        return cls(ProbeState.NOT_READY, detail)

    @classmethod
    def failed(cls, detail: str = "") -> ProbeResult:
        return cls(ProbeState.FAILED, detail)

    @classmethod
    def coerce(cls, value: ProbeResult | bool) -> ProbeResult:
        """Accept plain booleans from simple predicates."""
        if isinstance(value, ProbeResult):
            return value
        return cls.ready() if value else cls.not_ready()


Predicate = Callable[[], "ProbeResult | bool"]


@dataclass(frozen=True)
class ReadinessCheck:
    """A polled condition gating progression past a dependency."""

    target: str
    predicate: Predicate
    interval: float = 5.0
    timeout: float = 900.0
    progress_every: int = 12
    description: str = ""

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise InvalidConfigError("interval", self.interval, "Readiness interval must be positive")
        if self.timeout <= 0:
            raise InvalidConfigError("timeout", self.timeout, "Readiness timeout must be positive")
        if self.progress_every < 1:
            raise InvalidConfigError("progress_every", self.progress_every)


class ReadinessOutcome(str, Enum):
    """Terminal outcome of a readiness wait."""

    READY = "ready"
    TIMED_OUT = "timed_out"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True)
class ReadinessResult:
    """Terminal result of ``ReadinessProber.wait_for``."""

    target: str
    outcome: ReadinessOutcome
    polls: int
    elapsed: float
    detail: str = ""

    @property
    def ready(self) -> bool:
        return self.outcome == ReadinessOutcome.READY

    def raise_for_outcome(self) -> None:
        """Raise the matching ``ReadinessError`` unless the target is ready."""
        if self.outcome == ReadinessOutcome.TIMED_OUT:
            raise ReadinessTimeoutError(
                f"{self.target} not ready after {self.elapsed:.0f}s ({self.polls} polls): {self.detail}",
                target=self.target,
            )
        if self.outcome == ReadinessOutcome.PERMANENT_FAILURE:
            raise ReadinessFailedError(
                f"{self.target} failed permanently: {self.detail}",
                target=self.target,
            )


class ReadinessProber:
    """Polls readiness checks until a terminal outcome.

    Parameters
    ----------
    clock
        Monotonic time source in seconds.
    sleep
        Blocking sleep used between polls.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._sleep = sleep

    def wait_for(self, check: ReadinessCheck) -> ReadinessResult:
        """Block until ``check`` is ready, permanently failed, or timed out."""
        start = self._clock()
        polls = 0
        log = logger.bind(target=check.target)
        log.info("readiness.waiting", timeout=check.timeout, interval=check.interval)

        while True:
            polls += 1
            result = self._poll(check)
            elapsed = self._clock() - start

            if result.state == ProbeState.READY:
                log.info("readiness.ready", polls=polls, elapsed=round(elapsed, 1), detail=result.detail)
                return ReadinessResult(check.target, ReadinessOutcome.READY, polls, elapsed, result.detail)

            if result.state == ProbeState.FAILED:
                log.error("readiness.failed", polls=polls, elapsed=round(elapsed, 1), detail=result.detail)
                return ReadinessResult(
                    check.target, ReadinessOutcome.PERMANENT_FAILURE, polls, elapsed, result.detail
                )

            if polls % check.progress_every == 0:
                log.info(
                    "readiness.progress",
                    polls=polls,
                    elapsed=round(elapsed, 1),
                    status=result.detail,
                )

            remaining = check.timeout - elapsed
            if remaining <= 0:
                log.warning("readiness.timed_out", polls=polls, elapsed=round(elapsed, 1), status=result.detail)
                return ReadinessResult(check.target, ReadinessOutcome.TIMED_OUT, polls, elapsed, result.detail)

            self._sleep(min(check.interval, remaining))

    @staticmethod
    def _poll(check: ReadinessCheck) -> ProbeResult:
        try:
            return ProbeResult.coerce(check.predicate())
        except Exception as exc:
            logger.debug("readiness.poll_error", target=check.target, error=str(exc))
            return ProbeResult.not_ready(f"poll error: {exc}")


def any_of(*predicates: Predicate) -> Predicate:
    """Disjunction: READY as soon as one sub-predicate is ready.

    Sub-predicates are evaluated in order every poll. If none is ready and at
    least one reported FAILED, the composite reports FAILED.
    """
    if not predicates:
        raise ValueError("any_of() needs at least one predicate")

    def _any() -> ProbeResult:
        details = []
        failure: ProbeResult | None = None
        for predicate in predicates:
            result = ProbeResult.coerce(predicate())
            if result.state == ProbeState.READY:
                return result
            if result.state == ProbeState.FAILED and failure is None:
                failure = result
            if result.detail:
                details.append(result.detail)
        if failure is not None:
            return failure
        return ProbeResult.not_ready("; ".join(details))

    return _any


def all_of(*predicates: Predicate) -> Predicate:
    """Conjunction: READY only when every sub-predicate is ready."""
    if not predicates:
        raise ValueError("all_of() needs at least one predicate")

    def _all() -> ProbeResult:
        details = []
        for predicate in predicates:
            result = ProbeResult.coerce(predicate())
            if result.state != ProbeState.READY:
                return result
            if result.detail:
                details.append(result.detail)
        return ProbeResult.ready("; ".join(details))

    return _all


__all__ = [
    "ProbeState",
    "ProbeResult",
    "Predicate",
    "ReadinessCheck",
    "ReadinessOutcome",
    "ReadinessResult",
    "ReadinessProber",
    "any_of",
    "all_of",
]
