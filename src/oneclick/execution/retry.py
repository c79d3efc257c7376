"""Retry policies for provisioning steps.

A policy answers two questions for the step executor: may the action be
attempted again, and how long to wait first. Delays never decrease from one
attempt to the next.

Example:
    >>> from oneclick.execution.retry import LinearBackoff
    >>>
    >>> policy = LinearBackoff(max_attempts=5, base_delay=5.0)
    >>> [policy.next_delay(n) for n in range(1, 5)]
    [5.0, 10.0, 15.0, 20.0]
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    max_attempts: int

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before the next attempt.

        Args:
            attempt: One-based number of the attempt that just failed

        Returns:
            Delay in seconds before the next attempt
        """
        ...

    def should_retry(self, attempts: int, error: Exception | None = None) -> bool:
        """Determine if another attempt is allowed.

        Args:
            attempts: Number of attempts made so far
            error: The exception that caused the last failure
        """
        return attempts < self.max_attempts


@dataclass(frozen=True)
class LinearBackoff(RetryStrategy):
    """Linear backoff: delay = base_delay * attempt, capped at max_delay."""

    max_attempts: int = 5
    base_delay: float = 5.0
    max_delay: float = 300.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")

    def next_delay(self, attempt: int) -> float:
        """Calculate linear backoff delay."""
        return min(self.base_delay * attempt, self.max_delay)


@dataclass(frozen=True)
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff with optional jitter.

    Delay = min(base_delay * (multiplier ** (attempt - 1)) * (1 + jitter), max_delay)

    Jitter is drawn from ``[0, min(jitter_range, multiplier - 1)]`` and applied
    before the cap, so no delay is shorter than the one before it.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = False
    jitter_range: float = 0.25
    retryable_errors: frozenset[type] | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")

    def next_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        delay = self.base_delay * (self.multiplier ** max(attempt - 1, 0))
        if self.jitter:
            delay *= 1 + random.uniform(0, min(self.jitter_range, self.multiplier - 1))
        return min(delay, self.max_delay)

    def should_retry(self, attempts: int, error: Exception | None = None) -> bool:
        """Check if retry should be attempted."""
        if attempts >= self.max_attempts:
            return False
        if error is not None and self.retryable_errors is not None:
            return isinstance(error, tuple(self.retryable_errors))
        return True


@dataclass(frozen=True)
class ConstantBackoff(RetryStrategy):
    """Constant delay between attempts."""

    max_attempts: int = 3
    delay: float = 1.0

    def next_delay(self, attempt: int) -> float:
        """Return constant delay."""
        return self.delay


@dataclass(frozen=True)
class NoRetry(RetryStrategy):
    """Single attempt - fail immediately."""

    max_attempts: int = 1

    def next_delay(self, attempt: int) -> float:
        """No delay needed."""
        return 0.0

    def should_retry(self, attempts: int, error: Exception | None = None) -> bool:
        """Never retry."""
        return False


__all__ = [
    "RetryStrategy",
    "LinearBackoff",
    "ExponentialBackoff",
    "ConstantBackoff",
    "NoRetry",
]
