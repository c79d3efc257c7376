"""
Structured error types for genai-oneclick.

Every failure the provisioning core can observe is expressed as a
``OneClickError`` subclass carrying:

- **Category:** What kind of error (command, readiness, config, storage, ...)
- **Retryable:** Whether the step executor may attempt the action again
- **Context:** Phase, step, service and attempt metadata for the audit log
- **Cause:** Chained underlying exception for root cause analysis

Taxonomy::

    OneClickError
      ├── TransientError            (retryable=True)
      │     ├── CommandError          ── external command exited non-zero
      │     ├── CommandTimeoutError   ── external command exceeded its budget
      │     └── NetworkError          ── download / HTTP failure
      ├── PermanentError            (retryable=False)
      │     └── ReadinessError
      │           ├── ReadinessTimeoutError
      │           └── ReadinessFailedError
      ├── ConfigError               (retryable=False)
      │     ├── MissingConfigError
      │     └── InvalidConfigError
      ├── OrchestrationError        (retryable=False)
      │     └── PlanError (see oneclick.orchestration.exceptions)
      └── StorageError              (retryable=False)

Transient errors are absorbed by the step executor's retry loop. When the
attempt budget is exhausted they are reported as permanent, and the step's
failure class (fatal / tolerable) decides what happens next.

Usage:
    from oneclick.core.errors import CommandError

    raise CommandError("dnf install failed", returncode=1).with_context(
        phase="packages", step="install-base-packages"
    )

Tags:
    error-handling, exception-hierarchy, retry-logic, provisioning
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories used in audit records and log lines."""

    # Collaborator errors (usually transient)
    COMMAND = "COMMAND"           # External command failure
    NETWORK = "NETWORK"           # Download, HTTP, DNS
    TIMEOUT = "TIMEOUT"           # Command or wait exceeded its budget

    # Dependency errors
    READINESS = "READINESS"       # Dependency never became usable

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"             # Missing config, invalid settings

    # Application errors
    ORCHESTRATION = "ORCHESTRATION"  # Plan / ordering bugs
    STORAGE = "STORAGE"           # Marker store, audit log I/O

    # Internal errors
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"           # Uncategorized errors


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only fields that are set end up in ``to_dict()``; anything not covered
    by a typed field goes into ``metadata``.
    """

    phase: str | None = None
    step: str | None = None
    service: str | None = None
    attempt: int | None = None
    command: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["phase", "step", "service", "attempt", "command"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class OneClickError(Exception):
    """
    Base exception for all genai-oneclick errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override both per instance.

    Examples:
        >>> error = OneClickError("Something went wrong")
        >>> error.retryable
        False
        >>> error = OneClickError("flaky", retryable=True)
        >>> error.to_dict()["retryable"]
        True
    """

    # Default category for this error type
    default_category: ErrorCategory = ErrorCategory.INTERNAL
    # Default retryable setting
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        # Chain the cause if provided
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> OneClickError:
        """
        Add context to this error (fluent API).

        Usage:
            raise CommandError("failed").with_context(phase="packages", step="install")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Retryable)
# =============================================================================


class TransientError(OneClickError):
    """
    Temporary error that may succeed on retry.

    Use for network hiccups, a package mirror that is still syncing, or a
    dependency that is not ready yet. The step executor retries these until
    the step's attempt budget is spent.
    """

    default_category = ErrorCategory.COMMAND
    default_retryable = True


class CommandError(TransientError):
    """An external command exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def output(self) -> str:
        """Combined stdout and stderr, used for tolerated-signal matching."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.returncode is not None:
            result["returncode"] = self.returncode
        return result


class CommandTimeoutError(TransientError):
    """An external command did not finish within its timeout."""

    default_category = ErrorCategory.TIMEOUT


class NetworkError(TransientError):
    """Download or HTTP failure."""

    default_category = ErrorCategory.NETWORK


# =============================================================================
# PERMANENT ERRORS (Not Retryable)
# =============================================================================


class PermanentError(OneClickError):
    """Failure that will not go away by trying again."""

    default_category = ErrorCategory.INTERNAL
    default_retryable = False


class ReadinessError(PermanentError):
    """A dependency did not become ready."""

    default_category = ErrorCategory.READINESS

    def __init__(self, message: str, *, target: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.target = target


class ReadinessTimeoutError(ReadinessError):
    """Readiness wait exceeded its timeout."""


class ReadinessFailedError(ReadinessError):
    """The awaited target entered an unrecoverable state."""


# =============================================================================
# CONFIGURATION ERRORS (Never Retryable)
# =============================================================================


class ConfigError(OneClickError):
    """Configuration error. Not retryable; the operator must fix the config."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# ORCHESTRATION / STORAGE ERRORS
# =============================================================================


class OrchestrationError(OneClickError):
    """Plan or sequencing error. Indicates a caller bug, never retried."""

    default_category = ErrorCategory.ORCHESTRATION
    default_retryable = False


class StorageError(OneClickError):
    """Marker store or audit log could not be read or written."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, OneClickError):
        return error.retryable
    # Common Python exceptions that are usually retryable
    retryable_types = (
        ConnectionError,
        BrokenPipeError,
        OSError,  # Includes network errors
    )
    return isinstance(error, retryable_types)


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, OneClickError):
        return error.category
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(error, (KeyError, AttributeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


def error_text(error: Exception) -> str:
    """Everything an error says about itself, for tolerated-signal matching."""
    parts = [str(error)]
    if isinstance(error, CommandError) and error.output:
        parts.append(error.output)
    return "\n".join(parts)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "OneClickError",
    "TransientError",
    "CommandError",
    "CommandTimeoutError",
    "NetworkError",
    "PermanentError",
    "ReadinessError",
    "ReadinessTimeoutError",
    "ReadinessFailedError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "OrchestrationError",
    "StorageError",
    "is_retryable",
    "categorize_error",
    "error_text",
]
