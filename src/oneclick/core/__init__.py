"""Ambient building blocks: errors, logging and settings."""

from oneclick.core.errors import (
    CommandError,
    CommandTimeoutError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    MissingConfigError,
    NetworkError,
    OneClickError,
    OrchestrationError,
    PermanentError,
    ReadinessError,
    ReadinessFailedError,
    ReadinessTimeoutError,
    StorageError,
    TransientError,
    categorize_error,
    is_retryable,
)
from oneclick.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)

__all__ = [
    "CommandError",
    "CommandTimeoutError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "MissingConfigError",
    "NetworkError",
    "OneClickError",
    "OrchestrationError",
    "PermanentError",
    "ReadinessError",
    "ReadinessFailedError",
    "ReadinessTimeoutError",
    "StorageError",
    "TransientError",
    "categorize_error",
    "is_retryable",
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
