"""Step execution: retry policies, the step executor and the audit log."""

from oneclick.execution.audit import AuditLog, AuditRecord, RecordKind
from oneclick.execution.executor import StepExecutor, StepOutcome, StepStatus
from oneclick.execution.retry import (
    ConstantBackoff,
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    RetryStrategy,
)

__all__ = [
    "AuditLog",
    "AuditRecord",
    "RecordKind",
    "StepExecutor",
    "StepOutcome",
    "StepStatus",
    "RetryStrategy",
    "LinearBackoff",
    "ExponentialBackoff",
    "ConstantBackoff",
    "NoRetry",
]
