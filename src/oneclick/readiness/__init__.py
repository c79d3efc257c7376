"""Readiness: bounded polling of external dependencies."""

from oneclick.readiness.predicates import (
    container_alive,
    container_healthy,
    exec_output_contains,
    http_ok,
    log_contains,
    marker_present,
    path_exists,
)
from oneclick.readiness.probe import (
    Predicate,
    ProbeResult,
    ProbeState,
    ReadinessCheck,
    ReadinessOutcome,
    ReadinessProber,
    ReadinessResult,
    all_of,
    any_of,
)

__all__ = [
    "Predicate",
    "ProbeResult",
    "ProbeState",
    "ReadinessCheck",
    "ReadinessOutcome",
    "ReadinessProber",
    "ReadinessResult",
    "all_of",
    "any_of",
    "container_alive",
    "container_healthy",
    "exec_output_contains",
    "http_ok",
    "log_contains",
    "marker_present",
    "path_exists",
]
