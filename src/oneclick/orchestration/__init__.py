"""Provisioning plans and the phase sequencer."""

from oneclick.orchestration.exceptions import (
    CycleDetectedError,
    DependencyOrderError,
    DuplicatePhaseError,
    PlanError,
)
from oneclick.orchestration.models import (
    FailureClass,
    Phase,
    PhaseResult,
    PhaseStatus,
    SequenceResult,
    SequenceStatus,
    Step,
)
from oneclick.orchestration.sequencer import PhaseSequencer, validate_plan

__all__ = [
    "CycleDetectedError",
    "DependencyOrderError",
    "DuplicatePhaseError",
    "PlanError",
    "FailureClass",
    "Phase",
    "PhaseResult",
    "PhaseStatus",
    "SequenceResult",
    "SequenceStatus",
    "Step",
    "PhaseSequencer",
    "validate_plan",
]
