"""Orchestration exceptions — plan validation errors.

All inherit from ``oneclick.core.errors.OrchestrationError``. They signal a
malformed plan, which is a caller bug, so the sequencer raises them before
executing any step.

Hierarchy::

    OrchestrationError  (from oneclick.core.errors)
      └── PlanError                   ── base for plan validation errors
            ├── DuplicatePhaseError     ── two phases share an id
            ├── CycleDetectedError      ── dependency relation has a cycle
            └── DependencyOrderError    ── dependency declared after its dependent
"""

from oneclick.core.errors import OrchestrationError


class PlanError(OrchestrationError):
    """Base exception for invalid phase plans."""

    pass


class DuplicatePhaseError(PlanError):
    """Raised when two phases in a plan share an id."""

    def __init__(self, phase_id: str):
        self.phase_id = phase_id
        super().__init__(f"Duplicate phase id: {phase_id}")


class CycleDetectedError(PlanError):
    """Raised when the phase dependency relation contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"Cycle detected in phase dependencies: {cycle_str}")


class DependencyOrderError(PlanError):
    """Raised when a phase depends on a phase declared after it.

    Phases run in declared order and are never reordered.
    """

    def __init__(self, phase_id: str, dependency: str):
        self.phase_id = phase_id
        self.dependency = dependency
        super().__init__(
            f"Phase '{phase_id}' depends on '{dependency}', which is declared after it"
        )
