"""Startup preconditions for supervised services.

``oneclick await-marker <ref>`` runs as an ``ExecStartPre`` of every unit
declaring ``after_markers``. A reference containing a path separator is a
marker file; anything else is a phase id looked up in the marker store.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

from oneclick.core.logging import get_logger
from oneclick.readiness.predicates import marker_present, path_exists
from oneclick.readiness.probe import Predicate, ReadinessCheck, ReadinessProber, ReadinessResult
from oneclick.state.markers import MarkerStore

logger = get_logger(__name__)

DEFAULT_MARKER_TIMEOUT = 6 * 3600.0


def is_path_ref(ref: str) -> bool:
    return os.sep in ref or ref.endswith(".done")


def marker_predicate(ref: str, store_factory: Callable[[], MarkerStore]) -> Predicate:
    if is_path_ref(ref):
        return path_exists(Path(ref))
    return marker_present(store_factory(), ref)


def await_marker(
    ref: str,
    store_factory: Callable[[], MarkerStore],
    prober: ReadinessProber | None = None,
    timeout: float = DEFAULT_MARKER_TIMEOUT,
    interval: float = 5.0,
) -> ReadinessResult:
    """Block until the marker exists or ``timeout`` elapses."""
    check = ReadinessCheck(
        target=ref,
        predicate=marker_predicate(ref, store_factory),
        interval=interval,
        timeout=timeout,
    )
    return (prober or ReadinessProber()).wait_for(check)


__all__ = ["await_marker", "marker_predicate", "is_path_ref", "DEFAULT_MARKER_TIMEOUT"]
