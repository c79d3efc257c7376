"""Phase completion markers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from oneclick.state.markers import (
    FileMarkerStore,
    MarkerRecord,
    MarkerStore,
    MemoryMarkerStore,
    SqliteMarkerStore,
    validate_phase_id,
)

if TYPE_CHECKING:
    from oneclick.core.settings import OneClickSettings


def open_marker_store(settings: OneClickSettings) -> MarkerStore:
    """Marker store for the configured backend."""
    if settings.marker_backend == "sqlite":
        return SqliteMarkerStore(settings.marker_db)
    return FileMarkerStore(settings.marker_dir)


__all__ = [
    "MarkerStore",
    "MarkerRecord",
    "FileMarkerStore",
    "SqliteMarkerStore",
    "MemoryMarkerStore",
    "open_marker_store",
    "validate_phase_id",
]
