"""
Shared pytest fixtures for genai-oneclick tests.

This module provides:
- A fake monotonic clock whose ``sleep`` advances time instantly
- In-memory marker store and audit log
- Executor / sequencer wired to the fake clock
- Settings pointing at a temporary state directory
- Scripted actions that fail a given number of times

No test spawns a real subprocess or waits on the wall clock.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path

import pytest
import structlog

# Ensure oneclick package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from oneclick.core.errors import CommandError
from oneclick.core.settings import OneClickSettings, get_settings
from oneclick.execution.audit import AuditLog
from oneclick.execution.executor import StepExecutor
from oneclick.orchestration.sequencer import PhaseSequencer
from oneclick.readiness.probe import ReadinessProber
from oneclick.state.markers import MemoryMarkerStore


# =============================================================================
# Time
# =============================================================================


class FakeClock:
    """Monotonic clock whose sleep advances time without waiting."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Actions
# =============================================================================


class ScriptedAction:
    """Zero-argument action that raises ``error`` for the first ``failures`` calls."""

    def __init__(self, failures: int = 0, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or CommandError("exit 1", returncode=1)
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error


@pytest.fixture
def scripted() -> Callable[..., ScriptedAction]:
    return ScriptedAction


# =============================================================================
# Core wiring
# =============================================================================


@pytest.fixture
def store() -> MemoryMarkerStore:
    return MemoryMarkerStore()


@pytest.fixture
def audit() -> AuditLog:
    return AuditLog(run_id="test-run")


@pytest.fixture
def prober(clock: FakeClock) -> ReadinessProber:
    return ReadinessProber(clock=clock, sleep=clock.sleep)


@pytest.fixture
def executor(audit: AuditLog, prober: ReadinessProber, clock: FakeClock) -> StepExecutor:
    return StepExecutor(audit, prober=prober, sleep=clock.sleep, clock=clock)


@pytest.fixture
def sequencer(store: MemoryMarkerStore, executor: StepExecutor, clock: FakeClock) -> PhaseSequencer:
    return PhaseSequencer(store, executor, clock=clock)


# =============================================================================
# Settings / isolation
# =============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> OneClickSettings:
    return OneClickSettings(
        _env_file=None,
        state_dir=tmp_path / "state",
        audit_log=tmp_path / "audit.jsonl",
        unit_dir=tmp_path / "units",
        default_base_delay=0.0,
    )


@pytest.fixture
def env_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ONECLICK_* settings at ``tmp_path`` for CLI tests."""
    monkeypatch.setenv("ONECLICK_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("ONECLICK_AUDIT_LOG", str(tmp_path / "audit.jsonl"))
    monkeypatch.setenv("ONECLICK_UNIT_DIR", str(tmp_path / "units"))
    monkeypatch.setenv("ONECLICK_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("ONECLICK_JSON_LOGS", "true")
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    return tmp_path


@pytest.fixture(autouse=True)
def _isolate_global_state():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
