"""Readiness predicates for containers, files, markers and network endpoints.

Each factory returns a zero-argument callable producing a ``ProbeResult``.
Combine them with ``any_of`` / ``all_of`` from :mod:`oneclick.readiness.probe`.

The database container, for example, is ready once it is alive and either
reports healthy or has logged its ready line::

    all_of(
        container_alive(podman, "23ai", data_dir=Path("/home/opc/oradata/FREE")),
        any_of(
            container_healthy(podman, "23ai"),
            log_contains(podman, "23ai", "DATABASE IS READY TO USE!"),
        ),
    )

Related Modules:
    - :mod:`oneclick.readiness.probe` — polling loop and composites
    - :mod:`oneclick.capabilities.container` — ContainerRuntime protocol
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from oneclick.capabilities.container import ContainerRuntime, HealthState
from oneclick.core.logging import get_logger
from oneclick.readiness.probe import Predicate, ProbeResult

if TYPE_CHECKING:
    from oneclick.state.markers import MarkerStore

logger = get_logger(__name__)


# ── Containers ───────────────────────────────────────────────────────────


def container_healthy(runtime: ContainerRuntime, name: str) -> Predicate:
    """READY when the container's healthcheck reports healthy."""

    def _healthy() -> ProbeResult:
        state = runtime.inspect_health(name)
        if state == HealthState.HEALTHY:
            return ProbeResult.ready(f"health={state.value}")
        return ProbeResult.not_ready(f"health={state.value}")

    return _healthy


def container_alive(
    runtime: ContainerRuntime,
    name: str,
    data_dir: Path | None = None,
    recover: bool = True,
    max_restarts: int = 3,
    log_tail: int = 20,
) -> Predicate:
    """READY while the container runs.

    An exited container whose persisted ``data_dir`` exists has finished
    creating its data and is restarted (NOT_READY for that poll), at most
    ``max_restarts`` times. Once the budget is spent, or without that
    evidence, or with ``recover=False``, an exited container is FAILED.
    """
    restarts = 0

    def _alive() -> ProbeResult:
        nonlocal restarts
        if runtime.is_running(name):
            return ProbeResult.ready("running")
        if recover and data_dir is not None and data_dir.exists():
            if restarts < max_restarts:
                restarts += 1
                logger.warning(
                    "readiness.container_restart",
                    container=name,
                    data_dir=str(data_dir),
                    restart=restarts,
                )
                runtime.start(name)
                return ProbeResult.not_ready(f"restarted after exit ({restarts}/{max_restarts})")
            reason = f"{name} kept exiting after {restarts} restart(s)"
        else:
            reason = f"{name} exited and no data found" if recover else f"{name} exited"
        tail = runtime.logs(name, tail=log_tail).strip()
        return ProbeResult.failed(f"{reason}\n{tail}" if tail else reason)

    return _alive


def log_contains(runtime: ContainerRuntime, name: str, pattern: str, regex: bool = False) -> Predicate:
    """READY once the container's logs contain ``pattern``."""
    compiled = re.compile(pattern if regex else re.escape(pattern))

    def _log() -> ProbeResult:
        if compiled.search(runtime.logs(name)):
            return ProbeResult.ready(f"log matched {pattern!r}")
        return ProbeResult.not_ready("log=no match")

    return _log


def exec_output_contains(
    runtime: ContainerRuntime,
    name: str,
    command: Sequence[str],
    pattern: str,
    ignore_case: bool = True,
) -> Predicate:
    """READY once ``command`` run inside the container prints ``pattern``."""
    flags = re.IGNORECASE if ignore_case else 0
    compiled = re.compile(re.escape(pattern), flags)

    def _exec() -> ProbeResult:
        result = runtime.exec(name, command)
        if compiled.search(result.output):
            return ProbeResult.ready(f"found {pattern!r}")
        return ProbeResult.not_ready(f"exit={result.exit_code}")

    return _exec


# ── Host ─────────────────────────────────────────────────────────────────


def path_exists(path: Path | str) -> Predicate:
    target = Path(path)

    def _exists() -> ProbeResult:
        if target.exists():
            return ProbeResult.ready(str(target))
        return ProbeResult.not_ready(f"missing {target}")

    return _exists


def marker_present(store: MarkerStore, phase_id: str) -> Predicate:
    def _marker() -> ProbeResult:
        if store.is_complete(phase_id):
            return ProbeResult.ready(f"{phase_id} complete")
        return ProbeResult.not_ready(f"{phase_id} pending")

    return _marker


# ── Network ──────────────────────────────────────────────────────────────


def http_ok(url: str, client: httpx.Client | None = None, timeout: float = 3.0) -> Predicate:
    """READY on any status below 400."""

    def _http() -> ProbeResult:
        try:
            if client is not None:
                response = client.get(url, timeout=timeout)
            else:
                response = httpx.get(url, timeout=timeout, follow_redirects=True)
        except httpx.HTTPError as exc:
            return ProbeResult.not_ready(f"{type(exc).__name__}: {exc}")
        if response.status_code < 400:
            return ProbeResult.ready(f"HTTP {response.status_code}")
        return ProbeResult.not_ready(f"HTTP {response.status_code}")

    return _http


__all__ = [
    "container_healthy",
    "container_alive",
    "log_contains",
    "exec_output_contains",
    "path_exists",
    "marker_present",
    "http_ok",
]
