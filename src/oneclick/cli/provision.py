"""
CLI: provisioning, status, reset and audit log commands.

Usage::

    oneclick                         # same as: oneclick provision
    oneclick provision --plan-only   # show the plan and marker state
    oneclick status --json
    oneclick reset --phase database-config --yes
    oneclick log --tail 50
"""

from __future__ import annotations

import sqlite3
import uuid
from pathlib import Path

import typer

from oneclick.cli.utils import (
    console,
    fail,
    load_settings,
    print_audit_records,
    print_json,
    print_plan,
    print_sequence_result,
)
from oneclick.core.errors import OneClickError
from oneclick.core.logging import get_logger
from oneclick.core.settings import OneClickSettings
from oneclick.execution.audit import AuditLog
from oneclick.execution.executor import StepExecutor
from oneclick.lab.config import load_lab_config
from oneclick.lab.plan import build_lab_plan
from oneclick.orchestration.sequencer import PhaseSequencer
from oneclick.state import open_marker_store
from oneclick.state.markers import MARKER_SUFFIX, validate_phase_id

logger = get_logger(__name__)


def provision(
    config: Path | None = typer.Option(None, "--config", "-c", help="Lab config YAML."),
    plan_only: bool = typer.Option(False, "--plan-only", help="Print the plan and exit."),
) -> None:
    """Provision the GenAI lab. Safe to run any number of times."""
    settings = load_settings(config)
    try:
        lab = load_lab_config(settings.lab_config)
        store = open_marker_store(settings)
        phases = build_lab_plan(lab, settings, store)
        if plan_only:
            print_plan(phases, store)
            return

        audit = AuditLog(settings.audit_log, run_id=uuid.uuid4().hex[:12])
        sequencer = PhaseSequencer(store, StepExecutor(audit))
        result = sequencer.run(phases)
    except OneClickError as e:
        logger.error("provision.error", **e.to_dict())
        fail(str(e))

    print_sequence_result(result)
    raise typer.Exit(code=result.exit_code)


def status(
    config: Path | None = typer.Option(None, "--config", "-c", help="Lab config YAML."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show each phase of the lab plan and whether its marker exists."""
    settings = load_settings(config)
    try:
        lab = load_lab_config(settings.lab_config)
        store = open_marker_store(settings)
        phases = build_lab_plan(lab, settings, store)
        completed = store.completed()
    except OneClickError as e:
        fail(str(e))

    if json_out:
        print_json(
            [
                {
                    "phase": p.id,
                    "complete": p.id in completed,
                    "completed_at": completed[p.id].completed_at if p.id in completed else None,
                    "details": completed[p.id].details if p.id in completed else {},
                }
                for p in phases
            ]
        )
        return
    print_plan(phases, store)


def reset(
    phase: list[str] = typer.Option([], "--phase", "-p", help="Phase marker to remove. Repeatable."),
    all_: bool = typer.Option(False, "--all", help="Remove every marker."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Remove phase markers so the next run redoes those phases."""
    if not phase and not all_:
        fail("Specify --phase ID (repeatable) or --all", code=2)
    settings = load_settings()
    for phase_id in phase:
        try:
            validate_phase_id(phase_id)
        except OneClickError as e:
            fail(str(e), code=2)

    target = "all markers" if all_ else ", ".join(phase)
    if not yes:
        typer.confirm(f"Remove {target}?", abort=True)

    try:
        removed = delete_markers(settings, None if all_ else phase)
    except OSError as e:
        fail(f"Cannot remove markers: {e}")
    except sqlite3.Error as e:
        fail(f"Cannot remove markers: {e}")
    logger.warning("markers.reset", phases=target, removed=removed)
    console.print(f"Removed {removed} marker(s).")


def delete_markers(settings: OneClickSettings, phase_ids: list[str] | None) -> int:
    """Delete marker storage directly. The marker store itself has no removal API."""
    if settings.marker_backend == "sqlite":
        if not settings.marker_db.exists():
            return 0
        conn = sqlite3.connect(settings.marker_db)
        try:
            if phase_ids is None:
                cur = conn.execute("DELETE FROM phase_markers")
            else:
                cur = conn.executemany(
                    "DELETE FROM phase_markers WHERE phase_id = ?", [(p,) for p in phase_ids]
                )
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    directory = settings.marker_dir
    if not directory.is_dir():
        return 0
    if phase_ids is None:
        paths = list(directory.glob(f"*{MARKER_SUFFIX}"))
    else:
        paths = [directory / f"{p}{MARKER_SUFFIX}" for p in phase_ids]
    removed = 0
    for path in paths:
        if path.exists():
            path.unlink()
            removed += 1
    return removed


def log(
    tail: int = typer.Option(20, "--tail", "-n", help="Number of records to show."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show the most recent audit log records."""
    settings = load_settings()
    records = AuditLog(settings.audit_log).tail(tail)
    if json_out:
        print_json([r.model_dump(exclude_none=True, mode="json") for r in records])
        return
    if not records:
        console.print(f"[dim]No audit records in {settings.audit_log}[/]")
        return
    print_audit_records(records)
