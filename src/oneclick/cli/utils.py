"""
CLI utility helpers — settings, logging setup and rich output.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from oneclick.core.logging import configure_logging
from oneclick.core.settings import OneClickSettings, get_settings
from oneclick.execution.audit import AuditRecord
from oneclick.orchestration.models import Phase, PhaseStatus, SequenceResult
from oneclick.state.markers import MarkerStore

console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {
    PhaseStatus.COMPLETED: "green",
    PhaseStatus.SKIPPED: "dim",
    PhaseStatus.FAILED: "bold red",
    PhaseStatus.BLOCKED: "red",
    PhaseStatus.NOT_RUN: "yellow",
}


# ── Settings / logging ───────────────────────────────────────────────────


def load_settings(lab_config: Path | None = None) -> OneClickSettings:
    """Process settings with logging configured from them."""
    settings = get_settings()
    if lab_config is not None:
        settings = settings.model_copy(update={"lab_config": lab_config})
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    return settings


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def print_sequence_result(result: SequenceResult) -> None:
    table = Table(title=f"Provisioning {result.status.value} (run {result.run_id})")
    table.add_column("Phase", style="cyan")
    table.add_column("Status")
    table.add_column("Steps", justify="right")
    table.add_column("Notes")

    for phase in result.phases:
        style = STATUS_STYLES.get(phase.status, "")
        status = "adopted" if phase.adopted else phase.status.value
        notes: list[str] = []
        if phase.error:
            notes.append(phase.error)
        notes.extend(f"warn: {w}" for w in phase.warnings)
        table.add_row(
            phase.phase_id,
            f"[{style}]{status}[/]" if style else status,
            str(len(phase.steps)) if phase.steps else "-",
            "\n".join(notes),
        )

    console.print(table)
    console.print(
        f"steps executed: {result.steps_executed}  "
        f"duration: {result.duration_s:.1f}s  exit code: {result.exit_code}"
    )


def print_plan(phases: Sequence[Phase], store: MarkerStore) -> None:
    completed = store.completed()
    table = Table(title="Provisioning plan")
    table.add_column("#", justify="right")
    table.add_column("Phase", style="cyan")
    table.add_column("Depends on")
    table.add_column("Steps")
    table.add_column("Marker")

    for index, phase in enumerate(phases, start=1):
        record = completed.get(phase.id)
        table.add_row(
            str(index),
            phase.id,
            ", ".join(sorted(phase.depends_on)) or "-",
            "\n".join(
                f"{s.id} [dim]({s.failure_class.value})[/]" for s in phase.steps
            ),
            f"[green]done[/] {record.completed_at}" if record else "[yellow]pending[/]",
        )
    console.print(table)


def print_audit_records(records: Sequence[AuditRecord]) -> None:
    table = Table(title="Audit log")
    table.add_column("Time", style="dim")
    table.add_column("Kind")
    table.add_column("Phase", style="cyan")
    table.add_column("Step")
    table.add_column("#", justify="right")
    table.add_column("Outcome")
    table.add_column("Error")

    for record in records:
        outcome_style = "green" if record.outcome in ("succeeded", "completed", "ready") else "yellow"
        if record.outcome in ("failed", "blocked", "timed_out", "permanent_failure", "aborted"):
            outcome_style = "red"
        table.add_row(
            record.timestamp[:19],
            record.kind.value,
            record.phase or "-",
            record.step or "-",
            str(record.attempt) if record.attempt is not None else "",
            f"[{outcome_style}]{record.outcome}[/]",
            (record.error or "")[:80],
        )
    console.print(table)


def fail(message: str, code: int = 1) -> None:
    """Print an error and exit."""
    err_console.print(f"[bold red]Error:[/] {message}")
    raise typer.Exit(code=code)
