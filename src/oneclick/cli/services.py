"""
CLI: service units and their startup preconditions.

Usage::

    oneclick services render                 # print the lab's unit files
    oneclick install-unit                    # register genai-oneclick.service
    oneclick await-marker /var/lib/genai-oneclick/markers/python-runtime.done
"""

from __future__ import annotations

from pathlib import Path

import typer

from oneclick.capabilities.commands import CommandRunner
from oneclick.cli.utils import console, fail, load_settings
from oneclick.core.errors import OneClickError
from oneclick.lab.config import load_lab_config
from oneclick.lab.plan import lab_services, provisioning_service
from oneclick.services.preconditions import DEFAULT_MARKER_TIMEOUT, await_marker
from oneclick.services.registrar import ServiceRegistrar
from oneclick.services.systemd import SystemdSupervisor, render_unit
from oneclick.state import open_marker_store

app = typer.Typer(no_args_is_help=True)


@app.command("render")
def render(
    config: Path | None = typer.Option(None, "--config", "-c", help="Lab config YAML."),
    unit: str | None = typer.Option(None, "--unit", "-u", help="Only this service."),
) -> None:
    """Print the unit files the lab plan registers."""
    settings = load_settings(config)
    try:
        lab = load_lab_config(settings.lab_config)
        declarations = [*lab_services(lab, open_marker_store(settings)), provisioning_service(settings)]
    except OneClickError as e:
        fail(str(e))

    if unit is not None:
        declarations = [d for d in declarations if unit in (d.name, d.unit)]
        if not declarations:
            fail(f"Unknown service: {unit}")

    for declaration in declarations:
        console.rule(f"[bold]{declaration.unit}")
        console.print(render_unit(declaration, settings.executable), markup=False, highlight=False)


def install_unit(
    no_start: bool = typer.Option(False, "--no-start", help="Enable without starting."),
) -> None:
    """Register the provisioning unit so an interrupted run resumes after reboot."""
    settings = load_settings()
    supervisor = SystemdSupervisor(CommandRunner(), settings.unit_dir, settings.executable)
    try:
        registration = ServiceRegistrar(supervisor).register(provisioning_service(settings), start=not no_start)
    except OneClickError as e:
        fail(str(e))
    console.print(
        f"Installed {registration.unit_path}" + (" and started it." if registration.started else ".")
    )


def await_marker_cmd(
    ref: str = typer.Argument(..., help="Marker file path or phase id."),
    timeout: float = typer.Option(DEFAULT_MARKER_TIMEOUT, "--timeout", "-t", help="Seconds to wait."),
    interval: float = typer.Option(5.0, "--interval", "-i", help="Seconds between checks."),
) -> None:
    """Wait for a phase marker; exit non-zero on timeout."""
    settings = load_settings()
    try:
        await_marker(
            ref,
            lambda: open_marker_store(settings),
            timeout=timeout,
            interval=interval,
        ).raise_for_outcome()
    except OneClickError as e:
        fail(str(e))
