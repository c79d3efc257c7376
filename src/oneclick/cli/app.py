"""
Root Typer application for the ``oneclick`` CLI.

Running ``oneclick`` with no sub-command provisions the lab, exactly like
``oneclick provision``.
"""

from __future__ import annotations

import typer
from typer import Typer

from oneclick import __version__

app = Typer(
    name="oneclick",
    help="genai-oneclick — idempotent GenAI lab provisioning.",
    invoke_without_command=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"genai-oneclick {__version__}")
        raise typer.Exit()


@app.callback()
def root(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """genai-oneclick CLI — provision, inspect and reset the GenAI lab."""
    if ctx.invoked_subcommand is None:
        provision(config=None, plan_only=False)


# ── Sub-command registration ─────────────────────────────────────────────

from oneclick.cli.provision import log, provision, reset, status  # noqa: E402
from oneclick.cli.services import app as services_app  # noqa: E402
from oneclick.cli.services import await_marker_cmd, install_unit  # noqa: E402

app.command("provision")(provision)
app.command("status")(status)
app.command("reset")(reset)
app.command("log")(log)
app.command("await-marker")(await_marker_cmd)
app.command("install-unit")(install_unit)
app.add_typer(services_app, name="services", help="Service unit files.")


def main() -> None:
    app()
