"""Command-line interface (typer + rich)."""

from oneclick.cli.app import app, main

__all__ = ["app", "main"]
