"""Subprocess command runner shared by every capability adapter.

All external collaborators (dnf, podman, pyenv, pip, git, systemctl,
firewall-cmd) are driven through ``CommandRunner.run``. A non-zero exit
raises ``CommandError`` carrying stdout and stderr, so the step executor can
retry it and match tolerated signals against the output.

Example::

    runner = CommandRunner()
    result = runner.run(["podman", "--version"])
    print(result.stdout)

    runner.run_shell("python3.9 -m venv $HOME/.venvs/genai", user="opc")

Tags:
    subprocess, command, capability
"""

from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from oneclick.core.errors import CommandError, CommandTimeoutError
from oneclick.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Completed external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class CommandRunner:
    """Runs external commands via subprocess.

    Parameters
    ----------
    default_timeout
        Seconds before a command is killed. Package installs and image pulls
        are slow, so the default is generous.
    env
        Extra environment merged into every command's environment.
    """

    def __init__(self, default_timeout: float = 3600.0, env: Mapping[str, str] | None = None) -> None:
        self.default_timeout = default_timeout
        self.env = dict(env or {})

    @staticmethod
    def which(name: str) -> str | None:
        """Locate a binary on PATH."""
        return shutil.which(name)

    def run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        timeout: float | None = None,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        """Run a command and capture its output.

        Raises:
            CommandError: Non-zero exit with ``check=True``, or binary not found
            CommandTimeoutError: The command exceeded its timeout
        """
        cmd = [str(a) for a in args]
        timeout = timeout if timeout is not None else self.default_timeout
        merged_env = None
        if self.env or env:
            merged_env = {**os.environ, **self.env, **(env or {})}

        logger.debug("command.exec", cmd=shlex.join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                input=input,
                env=merged_env,
                cwd=cwd,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                f"Command timed out after {timeout:.0f}s: {shlex.join(cmd)}",
                cause=exc,
            ).with_context(command=shlex.join(cmd)) from exc
        except FileNotFoundError as exc:
            raise CommandError(
                f"Command not found: {cmd[0]}",
                retryable=False,
                cause=exc,
            ).with_context(command=shlex.join(cmd)) from exc

        result = CommandResult(tuple(cmd), proc.returncode, proc.stdout or "", proc.stderr or "")
        if check and not result.ok:
            raise CommandError(
                f"Command failed (exit {result.returncode}): {shlex.join(cmd)}",
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            ).with_context(command=shlex.join(cmd))
        return result

    def run_shell(
        self,
        script: str,
        *,
        user: str | None = None,
        check: bool = True,
        timeout: float | None = None,
        input: str | None = None,
    ) -> CommandResult:
        """Run ``script`` in a login bash, optionally as another user."""
        args = ["bash", "-lc", script]
        if user is not None:
            args = ["sudo", "-u", user, "-H", *args]
        return self.run(args, check=check, timeout=timeout, input=input)


__all__ = ["CommandRunner", "CommandResult"]
