"""Language runtime and library capabilities (pyenv, venv, pip).

Commands run through a login shell as the lab user so that the user's
profile (PATH, PYENV_ROOT) applies, the same way an interactive session
would see it.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from oneclick.capabilities.commands import CommandResult, CommandRunner
from oneclick.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LibrarySpec:
    """One installable library, optionally pinned."""

    name: str
    version: str | None = None

    @classmethod
    def parse(cls, requirement: str) -> LibrarySpec:
        name, sep, version = requirement.partition("==")
        return cls(name.strip(), version.strip() if sep else None)

    @property
    def requirement(self) -> str:
        return f"{self.name}=={self.version}" if self.version else self.name

    def __str__(self) -> str:
        return self.requirement


@runtime_checkable
class RuntimeVersionManager(Protocol):
    def install(self, version: str) -> None: ...

    def activate(self, version: str, directory: Path) -> None: ...


@runtime_checkable
class PackageLibraryInstaller(Protocol):
    def install(self, libraries: Sequence[LibrarySpec], force_reinstall: bool = False) -> None: ...


class PyenvManager:
    """Interpreter builds through pyenv, installed for ``user``."""

    def __init__(self, runner: CommandRunner, user: str | None = None) -> None:
        self.runner = runner
        self.user = user

    def bootstrap(self) -> None:
        """Install pyenv itself when it is missing."""
        self.runner.run_shell(
            'export PYENV_ROOT="$HOME/.pyenv"; '
            '[ -d "$PYENV_ROOT" ] || curl -sS https://pyenv.run | bash',
            user=self.user,
        )

    def install(self, version: str) -> None:
        logger.info("runtime.pyenv_install", version=version)
        self.runner.run_shell(
            'export PYENV_ROOT="$HOME/.pyenv"; export PATH="$PYENV_ROOT/bin:$PATH"; '
            f"pyenv install -s {shlex.quote(version)} && pyenv rehash",
            user=self.user,
        )

    def activate(self, version: str, directory: Path) -> None:
        d = shlex.quote(str(directory))
        self.runner.run_shell(
            'export PYENV_ROOT="$HOME/.pyenv"; export PATH="$PYENV_ROOT/bin:$PATH"; '
            f"mkdir -p {d} && cd {d} && pyenv local {shlex.quote(version)}",
            user=self.user,
        )


class VirtualenvManager:
    """Creates a virtual environment once and keeps its tooling current."""

    def __init__(self, runner: CommandRunner, user: str | None = None) -> None:
        self.runner = runner
        self.user = user

    def ensure(self, path: Path, python: str = "python3") -> Path:
        p = shlex.quote(str(path))
        self.runner.run_shell(
            f"test -x {p}/bin/python || {shlex.quote(python)} -m venv {p}",
            user=self.user,
        )
        self.runner.run_shell(
            f"{p}/bin/python -m pip install --upgrade pip wheel setuptools",
            user=self.user,
        )
        logger.info("runtime.venv_ready", path=str(path), python=python)
        return path

    def activate_on_login(self, path: Path) -> None:
        """Append the venv activation to the user's ``.bashrc`` once."""
        line = f"source {path}/bin/activate"
        self.runner.run_shell(
            f"grep -qF {shlex.quote(line)} $HOME/.bashrc 2>/dev/null || echo {shlex.quote(line)} >> $HOME/.bashrc",
            user=self.user,
        )


class PipInstaller:
    """``pip install --no-cache-dir`` into a virtual environment."""

    def __init__(self, runner: CommandRunner, venv: Path, user: str | None = None) -> None:
        self.runner = runner
        self.venv = venv
        self.user = user

    def install(self, libraries: Sequence[LibrarySpec], force_reinstall: bool = False) -> None:
        if not libraries:
            return
        args = [f"{self.venv}/bin/pip", "install", "--no-cache-dir"]
        if force_reinstall:
            args.append("--force-reinstall")
        args.extend(lib.requirement for lib in libraries)
        logger.info("runtime.pip_install", count=len(libraries), force_reinstall=force_reinstall)
        self.runner.run_shell(shlex.join(args), user=self.user)

    def run_tool(self, tool: str, *args: str) -> CommandResult:
        """Run a console script installed in the venv."""
        return self.runner.run_shell(shlex.join([f"{self.venv}/bin/{tool}", *args]), user=self.user)


__all__ = [
    "LibrarySpec",
    "RuntimeVersionManager",
    "PackageLibraryInstaller",
    "PyenvManager",
    "VirtualenvManager",
    "PipInstaller",
]
