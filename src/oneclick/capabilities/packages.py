"""OS package manager capability (dnf)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from oneclick.capabilities.commands import CommandRunner
from oneclick.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class PackageInstaller(Protocol):
    def install(self, names: Sequence[str]) -> None: ...


class DnfInstaller:
    """``dnf`` adapter. Every call is idempotent on the dnf side."""

    def __init__(self, runner: CommandRunner, binary: str = "dnf") -> None:
        self.runner = runner
        self.binary = binary

    def install(self, names: Sequence[str]) -> None:
        if not names:
            return
        logger.info("packages.install", count=len(names))
        self.runner.run([self.binary, "-y", "install", *names])

    def enable_repos(self, repos: Sequence[str]) -> None:
        for repo in repos:
            self.runner.run([self.binary, "config-manager", "--set-enabled", repo])

    def disable_repos(self, repos: Sequence[str]) -> None:
        for repo in repos:
            self.runner.run([self.binary, "config-manager", "--set-disabled", repo])

    def clean_metadata(self) -> None:
        self.runner.run([self.binary, "clean", "all"])

    def refresh_metadata(self) -> None:
        self.runner.run([self.binary, "-y", "makecache", "--refresh"])

    def enable_module(self, module: str) -> None:
        self.runner.run([self.binary, "-y", "module", "enable", module])


__all__ = ["PackageInstaller", "DnfInstaller"]
