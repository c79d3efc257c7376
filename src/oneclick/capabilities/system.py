"""Host system tools: filesystem growth, firewall, unit enablement, ownership."""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from oneclick.capabilities.commands import CommandRunner
from oneclick.core.logging import get_logger

logger = get_logger(__name__)

GROWFS = "/usr/libexec/oci-growfs"


class SystemTools:
    def __init__(self, runner: CommandRunner, growfs: str = GROWFS) -> None:
        self.runner = runner
        self.growfs = growfs

    def grow_filesystem(self) -> bool:
        """Grow the root filesystem when the platform tool exists.

        Returns False when there is nothing to run.
        """
        if not os.path.exists(self.growfs):
            logger.info("system.growfs_unavailable", tool=self.growfs)
            return False
        self.runner.run([self.growfs, "-y"])
        return True

    def open_ports(self, ports: Iterable[int], zone: str = "public", protocol: str = "tcp") -> None:
        for port in ports:
            self.runner.run(
                ["firewall-cmd", f"--zone={zone}", f"--add-port={port}/{protocol}", "--permanent"]
            )

    def reload_firewall(self) -> None:
        self.runner.run(["firewall-cmd", "--reload"])

    def enable_service(self, name: str, now: bool = True) -> None:
        args = ["systemctl", "enable"]
        if now:
            args.append("--now")
        self.runner.run([*args, name])

    def chown(self, paths: Sequence[Path | str], owner: str, recursive: bool = True) -> None:
        if not paths:
            return
        args = ["chown"]
        if recursive:
            args.append("-R")
        self.runner.run([*args, owner, *(str(p) for p in paths)])


__all__ = ["SystemTools", "GROWFS"]
