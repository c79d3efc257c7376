"""Container runtime capability (podman CLI).

Key Concepts:
    ContainerRuntime: Protocol the readiness predicates and the lab plan
        depend on. Never imports podman-specific code.
    PodmanRuntime: Drives the ``podman`` CLI via ``CommandRunner``.
        ``run()`` always passes ``--replace`` so a retried run never fails
        with "name already in use".
    HealthState: Normalised ``.State.Health.Status``.

Example::

    podman = PodmanRuntime(CommandRunner())
    podman.pull("container-registry.oracle.com/database/free:latest")
    handle = podman.run(
        "container-registry.oracle.com/database/free:latest",
        name="23ai",
        env={"ORACLE_PWD": "database123"},
        volumes={"/home/opc/oradata": "/opt/oracle/oradata:z"},
        options=["--network=host"],
    )
    podman.inspect_health(handle.name)

Tags:
    container, podman, lifecycle, subprocess, health
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

from oneclick.capabilities.commands import CommandRunner
from oneclick.core.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


class HealthState(str, Enum):
    HEALTHY = "healthy"
    STARTING = "starting"
    UNHEALTHY = "unhealthy"
    NONE = "none"
    MISSING = "missing"

    @classmethod
    def parse(cls, raw: str) -> HealthState:
        value = raw.strip().lower()
        if not value or value == "<nil>":
            return cls.NONE
        try:
            return cls(value)
        except ValueError:
            return cls.NONE


@dataclass(frozen=True)
class ContainerHandle:
    name: str
    image: str
    container_id: str = ""
    options: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ExecResult:
    output: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@runtime_checkable
class ContainerRuntime(Protocol):
    def version(self) -> str: ...

    def pull(self, image: str) -> None: ...

    def run(
        self,
        image: str,
        name: str,
        env: Mapping[str, str] | None = None,
        volumes: Mapping[str, str] | None = None,
        options: Sequence[str] = (),
    ) -> ContainerHandle: ...

    def inspect_health(self, name: str) -> HealthState: ...

    def is_running(self, name: str) -> bool: ...

    def start(self, name: str) -> None: ...

    def exec(self, name: str, command: Sequence[str], input: str | None = None) -> ExecResult: ...

    def logs(self, name: str, tail: int | None = None) -> str: ...


# ---------------------------------------------------------------------------
# Podman
# ---------------------------------------------------------------------------


class PodmanRuntime:
    """Container lifecycle through the ``podman`` CLI.

    Parameters
    ----------
    runner
        Command runner used for every podman invocation.
    binary
        Path to podman. ``/usr/bin/podman`` under systemd, where PATH is bare.
    """

    def __init__(self, runner: CommandRunner, binary: str = "/usr/bin/podman") -> None:
        self.runner = runner
        self.binary = binary

    def version(self) -> str:
        return self.runner.run([self.binary, "--version"]).stdout.strip()

    def pull(self, image: str) -> None:
        logger.info("container.pull", image=image)
        self.runner.run([self.binary, "pull", image])

    def run(
        self,
        image: str,
        name: str,
        env: Mapping[str, str] | None = None,
        volumes: Mapping[str, str] | None = None,
        options: Sequence[str] = (),
    ) -> ContainerHandle:
        cmd = [self.binary, "run", "-d", "--replace", "--name", name, *options]
        for key, value in (env or {}).items():
            cmd.extend(["-e", f"{key}={value}"])
        for host_path, spec in (volumes or {}).items():
            cmd.extend(["-v", f"{host_path}:{spec}"])
        cmd.append(image)

        result = self.runner.run(cmd)
        container_id = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
        logger.info("container.started", container=name, image=image, container_id=container_id[:12])
        return ContainerHandle(name=name, image=image, container_id=container_id, options=tuple(options))

    def inspect_health(self, name: str) -> HealthState:
        result = self.runner.run(
            [self.binary, "inspect", "--format", "{{.State.Health.Status}}", name],
            check=False,
        )
        if not result.ok:
            return HealthState.MISSING
        return HealthState.parse(result.stdout)

    def is_running(self, name: str) -> bool:
        result = self.runner.run(
            [self.binary, "inspect", "--format", "{{.State.Running}}", name],
            check=False,
        )
        return result.ok and result.stdout.strip().lower() == "true"

    def start(self, name: str) -> None:
        logger.info("container.start", container=name)
        self.runner.run([self.binary, "start", name])

    def exec(self, name: str, command: Sequence[str], input: str | None = None) -> ExecResult:
        args = [self.binary, "exec"]
        if input is not None:
            args.append("-i")
        result = self.runner.run([*args, name, *command], check=False, input=input)
        return ExecResult(output=result.output, exit_code=result.returncode)

    def logs(self, name: str, tail: int | None = None) -> str:
        args = [self.binary, "logs"]
        if tail is not None:
            args.extend(["--tail", str(tail)])
        result = self.runner.run([*args, name], check=False)
        return result.output


__all__ = [
    "ContainerRuntime",
    "PodmanRuntime",
    "ContainerHandle",
    "ExecResult",
    "HealthState",
]
