"""Declarative service descriptions.

A ``ServiceDeclaration`` states what a long-running (or one-shot) process is,
how it restarts, what it starts after, and which phase markers must exist
before it does real work. Supervisors turn declarations into their own unit
format; see :mod:`oneclick.services.systemd`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from oneclick.core.errors import InvalidConfigError


class ServiceKind(str, Enum):
    ONESHOT = "oneshot"
    SIMPLE = "simple"


class RestartPolicy(str, Enum):
    NEVER = "no"
    ON_FAILURE = "on-failure"
    ALWAYS = "always"


UNIT_SUFFIXES = (".service", ".target", ".socket", ".mount", ".timer", ".path")


def unit_name(name: str) -> str:
    """``genai-jupyter`` → ``genai-jupyter.service``; full unit names pass through."""
    return name if name.endswith(UNIT_SUFFIXES) else f"{name}.service"


@dataclass(frozen=True)
class ServiceDeclaration:
    name: str
    exec_start: str
    description: str = ""
    kind: ServiceKind = ServiceKind.SIMPLE
    restart: RestartPolicy = RestartPolicy.NEVER
    restart_sec: int | None = None
    after: tuple[str, ...] = ()
    wants: tuple[str, ...] = ()
    after_markers: tuple[str, ...] = ()
    user: str | None = None
    group: str | None = None
    working_directory: str | None = None
    environment: dict[str, str] = field(default_factory=dict)
    remain_after_exit: bool = False
    timeout_start_sec: int | None = None
    wanted_by: str = "multi-user.target"

    def __post_init__(self) -> None:
        if not self.name or "/" in self.name or " " in self.name:
            raise InvalidConfigError("service.name", self.name)
        if not self.exec_start:
            raise InvalidConfigError("service.exec_start", self.exec_start)
        if self.restart_sec is not None and self.restart_sec < 0:
            raise InvalidConfigError("service.restart_sec", self.restart_sec)
        object.__setattr__(self, "after", tuple(self.after))
        object.__setattr__(self, "wants", tuple(self.wants))
        object.__setattr__(self, "after_markers", tuple(self.after_markers))

    @property
    def unit(self) -> str:
        return unit_name(self.name)


__all__ = ["ServiceKind", "RestartPolicy", "ServiceDeclaration", "unit_name"]
