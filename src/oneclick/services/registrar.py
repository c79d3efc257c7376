"""Service Registrar — hand background services to the supervisor.

The registrar validates a declaration's ordering against what it has already
registered, installs the unit through a ``ServiceSupervisor``, reloads,
enables and (unless told otherwise) starts it. After registration the
supervisor owns the service's lifecycle, including restarts.

Related Modules:
    - :mod:`oneclick.services.systemd` — unit rendering, systemctl
    - :mod:`oneclick.services.preconditions` — ``await-marker`` entry point
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from oneclick.core.errors import ConfigError
from oneclick.core.logging import get_logger
from oneclick.services.models import ServiceDeclaration, unit_name
from oneclick.services.systemd import ServiceSupervisor

logger = get_logger(__name__)

DEFAULT_EXTERNAL_UNITS = frozenset(
    {
        "network-online.target",
        "network.target",
        "multi-user.target",
        "local-fs.target",
        "firewalld.service",
        "podman.service",
    }
)


class ServiceOrderError(ConfigError):
    """A service starts after a unit nobody registered."""

    def __init__(self, service: str, unknown: list[str]):
        self.service = service
        self.unknown = unknown
        super().__init__(
            f"Service '{service}' starts after unregistered units: {', '.join(unknown)}"
        )


@dataclass(frozen=True)
class ServiceRegistration:
    name: str
    unit_path: Path
    started: bool


class ServiceRegistrar:
    """Registers declarations with a supervisor.

    Parameters
    ----------
    supervisor
        Installs and drives units.
    external_units
        Units managed outside this registrar that services may start after.
        Any ``*.target`` is always accepted.
    """

    def __init__(self, supervisor: ServiceSupervisor, external_units: Iterable[str] = DEFAULT_EXTERNAL_UNITS) -> None:
        self.supervisor = supervisor
        self.external_units = {unit_name(u) for u in external_units}
        self._registered: dict[str, ServiceDeclaration] = {}

    @property
    def registered(self) -> dict[str, ServiceDeclaration]:
        return dict(self._registered)

    def validate(self, declaration: ServiceDeclaration) -> None:
        known = {d.unit for d in self._registered.values()} | self.external_units
        unknown = [
            dep
            for dep in declaration.after
            if unit_name(dep) not in known and not unit_name(dep).endswith(".target")
        ]
        if unknown:
            raise ServiceOrderError(declaration.name, unknown)

    def register(self, declaration: ServiceDeclaration, start: bool = True) -> ServiceRegistration:
        self.validate(declaration)
        path = self.supervisor.install(declaration)
        self.supervisor.reload()
        self.supervisor.enable(declaration.name)
        self._registered[declaration.name] = declaration
        if start:
            self.supervisor.start(declaration.name)
        logger.info(
            "service.registered",
            service=declaration.name,
            unit=str(path),
            started=start,
            restart=declaration.restart.value,
        )
        return ServiceRegistration(declaration.name, path, start)


__all__ = ["ServiceRegistrar", "ServiceRegistration", "ServiceOrderError", "DEFAULT_EXTERNAL_UNITS"]
