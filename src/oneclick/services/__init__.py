"""Background service declarations, registration and supervision."""

from oneclick.services.models import RestartPolicy, ServiceDeclaration, ServiceKind, unit_name
from oneclick.services.preconditions import await_marker
from oneclick.services.registrar import ServiceOrderError, ServiceRegistrar, ServiceRegistration
from oneclick.services.systemd import ServiceSupervisor, SystemdSupervisor, render_unit

__all__ = [
    "RestartPolicy",
    "ServiceDeclaration",
    "ServiceKind",
    "unit_name",
    "await_marker",
    "ServiceOrderError",
    "ServiceRegistrar",
    "ServiceRegistration",
    "ServiceSupervisor",
    "SystemdSupervisor",
    "render_unit",
]
