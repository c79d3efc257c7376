"""The GenAI lab appliance: configuration and provisioning plan."""

from oneclick.lab.config import LabConfig, load_lab_config
from oneclick.lab.plan import (
    LabCapabilities,
    LabPlanBuilder,
    build_lab_plan,
    lab_services,
    provisioning_service,
)

__all__ = [
    "LabConfig",
    "load_lab_config",
    "LabCapabilities",
    "LabPlanBuilder",
    "build_lab_plan",
    "lab_services",
    "provisioning_service",
]
