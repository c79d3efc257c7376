"""Capability interfaces for external collaborators and their CLI adapters.

Each capability is a ``typing.Protocol`` the core depends on, plus a
subprocess adapter driven by ``CommandRunner``. Tests substitute fakes.
"""

from oneclick.capabilities.commands import CommandResult, CommandRunner
from oneclick.capabilities.container import (
    ContainerHandle,
    ContainerRuntime,
    ExecResult,
    HealthState,
    PodmanRuntime,
)
from oneclick.capabilities.content import ContentFetcher, FetchResult, GitContentFetcher
from oneclick.capabilities.packages import DnfInstaller, PackageInstaller
from oneclick.capabilities.runtime import (
    LibrarySpec,
    PackageLibraryInstaller,
    PipInstaller,
    PyenvManager,
    RuntimeVersionManager,
    VirtualenvManager,
)
from oneclick.capabilities.system import SystemTools

__all__ = [
    "CommandResult",
    "CommandRunner",
    "ContainerHandle",
    "ContainerRuntime",
    "ExecResult",
    "HealthState",
    "PodmanRuntime",
    "ContentFetcher",
    "FetchResult",
    "GitContentFetcher",
    "DnfInstaller",
    "PackageInstaller",
    "LibrarySpec",
    "PackageLibraryInstaller",
    "PipInstaller",
    "PyenvManager",
    "RuntimeVersionManager",
    "VirtualenvManager",
    "SystemTools",
]
