"""systemd supervisor: unit rendering and ``systemctl`` lifecycle.

Marker ordering is a startup precondition run by the service itself: every
entry of ``after_markers`` becomes an ``ExecStartPre`` line invoking
``oneclick await-marker <ref>``. The wait is bounded, so a missing marker
makes the unit fail and the restart policy takes over.

Example output for the JupyterLab service::

    [Unit]
    Description=GenAI JupyterLab
    Wants=network-online.target
    After=network-online.target genai-23ai.service

    [Service]
    Type=simple
    User=opc
    Group=opc
    WorkingDirectory=/home/opc
    Environment="HOME=/home/opc"
    ExecStartPre=/usr/local/bin/oneclick await-marker /var/lib/genai-oneclick/markers/python-runtime.done
    ExecStart=/bin/bash -lc 'source /home/opc/.venvs/genai/bin/activate && exec jupyter lab ...'
    Restart=on-failure
    RestartSec=10

    [Install]
    WantedBy=multi-user.target
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Protocol, runtime_checkable

from oneclick.capabilities.commands import CommandRunner
from oneclick.core.errors import StorageError
from oneclick.core.logging import get_logger
from oneclick.services.models import ServiceDeclaration, unit_name

logger = get_logger(__name__)


@runtime_checkable
class ServiceSupervisor(Protocol):
    def install(self, declaration: ServiceDeclaration) -> Path: ...

    def reload(self) -> None: ...

    def enable(self, name: str) -> None: ...

    def start(self, name: str) -> None: ...

    def status(self, name: str) -> str: ...


def _quote_env(key: str, value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{key}={escaped}"'


def render_unit(declaration: ServiceDeclaration, executable: str = "/usr/local/bin/oneclick") -> str:
    """Render a systemd unit file for ``declaration``."""
    d = declaration
    lines = ["[Unit]"]
    if d.description:
        lines.append(f"Description={d.description}")
    if d.wants:
        lines.append("Wants=" + " ".join(unit_name(w) for w in d.wants))
    if d.after:
        lines.append("After=" + " ".join(unit_name(a) for a in d.after))

    lines += ["", "[Service]", f"Type={d.kind.value}"]
    if d.remain_after_exit:
        lines.append("RemainAfterExit=yes")
    if d.timeout_start_sec is not None:
        lines.append(f"TimeoutStartSec={d.timeout_start_sec}")
    if d.user:
        lines.append(f"User={d.user}")
    if d.group:
        lines.append(f"Group={d.group}")
    if d.working_directory:
        lines.append(f"WorkingDirectory={d.working_directory}")
    for key, value in sorted(d.environment.items()):
        lines.append(f"Environment={_quote_env(key, value)}")
    for ref in d.after_markers:
        lines.append(f"ExecStartPre={shlex.join([executable, 'await-marker', ref])}")
    lines.append(f"ExecStart={d.exec_start}")
    lines.append(f"Restart={d.restart.value}")
    if d.restart_sec is not None:
        lines.append(f"RestartSec={d.restart_sec}")

    lines += ["", "[Install]", f"WantedBy={d.wanted_by}", ""]
    return "\n".join(lines)


class SystemdSupervisor:
    """Installs units under ``unit_dir`` and drives them with ``systemctl``."""

    def __init__(
        self,
        runner: CommandRunner,
        unit_dir: Path | str = "/etc/systemd/system",
        executable: str = "/usr/local/bin/oneclick",
    ) -> None:
        self.runner = runner
        self.unit_dir = Path(unit_dir)
        self.executable = executable

    def unit_path(self, name: str) -> Path:
        return self.unit_dir / unit_name(name)

    def render(self, declaration: ServiceDeclaration) -> str:
        return render_unit(declaration, self.executable)

    def install(self, declaration: ServiceDeclaration) -> Path:
        path = self.unit_path(declaration.name)
        content = self.render(declaration)
        try:
            if path.exists() and path.read_text(encoding="utf-8") == content:
                logger.debug("unit.unchanged", unit=path.name)
                return path
            self.unit_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Cannot write unit {path}", cause=exc).with_context(
                service=declaration.name
            ) from exc
        logger.info("unit.written", unit=path.name, path=str(path))
        return path

    def reload(self) -> None:
        self.runner.run(["systemctl", "daemon-reload"])

    def enable(self, name: str) -> None:
        self.runner.run(["systemctl", "enable", unit_name(name)])

    def start(self, name: str) -> None:
        self.runner.run(["systemctl", "start", unit_name(name)])

    def status(self, name: str) -> str:
        result = self.runner.run(["systemctl", "is-active", unit_name(name)], check=False)
        return result.stdout.strip() or "unknown"


__all__ = ["ServiceSupervisor", "SystemdSupervisor", "render_unit"]
