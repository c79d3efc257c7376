"""Tests for the dnf, podman, pyenv/venv/pip and system adapters."""

from pathlib import Path
from unittest.mock import MagicMock, call

import pytest

from oneclick.capabilities.commands import CommandResult
from oneclick.capabilities.container import ContainerRuntime, HealthState, PodmanRuntime
from oneclick.capabilities.packages import DnfInstaller, PackageInstaller
from oneclick.capabilities.runtime import (
    LibrarySpec,
    PackageLibraryInstaller,
    PipInstaller,
    PyenvManager,
    VirtualenvManager,
)
from oneclick.capabilities.system import SystemTools


def _result(stdout="", returncode=0, stderr=""):
    return CommandResult(("cmd",), returncode, stdout, stderr)


@pytest.fixture
def runner():
    runner = MagicMock()
    runner.run.return_value = _result()
    runner.run_shell.return_value = _result()
    return runner


class TestDnfInstaller:
    def test_protocol(self, runner):
        assert isinstance(DnfInstaller(runner), PackageInstaller)

    def test_install(self, runner):
        DnfInstaller(runner).install(["git", "podman"])
        runner.run.assert_called_once_with(["dnf", "-y", "install", "git", "podman"])

    def test_install_nothing(self, runner):
        DnfInstaller(runner).install([])
        runner.run.assert_not_called()

    def test_repos_and_modules(self, runner):
        dnf = DnfInstaller(runner)
        dnf.disable_repos(["ol8_ksplice"])
        dnf.enable_repos(["ol8_addons"])
        dnf.clean_metadata()
        dnf.refresh_metadata()
        dnf.enable_module("python39")
        assert runner.run.call_args_list == [
            call(["dnf", "config-manager", "--set-disabled", "ol8_ksplice"]),
            call(["dnf", "config-manager", "--set-enabled", "ol8_addons"]),
            call(["dnf", "clean", "all"]),
            call(["dnf", "-y", "makecache", "--refresh"]),
            call(["dnf", "-y", "module", "enable", "python39"]),
        ]


class TestPodmanRuntime:
    def test_protocol(self, runner):
        assert isinstance(PodmanRuntime(runner), ContainerRuntime)

    def test_run_builds_command(self, runner):
        runner.run.return_value = _result("Trying to pull...\nabc123def456789\n")
        handle = PodmanRuntime(runner, binary="podman").run(
            "free:latest",
            "23ai",
            env={"ORACLE_PWD": "pw"},
            volumes={"/home/opc/oradata": "/opt/oracle/oradata:z"},
            options=["--network=host"],
        )
        runner.run.assert_called_once_with(
            [
                "podman", "run", "-d", "--replace", "--name", "23ai", "--network=host",
                "-e", "ORACLE_PWD=pw",
                "-v", "/home/opc/oradata:/opt/oracle/oradata:z",
                "free:latest",
            ]
        )
        assert handle.container_id == "abc123def456789"
        assert handle.name == "23ai"

    @pytest.mark.parametrize(
        "stdout, state",
        [("healthy\n", HealthState.HEALTHY), ("starting", HealthState.STARTING), ("<nil>", HealthState.NONE), ("", HealthState.NONE)],
    )
    def test_inspect_health(self, runner, stdout, state):
        runner.run.return_value = _result(stdout)
        assert PodmanRuntime(runner).inspect_health("23ai") == state

    def test_inspect_health_missing_container(self, runner):
        runner.run.return_value = _result(returncode=125)
        assert PodmanRuntime(runner).inspect_health("23ai") == HealthState.MISSING

    def test_is_running(self, runner):
        runner.run.return_value = _result("true\n")
        assert PodmanRuntime(runner).is_running("23ai") is True
        runner.run.return_value = _result("false\n")
        assert PodmanRuntime(runner).is_running("23ai") is False

    def test_exec_with_input(self, runner):
        runner.run.return_value = _result("CONNECTION_OK\n")
        result = PodmanRuntime(runner, binary="podman").exec("23ai", ["sqlplus", "-S"], input="SELECT 1;")
        assert result.ok
        runner.run.assert_called_once_with(
            ["podman", "exec", "-i", "23ai", "sqlplus", "-S"], check=False, input="SELECT 1;"
        )

    def test_logs_tail(self, runner):
        runner.run.return_value = _result("line\n")
        assert PodmanRuntime(runner, binary="podman").logs("23ai", tail=5) == "line\n"
        runner.run.assert_called_once_with(["podman", "logs", "--tail", "5", "23ai"], check=False)

    def test_version(self, runner):
        runner.run.return_value = _result("podman version 4.9.4\n")
        podman = PodmanRuntime(runner)
        assert podman.version() == "podman version 4.9.4"


class TestRuntimeAdapters:
    def test_library_spec(self):
        assert LibrarySpec.parse("torch==2.5.0") == LibrarySpec("torch", "2.5.0")
        assert LibrarySpec.parse("oci").requirement == "oci"
        assert str(LibrarySpec("jupyterlab", "4.2.5")) == "jupyterlab==4.2.5"

    def test_pip_install(self, runner):
        pip = PipInstaller(runner, Path("/home/opc/.venvs/genai"), user="opc")
        assert isinstance(pip, PackageLibraryInstaller)
        pip.install([LibrarySpec("jupyterlab", "4.2.5")], force_reinstall=True)
        runner.run_shell.assert_called_once_with(
            "/home/opc/.venvs/genai/bin/pip install --no-cache-dir --force-reinstall jupyterlab==4.2.5",
            user="opc",
        )

    def test_pip_run_tool(self, runner):
        PipInstaller(runner, Path("/v"), user="opc").run_tool("jupyter", "lab", "--version")
        runner.run_shell.assert_called_once_with("/v/bin/jupyter lab --version", user="opc")

    def test_venv_created_only_when_missing(self, runner):
        VirtualenvManager(runner, user="opc").ensure(Path("/home/opc/.venvs/genai"), "python3.9")
        script = runner.run_shell.call_args_list[0].args[0]
        assert script == "test -x /home/opc/.venvs/genai/bin/python || python3.9 -m venv /home/opc/.venvs/genai"

    def test_activate_on_login_is_idempotent_shell(self, runner):
        VirtualenvManager(runner, user="opc").activate_on_login(Path("/v"))
        script = runner.run_shell.call_args.args[0]
        assert script.startswith("grep -qF 'source /v/bin/activate'")

    def test_pyenv_install(self, runner):
        PyenvManager(runner, user="opc").install("3.11.9")
        script = runner.run_shell.call_args.args[0]
        assert "pyenv install -s 3.11.9" in script
        assert runner.run_shell.call_args.kwargs == {"user": "opc"}


class TestSystemTools:
    def test_grow_filesystem_unavailable(self, runner, tmp_path):
        assert SystemTools(runner, growfs=str(tmp_path / "missing")).grow_filesystem() is False
        runner.run.assert_not_called()

    def test_grow_filesystem(self, runner, tmp_path):
        tool = tmp_path / "oci-growfs"
        tool.write_text("")
        assert SystemTools(runner, growfs=str(tool)).grow_filesystem() is True
        runner.run.assert_called_once_with([str(tool), "-y"])

    def test_firewall(self, runner):
        tools = SystemTools(runner)
        tools.open_ports([8888, 1521])
        tools.reload_firewall()
        assert runner.run.call_args_list == [
            call(["firewall-cmd", "--zone=public", "--add-port=8888/tcp", "--permanent"]),
            call(["firewall-cmd", "--zone=public", "--add-port=1521/tcp", "--permanent"]),
            call(["firewall-cmd", "--reload"]),
        ]

    def test_enable_service_and_chown(self, runner):
        tools = SystemTools(runner)
        tools.enable_service("firewalld")
        tools.chown([Path("/opt/genai")], "opc:opc")
        tools.chown([], "opc:opc")
        assert runner.run.call_args_list == [
            call(["systemctl", "enable", "--now", "firewalld"]),
            call(["chown", "-R", "opc:opc", "/opt/genai"]),
        ]
