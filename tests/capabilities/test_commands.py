"""Tests for CommandRunner, the subprocess wrapper every adapter uses."""

import subprocess
from unittest.mock import patch

import pytest

from oneclick.capabilities.commands import CommandRunner
from oneclick.core.errors import CommandError, CommandTimeoutError


def _completed(args, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


class TestRun:
    def test_captures_output(self):
        with patch("subprocess.run", return_value=_completed(["podman"], 0, "podman version 4.9\n")) as run:
            result = CommandRunner().run(["podman", "--version"])

        assert result.ok
        assert result.stdout == "podman version 4.9\n"
        args, kwargs = run.call_args
        assert args[0] == ["podman", "--version"]
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["timeout"] == 3600.0
        assert kwargs["env"] is None

    def test_non_zero_exit_raises_command_error(self):
        with patch("subprocess.run", return_value=_completed(["dnf"], 1, "out", "Error: no match")):
            with pytest.raises(CommandError) as exc:
                CommandRunner().run(["dnf", "-y", "install", "nope"])

        error = exc.value
        assert error.returncode == 1
        assert error.retryable is True
        assert "Error: no match" in error.output
        assert error.context.command == "dnf -y install nope"

    def test_check_false_returns_result(self):
        with patch("subprocess.run", return_value=_completed(["podman"], 125, "", "no such container")):
            result = CommandRunner().run(["podman", "inspect", "x"], check=False)
        assert result.returncode == 125
        assert not result.ok
        assert result.output == "no such container"

    def test_timeout(self):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired(["git"], 5)):
            with pytest.raises(CommandTimeoutError):
                CommandRunner().run(["git", "clone", "x"], timeout=5)

    def test_missing_binary_is_not_retryable(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("podman")):
            with pytest.raises(CommandError) as exc:
                CommandRunner().run(["podman", "ps"])
        assert exc.value.retryable is False

    def test_extra_environment_is_merged(self):
        with patch("subprocess.run", return_value=_completed(["env"])) as run:
            CommandRunner(env={"LANG": "C"}).run(["env"], env={"X": "1"})
        env = run.call_args.kwargs["env"]
        assert env["LANG"] == "C"
        assert env["X"] == "1"
        assert "PATH" in env

    def test_arguments_are_stringified(self):
        with patch("subprocess.run", return_value=_completed([])) as run:
            CommandRunner().run(["firewall-cmd", 8888])
        assert run.call_args.args[0] == ["firewall-cmd", "8888"]


class TestRunShell:
    def test_login_shell(self):
        with patch("subprocess.run", return_value=_completed([])) as run:
            CommandRunner().run_shell("echo hi")
        assert run.call_args.args[0] == ["bash", "-lc", "echo hi"]

    def test_as_user(self):
        with patch("subprocess.run", return_value=_completed([])) as run:
            CommandRunner().run_shell("pyenv versions", user="opc", input="x")
        assert run.call_args.args[0] == ["sudo", "-u", "opc", "-H", "bash", "-lc", "pyenv versions"]
        assert run.call_args.kwargs["input"] == "x"
