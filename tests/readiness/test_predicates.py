"""Tests for readiness predicates (containers, host, network)."""

from unittest.mock import MagicMock

import httpx

from oneclick.capabilities.container import ExecResult, HealthState
from oneclick.readiness.predicates import (
    container_alive,
    container_healthy,
    exec_output_contains,
    http_ok,
    log_contains,
    marker_present,
    path_exists,
)
from oneclick.readiness.probe import ProbeState
from oneclick.state.markers import MemoryMarkerStore


def _runtime(**attrs):
    runtime = MagicMock()
    runtime.configure_mock(**attrs)
    return runtime


class TestContainerPredicates:
    """Predicates over a ContainerRuntime."""

    def test_healthy(self):
        runtime = _runtime(**{"inspect_health.return_value": HealthState.HEALTHY})
        assert container_healthy(runtime, "23ai")().state == ProbeState.READY

    def test_starting_is_not_ready(self):
        runtime = _runtime(**{"inspect_health.return_value": HealthState.STARTING})
        result = container_healthy(runtime, "23ai")()
        assert result.state == ProbeState.NOT_READY
        assert result.detail == "health=starting"

    def test_alive_while_running(self):
        runtime = _runtime(**{"is_running.return_value": True})
        assert container_alive(runtime, "23ai")().state == ProbeState.READY
        runtime.start.assert_not_called()

    def test_exited_with_data_is_restarted(self, tmp_path):
        data = tmp_path / "oradata" / "FREE"
        data.mkdir(parents=True)
        runtime = _runtime(**{"is_running.return_value": False})

        result = container_alive(runtime, "23ai", data_dir=data)()

        assert result.state == ProbeState.NOT_READY
        runtime.start.assert_called_once_with("23ai")

    def test_exited_without_data_is_failed(self, tmp_path):
        runtime = _runtime(**{"is_running.return_value": False, "logs.return_value": "ORA-00600\n"})

        result = container_alive(runtime, "23ai", data_dir=tmp_path / "missing")()

        assert result.state == ProbeState.FAILED
        assert "ORA-00600" in result.detail
        runtime.start.assert_not_called()
        runtime.logs.assert_called_once_with("23ai", tail=20)

    def test_recover_disabled(self, tmp_path):
        runtime = _runtime(**{"is_running.return_value": False, "logs.return_value": ""})
        result = container_alive(runtime, "23ai", data_dir=tmp_path, recover=False)()
        assert result.state == ProbeState.FAILED
        runtime.start.assert_not_called()

    def test_restart_budget_then_failed(self, tmp_path):
        runtime = _runtime(**{"is_running.return_value": False, "logs.return_value": "crash\n"})
        alive = container_alive(runtime, "23ai", data_dir=tmp_path, max_restarts=2)

        states = [alive().state for _ in range(2)]
        final = alive()

        assert states == [ProbeState.NOT_READY, ProbeState.NOT_READY]
        assert final.state == ProbeState.FAILED
        assert "kept exiting after 2 restart(s)" in final.detail
        assert "crash" in final.detail
        assert runtime.start.call_count == 2

    def test_log_contains_literal(self):
        runtime = _runtime(**{"logs.return_value": "...\nDATABASE IS READY TO USE!\n"})
        assert log_contains(runtime, "23ai", "DATABASE IS READY TO USE!")().state == ProbeState.READY

    def test_log_contains_no_match(self):
        runtime = _runtime(**{"logs.return_value": "Starting..."})
        assert log_contains(runtime, "23ai", "READY TO USE!")().state == ProbeState.NOT_READY

    def test_exec_output_contains_ignores_case(self):
        runtime = _runtime(**{"exec.return_value": ExecResult('Service "freepdb1" has 1 instance', 0)})
        predicate = exec_output_contains(runtime, "23ai", ["lsnrctl", "status"], 'Service "FREEPDB1"')
        assert predicate().state == ProbeState.READY
        runtime.exec.assert_called_once_with("23ai", ["lsnrctl", "status"])


class TestHostPredicates:
    def test_path_exists(self, tmp_path):
        target = tmp_path / "python-runtime.done"
        predicate = path_exists(target)
        assert predicate().state == ProbeState.NOT_READY
        target.write_text("{}")
        assert predicate().state == ProbeState.READY

    def test_marker_present(self):
        store = MemoryMarkerStore()
        predicate = marker_present(store, "packages")
        assert predicate().state == ProbeState.NOT_READY
        store.mark_complete("packages")
        assert predicate().state == ProbeState.READY


class TestNetworkPredicates:
    def test_http_ok(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        assert http_ok("http://localhost:8888/lab", client=client)().state == ProbeState.READY

    def test_http_error_status_is_not_ready(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        result = http_ok("http://localhost:8888/lab", client=client)()
        assert result.state == ProbeState.NOT_READY
        assert result.detail == "HTTP 503"

    def test_http_connection_error_is_not_ready(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(refuse))
        assert http_ok("http://localhost:8888", client=client)().state == ProbeState.NOT_READY
