"""Tests for the service registrar and marker preconditions."""

from unittest.mock import MagicMock

import pytest

from oneclick.readiness.probe import ReadinessOutcome, ReadinessProber
from oneclick.services.models import ServiceDeclaration
from oneclick.services.preconditions import await_marker, is_path_ref
from oneclick.services.registrar import ServiceOrderError, ServiceRegistrar
from oneclick.state.markers import FileMarkerStore, MemoryMarkerStore


def _decl(name, after=()):
    return ServiceDeclaration(name=name, exec_start="/bin/true", after=after)


@pytest.fixture
def supervisor(tmp_path):
    supervisor = MagicMock()
    supervisor.install.side_effect = lambda decl: tmp_path / decl.unit
    return supervisor


class TestServiceRegistrar:
    def test_register_installs_reloads_enables_starts(self, supervisor):
        registration = ServiceRegistrar(supervisor).register(_decl("genai-23ai", after=("network-online.target",)))

        assert registration.started is True
        assert registration.unit_path.name == "genai-23ai.service"
        calls = [c[0] for c in supervisor.method_calls]
        assert calls == ["install", "reload", "enable", "start"]

    def test_register_without_start(self, supervisor):
        registration = ServiceRegistrar(supervisor).register(_decl("genai-oneclick"), start=False)
        assert registration.started is False
        supervisor.start.assert_not_called()

    def test_after_must_reference_registered_units(self, supervisor):
        registrar = ServiceRegistrar(supervisor)
        with pytest.raises(ServiceOrderError) as exc:
            registrar.register(_decl("genai-jupyter", after=("genai-23ai",)))
        assert exc.value.unknown == ["genai-23ai"]
        supervisor.install.assert_not_called()

    def test_ordering_satisfied_after_registration(self, supervisor):
        registrar = ServiceRegistrar(supervisor)
        registrar.register(_decl("genai-23ai"))
        registrar.register(_decl("genai-jupyter", after=("genai-23ai", "network-online.target")))
        assert set(registrar.registered) == {"genai-23ai", "genai-jupyter"}

    def test_any_target_is_accepted(self, supervisor):
        ServiceRegistrar(supervisor, external_units=()).validate(_decl("x", after=("sysinit.target",)))

    def test_external_units(self, supervisor):
        registrar = ServiceRegistrar(supervisor, external_units=["podman"])
        registrar.validate(_decl("x", after=("podman.service",)))
        with pytest.raises(ServiceOrderError):
            registrar.validate(_decl("x", after=("firewalld",)))


class TestAwaitMarker:
    """Startup precondition used by ExecStartPre."""

    def test_is_path_ref(self):
        assert is_path_ref("/var/lib/genai-oneclick/markers/packages.done")
        assert is_path_ref("packages.done")
        assert not is_path_ref("packages")

    def test_marker_file_present(self, tmp_path, prober):
        store = FileMarkerStore(tmp_path)
        store.mark_complete("python-runtime")
        result = await_marker(store.marker_ref("python-runtime"), lambda: store, prober=prober, timeout=10)
        assert result.ready

    def test_phase_id_uses_store(self, prober):
        store = MemoryMarkerStore(completed=["python-runtime"])
        assert await_marker("python-runtime", lambda: store, prober=prober, timeout=10).ready

    def test_store_not_opened_for_path_refs(self, tmp_path, prober):
        factory = MagicMock()
        (tmp_path / "a.done").write_text("{}")
        assert await_marker(str(tmp_path / "a.done"), factory, prober=prober, timeout=10).ready
        factory.assert_not_called()

    def test_times_out(self, clock):
        store = MemoryMarkerStore()
        prober = ReadinessProber(clock=clock, sleep=clock.sleep)
        result = await_marker("python-runtime", lambda: store, prober=prober, timeout=30, interval=5)
        assert result.outcome == ReadinessOutcome.TIMED_OUT
        assert clock() == 30
