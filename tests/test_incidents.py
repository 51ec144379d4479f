"""
Unit Tests for the Incident State Machine

Transition table, failure handling and handle bookkeeping for a single
metric's incident.
"""

import pytest

from hostwatch.errors import RemoteError
from hostwatch.monitor.incidents import (
    Incident,
    IncidentAction,
    IncidentState,
    IncidentStateMachine,
    MetricKind,
)


@pytest.fixture
def machine(client) -> IncidentStateMachine:
    return IncidentStateMachine(Incident(MetricKind.CPU), client)


class TestMetricKind:
    def test_remote_names(self):
        """Endpoint names used by the monitor service."""
        assert MetricKind.CPU.remote_name == "CPU"
        assert MetricKind.MEMORY.remote_name == "RAM"
        assert MetricKind.NETWORK.remote_name == "Network"

    def test_new_incident_is_idle(self):
        incident = Incident(MetricKind.NETWORK)

        assert incident.state is IncidentState.IDLE
        assert incident.remote_handle is None
        assert not incident.is_open


class TestTransitions:
    """Idle/Open transition table."""

    def test_idle_without_breach_does_nothing(self, machine, client):
        assert machine.step(False) is IncidentAction.NONE
        assert machine.incident.state is IncidentState.IDLE
        assert client.calls == []

    def test_idle_with_breach_opens(self, machine, client):
        """Breach from Idle opens the incident and stores the handle."""
        assert machine.step(True) is IncidentAction.OPEN

        assert machine.incident.state is IncidentState.OPEN
        assert machine.incident.remote_handle == "cpu-1"
        assert client.calls == [("open", MetricKind.CPU)]

    def test_open_with_breach_does_not_reopen(self, machine, client):
        """A sustained breach never calls open twice."""
        machine.step(True)

        for _ in range(5):
            assert machine.step(True) is IncidentAction.NONE

        assert client.calls == [("open", MetricKind.CPU)]
        assert machine.incident.is_open

    def test_open_without_breach_closes(self, machine, client):
        """End of breach closes with the stored handle and clears it."""
        machine.step(True)

        assert machine.step(False) is IncidentAction.CLOSE

        assert client.calls[-1] == ("close", MetricKind.CPU, "cpu-1")
        assert machine.incident.state is IncidentState.IDLE
        assert machine.incident.remote_handle is None

    def test_new_episode_gets_new_handle(self, machine, client):
        machine.step(True)
        machine.step(False)
        machine.step(True)

        assert machine.incident.remote_handle == "cpu-2"
        assert [c[0] for c in client.calls] == ["open", "close", "open"]

    def test_open_and_close_alternate(self, machine, client):
        """Open and close calls always alternate over any breach sequence."""
        for breach in [True, True, False, False, True, False, True, True, True, False]:
            machine.step(breach)

        kinds = [c[0] for c in client.calls]
        assert kinds == ["open", "close", "open", "close", "open", "close"]


class TestFailures:
    """Failed remote calls leave state unchanged and are retried next tick."""

    def test_open_failure_stays_idle(self, machine, client):
        client.fail_open.add(MetricKind.CPU)

        with pytest.raises(RemoteError):
            machine.step(True)

        assert machine.incident.state is IncidentState.IDLE
        assert machine.incident.remote_handle is None

    def test_open_retried_on_next_breach(self, machine, client):
        client.fail_open.add(MetricKind.CPU)
        with pytest.raises(RemoteError):
            machine.step(True)

        client.fail_open.clear()
        assert machine.step(True) is IncidentAction.OPEN
        assert [c[0] for c in client.calls] == ["open", "open"]

    def test_close_failure_stays_open(self, machine, client):
        machine.step(True)
        client.fail_close.add(MetricKind.CPU)

        with pytest.raises(RemoteError):
            machine.step(False)

        assert machine.incident.state is IncidentState.OPEN
        assert machine.incident.remote_handle == "cpu-1"

    def test_close_retried_with_same_handle(self, machine, client):
        machine.step(True)
        client.fail_close.add(MetricKind.CPU)
        with pytest.raises(RemoteError):
            machine.step(False)

        client.fail_close.clear()
        assert machine.step(False) is IncidentAction.CLOSE
        assert client.calls[-2:] == [
            ("close", MetricKind.CPU, "cpu-1"),
            ("close", MetricKind.CPU, "cpu-1"),
        ]

    def test_breach_resuming_after_failed_close_keeps_incident(self, machine, client):
        """If the breach returns before close succeeds, the incident just stays open."""
        machine.step(True)
        client.fail_close.add(MetricKind.CPU)
        with pytest.raises(RemoteError):
            machine.step(False)

        assert machine.step(True) is IncidentAction.NONE
        assert [c[0] for c in client.calls] == ["open", "close"]


def test_adopt_marks_incident_open(machine, client):
    """Adopting a recovered handle makes the next non-breach close it."""
    machine.adopt(42)

    assert machine.incident.is_open
    assert machine.step(False) is IncidentAction.CLOSE
    assert client.calls == [("close", MetricKind.CPU, 42)]
