"""
Incident State Machine for Hostwatch Monitor

Each metric kind owns one Incident record for the lifetime of the agent.
An incident is opened once when a breach begins and closed once when it
ends, however many ticks the breach lasts.

    Idle + no breach -> nothing         Idle + breach    -> open(), Open
    Open + breach    -> nothing         Open + no breach -> close(), Idle

If the remote call fails the state is left unchanged and the RemoteError
propagates; the next tick with the same breach flag retries the call.

Author: Hostwatch Team
SPDX-License-Identifier: BUSL-1.1
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class MetricKind(Enum):
    """Metrics tracked by the agent."""

    CPU = "cpu"
    MEMORY = "memory"
    NETWORK = "network"

    @property
    def remote_name(self) -> str:
        """Name used in the monitor service's endpoint paths."""
        return _REMOTE_NAMES[self]


_REMOTE_NAMES = {
    MetricKind.CPU: "CPU",
    MetricKind.MEMORY: "RAM",
    MetricKind.NETWORK: "Network",
}


class IncidentState(Enum):
    IDLE = "idle"
    OPEN = "open"


class IncidentAction(Enum):
    """Remote action taken by a transition."""

    NONE = "none"
    OPEN = "open"
    CLOSE = "close"


@dataclass
class Incident:
    """Open/closed record for one metric kind. Reused across incidents."""

    metric_kind: MetricKind
    state: IncidentState = IncidentState.IDLE
    remote_handle: Any = None

    @property
    def is_open(self) -> bool:
        return self.state is IncidentState.OPEN


class IncidentClient(Protocol):
    def open(self, metric_kind: MetricKind) -> Any: ...

    def close(self, metric_kind: MetricKind, handle: Any) -> Any: ...


class IncidentStateMachine:
    """Drives a single Incident from that metric's breach flag."""

    def __init__(self, incident: Incident, client: IncidentClient):
        self.incident = incident
        self.client = client

    @property
    def metric_kind(self) -> MetricKind:
        return self.incident.metric_kind

    def step(self, breach: bool) -> IncidentAction:
        """
        Apply one tick's breach flag.

        Returns:
            The remote action that was performed

        Raises:
            RemoteError: If the open/close call failed; state is unchanged
        """
        incident = self.incident

        if breach and not incident.is_open:
            handle = self.client.open(incident.metric_kind)
            incident.remote_handle = handle
            incident.state = IncidentState.OPEN
            logger.info(f"{incident.metric_kind.remote_name} incident opened (handle={handle!r})")
            return IncidentAction.OPEN

        if not breach and incident.is_open:
            self.client.close(incident.metric_kind, incident.remote_handle)
            logger.info(
                f"{incident.metric_kind.remote_name} incident closed "
                f"(handle={incident.remote_handle!r})"
            )
            incident.remote_handle = None
            incident.state = IncidentState.IDLE
            return IncidentAction.CLOSE

        return IncidentAction.NONE

    def adopt(self, handle: Any) -> None:
        """Mark the incident Open with a handle recovered from the service."""
        self.incident.remote_handle = handle
        self.incident.state = IncidentState.OPEN
