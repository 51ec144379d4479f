"""
Hostwatch Monitor Module

Sampling, threshold evaluation and incident reporting for a single host.
"""

from hostwatch.monitor.agent import MonitorAgent, TickResult, TickScheduler
from hostwatch.monitor.delta import DeltaEngine, NetworkDelta, PreviousSample
from hostwatch.monitor.incidents import (
    Incident,
    IncidentAction,
    IncidentState,
    IncidentStateMachine,
    MetricKind,
)
from hostwatch.monitor.remote import RemoteLogClient
from hostwatch.monitor.sampler import CounterSampler, MetricSample, select_network_interface
from hostwatch.monitor.thresholds import BreachFlags, Thresholds, evaluate

__all__ = [
    "BreachFlags",
    "CounterSampler",
    "DeltaEngine",
    "Incident",
    "IncidentAction",
    "IncidentState",
    "IncidentStateMachine",
    "MetricKind",
    "MetricSample",
    "MonitorAgent",
    "NetworkDelta",
    "PreviousSample",
    "RemoteLogClient",
    "Thresholds",
    "TickResult",
    "TickScheduler",
    "evaluate",
    "select_network_interface",
]
