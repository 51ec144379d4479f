"""
Threshold Evaluator for Hostwatch Monitor

Classifies each metric of a tick as breaching or not. A value equal to its
threshold is not a breach.

Author: Hostwatch Team
SPDX-License-Identifier: BUSL-1.1
"""

from dataclasses import dataclass

from hostwatch.monitor.delta import NetworkDelta
from hostwatch.monitor.sampler import MetricSample

CPU_THRESHOLD_PERCENT = 80.0
MEMORY_THRESHOLD_PERCENT = 80.0
NETWORK_THRESHOLD_BYTES = 2 * 1024 * 1024  # per interval, either direction


@dataclass(frozen=True)
class Thresholds:
    """Fixed breach thresholds, one per metric kind."""

    cpu_percent: float = CPU_THRESHOLD_PERCENT
    memory_percent: float = MEMORY_THRESHOLD_PERCENT
    network_bytes: int = NETWORK_THRESHOLD_BYTES


DEFAULT_THRESHOLDS = Thresholds()


@dataclass(frozen=True)
class BreachFlags:
    """Per-metric breach classification for one tick."""

    cpu_breach: bool = False
    memory_breach: bool = False
    network_breach: bool = False


def evaluate(
    sample: MetricSample,
    delta: NetworkDelta,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> BreachFlags:
    """
    Compare a sample and its network delta against the thresholds.

    Args:
        sample: Current tick's sample
        delta: Network delta computed for the same tick
        thresholds: Thresholds to apply (defaults to 80% / 80% / 2 MiB)

    Returns:
        BreachFlags for CPU, memory and network
    """
    return BreachFlags(
        cpu_breach=sample.cpu_percent > thresholds.cpu_percent,
        memory_breach=sample.memory_percent > thresholds.memory_percent,
        network_breach=(
            delta.download_bytes > thresholds.network_bytes
            or delta.upload_bytes > thresholds.network_bytes
        ),
    )
