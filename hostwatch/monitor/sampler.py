"""
Counter Sampler for Hostwatch Monitor

Reads point-in-time CPU and memory utilization plus the cumulative byte
counters of a single network interface using psutil.

Important Notes:
    - CPU and memory readings are SYSTEM-WIDE percentages (0-100)
    - Network counters are cumulative since boot; deltas are computed by
      the DeltaEngine, never here
    - The network interface is selected once, when the sampler is created

Author: Hostwatch Team
SPDX-License-Identifier: BUSL-1.1
"""

import ipaddress
import logging
import socket
import time
from dataclasses import dataclass

import psutil

from hostwatch.errors import ConfigError, SampleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricSample:
    """A single immutable snapshot taken once per tick."""

    timestamp: float
    cpu_percent: float
    memory_percent: float
    rx_bytes_cumulative: int
    tx_bytes_cumulative: int


def _is_loopback(address: str) -> bool:
    try:
        return ipaddress.ip_address(address.split("%", 1)[0]).is_loopback
    except ValueError:
        return False


def select_network_interface(preferred: str | None = None) -> str:
    """
    Pick the interface whose counters will be sampled.

    Returns the first interface that is not loopback and has an IPv4 address
    assigned. Interfaces reported as down are skipped.

    Args:
        preferred: Interface name to use instead of auto-selection

    Raises:
        ConfigError: If no suitable interface exists (or ``preferred`` is unknown)
    """
    try:
        addrs = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except OSError as e:
        raise ConfigError(f"Cannot enumerate network interfaces: {e}") from e

    if preferred:
        if preferred not in addrs:
            raise ConfigError(f"Network interface '{preferred}' does not exist")
        logger.info(f"Using configured network interface: {preferred}")
        return preferred

    for name, entries in addrs.items():
        nic_stats = stats.get(name)
        if nic_stats is not None and not nic_stats.isup:
            continue
        for entry in entries:
            if entry.family == socket.AF_INET and entry.address and not _is_loopback(entry.address):
                logger.info(f"Using network interface: {name}")
                return name

    raise ConfigError("No active network interface found.")


class CounterSampler:
    """
    Reads the raw counters the agent evaluates each tick.

    Example:
        sampler = CounterSampler()
        sample = sampler.sample()
        print(f"CPU: {sample.cpu_percent}% on {sampler.interface}")
    """

    def __init__(self, interface: str | None = None):
        """
        Initialize the sampler and select its network interface.

        Args:
            interface: Optional interface name overriding auto-selection

        Raises:
            ConfigError: If no usable network interface exists
        """
        self.interface = select_network_interface(interface)
        self._cpu_initialized = False

    def _read_cpu(self) -> float:
        # First non-blocking call always returns 0.0; prime it once
        if not self._cpu_initialized:
            psutil.cpu_percent(interval=0.1)
            self._cpu_initialized = True
        return psutil.cpu_percent(interval=None) or 0.0

    def _read_network(self) -> tuple[int, int]:
        counters = psutil.net_io_counters(pernic=True)
        nic = counters.get(self.interface)
        if nic is None:
            raise SampleError(f"Network interface {self.interface} not found.")
        return int(nic.bytes_recv), int(nic.bytes_sent)

    def sample(self) -> MetricSample:
        """
        Take one sample.

        Raises:
            SampleError: If any required counter cannot be read
        """
        try:
            cpu_percent = self._read_cpu()
            memory_percent = psutil.virtual_memory().percent
            rx, tx = self._read_network()
        except SampleError:
            raise
        except (OSError, KeyError, psutil.Error) as e:
            raise SampleError(f"Failed to read system counters: {e}") from e

        return MetricSample(
            timestamp=time.time(),
            cpu_percent=max(0.0, min(100.0, float(cpu_percent))),
            memory_percent=max(0.0, min(100.0, float(memory_percent))),
            rx_bytes_cumulative=rx,
            tx_bytes_cumulative=tx,
        )
