"""
Delta Engine for Hostwatch Monitor

Turns cumulative network byte counters into per-interval deltas.

Author: Hostwatch Team
SPDX-License-Identifier: BUSL-1.1
"""

import logging
from dataclasses import dataclass

from hostwatch.monitor.sampler import MetricSample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviousSample:
    """Baseline counters carried from one tick to the next."""

    rx_bytes_cumulative: int
    tx_bytes_cumulative: int


@dataclass(frozen=True)
class NetworkDelta:
    """Bytes transferred since the previous tick. Never negative."""

    download_bytes: int = 0
    upload_bytes: int = 0


ZERO_DELTA = NetworkDelta()


class DeltaEngine:
    """
    Holds the previous counter baseline and computes deltas against it.

    The baseline is replaced on every call, so each delta covers exactly one
    interval. A counter that goes backwards (interface reset, wraparound,
    re-enumeration) yields zero for that direction.
    """

    def __init__(self, previous: PreviousSample | None = None):
        self.previous = previous

    def reset(self) -> None:
        """Forget the baseline; the next call returns a zero delta."""
        self.previous = None

    def compute_delta(self, sample: MetricSample) -> NetworkDelta:
        previous = self.previous
        self.previous = PreviousSample(
            rx_bytes_cumulative=sample.rx_bytes_cumulative,
            tx_bytes_cumulative=sample.tx_bytes_cumulative,
        )

        if previous is None:
            return ZERO_DELTA

        download = sample.rx_bytes_cumulative - previous.rx_bytes_cumulative
        upload = sample.tx_bytes_cumulative - previous.tx_bytes_cumulative
        if download < 0 or upload < 0:
            logger.info(
                "Network counter went backwards "
                f"(rx {previous.rx_bytes_cumulative} -> {sample.rx_bytes_cumulative}, "
                f"tx {previous.tx_bytes_cumulative} -> {sample.tx_bytes_cumulative}); "
                "treating as counter reset"
            )

        return NetworkDelta(download_bytes=max(0, download), upload_bytes=max(0, upload))
