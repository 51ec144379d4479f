"""
Tick Driver for Hostwatch Monitor

MonitorAgent performs one sample -> delta -> evaluate -> incident pass per
tick. TickScheduler invokes it on a background thread at a fixed rate.

Important Notes:
    - Ticks are serialized; two ticks never mutate the baseline or an
      Incident at the same time
    - A sampling failure skips evaluation for that tick and drops the delta
      baseline, so the next tick only re-establishes it
    - A failed incident transition affects only the metric it belongs to

Author: Hostwatch Team
SPDX-License-Identifier: BUSL-1.1
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from hostwatch.errors import RemoteError, SampleError
from hostwatch.monitor.delta import DeltaEngine, NetworkDelta
from hostwatch.monitor.incidents import (
    Incident,
    IncidentAction,
    IncidentStateMachine,
    MetricKind,
)
from hostwatch.monitor.remote import RemoteLogClient, handle_from_record, is_open_record
from hostwatch.monitor.sampler import CounterSampler, MetricSample
from hostwatch.monitor.thresholds import DEFAULT_THRESHOLDS, BreachFlags, Thresholds, evaluate

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0
MIN_INTERVAL = 0.5


@dataclass
class TickResult:
    """Outcome of a single tick."""

    sample: MetricSample | None = None
    delta: NetworkDelta | None = None
    breaches: BreachFlags | None = None
    actions: dict[MetricKind, IncidentAction] = field(default_factory=dict)
    errors: dict[MetricKind, Exception] = field(default_factory=dict)
    sample_error: SampleError | None = None

    @property
    def ok(self) -> bool:
        return self.sample_error is None and not self.errors


def breach_by_kind(flags: BreachFlags) -> dict[MetricKind, bool]:
    return {
        MetricKind.CPU: flags.cpu_breach,
        MetricKind.MEMORY: flags.memory_breach,
        MetricKind.NETWORK: flags.network_breach,
    }


class MonitorAgent:
    """
    Owns the cross-tick state: the delta baseline and one Incident per metric.

    Example:
        agent = MonitorAgent(CounterSampler(), RemoteLogClient(url, client_id))
        agent.rehydrate()
        result = agent.tick()
    """

    def __init__(
        self,
        sampler: CounterSampler,
        client: RemoteLogClient,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        delta_engine: DeltaEngine | None = None,
    ):
        self.sampler = sampler
        self.client = client
        self.thresholds = thresholds
        self.delta_engine = delta_engine or DeltaEngine()
        self.incidents: dict[MetricKind, Incident] = {kind: Incident(kind) for kind in MetricKind}
        self._machines = {
            kind: IncidentStateMachine(incident, client) for kind, incident in self.incidents.items()
        }
        self._lock = threading.Lock()
        self.last_result: TickResult | None = None

    def rehydrate(self) -> dict[MetricKind, bool]:
        """
        Recover incidents left open by a previous run of the agent.

        Queries the service for each metric's current record and marks the
        Incident Open when that record is still open. A failed query leaves
        the Incident Idle.

        Returns:
            Mapping of metric kind to whether an open incident was adopted
        """
        adopted = {}
        with self._lock:
            for kind, machine in self._machines.items():
                adopted[kind] = False
                try:
                    record = self.client.fetch(kind)
                except RemoteError as e:
                    logger.warning(f"Could not recover {kind.remote_name} incident state: {e}")
                    continue
                if is_open_record(record):
                    machine.adopt(handle_from_record(record))
                    adopted[kind] = True
                    logger.info(f"Recovered open {kind.remote_name} incident from monitor service")
        return adopted

    def tick(self) -> TickResult:
        """Run one sampling-and-alerting pass. Per-metric failures are recorded, not raised."""
        with self._lock:
            result = self._tick()
            self.last_result = result
            return result

    def _tick(self) -> TickResult:
        result = TickResult()

        try:
            sample = self.sampler.sample()
        except SampleError as e:
            logger.error(f"Sampling failed, skipping evaluation this tick: {e}")
            # Deltas are per interval; never span the gap left by this tick
            self.delta_engine.reset()
            result.sample_error = e
            return result

        delta = self.delta_engine.compute_delta(sample)
        breaches = evaluate(sample, delta, self.thresholds)
        result.sample, result.delta, result.breaches = sample, delta, breaches

        logger.debug(
            f"tick cpu={sample.cpu_percent:.1f}% mem={sample.memory_percent:.1f}% "
            f"down={delta.download_bytes}B up={delta.upload_bytes}B"
        )

        for kind, breach in breach_by_kind(breaches).items():
            try:
                result.actions[kind] = self._machines[kind].step(breach)
            except RemoteError as e:
                action = "open" if breach else "close"
                logger.error(f"Failed to {action} {kind.remote_name} incident: {e}")
                result.errors[kind] = e
                result.actions[kind] = IncidentAction.NONE
            except Exception as e:
                logger.error(f"Unexpected error evaluating {kind.remote_name} incident: {e}", exc_info=True)
                result.errors[kind] = e
                result.actions[kind] = IncidentAction.NONE

        return result


class TickScheduler:
    """
    Fixed-rate trigger for a tick function.

    Runs ``tick`` on one daemon thread every ``interval`` seconds. When a
    tick overruns its slot the missed slots are skipped, so ticks never
    overlap or pile up.

    Example:
        scheduler = TickScheduler(agent.tick, interval=5.0)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        tick: Callable[[], object],
        interval: float = DEFAULT_INTERVAL,
        on_tick: Callable[[object], None] | None = None,
    ):
        self.tick = tick
        self.interval = max(MIN_INTERVAL, interval)
        self.on_tick = on_tick
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the background tick thread."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(target=self._loop, name="hostwatch-tick", daemon=True)
        self._thread.start()
        logger.debug(f"Scheduler started with interval={self.interval}s")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the tick thread, waiting for an in-flight tick to finish."""
        if not self._running:
            return

        self._stop_event.set()
        self._running = False

        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

        self._thread = None
        logger.debug("Scheduler stopped")

    def run_forever(self) -> None:
        """Start (if needed) and block until ``stop`` is called."""
        self.start()
        while not self._stop_event.wait(timeout=0.5):
            pass

    def _run_tick(self) -> None:
        try:
            outcome = self.tick()
        except Exception as e:
            logger.error(f"Tick failed: {e}", exc_info=True)
            return
        finally:
            self.tick_count += 1

        if self.on_tick:
            try:
                self.on_tick(outcome)
            except Exception as e:
                logger.warning(f"on_tick callback error: {e}")

    def _loop(self) -> None:
        next_run = time.monotonic()
        while not self._stop_event.is_set():
            self._run_tick()

            next_run += self.interval
            now = time.monotonic()
            if now > next_run:
                skipped = int((now - next_run) // self.interval) + 1
                logger.warning(f"Tick overran its interval; skipping {skipped} slot(s)")
                next_run += skipped * self.interval

            self._stop_event.wait(timeout=max(0.0, next_run - time.monotonic()))
