"""
Status rendering for Hostwatch

Renders tick results, incident states and host facts with rich. LiveStatus
keeps a rich.Live panel updated while the scheduler runs.
"""

import logging
import sys
import time
from datetime import datetime

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hostwatch.host_facts import HostFacts
from hostwatch.monitor.agent import MonitorAgent, TickResult, TickScheduler
from hostwatch.monitor.incidents import Incident, MetricKind
from hostwatch.monitor.thresholds import Thresholds

from .theme import BAR_STYLES, HOSTWATCH_THEME, SYMBOLS

logger = logging.getLogger(__name__)

BAR_WIDTH = 30


def format_bytes(num_bytes: float) -> str:
    """Format a byte count as a human-readable string."""
    if num_bytes >= 1024**3:
        return f"{num_bytes / 1024**3:.1f} GiB"
    elif num_bytes >= 1024**2:
        return f"{num_bytes / 1024**2:.1f} MiB"
    elif num_bytes >= 1024:
        return f"{num_bytes / 1024:.1f} KiB"
    else:
        return f"{num_bytes:.0f} B"


def _bar(label: str, percent: float, breach: bool) -> Text:
    percent = max(0.0, min(100.0, percent))
    filled = min(int((percent / 100) * BAR_WIDTH), BAR_WIDTH)
    style = BAR_STYLES[breach]

    text = Text()
    text.append(f"{label:>8}: ", style="bold")
    text.append("█" * filled + "░" * (BAR_WIDTH - filled), style=style)
    text.append(f" {percent:5.1f}%", style=style)
    return text


def incident_table(incidents: dict[MetricKind, Incident]) -> Table:
    table = Table(title="Incidents", title_justify="left", box=None, padding=(0, 2))
    table.add_column("Metric", style="bold")
    table.add_column("State")
    table.add_column("Handle", style="secondary")
    for kind, incident in incidents.items():
        if incident.is_open:
            state = Text(f"{SYMBOLS['open']} open", style="error")
        else:
            state = Text(f"{SYMBOLS['idle']} idle", style="success")
        handle = "" if incident.remote_handle is None else str(incident.remote_handle)
        table.add_row(kind.remote_name, state, handle)
    return table


def render_tick(
    result: TickResult | None,
    incidents: dict[MetricKind, Incident],
    thresholds: Thresholds,
    title: str = "Hostwatch",
) -> Panel:
    """Render one tick's sample, delta and incident states as a panel."""
    parts = []

    header = Text()
    header.append(f"{title}", style="brand")
    header.append(f"  •  {datetime.now().strftime('%H:%M:%S')}", style="secondary")
    parts.append(header)
    parts.append(Text())

    if result is None:
        parts.append(Text("Waiting for first tick...", style="secondary"))
    elif result.sample_error is not None:
        parts.append(Text(f"{SYMBOLS['error']} Sampling failed: {result.sample_error}", style="error"))
    else:
        sample, delta, breaches = result.sample, result.delta, result.breaches
        parts.append(_bar("CPU", sample.cpu_percent, breaches.cpu_breach))
        parts.append(_bar("Memory", sample.memory_percent, breaches.memory_breach))

        net = Text()
        net_style = BAR_STYLES[breaches.network_breach]
        net.append(f"{'Network':>8}: ", style="bold")
        net.append(f"↓ {format_bytes(delta.download_bytes)}  ↑ {format_bytes(delta.upload_bytes)}", style=net_style)
        net.append(f"  (limit {format_bytes(thresholds.network_bytes)}/tick)", style="secondary")
        parts.append(net)

        for kind, error in result.errors.items():
            parts.append(Text(f"{SYMBOLS['warning']} {kind.remote_name}: {error}", style="warning"))

    parts.append(Text())
    parts.append(incident_table(incidents))

    return Panel(
        Group(*parts),
        title="[bold]Hostwatch Agent[/bold]",
        subtitle="[secondary]Press Ctrl+C to stop[/secondary]",
        border_style="blue",
    )


def host_facts_table(facts: HostFacts) -> Group:
    """Render host facts as a summary table plus a partition table."""
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("Key", style="bold")
    summary.add_column("Value")
    summary.add_row("Distro", facts.distro)
    summary.add_row("OS", f"{facts.os_type} ({facts.platform})")
    models = sorted(set(facts.cpu_models))
    summary.add_row("CPU", f"{', '.join(models)} x{len(facts.cpu_models)}")
    summary.add_row("RAM", f"{facts.total_ram_gb:.2f} GB")
    summary.add_row("Internal IPs", ", ".join(facts.internal_ips) or "-")
    summary.add_row("Public IP", facts.public_ip or "unavailable")
    summary.add_row(
        "Storage", ", ".join(f"{d.device} ({d.type})" for d in facts.storage_devices) or "-"
    )

    disks = Table(title="Partitions", title_justify="left")
    disks.add_column("Filesystem")
    disks.add_column("Mount")
    disks.add_column("Size", justify="right")
    disks.add_column("Used", justify="right")
    disks.add_column("Free", justify="right")
    disks.add_column("Use%", justify="right")
    for p in facts.disk_partitions:
        disks.add_row(
            p.device,
            p.mountpoint,
            f"{p.size_gb:.2f}G",
            f"{p.used_gb:.2f}G",
            f"{p.free_gb:.2f}G",
            f"{p.use_percent:.0f}%",
        )

    return Group(summary, Text(), disks)


class LiveStatus:
    """
    Live terminal view of a running agent.

    Example:
        scheduler = TickScheduler(agent.tick, interval=5.0)
        LiveStatus(agent, scheduler).run()
    """

    def __init__(self, agent: MonitorAgent, scheduler: TickScheduler, console: Console | None = None):
        self.agent = agent
        self.scheduler = scheduler
        self.console = console or Console(theme=HOSTWATCH_THEME)

    def _render(self) -> Panel:
        return render_tick(self.agent.last_result, self.agent.incidents, self.agent.thresholds)

    @staticmethod
    def _expired(start: float, duration: float | None) -> bool:
        return duration is not None and time.time() - start >= duration

    def run(self, duration: float | None = None) -> None:
        """Run until Ctrl+C (or ``duration`` seconds), then stop the scheduler."""
        if not sys.stdout.isatty():
            return self._run_fallback(duration)

        start = time.time()
        self.scheduler.start()
        try:
            with Live(self._render(), console=self.console, refresh_per_second=2) as live:
                while not self._expired(start, duration):
                    live.update(self._render())
                    time.sleep(0.2)
        except KeyboardInterrupt:
            self.console.print("\n[secondary]Monitoring stopped by user[/secondary]")
        finally:
            self.scheduler.stop()

    def _run_fallback(self, duration: float | None = None) -> None:
        """Plain line-per-tick output for non-TTY streams."""
        start = time.time()
        last_seen = None
        self.scheduler.start()
        try:
            while not self._expired(start, duration):
                result = self.agent.last_result
                if result is not None and result is not last_seen and result.sample is not None:
                    last_seen = result
                    open_kinds = [k.remote_name for k, i in self.agent.incidents.items() if i.is_open]
                    print(
                        f"CPU: {result.sample.cpu_percent:.0f}% | "
                        f"MEM: {result.sample.memory_percent:.0f}% | "
                        f"NET: ↓{format_bytes(result.delta.download_bytes)} "
                        f"↑{format_bytes(result.delta.upload_bytes)} | "
                        f"open: {', '.join(open_kinds) or '-'}",
                        flush=True,
                    )
                time.sleep(0.5)
        except KeyboardInterrupt:
            print("\nMonitoring stopped by user")
        finally:
            self.scheduler.stop()
