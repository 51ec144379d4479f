"""Hostwatch UI - Terminal rendering components."""

from .console import console, HostwatchConsole
from .theme import COLORS, SYMBOLS, HOSTWATCH_THEME
from .status import LiveStatus, format_bytes, host_facts_table, incident_table, render_tick

__all__ = [
    "console", "HostwatchConsole", "COLORS", "SYMBOLS", "HOSTWATCH_THEME",
    "LiveStatus", "format_bytes", "host_facts_table", "incident_table", "render_tick",
]
