"""
Hostwatch UI Theme - Color constants and styling definitions.
"""

from rich.style import Style
from rich.theme import Theme

COLORS = {
    "success": "#22c55e",
    "error": "#ef4444",
    "warning": "#eab308",
    "secondary": "#6b7280",
    "brand": "#0ea5e9",
}

SYMBOLS = {
    "error": "✗",
    "warning": "⚠",
    "open": "▲",
    "idle": "○",
}

HOSTWATCH_THEME = Theme({
    "success": Style(color=COLORS["success"], bold=True),
    "error": Style(color=COLORS["error"], bold=True),
    "warning": Style(color=COLORS["warning"], bold=True),
    "secondary": Style(color=COLORS["secondary"], dim=True),
    "brand": Style(color=COLORS["brand"], bold=True),
})

# Bar colour per breach state
BAR_STYLES = {True: "error", False: "success"}
