"""Hostwatch Console - Themed console singleton."""

from typing import Optional

from rich.console import Console as RichConsole

from .theme import HOSTWATCH_THEME, SYMBOLS


class HostwatchConsole:
    """Themed console shared by the CLI and the live view."""

    _instance: Optional['HostwatchConsole'] = None

    def __new__(cls) -> 'HostwatchConsole':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._console = RichConsole(theme=HOSTWATCH_THEME)
        return cls._instance

    @property
    def rich(self) -> RichConsole:
        return self._console

    def print(self, *args, **kwargs) -> None:
        self._console.print(*args, **kwargs)

    def error(self, message: str) -> None:
        self._console.print(f"[error]{SYMBOLS['error']} {message}[/]")


console = HostwatchConsole()
