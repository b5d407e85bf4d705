"""
ConsoleChannel — prints notices to the terminal with rich.
"""

from __future__ import annotations

from rich.console import Console

from shopbell.notifications.base import Notice, NoticeChannel, NoticeLevel

_STYLES = {
    NoticeLevel.INFO: "green",
    NoticeLevel.WARNING: "yellow",
    NoticeLevel.ERROR: "bold red",
}


class ConsoleChannel(NoticeChannel):
    """
    Usage:
        channel = ConsoleChannel(console)
        channel.set_active(False)   # e.g. while a prompt is being redrawn
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()
        self._active = True

    @property
    def name(self) -> str:
        return "console"

    @property
    def is_active(self) -> bool:
        return self._active

    def set_active(self, active: bool) -> None:
        self._active = active

    async def deliver(self, notice: Notice) -> bool:
        style = _STYLES.get(notice.level, "white")
        self._console.print(f"[{style}]● {notice.message}[/{style}]")
        return True
