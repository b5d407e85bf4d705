"""
Terminal platform — the shop-counter console.

Renders alerts as rich panels as they arrive and reads staff commands
from a prompt_toolkit prompt:

    a <id> [min]   accept (default ETA 30 minutes)
    r <id>         reject
    c <id>         close without telling the server
    d              dismiss everything
    l              list queued alerts
    v [0-10]       show or set alarm volume
    sync           reconnect now / refresh
    online         network is back (host:online)
    offline        network went away (host:offline)
    q              quit

Embedding hosts that can observe visibility or connectivity themselves
publish the host:* events on the client bus directly; the online and
offline commands let staff do it by hand.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shopbell.core.events import Event, EventType
from shopbell.core.types import AlertKind, DeliveryAlert

if TYPE_CHECKING:
    from shopbell.client import AlertClient

DEFAULT_ETA_MINUTES = 30

HELP_TEXT = (
    "  [cyan]a <id> \\[min][/cyan]  accept (ETA defaults to 30 minutes)\n"
    "  [cyan]r <id>[/cyan]        reject\n"
    "  [cyan]c <id>[/cyan]        close without telling the server\n"
    "  [cyan]d[/cyan]             dismiss everything\n"
    "  [cyan]l[/cyan]             list queued alerts\n"
    "  [cyan]v [0-10][/cyan]      show or set alarm volume\n"
    "  [cyan]sync[/cyan]          reconnect now and refresh\n"
    "  [cyan]online[/cyan]        network is back, reconnect\n"
    "  [cyan]offline[/cyan]       network went away, fall back to polling\n"
    "  [cyan]q[/cyan]             quit"
)

_STATUS_STYLES = {
    "connected": "green",
    "connecting": "cyan",
    "reconnecting": "yellow",
    "degraded": "red",
    "disconnected": "dim",
}


@dataclass(frozen=True)
class Command:
    """One parsed line of staff input."""

    name: str
    order_id: int | None = None
    value: float | None = None


_ALIASES = {
    "a": "accept", "accept": "accept",
    "r": "reject", "reject": "reject",
    "c": "close", "close": "close",
    "d": "dismiss", "dismiss": "dismiss",
    "l": "list", "ls": "list", "list": "list",
    "v": "volume", "volume": "volume",
    "sync": "sync", "s": "sync",
    "online": "online",
    "offline": "offline",
    "h": "help", "help": "help", "?": "help",
    "q": "quit", "quit": "quit", "exit": "quit",
}

_NEEDS_ID = {"accept", "reject", "close"}


def parse_command(line: str) -> Command | None:
    """
    Parse a command line. Returns None for blank or unusable input.

    >>> parse_command("a 501 20")
    Command(name='accept', order_id=501, value=20.0)
    """
    parts = line.strip().split()
    if not parts:
        return None
    name = _ALIASES.get(parts[0].lower())
    if name is None:
        return None

    order_id: int | None = None
    value: float | None = None
    args = parts[1:]
    try:
        if name in _NEEDS_ID:
            if not args:
                return None
            order_id = int(args[0])
            if name == "accept" and len(args) > 1:
                value = float(args[1])
        elif name == "volume" and args:
            value = float(args[0])
    except ValueError:
        return None
    if value is not None and not math.isfinite(value):
        return None
    return Command(name=name, order_id=order_id, value=value)


class TerminalPlatform:
    """
    Interactive terminal for a running AlertClient.

    Usage:
        platform = TerminalPlatform(client, console)
        await platform.run()
    """

    def __init__(
        self,
        client: "AlertClient",
        console: Console | None = None,
        history_path: Path | None = None,
    ) -> None:
        self._client = client
        self._console = console or Console()
        self._running = False
        self._history_path = history_path or (Path.home() / ".shopbell" / "history")
        self._session: PromptSession | None = None
        self._listeners = {
            EventType.ALERT_ENQUEUED: self._on_enqueued,
            EventType.CHANNEL_STATE: self._on_channel_state,
            EventType.ALERT_CLEARED: self._on_cleared,
        }

    @property
    def name(self) -> str:
        return "terminal"

    # ━━━ Bus listeners ━━━

    def attach(self) -> None:
        self._client.bus.subscribe(self._listeners)

    def detach(self) -> None:
        self._client.bus.unsubscribe(self._listeners)

    async def _on_enqueued(self, event: Event) -> None:
        order_id = event.data.get("order_id")
        kind = event.data.get("kind")
        for alert in self._client.queue.get(order_id):
            if alert.kind.value == kind:
                self._console.print(self.render_alert(alert))

    async def _on_channel_state(self, event: Event) -> None:
        status = event.data.get("status", "")
        style = _STATUS_STYLES.get(status, "white")
        attempt = event.data.get("attempt", 0)
        suffix = f" (attempt {attempt})" if status == "reconnecting" else ""
        self._console.print(f"[{style}]● live feed {status}{suffix}[/{style}]")

    async def _on_cleared(self, event: Event) -> None:
        self._console.print(f"[dim]Cleared {event.data.get('count', 0)} alert(s)[/dim]")

    # ━━━ Rendering ━━━

    @staticmethod
    def render_alert(alert: DeliveryAlert) -> Panel:
        p = alert.payload
        if alert.kind == AlertKind.PAID:
            title = f"[bold red]🔔 New paid delivery #{alert.order_id}[/bold red]"
            border = "red"
        else:
            title = f"[bold yellow]⏰ Delivery #{alert.order_id} due at {p.time_label}[/bold yellow]"
            border = "yellow"

        lines = [
            f"[bold]{p.buyer_name or '-'}[/bold]  {p.phone}",
            p.product_summary or ", ".join(f"{i.product_name} x{i.quantity}" for i in p.items) or "-",
        ]
        if p.delivery_date:
            lines.append(f"Deliver {p.delivery_date} {p.time_label}")
        address = " ".join(part for part in (p.address1, p.address2) if part)
        if address:
            lines.append(address)
        if p.total_amount:
            lines.append(f"Total {p.total_amount:,}")
        lines.append(
            f"[dim]a {alert.order_id} \\[min] accept · r {alert.order_id} reject · "
            f"c {alert.order_id} close[/dim]"
        )
        return Panel("\n".join(lines), title=title, border_style=border)

    def render_queue(self) -> Table:
        table = Table(title=f"Queued alerts ({len(self._client.queue)})")
        table.add_column("Order", justify="right")
        table.add_column("Kind")
        table.add_column("Buyer")
        table.add_column("Time")
        for alert in self._client.queue.alerts:
            table.add_row(
                str(alert.order_id),
                alert.kind.value,
                alert.payload.buyer_name,
                alert.payload.time_label if alert.payload.delivery_hour else "",
            )
        return table

    # ━━━ Main loop ━━━

    async def run(self) -> None:
        self._running = True
        self.attach()
        self._console.print(
            Panel(
                "[bold]Shopbell[/bold] is watching for deliveries.\n"
                "[dim]Type [bold]h[/bold] for commands, [bold]q[/bold] to quit.[/dim]",
                border_style="cyan",
            )
        )
        try:
            while self._running:
                line = await self._get_input()
                if line is None:
                    continue
                command = parse_command(line)
                if command is None:
                    self._console.print("[dim]Unknown command. Type h for help.[/dim]")
                    continue
                if not await self.execute(command):
                    break
        finally:
            self.detach()
            self._running = False

    async def stop(self) -> None:
        self._running = False

    async def _get_input(self) -> str | None:
        if self._session is None:
            self._history_path.parent.mkdir(parents=True, exist_ok=True)
            self._session = PromptSession(history=FileHistory(str(self._history_path)))
        session = self._session
        try:
            loop = asyncio.get_running_loop()
            line = await loop.run_in_executor(None, lambda: session.prompt("shopbell > "))
            return line.strip() if line else None
        except KeyboardInterrupt:
            self._console.print("[dim]Use q to quit[/dim]")
            return None
        except EOFError:
            self._running = False
            return None

    async def execute(self, command: Command) -> bool:
        """Run one command. Returns False when the loop should end."""
        queue = self._client.queue
        name = command.name

        if name == "quit":
            return False
        if name == "accept":
            minutes = int(command.value) if command.value else DEFAULT_ETA_MINUTES
            await queue.accept(command.order_id, estimated_minutes=minutes)
        elif name == "reject":
            await queue.reject(command.order_id)
        elif name == "close":
            if not await queue.close(command.order_id):
                self._console.print(f"[dim]Order {command.order_id} is not queued[/dim]")
        elif name == "dismiss":
            await queue.dismiss_all()
        elif name == "list":
            self._console.print(self.render_queue())
        elif name == "volume":
            prefs = self._client.prefs
            if command.value is not None:
                stored = await prefs.set_volume(command.value)
                self._console.print(f"Volume set to {stored:g}")
            else:
                self._console.print(f"Volume {await prefs.get_volume():g}")
        elif name == "sync":
            await self._client.bus.emit(Event(type=EventType.HOST_VISIBLE, source="terminal"))
            await self._client.poller.poll_once()
        elif name in ("online", "offline"):
            event_type = EventType.HOST_ONLINE if name == "online" else EventType.HOST_OFFLINE
            await self._client.bus.emit(Event(type=event_type, source="terminal"))
        elif name == "help":
            self._console.print(Panel(HELP_TEXT, title="Commands", border_style="blue"))
        return True
