"""
Shopbell CLI entry point.

Commands:
    shopbell watch          — Watch for deliveries at the counter
    shopbell volume [n]     — Show or set the alarm volume
    shopbell upcoming on    — Toggle soon-due delivery reminders
    shopbell printer-check  — Ping the local receipt printer bridge
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from shopbell.core.config import ShopbellConfig
from shopbell.core.errors import ConfigError

app = typer.Typer(
    name="shopbell",
    help="Shopbell — delivery order alerts for the shop counter.",
    add_completion=False,
)

console = Console()


def _load_config() -> ShopbellConfig:
    try:
        return ShopbellConfig.load()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def watch(
    server: str = typer.Option(None, "--server", "-s", help="Override server base URL"),
    no_printer: bool = typer.Option(False, "--no-printer", help="Don't print receipts"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No alarm bell"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
) -> None:
    """Watch for paid and soon-due deliveries."""
    overrides: dict = {}
    if server:
        overrides["server"] = {"base_url": server}
    if no_printer:
        overrides["printer"] = {"enabled": False}
    try:
        config = ShopbellConfig.load(overrides=overrides)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    asyncio.run(_run_watch(config, quiet, verbose))


async def _run_watch(config: ShopbellConfig, quiet: bool, verbose: bool) -> None:
    from shopbell.alerts.alarm import BellAlarm, SilentAlarm
    from shopbell.backend.http import HttpBackend
    from shopbell.backend.printer import PrinterBridge
    from shopbell.client import AlertClient
    from shopbell.middleware.logging import EventLogger, setup_logging
    from shopbell.notifications.channels.console import ConsoleChannel
    from shopbell.notifications.channels.file import FileChannel
    from shopbell.platforms.terminal import TerminalPlatform

    home = config.get_home()
    setup_logging(
        log_dir=home / "logs",
        console_level=logging.DEBUG if verbose else logging.WARNING,
    )
    logger = logging.getLogger("shopbell")
    logger.info("Starting watch session")

    printer = None
    if config.printer.enabled:
        printer = PrinterBridge(config.printer.url, timeout=config.printer.timeout)
    alarm = SilentAlarm() if quiet else BellAlarm(console, interval=config.alerts.bell_interval)

    client = AlertClient(
        config,
        backend=HttpBackend(config.server, config.feed),
        printer=printer,
        alarm=alarm,
    )
    client.bus.use(EventLogger(log_dir=home / "logs").middleware)
    client.notices.register(ConsoleChannel(console))
    client.notices.register(FileChannel(home / "notices.log"))

    platform = TerminalPlatform(client, console, history_path=home / "history")
    await client.start()
    try:
        await platform.run()
    finally:
        await client.stop()
    console.print("[dim]Goodbye![/dim]")


@app.command()
def volume(
    value: float = typer.Argument(None, help="New volume, 0 (mute) to 10"),
) -> None:
    """Show or set the alarm volume."""
    config = _load_config()

    async def _run() -> float:
        from shopbell.alerts.prefs import Preferences
        from shopbell.store.sqlite import SQLiteStorage

        storage = SQLiteStorage(config.store.db_path)
        try:
            prefs = Preferences(storage, config.alerts)
            if value is None:
                return await prefs.get_volume()
            return await prefs.set_volume(value)
        finally:
            await storage.close()

    current = asyncio.run(_run())
    if value is not None and current != value:
        console.print(f"[yellow]Volume clamped to {current:g}[/yellow]")
    console.print(f"Volume: {current:g}")


@app.command()
def upcoming(
    state: str = typer.Argument(None, help="'on' or 'off'"),
) -> None:
    """Show or toggle reminders for deliveries due within the hour."""
    config = _load_config()
    if state is not None and state.lower() not in ("on", "off"):
        console.print("[red]Expected 'on' or 'off'[/red]")
        raise typer.Exit(1)

    async def _run() -> bool:
        from shopbell.alerts.prefs import Preferences
        from shopbell.store.sqlite import SQLiteStorage

        storage = SQLiteStorage(config.store.db_path)
        try:
            prefs = Preferences(storage, config.alerts)
            if state is not None:
                await prefs.set_upcoming_enabled(state.lower() == "on")
            return await prefs.upcoming_enabled()
        finally:
            await storage.close()

    enabled = asyncio.run(_run())
    console.print(f"Upcoming reminders: {'[green]on[/green]' if enabled else '[dim]off[/dim]'}")


@app.command("printer-check")
def printer_check() -> None:
    """Check that the local printer bridge answers."""
    from shopbell.backend.printer import PrinterBridge

    config = _load_config()

    async def _run() -> bool:
        printer = PrinterBridge(config.printer.url, timeout=config.printer.timeout)
        try:
            return await printer.check_health()
        finally:
            await printer.close()

    if asyncio.run(_run()):
        console.print(f"[green]✓[/green] Printer bridge OK at {config.printer.url}")
    else:
        console.print(f"[red]✗[/red] Printer bridge not reachable at {config.printer.url}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show Shopbell version."""
    from shopbell import __version__
    console.print(f"Shopbell v{__version__}")


@app.command()
def logs(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show"),
    events: bool = typer.Option(False, "--events", "-e", help="Show events log instead"),
) -> None:
    """Show today's log."""
    from datetime import datetime

    log_dir = _load_config().get_home() / "logs"
    date_str = datetime.now().strftime("%Y%m%d")
    log_file = log_dir / (f"events_{date_str}.jsonl" if events else f"shopbell_{date_str}.log")

    if not log_file.exists():
        console.print(f"[dim]No log file for today: {log_file}[/dim]")
        raise typer.Exit(0)

    with open(log_file, "r", encoding="utf-8") as f:
        all_lines = f.readlines()
    for line in all_lines[-lines:]:
        console.print(line.rstrip(), markup=False)


@app.command()
def config() -> None:
    """Show the effective configuration."""
    cfg = _load_config()
    console.print(Panel("[bold]Shopbell Configuration[/bold]", border_style="cyan"))
    for path in (Path.home() / ".shopbell" / "config.toml", Path.cwd() / "shopbell.toml"):
        found = "[green]found[/green]" if path.exists() else "[dim]not found[/dim]"
        console.print(f"[bold]{path}[/bold] {found}")
    console.print_json(cfg.model_dump_json(exclude={"server": {"cookie"}}))


if __name__ == "__main__":
    app()
