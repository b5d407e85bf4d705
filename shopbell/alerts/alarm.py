"""
Audible alarm. Rings while there is anything in the alert queue.

The queue decides when to start and stop; the alarm only knows how to
ring. Volume is re-applied on every start() because staff can change
it between alerts.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from rich.console import Console

logger = logging.getLogger(__name__)


class Alarm(ABC):
    """Looping alert sound."""

    @property
    @abstractmethod
    def is_sounding(self) -> bool:
        ...

    @property
    @abstractmethod
    def volume(self) -> float:
        ...

    @abstractmethod
    async def start(self, volume: float) -> None:
        """Apply volume and start looping (no restart if already sounding)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...


class SilentAlarm(Alarm):
    """
    Alarm that records calls instead of making noise.

    Used for headless runs and tests.
    """

    def __init__(self) -> None:
        self._sounding = False
        self._volume = 0.0
        self.start_count = 0
        self.stop_count = 0

    @property
    def is_sounding(self) -> bool:
        return self._sounding

    @property
    def volume(self) -> float:
        return self._volume

    async def start(self, volume: float) -> None:
        self._volume = volume
        if not self._sounding:
            self._sounding = True
            self.start_count += 1

    async def stop(self) -> None:
        if self._sounding:
            self._sounding = False
            self.stop_count += 1


class BellAlarm(Alarm):
    """
    Rings the terminal bell every `interval` seconds.

    A terminal bell has no volume control, so volume 0 mutes it and any
    other value rings.
    """

    def __init__(self, console: Console | None = None, interval: float = 2.0) -> None:
        self._console = console or Console()
        self._interval = interval
        self._volume = 1.0
        self._task: asyncio.Task | None = None

    @property
    def is_sounding(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def volume(self) -> float:
        return self._volume

    async def start(self, volume: float) -> None:
        self._volume = volume
        if self.is_sounding:
            return
        self._task = asyncio.create_task(self._loop(), name="alarm")
        logger.debug(f"Alarm started at volume {volume:g}")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Alarm stopped")

    async def _loop(self) -> None:
        while True:
            if self._volume > 0:
                self._console.bell()
            await asyncio.sleep(self._interval)
