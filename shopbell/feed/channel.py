"""
LiveFeedChannel — the long-lived server-push connection.

Owns exactly one reader task at a time. The reader opens the backend's
event stream, reports a successful open, turns "order paid" events into
PAID candidates and reports any transport failure. It never decides
what happens next: reconnect timing and poller fallback belong to the
ConnectionSupervisor, which binds itself via bind().
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable

from shopbell.alerts.decode import decode_alert, parse_event_data
from shopbell.core.errors import DecodeError, TransportError
from shopbell.core.types import AlertKind
from shopbell.feed.sse import ServerSentEvent

if TYPE_CHECKING:
    from shopbell.alerts.intake import AlertIntake
    from shopbell.backend.base import DeliveryBackend

logger = logging.getLogger(__name__)

OpenCallback = Callable[[], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


class LiveFeedChannel:
    """
    One logical SSE connection.

    Usage:
        channel = LiveFeedChannel(backend, intake, event_names=["order_paid"])
        channel.bind(on_open=supervisor.on_open, on_error=supervisor.on_error)
        channel.open()
        ...
        await channel.close()
    """

    def __init__(
        self,
        backend: "DeliveryBackend",
        intake: "AlertIntake",
        event_names: Iterable[str] = ("order_paid", "delivery_paid"),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._backend = backend
        self._intake = intake
        self._event_names = frozenset(event_names)
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._connected = False
        self._on_open: OpenCallback | None = None
        self._on_error: ErrorCallback | None = None
        self.last_activity: float = 0.0
        self.events_received = 0
        self.events_dropped = 0

    def bind(self, on_open: OpenCallback, on_error: ErrorCallback) -> None:
        self._on_open = on_open
        self._on_error = on_error

    # ━━━ Lifecycle ━━━

    def open(self) -> None:
        """Start the reader task. No-op while one is already running."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="live-feed")

    async def close(self) -> None:
        """Stop the reader task and drop the connection."""
        task, self._task = self._task, None
        self._connected = False
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # Called from a callback inside the reader; it exits on its own
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def is_alive(self) -> bool:
        """Whether the connection is open and the reader still running."""
        return self._connected and self._task is not None and not self._task.done()

    @property
    def is_open(self) -> bool:
        """Whether a reader task exists (connected or still connecting)."""
        return self._task is not None and not self._task.done()

    def idle_seconds(self) -> float:
        """Seconds since the last byte-level sign of life."""
        if not self.last_activity:
            return 0.0
        return self._clock() - self.last_activity

    # ━━━ Reader ━━━

    async def _run(self) -> None:
        try:
            async with self._backend.open_event_stream() as events:
                self._connected = True
                self.last_activity = self._clock()
                logger.info("Live feed connected")
                if self._on_open is not None:
                    await self._on_open()
                if self._released():
                    return
                async for event in events:
                    self.last_activity = self._clock()
                    await self._handle(event)
                    if self._released():
                        return
            raise TransportError("Live feed stream ended")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._connected = False
            logger.warning(f"Live feed error: {e}")
            if self._on_error is not None:
                await self._on_error(e)
        finally:
            if not self._released():
                self._connected = False

    def _released(self) -> bool:
        """True once close() was called from inside this reader task."""
        return self._task is not asyncio.current_task()

    async def _handle(self, event: ServerSentEvent) -> None:
        if event.is_comment or event.event not in self._event_names:
            return
        self.events_received += 1
        try:
            data = parse_event_data(event.data)
            alert = decode_alert(data, AlertKind.PAID)
        except DecodeError as e:
            # One bad event never tears down the connection
            self.events_dropped += 1
            logger.warning(f"Dropping malformed {event.event} event: {e}")
            return
        try:
            await self._intake.submit(alert, source="feed")
        except Exception as e:
            logger.error(f"Failed to admit paid alert for order {alert.order_id}: {e}", exc_info=True)
