"""
Event bus for the alert client.

Hosts (terminal, web shell, tests) publish host:* signals here and the
connection supervisor reacts to them. Everything the client does on its
own (channel state, alerts entering and leaving the queue, the alarm,
poll passes, notices) comes back out as events for displays and the
event log.

Every event passes through the middleware pipeline first, then reaches
every subscriber whose pattern matches its type. Patterns are
fnmatch-style: "alert:*" or "*".
"""

from __future__ import annotations

import asyncio
import fnmatch
import functools
import logging
from typing import Awaitable, Callable, Mapping

from shopbell.core.events import Event

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], Awaitable[None]]
MiddlewareNext = Callable[[Event], Awaitable[Event]]
MiddlewareFunc = Callable[[Event, MiddlewareNext], Awaitable[Event]]


class EventBus:
    """
    Usage:
        bus = EventBus()
        bus.use(EventLogger(log_dir).middleware)

        bus.subscribe({
            "host:visible": supervisor_on_visible,
            "alert:*": redraw_queue,
        })
        await bus.emit(Event(type="host:visible", source="terminal"))

        bus.emit_nowait(Event(type="channel:state", data={...}))
        await bus.drain()
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = {}
        self._middleware: list[MiddlewareFunc] = []
        self._in_flight: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return sum(len(handlers) for handlers in self._subscribers.values())

    @property
    def in_flight(self) -> int:
        """Events handed to emit_nowait that have not finished dispatching."""
        return len(self._in_flight)

    # ━━━ Subscription ━━━

    def on(self, pattern: str, handler: EventHandler) -> None:
        self._subscribers.setdefault(pattern, []).append(handler)

    def off(self, pattern: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(pattern)
        if not handlers:
            return
        remaining = [h for h in handlers if h is not handler]
        if remaining:
            self._subscribers[pattern] = remaining
        else:
            del self._subscribers[pattern]

    def subscribe(self, listeners: Mapping[str, EventHandler]) -> None:
        """Attach a component's whole pattern -> handler table."""
        for pattern, handler in listeners.items():
            self.on(pattern, handler)

    def unsubscribe(self, listeners: Mapping[str, EventHandler]) -> None:
        for pattern, handler in listeners.items():
            self.off(pattern, handler)

    # ━━━ Middleware ━━━

    def use(self, middleware: MiddlewareFunc) -> None:
        """
        Append a middleware. The first one registered sees events first.

            async def middleware(event: Event, next_handler: MiddlewareNext) -> Event:
                return await next_handler(event)
        """
        self._middleware.append(middleware)

    # ━━━ Emission ━━━

    async def emit(self, event: Event) -> Event:
        """
        Run the event through middleware, then deliver it.

        Matching subscribers run concurrently and emit returns once all
        of them have finished. A failing subscriber is logged and does
        not affect the others or the caller.
        """
        handler: MiddlewareNext = self._deliver
        for middleware in reversed(self._middleware):
            handler = functools.partial(self._step, middleware, handler)
        return await handler(event)

    def emit_nowait(self, event: Event) -> None:
        """
        Schedule an emit on the running loop and return immediately.

        Used by code that must not wait on subscribers, such as the
        supervisor while it holds its state lock.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, dropped {event.type}")
            return
        task = loop.create_task(self._emit_logged(event))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def drain(self) -> None:
        """Wait until every emit_nowait event has been delivered."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    # ━━━ Internals ━━━

    @staticmethod
    async def _step(
        middleware: MiddlewareFunc, next_handler: MiddlewareNext, event: Event
    ) -> Event:
        return await middleware(event, next_handler)

    def _matching(self, event_type: str) -> list[EventHandler]:
        matched: list[EventHandler] = []
        for pattern, handlers in self._subscribers.items():
            if fnmatch.fnmatchcase(event_type, pattern):
                matched.extend(handlers)
        return matched

    async def _deliver(self, event: Event) -> Event:
        handlers = self._matching(event.type)
        if not handlers:
            return event
        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Subscriber failed on {event.type}: {result}", exc_info=result)
        return event

    async def _emit_logged(self, event: Event) -> None:
        try:
            await self.emit(event)
        except Exception as e:
            logger.error(f"Background emit of {event.type} failed: {e}")
