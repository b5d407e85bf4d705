"""
NoticeRouter — hands every notice to every active channel.

A failing channel never prevents the others from receiving the notice,
and route() never raises. With a bus attached, every notice is also
published as a "notice" event.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shopbell.core.events import Event, EventType
from shopbell.notifications.base import Notice, NoticeChannel

if TYPE_CHECKING:
    from shopbell.core.bus import EventBus

logger = logging.getLogger(__name__)


class NoticeRouter:
    """
    Usage:
        router = NoticeRouter()
        router.register(ConsoleChannel(console))
        router.register(FileChannel(path))

        await router.route(Notice(NoticeLevel.ERROR, "Accept failed", order_id=900))
    """

    def __init__(self, bus: "EventBus | None" = None) -> None:
        self._bus = bus
        self._channels: list[NoticeChannel] = []
        self.history: list[Notice] = []

    def register(self, channel: NoticeChannel) -> None:
        self._channels.append(channel)
        logger.debug(f"Notice channel registered: {channel.name}")

    def unregister(self, name: str) -> None:
        self._channels = [c for c in self._channels if c.name != name]

    @property
    def channel_names(self) -> list[str]:
        return [c.name for c in self._channels]

    async def route(self, notice: Notice) -> int:
        """Deliver to all active channels. Returns how many accepted it."""
        self.history.append(notice)
        if self._bus is not None:
            await self._bus.emit(Event(
                type=EventType.NOTICE,
                source="notices",
                data={
                    "level": notice.level.value,
                    "message": notice.message,
                    "order_id": notice.order_id,
                },
            ))
        delivered = 0
        for channel in self._channels:
            if not channel.is_active:
                continue
            try:
                if await channel.deliver(notice):
                    delivered += 1
            except Exception as e:
                logger.warning(f"Notice channel {channel.name} delivery failed: {e}")
        return delivered
