"""
Backend interface: the contract for the shop server.

The alerting core only ever talks to the server through this ABC, so a
test double (MockBackend) or another transport can be swapped in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import AsyncIterator

from shopbell.core.types import DeliveryRecord
from shopbell.feed.sse import ServerSentEvent

EventStream = AbstractAsyncContextManager[AsyncIterator[ServerSentEvent]]


class DeliveryBackend(ABC):
    """
    Abstract base class for shop server access.

    Implementations:
        HttpBackend — httpx against the real server
        MockBackend — scripted responses for testing
    """

    @abstractmethod
    async def get_server_time(self) -> float:
        """Server's current time as a unix timestamp (seconds)."""
        ...

    @abstractmethod
    async def list_deliveries(self, day: str) -> list[DeliveryRecord]:
        """All in-flight deliveries for a YYYY-MM-DD day."""
        ...

    @abstractmethod
    def open_event_stream(self) -> EventStream:
        """
        Open the live delivery event stream.

        Usage:
            async with backend.open_event_stream() as events:
                async for event in events:
                    ...

        Entering the context raises TransportError if the connection
        cannot be established. Must support being opened repeatedly.
        """
        ...

    @abstractmethod
    async def accept_delivery(self, order_id: int, estimated_minutes: int) -> bool:
        """Accept an order with an ETA. Returns False if the server refused."""
        ...

    @abstractmethod
    async def reject_delivery(self, order_id: int) -> bool:
        """Reject an order. Returns False if the server refused."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None
