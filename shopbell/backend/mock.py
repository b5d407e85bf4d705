"""
Mock backend and printer for tests.

Scripted server time, delivery lists, live stream and action results.
Tracks every call for test assertions.
"""

from __future__ import annotations

import asyncio
import json
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from shopbell.alerts.decode import decode_records
from shopbell.backend.base import DeliveryBackend
from shopbell.backend.printer import ReceiptPrinter
from shopbell.core.errors import TransportError
from shopbell.core.types import DeliveryRecord
from shopbell.feed.sse import COMMENT, ServerSentEvent

_END = object()


class MockBackend(DeliveryBackend):
    """
    In-memory shop server.

    Usage in tests:
        backend = MockBackend(server_time=1_700_000_000)
        backend.set_deliveries([{"id": 501, "status": "PAID"}])
        backend.stream_available = False        # every connect attempt fails

        backend.push_event("order_paid", {"order_id": 501})
        backend.drop_stream()                    # server closes the stream

        backend.accept_result = False            # next accepts are refused
        assert backend.accept_calls == [(900, 30)]
    """

    def __init__(self, server_time: float | None = None) -> None:
        self.server_time = server_time if server_time is not None else time.time()
        self.time_fails = False

        self._records: list[DeliveryRecord] = []
        self.list_gate: asyncio.Event | None = None
        self.list_error: Exception | None = None
        self.list_calls: list[str] = []

        self.stream_available = True
        self.connect_failures = 0
        self.stream_connects = 0
        self.connect_attempts = 0
        self._streams: list[asyncio.Queue] = []

        self.accept_result = True
        self.reject_result = True
        self.action_error: Exception | None = None
        self.accept_calls: list[tuple[int, int]] = []
        self.reject_calls: list[int] = []
        self.closed = False

    # ━━━ Scripting ━━━

    def set_deliveries(self, rows: list[dict[str, Any] | DeliveryRecord]) -> None:
        records: list[DeliveryRecord] = []
        for row in rows:
            if isinstance(row, DeliveryRecord):
                records.append(row)
            else:
                records.extend(decode_records([row]))
        self._records = records

    @property
    def active_streams(self) -> int:
        return len(self._streams)

    def push_event(self, event: str, data: dict[str, Any] | str) -> None:
        """Send one event to every open stream."""
        raw = data if isinstance(data, str) else json.dumps(data)
        self._broadcast(ServerSentEvent(event=event, data=raw))

    def heartbeat(self) -> None:
        self._broadcast(ServerSentEvent(event=COMMENT, data="ping"))

    def drop_stream(self, error: Exception | None = None) -> None:
        """End every open stream, cleanly or with an error."""
        self._broadcast(error if error is not None else _END)

    def _broadcast(self, item: Any) -> None:
        for queue in list(self._streams):
            queue.put_nowait(item)

    # ━━━ DeliveryBackend ━━━

    async def get_server_time(self) -> float:
        if self.time_fails:
            raise TransportError("server time unavailable")
        return self.server_time

    async def list_deliveries(self, day: str) -> list[DeliveryRecord]:
        self.list_calls.append(day)
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self._records)

    @asynccontextmanager
    async def open_event_stream(self) -> AsyncIterator[AsyncIterator[ServerSentEvent]]:
        self.connect_attempts += 1
        # Let the caller observe the attempt before it resolves
        await asyncio.sleep(0)
        if not self.stream_available:
            raise TransportError("stream unavailable")
        if self.connect_failures > 0:
            self.connect_failures -= 1
            raise TransportError("connect refused")

        queue: asyncio.Queue = asyncio.Queue()
        self._streams.append(queue)
        self.stream_connects += 1
        try:
            yield self._drain(queue)
        finally:
            self._streams.remove(queue)

    @staticmethod
    async def _drain(queue: asyncio.Queue) -> AsyncIterator[ServerSentEvent]:
        while True:
            item = await queue.get()
            if item is _END:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def accept_delivery(self, order_id: int, estimated_minutes: int) -> bool:
        self.accept_calls.append((order_id, estimated_minutes))
        if self.action_error is not None:
            raise self.action_error
        return self.accept_result

    async def reject_delivery(self, order_id: int) -> bool:
        self.reject_calls.append(order_id)
        if self.action_error is not None:
            raise self.action_error
        return self.reject_result

    async def close(self) -> None:
        self.closed = True


class MockPrinter(ReceiptPrinter):
    """Records receipts instead of printing them."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.healthy = True
        self.error: Exception | None = None
        self.receipts: list[dict[str, Any]] = []

    async def print_receipt(self, receipt: dict[str, Any]) -> bool:
        self.receipts.append(receipt)
        if self.error is not None:
            raise self.error
        return self.ok

    async def check_health(self) -> bool:
        return self.healthy
