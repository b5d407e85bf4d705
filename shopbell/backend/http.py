"""
HttpBackend — the real shop server over httpx.

Endpoints (all JSON wrapped as {"response": ...}):
    GET  /api/server-time
    GET  /api/admin/deliveries?date=YYYY-MM-DD
    GET  /api/admin/deliveries/stream            (text/event-stream)
    POST /api/admin/deliveries/{id}/accept       {"estimatedMinutes": n}
    POST /api/admin/deliveries/{id}/reject

The admin session is a cookie; it is sent on every request, including
the stream.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from shopbell.alerts.decode import decode_records
from shopbell.backend.base import DeliveryBackend
from shopbell.core.config import FeedConfig, ServerConfig
from shopbell.core.errors import TransportError
from shopbell.core.types import DeliveryRecord
from shopbell.feed.sse import ServerSentEvent, iter_sse

logger = logging.getLogger(__name__)

# Anything above this is a millisecond timestamp
_MS_THRESHOLD = 1e11


class HttpBackend(DeliveryBackend):
    """
    Usage:
        backend = HttpBackend(config.server, config.feed)
        records = await backend.list_deliveries("2025-03-14")

        async with backend.open_event_stream() as events:
            async for event in events:
                ...
    """

    def __init__(
        self,
        server: ServerConfig | None = None,
        feed: FeedConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._server = server or ServerConfig()
        self._feed = feed or FeedConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self._server.cookie:
                headers["Cookie"] = self._server.cookie
            self._client = httpx.AsyncClient(
                base_url=self._server.base_url.rstrip("/"),
                headers=headers,
                timeout=httpx.Timeout(self._server.request_timeout),
                transport=self._transport,
            )
        return self._client

    # ━━━ Queries ━━━

    async def get_server_time(self) -> float:
        body = await self._request("GET", "/api/server-time")
        value = body.get("response") if isinstance(body, dict) else body
        if isinstance(value, dict):
            value = value.get("serverTime", value.get("server_time", value.get("now")))
        try:
            ts = float(value)
        except (TypeError, ValueError):
            raise TransportError(
                f"Unreadable server time: {value!r}", retryable=True
            ) from None
        if ts > _MS_THRESHOLD:
            ts /= 1000.0
        return ts

    async def list_deliveries(self, day: str) -> list[DeliveryRecord]:
        body = await self._request("GET", "/api/admin/deliveries", params={"date": day})
        rows = body.get("response") if isinstance(body, dict) else None
        if not isinstance(rows, list):
            logger.warning(f"Delivery list for {day} has no response array")
            return []
        return decode_records(rows)

    # ━━━ Actions ━━━

    async def accept_delivery(self, order_id: int, estimated_minutes: int) -> bool:
        return await self._action(
            f"/api/admin/deliveries/{order_id}/accept",
            {"estimatedMinutes": estimated_minutes},
        )

    async def reject_delivery(self, order_id: int) -> bool:
        return await self._action(f"/api/admin/deliveries/{order_id}/reject", None)

    async def _action(self, path: str, payload: dict[str, Any] | None) -> bool:
        client = await self._get_client()
        try:
            response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise TransportError(f"POST {path} failed: {e}") from e
        if response.status_code >= 400:
            logger.warning(f"POST {path} refused: HTTP {response.status_code}")
            return False
        return True

    # ━━━ Stream ━━━

    @asynccontextmanager
    async def open_event_stream(self) -> AsyncIterator[AsyncIterator[ServerSentEvent]]:
        client = await self._get_client()
        # Reads block for as long as the server stays quiet; the
        # supervisor's watchdog detects a dead connection instead.
        timeout = httpx.Timeout(self._server.request_timeout, read=None)
        try:
            async with client.stream(
                "GET",
                self._feed.stream_path,
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
                timeout=timeout,
            ) as response:
                if response.status_code != 200:
                    raise TransportError(
                        f"Event stream refused: HTTP {response.status_code}",
                        status_code=response.status_code,
                        retryable=response.status_code >= 500 or response.status_code == 429,
                    )
                yield iter_sse(response.aiter_lines())
        except httpx.HTTPError as e:
            raise TransportError(f"Event stream failed: {e}") from e

    # ━━━ Internals ━━━

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        if response.status_code != 200:
            raise TransportError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{method} {path} returned invalid JSON: {e}") from e

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
