"""
Receipt printing through the local printer bridge.

The bridge is a small HTTP server on the shop PC:
    POST /print    receipt JSON
    GET  /health

Printing is a side effect of a paid alert, so every failure here is a
False return and a warning log, never an exception.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from shopbell.core.errors import PrinterError

logger = logging.getLogger(__name__)


class ReceiptPrinter(ABC):
    """Abstract receipt printer."""

    @abstractmethod
    async def print_receipt(self, receipt: dict[str, Any]) -> bool:
        ...

    @abstractmethod
    async def check_health(self) -> bool:
        ...

    async def close(self) -> None:
        return None


class PrinterBridge(ReceiptPrinter):
    """
    Usage:
        printer = PrinterBridge("http://127.0.0.1:18181", timeout=3.0)
        if await printer.check_health():
            await printer.print_receipt(payload.to_receipt(order_id))
    """

    def __init__(
        self,
        url: str = "http://127.0.0.1:18181",
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def print_receipt(self, receipt: dict[str, Any]) -> bool:
        try:
            await self._send("POST", "/print", json=receipt)
        except PrinterError as e:
            logger.warning(f"Receipt for order {receipt.get('orderId')} not printed: {e}")
            return False
        return True

    async def check_health(self) -> bool:
        try:
            await self._send("GET", "/health")
        except PrinterError as e:
            logger.warning(f"Printer health check failed: {e}")
            return False
        return True

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise PrinterError(f"bridge timed out after {self._timeout:g}s") from e
        except httpx.HTTPError as e:
            raise PrinterError(f"bridge unreachable: {e}") from e
        if not response.is_success:
            raise PrinterError(
                f"bridge answered HTTP {response.status_code}",
                details={"status_code": response.status_code},
            )
        return response

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
