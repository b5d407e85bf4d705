"""Shared test fixtures for Shopbell."""

import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio

from shopbell.alerts.alarm import SilentAlarm
from shopbell.backend.mock import MockBackend, MockPrinter
from shopbell.client import AlertClient
from shopbell.core.bus import EventBus
from shopbell.core.config import (
    AlertsConfig,
    FeedConfig,
    PollerConfig,
    ShopbellConfig,
    StoreConfig,
)
from shopbell.store.memory import InMemoryStorage

SEOUL = ZoneInfo("Asia/Seoul")


@pytest.fixture
def now() -> datetime:
    """Frozen server 'now': Friday 2025-03-14 13:30 in Seoul."""
    return datetime(2025, 3, 14, 13, 30, tzinfo=SEOUL)


@pytest.fixture
def config(tmp_path):
    """Fast timings; nothing loaded from disk."""
    return ShopbellConfig(
        feed=FeedConfig(
            backoff_base=0.05,
            backoff_cap=0.4,
            watchdog_interval=0.05,
            stale_after=60.0,
        ),
        poller=PollerConfig(interval=0.05),
        alerts=AlertsConfig(bell_interval=0.01),
        store=StoreConfig(db_path=str(tmp_path / "state.db")),
    )


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def backend(now):
    return MockBackend(server_time=now.timestamp())


@pytest.fixture
def printer():
    return MockPrinter()


@pytest.fixture
def alarm():
    return SilentAlarm()


@pytest_asyncio.fixture
async def client(config, backend, storage, printer, alarm, bus):
    """Fully wired client against the mock backend. Not started."""
    c = AlertClient(config, backend, storage=storage, printer=printer, alarm=alarm, bus=bus)
    yield c
    await c.stop()


@pytest.fixture
def wait_for():
    """Poll a predicate until it holds, failing after `timeout` seconds."""

    async def _wait(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(interval)

    return _wait
