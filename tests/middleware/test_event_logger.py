"""Tests for the event-log middleware."""

import json
import logging

import pytest
from shopbell.core.bus import EventBus
from shopbell.core.events import Event, EventType
from shopbell.middleware.logging import EventLogger, setup_logging


@pytest.mark.asyncio
async def test_events_written_as_jsonl(tmp_path):
    event_logger = EventLogger(log_dir=tmp_path)
    bus = EventBus()
    bus.use(event_logger.middleware)
    received = []

    async def handler(event):
        received.append(event)

    bus.on(EventType.ALERT_ENQUEUED, handler)
    await bus.emit(Event(type=EventType.ALERT_ENQUEUED, data={"order_id": 501}, source="queue"))
    await bus.emit(Event(type=EventType.CHANNEL_STATE, data={"status": "connected", "obj": object()}))

    assert len(received) == 1
    lines = event_logger.events_file.read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert [r["type"] for r in records] == ["alert:enqueued", "channel:state"]
    assert records[0]["data"] == {"order_id": 501}
    assert records[1]["data"]["obj"].startswith("<object")


@pytest.mark.asyncio
async def test_event_writing_can_be_disabled(tmp_path):
    event_logger = EventLogger(log_dir=tmp_path, log_events=False)
    bus = EventBus()
    bus.use(event_logger.middleware)

    await bus.emit(Event(type=EventType.SYSTEM_START))

    assert not event_logger.events_file.exists()


def test_setup_logging_creates_file(tmp_path):
    logger = setup_logging(log_dir=tmp_path, console_level=logging.ERROR)
    try:
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        files = list(tmp_path.glob("shopbell_*.log"))
        assert len(files) == 1
        assert "hello" in files[0].read_text(encoding="utf-8")
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []
