"""Tests for the alert queue and staff actions."""

import json

import pytest
import pytest_asyncio
from shopbell.alerts.alarm import SilentAlarm
from shopbell.alerts.dedup import DedupStore
from shopbell.alerts.ledger import DismissalLedger
from shopbell.alerts.prefs import Preferences
from shopbell.alerts.queue import AlertQueue
from shopbell.core.clock import ClockSource
from shopbell.core.errors import TransportError
from shopbell.core.events import Event, EventType
from shopbell.core.types import AlertKind, DeliveryAlert
from shopbell.notifications.base import NoticeLevel
from shopbell.notifications.router import NoticeRouter


def paid(order_id: int) -> DeliveryAlert:
    return DeliveryAlert(order_id=order_id, kind=AlertKind.PAID)


def upcoming(order_id: int) -> DeliveryAlert:
    return DeliveryAlert(order_id=order_id, kind=AlertKind.UPCOMING)


@pytest.fixture
def notices():
    return NoticeRouter()


@pytest.fixture
def dedup():
    return DedupStore()


@pytest.fixture
def ledger(storage):
    return DismissalLedger(storage)


@pytest_asyncio.fixture
async def queue(backend, ledger, dedup, storage, alarm, notices, bus):
    return AlertQueue(
        backend,
        ledger,
        dedup,
        ClockSource(backend),
        alarm,
        Preferences(storage),
        notices=notices,
        bus=bus,
    )


@pytest.mark.asyncio
async def test_enqueue_preserves_order_and_starts_alarm(queue, alarm):
    await queue.enqueue(paid(1))
    await queue.enqueue(upcoming(2))
    await queue.enqueue(paid(3))

    assert [a.order_id for a in queue.alerts] == [1, 2, 3]
    assert alarm.is_sounding
    assert alarm.start_count == 1


@pytest.mark.asyncio
async def test_volume_reread_on_every_trigger(queue, alarm, storage):
    await queue.enqueue(paid(1))
    assert alarm.volume == 1.0

    await Preferences(storage).set_volume(7)
    await queue.enqueue(paid(2))
    assert alarm.volume == 7.0


@pytest.mark.asyncio
async def test_accept_success_removes_and_stops_alarm(queue, backend, alarm, notices):
    await queue.enqueue(paid(501))

    assert await queue.accept(501, estimated_minutes=25) is True

    assert backend.accept_calls == [(501, 25)]
    assert len(queue) == 0
    assert not alarm.is_sounding
    assert notices.history[-1].level == NoticeLevel.INFO


@pytest.mark.asyncio
async def test_accept_failure_keeps_alert_visible(queue, backend, alarm, notices):
    """Server refuses accept of 900: alert stays, alarm keeps ringing, error notice."""
    backend.accept_result = False
    await queue.enqueue(paid(900))

    assert await queue.accept(900, estimated_minutes=30) is False

    assert [a.order_id for a in queue.alerts] == [900]
    assert alarm.is_sounding
    notice = notices.history[-1]
    assert notice.level == NoticeLevel.ERROR
    assert notice.order_id == 900


@pytest.mark.asyncio
async def test_accept_transport_error_is_contained(queue, backend, notices):
    backend.action_error = TransportError("connection reset")
    await queue.enqueue(paid(900))

    assert await queue.accept(900, estimated_minutes=30) is False

    assert len(queue) == 1
    assert notices.history[-1].level == NoticeLevel.ERROR


@pytest.mark.asyncio
async def test_reject_upcoming_records_dismissal_even_on_failure(queue, backend, ledger, now):
    backend.reject_result = False
    await queue.enqueue(upcoming(700))

    assert await queue.reject(700) is False

    assert backend.reject_calls == [700]
    assert await ledger.is_dismissed(now.strftime("%Y-%m-%d"), 700)
    assert len(queue) == 1


@pytest.mark.asyncio
async def test_paid_action_does_not_touch_ledger(queue, storage):
    await queue.enqueue(paid(501))
    await queue.reject(501)
    assert await storage.list_keys("dismissed/") == []


@pytest.mark.asyncio
async def test_close_removes_without_backend_call(queue, backend, ledger, now):
    await queue.enqueue(paid(1))
    await queue.enqueue(upcoming(700))

    assert await queue.close(700) is True
    assert await queue.close(700) is False

    assert [a.order_id for a in queue.alerts] == [1]
    assert backend.accept_calls == [] and backend.reject_calls == []
    assert await ledger.is_dismissed(now.strftime("%Y-%m-%d"), 700)


@pytest.mark.asyncio
async def test_dismiss_all_clears_and_resets_dedup(queue, dedup, alarm, storage):
    dedup.should_admit(AlertKind.PAID, 1)
    dedup.should_admit(AlertKind.UPCOMING, 700)
    await queue.enqueue(paid(1))
    await queue.enqueue(upcoming(700))

    assert await queue.dismiss_all() == 2

    assert len(queue) == 0
    assert len(dedup) == 0
    assert not alarm.is_sounding
    assert json.loads(await storage.get("dismissed/2025-03-14")) == [700]


@pytest.mark.asyncio
async def test_lifecycle_events(queue, bus):
    seen = []

    async def record(event: Event):
        seen.append(event.type)

    bus.on("alert:*", record)
    bus.on("alarm:*", record)

    await queue.enqueue(paid(1))
    await queue.close(1)

    assert seen == [
        EventType.ALARM_START,
        EventType.ALERT_ENQUEUED,
        EventType.ALERT_REMOVED,
        EventType.ALARM_STOP,
    ]


@pytest.mark.asyncio
async def test_alarm_silent_alarm_default(backend, ledger, dedup, storage):
    q = AlertQueue(backend, ledger, dedup, ClockSource(backend), SilentAlarm(), Preferences(storage))
    await q.enqueue(paid(1))
    assert q.alarm.is_sounding


@pytest.mark.asyncio
async def test_reject_survives_out_of_range_server_time(queue, backend, notices):
    backend.server_time = 1e19
    await queue.enqueue(upcoming(700))

    assert await queue.reject(700) is True
    assert len(queue) == 0
    assert notices.history[-1].level == NoticeLevel.INFO


@pytest.mark.asyncio
async def test_action_failures_logged_with_cause(queue, backend, caplog):
    await queue.enqueue(paid(900))

    backend.action_error = TransportError("connection reset")
    with caplog.at_level("WARNING", logger="shopbell.alerts.queue"):
        await queue.accept(900, estimated_minutes=30)
        backend.action_error = None
        backend.reject_result = False
        await queue.reject(900)

    messages = [r.getMessage() for r in caplog.records]
    assert "accept failed for order 900: Could not reach the server: connection reset" in messages
    assert "reject failed for order 900: Server refused to reject order 900" in messages
