"""Tests for TimerSet."""

import asyncio
import pytest
from shopbell.core.timers import TimerSet


@pytest.mark.asyncio
async def test_schedule_fires_once():
    timers = TimerSet()
    fired = []

    assert timers.schedule("once", 0.01, lambda: fired.append(1)) is True
    assert timers.is_pending("once")

    await asyncio.sleep(0.05)

    assert fired == [1]
    assert not timers.is_pending("once")


@pytest.mark.asyncio
async def test_schedule_refuses_duplicate_name():
    timers = TimerSet()
    assert timers.schedule("reconnect", 1.0, lambda: None) is True
    assert timers.schedule("reconnect", 1.0, lambda: None) is False
    assert timers.pending == ["reconnect"]
    await timers.shutdown()


@pytest.mark.asyncio
async def test_callback_may_reschedule_its_own_name():
    timers = TimerSet()
    fired = []

    def again():
        fired.append(1)
        if len(fired) < 3:
            timers.schedule("chain", 0.01, again)

    timers.schedule("chain", 0.01, again)
    await asyncio.sleep(0.15)

    assert len(fired) == 3


@pytest.mark.asyncio
async def test_cancel_prevents_fire():
    timers = TimerSet()
    fired = []
    timers.schedule("x", 0.02, lambda: fired.append(1))

    assert timers.cancel("x") is True
    assert timers.cancel("x") is False
    await asyncio.sleep(0.05)

    assert fired == []


@pytest.mark.asyncio
async def test_repeat_immediate_and_async_callback():
    timers = TimerSet()
    ticks = []

    async def tick():
        ticks.append(1)

    timers.repeat("tick", 0.02, tick, immediate=True)
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert len(ticks) == 1

    await asyncio.sleep(0.07)
    await timers.shutdown()

    assert len(ticks) >= 3
    assert timers.pending == []


@pytest.mark.asyncio
async def test_repeat_with_callable_delay():
    timers = TimerSet()
    ticks = []

    async def delay():
        return 0.01

    timers.repeat("aligned", delay, lambda: ticks.append(1))
    await asyncio.sleep(0.06)
    await timers.shutdown()

    assert len(ticks) >= 2


@pytest.mark.asyncio
async def test_repeat_stops_when_cancelled_from_its_callback():
    timers = TimerSet()
    ticks = []

    def tick():
        ticks.append(1)
        timers.cancel("self")

    timers.repeat("self", 0.01, tick)
    await asyncio.sleep(0.08)

    assert ticks == [1]
    assert timers.pending == []


@pytest.mark.asyncio
async def test_callback_errors_do_not_kill_repeat():
    timers = TimerSet()
    calls = []

    def flaky():
        calls.append(1)
        raise RuntimeError("boom")

    timers.repeat("flaky", 0.01, flaky)
    await asyncio.sleep(0.06)
    await timers.shutdown()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_shutdown_cancels_everything():
    timers = TimerSet()
    timers.schedule("a", 10, lambda: None)
    timers.repeat("b", 10, lambda: None)

    await timers.shutdown()

    assert timers.pending == []
