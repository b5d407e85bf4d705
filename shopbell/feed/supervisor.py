"""
ConnectionSupervisor — decides whether the live feed, the poller, or both run.

Inputs:
- stream callbacks from the LiveFeedChannel (opened / failed)
- host signals from the event bus (host:visible, host:online, host:offline)
- the reconnect timer
- a watchdog that catches connections that died without an error

Every input becomes a Signal and goes through feed.state.transition();
the supervisor only executes the returned effects. Transitions are
serialized with a lock so effects from two inputs never interleave.

Policy, as enforced by the state machine:
- feed not CONNECTED → poller running
- feed CONNECTED → poller stopped (an in-flight poll still completes)
- visible/online while not CONNECTED → reconnect now, skipping backoff
- stop() → channel closed, every timer cancelled, every bus listener removed
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from shopbell.core.events import Event, EventType
from shopbell.feed.state import (
    BackoffPolicy,
    ChannelState,
    ChannelStatus,
    Effect,
    EffectKind,
    Signal,
    transition,
)

if TYPE_CHECKING:
    from shopbell.alerts.ledger import DismissalLedger
    from shopbell.core.bus import EventBus, EventHandler
    from shopbell.core.clock import ClockSource
    from shopbell.core.config import FeedConfig
    from shopbell.core.timers import TimerSet
    from shopbell.feed.channel import LiveFeedChannel
    from shopbell.feed.poller import FallbackPoller

logger = logging.getLogger(__name__)

RECONNECT_TIMER = "reconnect"
WATCHDOG_TIMER = "watchdog"


class ConnectionSupervisor:
    """
    Owns the ChannelState and every timer around the live feed.

    Usage:
        supervisor = ConnectionSupervisor(channel, poller, ledger, clock, bus, timers, config.feed)
        await supervisor.start()
        await bus.emit(Event(type=EventType.HOST_VISIBLE))   # recovery signal
        await supervisor.stop()
    """

    def __init__(
        self,
        channel: "LiveFeedChannel",
        poller: "FallbackPoller",
        ledger: "DismissalLedger",
        clock: "ClockSource",
        bus: "EventBus",
        timers: "TimerSet",
        config: "FeedConfig",
    ) -> None:
        self._channel = channel
        self._poller = poller
        self._ledger = ledger
        self._clock = clock
        self._bus = bus
        self._timers = timers
        self._config = config
        self._backoff = BackoffPolicy(base=config.backoff_base, cap=config.backoff_cap)
        self._state = ChannelState()
        self._lock = asyncio.Lock()
        self._running = False
        self._listeners: dict[str, "EventHandler"] = {
            EventType.HOST_VISIBLE: self._on_visible,
            EventType.HOST_HIDDEN: self._on_hidden,
            EventType.HOST_ONLINE: self._on_online,
            EventType.HOST_OFFLINE: self._on_offline,
        }
        self.reconnect_delays: list[float] = []

        channel.bind(on_open=self.on_open, on_error=self.on_error)

    # ━━━ Introspection ━━━

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    # ━━━ Lifecycle ━━━

    async def start(self) -> None:
        if self._running:
            return
        self._running = True

        # Once per (re)initialization, not per event
        try:
            await self._ledger.prune_older_than(await self._clock.today())
        except Exception as e:
            logger.warning(f"Dismissal ledger prune failed (non-fatal): {e}")

        self._bus.subscribe(self._listeners)

        self._poller.start_alignment()
        await self._dispatch(Signal.START)
        self._timers.repeat(WATCHDOG_TIMER, self._config.watchdog_interval, self._watchdog)
        logger.info("Connection supervisor started")

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False

        self._bus.unsubscribe(self._listeners)

        await self._dispatch(Signal.STOP)
        await self._poller.shutdown()
        await self._timers.shutdown()
        logger.info("Connection supervisor stopped")

    # ━━━ Channel callbacks ━━━

    async def on_open(self) -> None:
        await self._dispatch(Signal.OPENED)

    async def on_error(self, error: Exception) -> None:
        await self._dispatch(Signal.ERROR, reason=str(error))

    # ━━━ Host signals ━━━

    async def _on_visible(self, event: Event) -> None:
        await self._dispatch(Signal.VISIBLE)

    async def _on_hidden(self, event: Event) -> None:
        logger.debug("Host hidden; feed left as is")

    async def _on_online(self, event: Event) -> None:
        await self._dispatch(Signal.ONLINE)

    async def _on_offline(self, event: Event) -> None:
        await self._dispatch(Signal.OFFLINE)

    # ━━━ Timers ━━━

    async def _on_reconnect_due(self) -> None:
        await self._dispatch(Signal.RECONNECT_DUE)

    async def _watchdog(self) -> None:
        state = self._state
        if state.status == ChannelStatus.CONNECTED:
            if not self._channel.is_alive:
                logger.warning("Watchdog: live feed reports closed without an error")
                await self._dispatch(Signal.WATCHDOG_DEAD, reason="closed")
            elif self._channel.idle_seconds() > self._config.stale_after:
                logger.warning(f"Watchdog: live feed silent for {self._channel.idle_seconds():.0f}s")
                await self._dispatch(Signal.WATCHDOG_DEAD, reason="stale")
        elif state.status in (ChannelStatus.RECONNECTING, ChannelStatus.DEGRADED):
            if not self._timers.is_pending(RECONNECT_TIMER):
                logger.warning("Watchdog: no reconnect pending, forcing one")
                await self._dispatch(Signal.RECONNECT_DUE)

    # ━━━ State machine driver ━━━

    async def _dispatch(self, signal: Signal, reason: str = "") -> None:
        async with self._lock:
            if not self._running and signal != Signal.STOP:
                # Late callbacks after teardown only get their stray connection closed
                if signal == Signal.OPENED:
                    await self._channel.close()
                return
            previous = self._state
            self._state, effects = transition(previous, signal, self._backoff)
            if self._state != previous:
                logger.info(
                    f"Feed {previous} → {self._state} on {signal.value}"
                    + (f" ({reason})" if reason else "")
                )
                self._bus.emit_nowait(Event(
                    type=EventType.CHANNEL_STATE,
                    source="supervisor",
                    data={
                        "status": self._state.status.value,
                        "attempt": self._state.attempt,
                        "signal": signal.value,
                        "reason": reason,
                    },
                ))
            for effect in effects:
                await self._apply(effect)

    async def _apply(self, effect: Effect) -> None:
        kind = effect.kind
        if kind == EffectKind.OPEN:
            self._channel.open()
        elif kind == EffectKind.CLOSE:
            await self._channel.close()
        elif kind == EffectKind.START_POLLER:
            self._poller.start()
        elif kind == EffectKind.STOP_POLLER:
            self._poller.stop()
        elif kind == EffectKind.SCHEDULE_RECONNECT:
            if self._timers.schedule(RECONNECT_TIMER, effect.delay, self._on_reconnect_due):
                self.reconnect_delays.append(effect.delay)
                logger.info(f"Reconnect in {effect.delay:g}s")
        elif kind == EffectKind.CANCEL_RECONNECT:
            self._timers.cancel(RECONNECT_TIMER)
