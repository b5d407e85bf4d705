"""
Live feed connection state machine.

    DISCONNECTED → CONNECTING → CONNECTED → DEGRADED → RECONNECTING(n)

Every timer callback, stream callback and host signal is turned into a
Signal and run through transition(), a pure function that returns the
next state and the side effects the supervisor must perform. Nothing
here touches the network or the event loop.

Attempt counter: RECONNECTING(n) means a reconnect is pending after
backoff_delay(n); when it fires the state becomes CONNECTING(n + 1). A
successful open resets the counter to 0, so consecutive failures wait
1s, 2s, 4s, 8s, 16s, 30s, 30s, ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ChannelStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"
    RECONNECTING = "reconnecting"


class Signal(str, Enum):
    """Inputs to the state machine."""

    START = "start"
    OPENED = "opened"
    ERROR = "error"
    WATCHDOG_DEAD = "watchdog_dead"
    RECONNECT_DUE = "reconnect_due"
    VISIBLE = "visible"
    ONLINE = "online"
    OFFLINE = "offline"
    STOP = "stop"


class EffectKind(str, Enum):
    OPEN = "open"
    CLOSE = "close"
    START_POLLER = "start_poller"
    STOP_POLLER = "stop_poller"
    SCHEDULE_RECONNECT = "schedule_reconnect"
    CANCEL_RECONNECT = "cancel_reconnect"


@dataclass(frozen=True, slots=True)
class Effect:
    kind: EffectKind
    delay: float = 0.0


@dataclass(frozen=True, slots=True)
class ChannelState:
    status: ChannelStatus = ChannelStatus.DISCONNECTED
    attempt: int = 0

    @property
    def connected(self) -> bool:
        return self.status == ChannelStatus.CONNECTED

    def __str__(self) -> str:
        if self.status in (ChannelStatus.RECONNECTING, ChannelStatus.DEGRADED):
            return f"{self.status.value}({self.attempt})"
        return self.status.value


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    base: float = 1.0
    cap: float = 30.0

    def delay(self, attempt: int) -> float:
        return backoff_delay(attempt, self.base, self.cap)


def backoff_delay(attempt: int, base: float = 1.0, cap: float = 30.0) -> float:
    """min(cap, base * 2^attempt), non-decreasing in attempt."""
    if attempt < 0:
        attempt = 0
    # Past 2^32 the cap has long since won
    if attempt > 32:
        return cap
    return min(cap, base * (2 ** attempt))


def transition(
    state: ChannelState,
    signal: Signal,
    backoff: BackoffPolicy | None = None,
) -> tuple[ChannelState, tuple[Effect, ...]]:
    """Pure transition function: (state, signal) -> (state, effects)."""
    policy = backoff or BackoffPolicy()
    status, n = state.status, state.attempt
    S = ChannelStatus
    E = EffectKind

    if signal == Signal.STOP:
        return ChannelState(), (
            Effect(E.CANCEL_RECONNECT),
            Effect(E.CLOSE),
            Effect(E.STOP_POLLER),
        )

    if status == S.DISCONNECTED:
        if signal == Signal.START:
            return ChannelState(S.CONNECTING, 0), (
                Effect(E.START_POLLER),
                Effect(E.OPEN),
            )
        # Stale callbacks after teardown
        if signal == Signal.OPENED:
            return state, (Effect(E.CLOSE),)
        return state, ()

    if signal == Signal.OPENED:
        return ChannelState(S.CONNECTED, 0), (
            Effect(E.CANCEL_RECONNECT),
            Effect(E.STOP_POLLER),
        )

    if signal in (Signal.ERROR, Signal.WATCHDOG_DEAD):
        if status == S.RECONNECTING:
            # Already closed with a reconnect pending; keep the single timer
            return state, ()
        return ChannelState(S.RECONNECTING, n), (
            Effect(E.CLOSE),
            Effect(E.START_POLLER),
            Effect(E.SCHEDULE_RECONNECT, policy.delay(n)),
        )

    if signal == Signal.RECONNECT_DUE:
        if status in (S.RECONNECTING, S.DEGRADED):
            return ChannelState(S.CONNECTING, n + 1), (Effect(E.OPEN),)
        # Fired while CONNECTED or already CONNECTING
        return state, ()

    if signal in (Signal.VISIBLE, Signal.ONLINE):
        if status in (S.RECONNECTING, S.DEGRADED):
            return ChannelState(S.CONNECTING, n + 1), (
                Effect(E.CANCEL_RECONNECT),
                Effect(E.CLOSE),
                Effect(E.OPEN),
            )
        return state, ()

    if signal == Signal.OFFLINE:
        return ChannelState(S.DEGRADED, n), (
            Effect(E.CANCEL_RECONNECT),
            Effect(E.CLOSE),
            Effect(E.START_POLLER),
            Effect(E.SCHEDULE_RECONNECT, policy.delay(n)),
        )

    return state, ()
