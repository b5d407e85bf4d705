"""Tests for the feed state machine."""

import pytest
from shopbell.feed.state import (
    BackoffPolicy,
    ChannelState,
    ChannelStatus,
    Effect,
    EffectKind,
    Signal,
    backoff_delay,
    transition,
)

S = ChannelStatus
E = EffectKind


def kinds(effects):
    return [e.kind for e in effects]


def test_backoff_sequence_doubles_then_caps():
    assert [backoff_delay(n) for n in range(8)] == [1, 2, 4, 8, 16, 30, 30, 30]


def test_backoff_is_non_decreasing_for_huge_attempts():
    delays = [backoff_delay(n) for n in range(0, 200, 7)]
    assert delays == sorted(delays)
    assert backoff_delay(10_000) == 30


def test_backoff_policy_uses_configured_base_and_cap():
    policy = BackoffPolicy(base=0.5, cap=3)
    assert [policy.delay(n) for n in range(5)] == [0.5, 1, 2, 3, 3]


def test_start_opens_and_polls():
    state, effects = transition(ChannelState(), Signal.START)
    assert state == ChannelState(S.CONNECTING, 0)
    assert kinds(effects) == [E.START_POLLER, E.OPEN]


def test_open_resets_counter_and_stops_poller():
    state, effects = transition(ChannelState(S.CONNECTING, 4), Signal.OPENED)
    assert state == ChannelState(S.CONNECTED, 0)
    assert kinds(effects) == [E.CANCEL_RECONNECT, E.STOP_POLLER]


def test_error_schedules_reconnect_with_backoff_for_current_attempt():
    state, effects = transition(ChannelState(S.CONNECTING, 3), Signal.ERROR)
    assert state == ChannelState(S.RECONNECTING, 3)
    assert kinds(effects) == [E.CLOSE, E.START_POLLER, E.SCHEDULE_RECONNECT]
    assert effects[-1] == Effect(E.SCHEDULE_RECONNECT, 8)


def test_error_while_reconnecting_keeps_single_timer():
    state = ChannelState(S.RECONNECTING, 2)
    assert transition(state, Signal.ERROR) == (state, ())
    assert transition(state, Signal.WATCHDOG_DEAD) == (state, ())


def test_reconnect_due_increments_attempt():
    state, effects = transition(ChannelState(S.RECONNECTING, 2), Signal.RECONNECT_DUE)
    assert state == ChannelState(S.CONNECTING, 3)
    assert kinds(effects) == [E.OPEN]


@pytest.mark.parametrize("status", [S.CONNECTED, S.CONNECTING, S.DISCONNECTED])
def test_reconnect_due_outside_backoff_is_noop(status):
    state = ChannelState(status, 0)
    assert transition(state, Signal.RECONNECT_DUE) == (state, ())


def test_visible_while_reconnecting_skips_backoff():
    state, effects = transition(ChannelState(S.RECONNECTING, 3), Signal.VISIBLE)
    assert state == ChannelState(S.CONNECTING, 4)
    assert kinds(effects) == [E.CANCEL_RECONNECT, E.CLOSE, E.OPEN]


def test_visible_while_connected_is_noop():
    state = ChannelState(S.CONNECTED, 0)
    assert transition(state, Signal.VISIBLE) == (state, ())
    assert transition(state, Signal.ONLINE) == (state, ())


def test_offline_degrades_and_polls():
    state, effects = transition(ChannelState(S.CONNECTED, 0), Signal.OFFLINE)
    assert state == ChannelState(S.DEGRADED, 0)
    assert kinds(effects) == [E.CANCEL_RECONNECT, E.CLOSE, E.START_POLLER, E.SCHEDULE_RECONNECT]


def test_online_recovers_from_degraded():
    state, effects = transition(ChannelState(S.DEGRADED, 1), Signal.ONLINE)
    assert state == ChannelState(S.CONNECTING, 2)
    assert E.OPEN in kinds(effects)


@pytest.mark.parametrize("status", list(ChannelStatus))
def test_stop_always_tears_down(status):
    state, effects = transition(ChannelState(status, 5), Signal.STOP)
    assert state == ChannelState()
    assert kinds(effects) == [E.CANCEL_RECONNECT, E.CLOSE, E.STOP_POLLER]


def test_late_open_after_stop_is_closed():
    state, effects = transition(ChannelState(), Signal.OPENED)
    assert state == ChannelState()
    assert kinds(effects) == [E.CLOSE]


def test_poller_runs_in_every_state_but_connected():
    """Walk a full outage and check the poller decision at each step."""
    state = ChannelState()
    polling = False
    path = [
        (Signal.START, True),
        (Signal.ERROR, True),
        (Signal.RECONNECT_DUE, True),
        (Signal.OPENED, False),
        (Signal.WATCHDOG_DEAD, True),
        (Signal.VISIBLE, True),
        (Signal.OPENED, False),
        (Signal.OFFLINE, True),
        (Signal.ONLINE, True),
        (Signal.OPENED, False),
    ]
    for signal, expect_polling in path:
        state, effects = transition(state, signal)
        for effect in effects:
            if effect.kind == E.START_POLLER:
                polling = True
            elif effect.kind == E.STOP_POLLER:
                polling = False
        assert polling is expect_polling, f"after {signal.value} in {state}"
        assert polling is not state.connected


def test_state_str():
    assert str(ChannelState(S.RECONNECTING, 3)) == "reconnecting(3)"
    assert str(ChannelState(S.CONNECTED, 0)) == "connected"
