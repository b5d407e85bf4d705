"""Tests for shopbell/scheduler/triggers.py"""
from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from shopbell.scheduler.triggers import CronTrigger, IntervalTrigger, make_trigger

SEOUL = ZoneInfo("Asia/Seoul")


# ── CronTrigger ──────────────────────────────────────────────────────────────

class TestCronTrigger:
    def test_half_hour_alignment(self):
        trigger = CronTrigger("*/30 * * * *")
        now = datetime(2025, 3, 14, 13, 10, 0, tzinfo=SEOUL)
        assert trigger.seconds_until_next(now) == 20 * 60

    def test_exact_boundary_waits_for_next_slot(self):
        trigger = CronTrigger("*/30 * * * *")
        now = datetime(2025, 3, 14, 13, 30, 0, tzinfo=SEOUL)
        assert trigger.seconds_until_next(now) == 30 * 60

    def test_evaluated_in_timezone_of_now(self):
        trigger = CronTrigger("0 9 * * *")
        # 23:00 UTC on the 13th is 08:00 on the 14th in Seoul
        now_seoul = datetime(2025, 3, 13, 23, 0, tzinfo=timezone.utc).astimezone(SEOUL)
        assert trigger.seconds_until_next(now_seoul) == 3600

    def test_invalid_expression(self):
        with pytest.raises(ValueError):
            CronTrigger("every half hour")

    def test_description_contains_expression(self):
        assert "*/30 * * * *" in CronTrigger("*/30 * * * *").description


# ── IntervalTrigger ──────────────────────────────────────────────────────────

class TestIntervalTrigger:
    def test_constant_delay(self):
        trigger = IntervalTrigger(15)
        assert trigger.seconds_until_next(datetime.now(SEOUL)) == 15

    def test_description(self):
        assert IntervalTrigger(15).description == "every 15s"
        assert IntervalTrigger(120).description == "every 2m"

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            IntervalTrigger(0)


# ── make_trigger ─────────────────────────────────────────────────────────────

def test_make_trigger_builds_both_kinds():
    assert isinstance(make_trigger({"type": "cron", "expression": "0 0 * * *"}), CronTrigger)
    assert isinstance(make_trigger({"type": "interval", "seconds": "15"}), IntervalTrigger)


def test_make_trigger_unknown_type():
    with pytest.raises(ValueError):
        make_trigger({"type": "oneshot"})
