"""Tests for the notification dedup store."""

from shopbell.alerts.dedup import DedupStore
from shopbell.core.types import AlertKind


def test_admits_each_kind_once_per_order():
    dedup = DedupStore()

    assert dedup.should_admit(AlertKind.PAID, 501) is True
    assert dedup.should_admit(AlertKind.PAID, 501) is False
    assert dedup.should_admit(AlertKind.UPCOMING, 501) is True
    assert dedup.should_admit(AlertKind.UPCOMING, 501) is False
    assert len(dedup) == 2


def test_seen_does_not_record():
    dedup = DedupStore()
    assert dedup.seen(AlertKind.PAID, 1) is False
    assert dedup.should_admit(AlertKind.PAID, 1) is True
    assert dedup.seen(AlertKind.PAID, 1) is True


def test_reset_clears_both_sets():
    dedup = DedupStore()
    dedup.should_admit(AlertKind.PAID, 1)
    dedup.should_admit(AlertKind.UPCOMING, 2)

    dedup.reset()

    assert len(dedup) == 0
    assert dedup.should_admit(AlertKind.PAID, 1) is True
