"""Tests for the dismissal ledger."""

import asyncio
import json

import pytest
from shopbell.alerts.ledger import DismissalLedger
from shopbell.store.memory import InMemoryStorage


@pytest.mark.asyncio
async def test_mark_and_check():
    ledger = DismissalLedger(InMemoryStorage())

    assert await ledger.is_dismissed("2025-03-14", 700) is False
    await ledger.mark_dismissed("2025-03-14", 700)
    assert await ledger.is_dismissed("2025-03-14", 700) is True
    assert await ledger.is_dismissed("2025-03-15", 700) is False


@pytest.mark.asyncio
async def test_second_mark_is_noop_without_write():
    storage = InMemoryStorage()
    ledger = DismissalLedger(storage)

    await ledger.mark_dismissed("2025-03-14", 700)
    writes = storage.write_count
    await ledger.mark_dismissed("2025-03-14", 700)

    assert storage.write_count == writes
    assert json.loads(await storage.get("dismissed/2025-03-14")) == [700]


@pytest.mark.asyncio
async def test_concurrent_marks_keep_every_id():
    storage = InMemoryStorage()
    ledger = DismissalLedger(storage)

    await asyncio.gather(*(ledger.mark_dismissed("2025-03-14", i) for i in range(1, 21)))

    reloaded = DismissalLedger(storage)
    assert await reloaded.dismissed_for("2025-03-14") == frozenset(range(1, 21))


@pytest.mark.asyncio
async def test_persists_across_instances():
    storage = InMemoryStorage()
    await DismissalLedger(storage).mark_dismissed("2025-03-14", 700)

    assert await DismissalLedger(storage).is_dismissed("2025-03-14", 700) is True


@pytest.mark.asyncio
async def test_prune_keeps_only_given_day():
    storage = InMemoryStorage()
    ledger = DismissalLedger(storage)
    await ledger.mark_dismissed("2025-03-12", 1)
    await ledger.mark_dismissed("2025-03-13", 2)
    await ledger.mark_dismissed("2025-03-14", 3)
    await storage.set("prefs/alert_volume", b"1.0")

    removed = await ledger.prune_older_than("2025-03-14")

    assert removed == 2
    assert await storage.list_keys("dismissed/") == ["dismissed/2025-03-14"]
    assert await ledger.is_dismissed("2025-03-13", 2) is False
    assert await storage.get("prefs/alert_volume") == b"1.0"


@pytest.mark.asyncio
async def test_corrupt_entry_starts_fresh():
    storage = InMemoryStorage()
    await storage.set("dismissed/2025-03-14", b"{broken")
    ledger = DismissalLedger(storage)

    assert await ledger.is_dismissed("2025-03-14", 700) is False
    await ledger.mark_dismissed("2025-03-14", 700)
    assert json.loads(await storage.get("dismissed/2025-03-14")) == [700]
