"""
DismissalLedger — per-day memory of dismissed "upcoming delivery" reminders.

Stored in the key/value store as one JSON list per day:

    dismissed/2025-03-14  →  [700, 712]

Days other than today are pruned once per feed (re)initialization,
not on every event.
"""

from __future__ import annotations

import asyncio
import json
import logging

from shopbell.store.base import StorageProvider

logger = logging.getLogger(__name__)

_PREFIX = "dismissed/"


class DismissalLedger:
    """
    Durable dismissed-order sets keyed by calendar day (YYYY-MM-DD).

    Reads are served from an in-memory cache after the first load of a
    day; writes go through a lock so the feed and the presenter never
    interleave a read-modify-write.

    Usage:
        ledger = DismissalLedger(storage)
        await ledger.mark_dismissed("2025-03-14", 700)
        assert await ledger.is_dismissed("2025-03-14", 700)
        await ledger.prune_older_than("2025-03-15")
    """

    def __init__(self, storage: StorageProvider) -> None:
        self._storage = storage
        self._cache: dict[str, set[int]] = {}
        self._lock = asyncio.Lock()

    async def is_dismissed(self, day: str, order_id: int) -> bool:
        ids = await self._load(day)
        return order_id in ids

    async def mark_dismissed(self, day: str, order_id: int) -> None:
        async with self._lock:
            ids = await self._load(day)
            if order_id in ids:
                return
            ids.add(order_id)
            await self._storage.set(_key(day), json.dumps(sorted(ids)).encode())
        logger.debug(f"Order {order_id} dismissed for {day}")

    async def prune_older_than(self, day: str) -> int:
        """Remove every day except `day`. Returns the number of days dropped."""
        removed = 0
        async with self._lock:
            for key in await self._storage.list_keys(_PREFIX):
                stored_day = key[len(_PREFIX):]
                if stored_day == day:
                    continue
                if await self._storage.delete(key):
                    removed += 1
                self._cache.pop(stored_day, None)
            for cached_day in [d for d in self._cache if d != day]:
                del self._cache[cached_day]
        if removed:
            logger.info(f"Pruned {removed} stale dismissal day(s), keeping {day}")
        return removed

    async def dismissed_for(self, day: str) -> frozenset[int]:
        return frozenset(await self._load(day))

    async def _load(self, day: str) -> set[int]:
        if day in self._cache:
            return self._cache[day]
        raw = await self._storage.get(_key(day))
        ids: set[int] = set()
        if raw:
            try:
                ids = {int(i) for i in json.loads(raw)}
            except (ValueError, TypeError) as e:
                logger.warning(f"Corrupt dismissal entry for {day}, starting fresh: {e}")
        self._cache[day] = ids
        return ids


def _key(day: str) -> str:
    return f"{_PREFIX}{day}"
