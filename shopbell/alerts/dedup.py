"""
Notification dedup store.

Both the live feed and the fallback poller report the same orders; this
store decides which report wins. should_admit() never awaits, so the
check-and-set runs in one event-loop tick and exactly one caller wins.
"""

from __future__ import annotations

import logging

from shopbell.core.types import AlertKind

logger = logging.getLogger(__name__)


class DedupStore:
    """
    Per-session record of orders that already produced an alert, per kind.

    Usage:
        dedup = DedupStore()
        if dedup.should_admit(AlertKind.PAID, 501):
            queue.enqueue(alert)
    """

    def __init__(self) -> None:
        self._seen: dict[AlertKind, set[int]] = {kind: set() for kind in AlertKind}

    def should_admit(self, kind: AlertKind, order_id: int) -> bool:
        """True exactly once per (kind, order_id); records membership on True."""
        seen = self._seen[kind]
        if order_id in seen:
            return False
        seen.add(order_id)
        return True

    def seen(self, kind: AlertKind, order_id: int) -> bool:
        return order_id in self._seen[kind]

    def reset(self) -> None:
        """Forget everything, so a later genuine re-occurrence can alert again."""
        for seen in self._seen.values():
            seen.clear()
        logger.debug("Dedup store reset")

    def __len__(self) -> int:
        return sum(len(seen) for seen in self._seen.values())
