"""
AlertQueue — ordered active alerts plus the actions staff take on them.

The queue owns the alarm: it rings from the moment the queue goes from
empty to non-empty until the moment it is empty again. Backend calls
made on behalf of staff never raise out of here; failures become error
notices and the alert stays queued.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from shopbell.alerts.alarm import Alarm
from shopbell.alerts.dedup import DedupStore
from shopbell.alerts.ledger import DismissalLedger
from shopbell.alerts.prefs import Preferences
from shopbell.core.clock import ClockSource
from shopbell.core.errors import ActionError
from shopbell.core.events import Event, EventType
from shopbell.core.types import AlertKind, DeliveryAlert
from shopbell.notifications.base import Notice, NoticeLevel

if TYPE_CHECKING:
    from shopbell.backend.base import DeliveryBackend
    from shopbell.core.bus import EventBus
    from shopbell.notifications.router import NoticeRouter

logger = logging.getLogger(__name__)


class AlertQueue:
    """
    Usage:
        queue = AlertQueue(backend, ledger, dedup, clock, alarm, prefs, notices=router)
        await queue.enqueue(alert)
        await queue.accept(501, estimated_minutes=30)
        await queue.dismiss_all()
    """

    def __init__(
        self,
        backend: "DeliveryBackend",
        ledger: DismissalLedger,
        dedup: DedupStore,
        clock: ClockSource,
        alarm: Alarm,
        prefs: Preferences,
        notices: "NoticeRouter | None" = None,
        bus: "EventBus | None" = None,
    ) -> None:
        self._backend = backend
        self._ledger = ledger
        self._dedup = dedup
        self._clock = clock
        self._alarm = alarm
        self._prefs = prefs
        self._notices = notices
        self._bus = bus
        self._alerts: list[DeliveryAlert] = []

    @property
    def alerts(self) -> list[DeliveryAlert]:
        """Snapshot in insertion order."""
        return list(self._alerts)

    @property
    def alarm(self) -> Alarm:
        return self._alarm

    def __len__(self) -> int:
        return len(self._alerts)

    def get(self, order_id: int) -> list[DeliveryAlert]:
        return [a for a in self._alerts if a.order_id == order_id]

    # ━━━ Admission ━━━

    async def enqueue(self, alert: DeliveryAlert) -> None:
        self._alerts.append(alert)
        volume = await self._prefs.get_volume()
        was_sounding = self._alarm.is_sounding
        await self._alarm.start(volume)
        if not was_sounding:
            await self._emit(EventType.ALARM_START, {"volume": volume})
        await self._emit(EventType.ALERT_ENQUEUED, {
            "order_id": alert.order_id,
            "kind": alert.kind.value,
            "queued": len(self._alerts),
        })

    # ━━━ Staff actions ━━━

    async def accept(self, order_id: int, estimated_minutes: int) -> bool:
        return await self._act(
            order_id,
            "accept",
            lambda: self._backend.accept_delivery(order_id, estimated_minutes),
        )

    async def reject(self, order_id: int) -> bool:
        return await self._act(
            order_id, "reject", lambda: self._backend.reject_delivery(order_id)
        )

    async def close(self, order_id: int) -> bool:
        """Remove an order's alerts without telling the server."""
        matching = self.get(order_id)
        if not matching:
            return False
        await self._record_dismissal(matching)
        await self._remove(order_id, reason="closed")
        return True

    async def dismiss_all(self) -> int:
        """
        Clear everything.

        Queued Upcoming alerts are remembered as dismissed for today and
        the dedup store is reset so a later genuine event can alert again.
        """
        count = len(self._alerts)
        await self._record_dismissal(self._alerts)
        self._alerts.clear()
        self._dedup.reset()
        await self._stop_alarm()
        await self._emit(EventType.ALERT_CLEARED, {"count": count})
        logger.info(f"Dismissed all {count} alert(s)")
        return count

    # ━━━ Internals ━━━

    async def _act(
        self,
        order_id: int,
        action: str,
        call: Callable[[], Awaitable[bool]],
    ) -> bool:
        matching = self.get(order_id)
        try:
            await self._call_backend(order_id, action, call)
            ok = True
        except ActionError as e:
            logger.warning(f"{e.action} failed for order {e.order_id}: {e}")
            ok = False

        await self._record_dismissal(matching)

        if not ok:
            await self._notify(
                NoticeLevel.ERROR,
                f"Could not {action} order {order_id}. Please try again.",
                order_id,
            )
            return False

        await self._remove(order_id, reason=action)
        verb = "accepted" if action == "accept" else "rejected"
        await self._notify(NoticeLevel.INFO, f"Order {order_id} {verb}.", order_id)
        return True

    @staticmethod
    async def _call_backend(
        order_id: int,
        action: str,
        call: Callable[[], Awaitable[bool]],
    ) -> None:
        """Run a staff action against the server. Raises ActionError."""
        try:
            ok = await call()
        except Exception as e:
            raise ActionError(
                f"Could not reach the server: {e}", order_id=order_id, action=action
            ) from e
        if not ok:
            raise ActionError(
                f"Server refused to {action} order {order_id}",
                order_id=order_id,
                action=action,
            )

    async def _record_dismissal(self, alerts: list[DeliveryAlert]) -> None:
        upcoming = [a for a in alerts if a.kind == AlertKind.UPCOMING]
        if not upcoming:
            return
        today = await self._clock.today()
        for alert in upcoming:
            await self._ledger.mark_dismissed(today, alert.order_id)

    async def _remove(self, order_id: int, reason: str) -> None:
        before = len(self._alerts)
        self._alerts = [a for a in self._alerts if a.order_id != order_id]
        if len(self._alerts) == before:
            return
        await self._emit(EventType.ALERT_REMOVED, {
            "order_id": order_id,
            "reason": reason,
            "queued": len(self._alerts),
        })
        if not self._alerts:
            await self._stop_alarm()

    async def _stop_alarm(self) -> None:
        if self._alarm.is_sounding:
            await self._alarm.stop()
            await self._emit(EventType.ALARM_STOP)

    async def _notify(self, level: NoticeLevel, message: str, order_id: int) -> None:
        if self._notices is not None:
            await self._notices.route(Notice(level=level, message=message, order_id=order_id))

    async def _emit(self, event_type: str, data: dict | None = None) -> None:
        if self._bus is not None:
            await self._bus.emit(Event(type=event_type, data=data or {}, source="queue"))
