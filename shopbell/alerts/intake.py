"""
AlertIntake — the single door into the alert queue.

Both the live feed and the poller hand candidates here. A candidate is
admitted only if the dedup store says it is new; admitted paid alerts
also get a receipt printed in the background.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from shopbell.alerts.dedup import DedupStore
from shopbell.core.types import AlertKind, DeliveryAlert
from shopbell.notifications.base import Notice, NoticeLevel

if TYPE_CHECKING:
    from shopbell.alerts.queue import AlertQueue
    from shopbell.backend.printer import ReceiptPrinter
    from shopbell.notifications.router import NoticeRouter

logger = logging.getLogger(__name__)


class AlertIntake:
    """
    Dedup gate plus receipt side effect.

    Usage:
        intake = AlertIntake(dedup, queue, printer=printer, notices=router)
        admitted = await intake.submit(alert, source="feed")
    """

    def __init__(
        self,
        dedup: DedupStore,
        queue: "AlertQueue",
        printer: "ReceiptPrinter | None" = None,
        notices: "NoticeRouter | None" = None,
    ) -> None:
        self._dedup = dedup
        self._queue = queue
        self._printer = printer
        self._notices = notices
        self._print_tasks: set[asyncio.Task] = set()

    async def submit(self, alert: DeliveryAlert, source: str = "") -> bool:
        """Admit the alert unless this (kind, order) was already seen."""
        if not self._dedup.should_admit(alert.kind, alert.order_id):
            logger.debug(f"Duplicate {alert.kind.value} alert for order {alert.order_id} from {source}")
            return False

        logger.info(f"Admitting {alert.kind.value} alert for order {alert.order_id} (via {source})")
        await self._queue.enqueue(alert)

        if alert.kind == AlertKind.PAID and self._printer is not None:
            task = asyncio.create_task(self._print(alert), name=f"print:{alert.order_id}")
            self._print_tasks.add(task)
            task.add_done_callback(self._print_tasks.discard)
        return True

    async def _print(self, alert: DeliveryAlert) -> None:
        assert self._printer is not None
        try:
            ok = await self._printer.print_receipt(alert.payload.to_receipt(alert.order_id))
        except Exception as e:
            logger.warning(f"Receipt printing raised for order {alert.order_id}: {e}")
            ok = False
        if ok:
            await self._notify(NoticeLevel.INFO, f"Receipt printed for order {alert.order_id}.", alert.order_id)
        else:
            await self._notify(
                NoticeLevel.WARNING,
                f"Receipt printing failed for order {alert.order_id}. Check the printer connection.",
                alert.order_id,
            )

    async def _notify(self, level: NoticeLevel, message: str, order_id: int) -> None:
        if self._notices is not None:
            await self._notices.route(Notice(level=level, message=message, order_id=order_id))

    async def drain(self) -> None:
        """Wait for in-flight receipt jobs."""
        if self._print_tasks:
            await asyncio.gather(*list(self._print_tasks), return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in list(self._print_tasks):
            task.cancel()
