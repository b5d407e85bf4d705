"""
FallbackPoller — re-derives alerts from the full delivery list.

Two loops share one poll routine:

- the interval loop ("poll") runs only while the live feed is not
  CONNECTED, started and stopped by the ConnectionSupervisor;
- the alignment loop ("poll-align") polls once immediately and then on a
  wall-clock cadence (default :00 and :30), whatever the feed is doing.
  The live feed only carries "paid" events, so this is what keeps
  upcoming-delivery reminders flowing while the feed is healthy.

A poll that is still waiting on the server makes every other trigger a
no-op; stopping the interval loop lets such a poll finish.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from shopbell.core.events import Event, EventType
from shopbell.core.types import AlertKind, DeliveryRecord, DeliveryStatus
from shopbell.scheduler.triggers import CronTrigger, Trigger

if TYPE_CHECKING:
    from shopbell.alerts.intake import AlertIntake
    from shopbell.alerts.ledger import DismissalLedger
    from shopbell.alerts.prefs import Preferences
    from shopbell.backend.base import DeliveryBackend
    from shopbell.core.bus import EventBus
    from shopbell.core.clock import ClockSource
    from shopbell.core.config import PollerConfig
    from shopbell.core.timers import TimerSet

logger = logging.getLogger(__name__)

POLL_TIMER = "poll"
ALIGN_TIMER = "poll-align"


class FallbackPoller:
    """
    Periodic list-and-diff producer of PAID and UPCOMING candidates.

    Usage:
        poller = FallbackPoller(backend, clock, intake, ledger, prefs, timers, config)
        poller.start()            # interval loop, idempotent
        poller.start_alignment()  # wall-clock loop
        await poller.poll_once()
        poller.stop()
    """

    def __init__(
        self,
        backend: "DeliveryBackend",
        clock: "ClockSource",
        intake: "AlertIntake",
        ledger: "DismissalLedger",
        prefs: "Preferences",
        timers: "TimerSet",
        config: "PollerConfig",
        bus: "EventBus | None" = None,
        alignment: Trigger | None = None,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._intake = intake
        self._ledger = ledger
        self._prefs = prefs
        self._timers = timers
        self._config = config
        self._bus = bus
        self._alignment = alignment or CronTrigger(config.alignment_cron)
        self._lookahead = timedelta(minutes=config.lookahead_minutes)
        self._in_flight: asyncio.Task | None = None
        self.polls_completed = 0
        self.polls_skipped = 0

    # ━━━ Interval loop ━━━

    @property
    def is_active(self) -> bool:
        return self._timers.is_pending(POLL_TIMER)

    def start(self) -> None:
        if not self._timers.repeat(POLL_TIMER, self._config.interval, self.trigger, immediate=True):
            return
        logger.info(f"Fallback polling started (every {self._config.interval:g}s)")
        self._emit(EventType.POLLER_STARTED)

    def stop(self) -> None:
        if not self._timers.cancel(POLL_TIMER):
            return
        logger.info("Fallback polling stopped")
        self._emit(EventType.POLLER_STOPPED)

    # ━━━ Alignment loop ━━━

    def start_alignment(self) -> None:
        if self._timers.repeat(ALIGN_TIMER, self._until_aligned, self.trigger, immediate=True):
            logger.debug(f"Poll alignment started ({self._alignment.description})")

    def stop_alignment(self) -> None:
        self._timers.cancel(ALIGN_TIMER)

    async def _until_aligned(self) -> float:
        return self._alignment.seconds_until_next(await self._clock.now())

    # ━━━ Polling ━━━

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def trigger(self) -> bool:
        """Start a poll in its own task unless one is already running."""
        if self.in_flight:
            self.polls_skipped += 1
            logger.debug("Poll already in flight, skipping")
            return False
        self._in_flight = asyncio.create_task(self._poll(), name="poll")
        return True

    async def poll_once(self) -> bool:
        """Run one poll to completion. False if one was already in flight."""
        if not self.trigger():
            return False
        assert self._in_flight is not None
        await self._in_flight
        return True

    async def shutdown(self) -> None:
        """Stop both loops and abandon any in-flight request."""
        self.stop()
        self.stop_alignment()
        task, self._in_flight = self._in_flight, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _poll(self) -> None:
        try:
            now = await self._clock.now()
            today = self._clock.day_of(now)
            records = await self._backend.list_deliveries(today)
            paid, upcoming = await self._derive(records, now, today)
            self.polls_completed += 1
            logger.debug(f"Poll for {today}: {len(records)} deliveries, {paid} paid, {upcoming} upcoming admitted")
            self._emit(EventType.POLL_COMPLETE, {"day": today, "count": len(records)})
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Poll failed (non-fatal): {e}")

    async def _derive(
        self,
        records: list[DeliveryRecord],
        now: datetime,
        today: str,
    ) -> tuple[int, int]:
        paid = 0
        for record in records:
            if record.is_unaccepted_paid:
                if await self._intake.submit(record.to_alert(AlertKind.PAID), source="poll"):
                    paid += 1

        upcoming = 0
        if not await self._prefs.upcoming_enabled():
            return paid, upcoming

        for record in records:
            if not self.is_upcoming(record, now):
                continue
            if await self._ledger.is_dismissed(today, record.id):
                continue
            if await self._intake.submit(record.to_alert(AlertKind.UPCOMING), source="poll"):
                upcoming += 1
        return paid, upcoming

    def is_upcoming(self, record: DeliveryRecord, now: datetime) -> bool:
        """Eligible status, known schedule and 0 < scheduled - now <= lookahead."""
        if record.status not in DeliveryStatus.UPCOMING_ELIGIBLE or not record.has_schedule:
            return False
        scheduled = self._scheduled_at(record, now)
        if scheduled is None:
            return False
        delta = scheduled - now
        return timedelta(0) < delta <= self._lookahead

    @staticmethod
    def _scheduled_at(record: DeliveryRecord, now: datetime) -> datetime | None:
        try:
            day = datetime.strptime(record.delivery_date, "%Y-%m-%d")
            return day.replace(
                hour=record.scheduled_hour,
                minute=record.scheduled_minute,
                tzinfo=now.tzinfo,
            )
        except ValueError:
            logger.debug(f"Unusable schedule on order {record.id}: {record.delivery_date} {record.scheduled_hour}:{record.scheduled_minute}")
            return None

    def _emit(self, event_type: str, data: dict | None = None) -> None:
        if self._bus is not None:
            self._bus.emit_nowait(Event(type=event_type, data=data or {}, source="poller"))
