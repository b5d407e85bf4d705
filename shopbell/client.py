"""
AlertClient — composition root for the delivery alerting client.

Wires the stores, clock, queue, live feed, poller and supervisor
together around one event bus and one timer set. Nothing below this
module reaches for a global; everything is handed in here.
"""

from __future__ import annotations

import logging

from shopbell.alerts.alarm import Alarm, SilentAlarm
from shopbell.alerts.dedup import DedupStore
from shopbell.alerts.intake import AlertIntake
from shopbell.alerts.ledger import DismissalLedger
from shopbell.alerts.prefs import Preferences
from shopbell.alerts.queue import AlertQueue
from shopbell.backend.base import DeliveryBackend
from shopbell.backend.printer import ReceiptPrinter
from shopbell.core.bus import EventBus
from shopbell.core.clock import ClockSource
from shopbell.core.config import ShopbellConfig
from shopbell.core.events import Event, EventType
from shopbell.core.timers import TimerSet
from shopbell.feed.channel import LiveFeedChannel
from shopbell.feed.poller import FallbackPoller
from shopbell.feed.supervisor import ConnectionSupervisor
from shopbell.notifications.router import NoticeRouter
from shopbell.store.base import StorageProvider
from shopbell.store.sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


class AlertClient:
    """
    The running client.

    Usage:
        client = AlertClient(config, backend=HttpBackend(config.server, config.feed))
        client.notices.register(ConsoleChannel(console))
        await client.start()
        ...
        await client.queue.accept(501, estimated_minutes=30)
        ...
        await client.stop()
    """

    def __init__(
        self,
        config: ShopbellConfig,
        backend: DeliveryBackend,
        storage: StorageProvider | None = None,
        printer: ReceiptPrinter | None = None,
        alarm: Alarm | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.config = config
        self.backend = backend
        self.storage = storage or SQLiteStorage(config.store.db_path)
        self.printer = printer
        self.bus = bus or EventBus()
        self.timers = TimerSet()
        self.notices = NoticeRouter(bus=self.bus)

        self.clock = ClockSource(backend, timezone=config.server.timezone)
        self.dedup = DedupStore()
        self.ledger = DismissalLedger(self.storage)
        self.prefs = Preferences(self.storage, config.alerts)

        self.queue = AlertQueue(
            backend,
            self.ledger,
            self.dedup,
            self.clock,
            alarm or SilentAlarm(),
            self.prefs,
            notices=self.notices,
            bus=self.bus,
        )
        self.intake = AlertIntake(self.dedup, self.queue, printer=printer, notices=self.notices)

        self.channel = LiveFeedChannel(backend, self.intake, event_names=config.feed.event_names)
        self.poller = FallbackPoller(
            backend,
            self.clock,
            self.intake,
            self.ledger,
            self.prefs,
            self.timers,
            config.poller,
            bus=self.bus,
        )
        self.supervisor = ConnectionSupervisor(
            self.channel,
            self.poller,
            self.ledger,
            self.clock,
            self.bus,
            self.timers,
            config.feed,
        )
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        if isinstance(self.storage, SQLiteStorage):
            await self.storage.initialize()
        logger.info(f"Shopbell client starting against {self.config.server.base_url}")
        await self.bus.emit(Event(type=EventType.SYSTEM_START, source="client"))
        await self.supervisor.start()

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        logger.info("Shopbell client stopping")

        await self.supervisor.stop()
        await self.bus.drain()
        self.intake.cancel_pending()
        await self.intake.drain()
        await self.queue.alarm.stop()

        await self.bus.emit(Event(type=EventType.SYSTEM_STOP, source="client"))

        await self.backend.close()
        if self.printer is not None:
            await self.printer.close()
        await self.storage.close()
