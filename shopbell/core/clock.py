"""
ClockSource — trusted "now" from the shop server.

Device clocks drift and can be edited by staff, so anything that decides
"is this delivery within the next hour" or "what day is today" asks the
server. If the server can't answer, the local clock is used and the
degradation is logged.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Callable
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from shopbell.backend.base import DeliveryBackend

logger = logging.getLogger(__name__)


class ClockSource:
    """
    Resolves the current time once per operation.

    Usage:
        clock = ClockSource(backend, timezone="Asia/Seoul")
        now = await clock.now()        # aware datetime in shop timezone
        today = await clock.today()    # "2025-03-14"
    """

    def __init__(
        self,
        backend: "DeliveryBackend",
        timezone: str = "Asia/Seoul",
        local_time: Callable[[], float] | None = None,
    ) -> None:
        self._backend = backend
        self._tz = ZoneInfo(timezone)
        self._local_time = local_time or time.time
        self.degraded = False

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    async def now(self) -> datetime:
        try:
            ts = await self._backend.get_server_time()
            # Out-of-range timestamps fail here like a failed query
            moment = datetime.fromtimestamp(ts, tz=self._tz)
            if self.degraded:
                logger.info("Server time available again")
            self.degraded = False
            return moment
        except Exception as e:
            if not self.degraded:
                logger.warning(f"Server time unavailable, using local clock: {e}")
            self.degraded = True
        return datetime.fromtimestamp(self._local_time(), tz=self._tz)

    async def today(self) -> str:
        return self.day_of(await self.now())

    def day_of(self, moment: datetime) -> str:
        """YYYY-MM-DD of a moment, in the shop timezone."""
        return moment.astimezone(self._tz).strftime("%Y-%m-%d")
