"""
FileChannel — always-on record of notices in ~/.shopbell/notices.log.

Acts as a silent fallback and permanent record for the day's action
failures and printer warnings.
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path

import aiofiles

from shopbell.notifications.base import Notice, NoticeChannel

logger = logging.getLogger(__name__)


class FileChannel(NoticeChannel):
    """Appends notices to a plain-text log file."""

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path or (Path.home() / ".shopbell" / "notices.log")

    @property
    def name(self) -> str:
        return "file"

    async def deliver(self, notice: Notice) -> bool:
        try:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            ts = datetime.datetime.fromtimestamp(notice.created_at).strftime(
                "%Y-%m-%d %H:%M:%S"
            )
            order = f" [order {notice.order_id}]" if notice.order_id is not None else ""
            entry = f"[{ts}] [{notice.level.value.upper()}]{order} {notice.message}\n"
            async with aiofiles.open(self._log_path, mode="a", encoding="utf-8") as f:
                await f.write(entry)
            return True
        except Exception as e:
            logger.warning(f"FileChannel write failed: {e}")
            return False
