"""
Notice primitives — Notice dataclass and NoticeChannel ABC.

Notices are the short user-facing messages the client produces:
"Order 900 could not be accepted", "Receipt printing failed", ...
Every display target implements NoticeChannel; the NoticeRouter
fans a notice out to all of them.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class NoticeLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A single message for the staff member at the terminal."""

    level: NoticeLevel
    message: str
    order_id: int | None = None
    created_at: float = field(default_factory=time.time)


class NoticeChannel(ABC):
    """
    Abstract display target.

    The router skips channels whose is_active is False.
    deliver() returns True if the notice was actually shown/stored.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. 'console', 'file'."""
        ...

    @property
    def is_active(self) -> bool:
        return True

    @abstractmethod
    async def deliver(self, notice: Notice) -> bool:
        ...
