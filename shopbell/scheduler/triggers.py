"""
Trigger implementations — compute how long to wait before the next fire.

Usage:
    trigger = make_trigger({"type": "cron", "expression": "*/30 * * * *"})
    delay = trigger.seconds_until_next(now)   # now: aware datetime
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class Trigger(ABC):
    """Computes the delay until the next fire."""

    @abstractmethod
    def seconds_until_next(self, now: datetime) -> float:
        """
        Seconds from `now` until the next fire.

        Args:
            now: Timezone-aware current time. Cron expressions are evaluated
                 in the timezone of `now`.
        """
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description, e.g. 'every 15s'."""
        ...


class CronTrigger(Trigger):
    """
    Fires on a wall-clock schedule.

    expression: standard 5-field cron string, e.g. "*/30 * * * *" fires at
    :00 and :30 of every hour regardless of when the client started.

    Requires the `croniter` package.
    """

    def __init__(self, expression: str) -> None:
        from croniter import croniter

        if not croniter.is_valid(expression):
            raise ValueError(f"Invalid cron expression: {expression!r}")
        self._expression = expression

    def seconds_until_next(self, now: datetime) -> float:
        from croniter import croniter

        it = croniter(self._expression, now)
        nxt: datetime = it.get_next(datetime)
        return max(0.0, (nxt - now).total_seconds())

    @property
    def description(self) -> str:
        return f"cron({self._expression})"


class IntervalTrigger(Trigger):
    """Fires every N seconds."""

    def __init__(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("Interval must be positive")
        self._seconds = seconds

    def seconds_until_next(self, now: datetime) -> float:
        return self._seconds

    @property
    def description(self) -> str:
        s = self._seconds
        if s >= 60 and s % 60 == 0:
            return f"every {int(s) // 60}m"
        return f"every {s:g}s"


def make_trigger(trigger_dict: dict) -> Trigger:
    """
    Build a Trigger from a plain dict (config files store them this way).

    Raises ValueError for unknown trigger types.
    """
    t = trigger_dict.get("type", "")
    if t == "cron":
        return CronTrigger(trigger_dict["expression"])
    elif t == "interval":
        return IntervalTrigger(float(trigger_dict["seconds"]))
    else:
        raise ValueError(f"Unknown trigger type: {t!r}")
