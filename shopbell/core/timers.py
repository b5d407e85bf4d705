"""
TimerSet — named, individually cancellable asyncio timers.

Every timer in the client (reconnect backoff, poll interval, poll
alignment, watchdog) lives in one TimerSet so teardown can cancel all
of them in one call and tests can inspect what is pending.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)

# Callbacks and delay sources may be plain or async callables
TimerCallback = Callable[[], Any]
DelaySource = Union[float, Callable[[], Any]]


class TimerSet:
    """
    Owns one asyncio task per timer name.

    Usage:
        timers = TimerSet()
        timers.schedule("reconnect", 8.0, supervisor.reconnect)
        timers.repeat("watchdog", 10.0, supervisor.check)
        timers.cancel("reconnect")
        await timers.shutdown()
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    # ━━━ Scheduling ━━━

    def schedule(self, name: str, delay: float, callback: TimerCallback) -> bool:
        """
        Fire callback once after delay seconds.

        Returns False (and schedules nothing) if a timer with this name is
        already pending.
        """
        if self.is_pending(name):
            return False
        self._tasks[name] = asyncio.create_task(
            self._run_once(name, delay, callback), name=f"timer:{name}"
        )
        return True

    def repeat(
        self,
        name: str,
        delay: DelaySource,
        callback: TimerCallback,
        *,
        immediate: bool = False,
    ) -> bool:
        """
        Fire callback repeatedly until cancelled.

        delay is either a fixed number of seconds or a callable evaluated
        before every wait (used for wall-clock aligned cadences).
        Returns False if a timer with this name is already running.
        """
        if self.is_pending(name):
            return False
        self._tasks[name] = asyncio.create_task(
            self._run_repeating(name, delay, callback, immediate), name=f"timer:{name}"
        )
        return True

    # ━━━ Cancellation ━━━

    def cancel(self, name: str) -> bool:
        """Cancel one timer. Returns True if it was pending."""
        task = self._tasks.pop(name, None)
        if task is None or task.done():
            return False
        if task is not asyncio.current_task():
            task.cancel()
        return True

    def cancel_all(self) -> None:
        for name in list(self._tasks):
            self.cancel(name)

    async def shutdown(self) -> None:
        """Cancel every timer and wait for the tasks to finish."""
        tasks = [t for t in self._tasks.values() if t is not asyncio.current_task()]
        self.cancel_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ━━━ Introspection ━━━

    def is_pending(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    @property
    def pending(self) -> list[str]:
        return sorted(name for name in self._tasks if self.is_pending(name))

    # ━━━ Internals ━━━

    async def _run_once(self, name: str, delay: float, callback: TimerCallback) -> None:
        await asyncio.sleep(max(0.0, delay))
        # Release the name first so the callback may schedule it again
        if self._tasks.get(name) is asyncio.current_task():
            del self._tasks[name]
        await self._invoke(name, callback)

    async def _run_repeating(
        self,
        name: str,
        delay: DelaySource,
        callback: TimerCallback,
        immediate: bool,
    ) -> None:
        if immediate:
            await self._invoke(name, callback)
        # Stops once cancel(name) has released the name, even from inside the callback
        while self._tasks.get(name) is asyncio.current_task():
            wait = await _resolve(delay)
            await asyncio.sleep(max(0.0, wait))
            if self._tasks.get(name) is not asyncio.current_task():
                break
            await self._invoke(name, callback)

    @staticmethod
    async def _invoke(name: str, callback: TimerCallback) -> None:
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Timer {name!r} callback error (non-fatal): {e}", exc_info=True)


async def _resolve(delay: DelaySource) -> float:
    if callable(delay):
        value = delay()
        if inspect.isawaitable(value):
            value = await value
        return float(value)
    return float(delay)
