from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

LOGGER = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop (the running loop by default)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass(order=True)
class VirtualTimer:
    due: float
    sequence: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """Manually advanced clock; timers fire in due order during ``advance``."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)
        self._timers: list[VirtualTimer] = []
        self._sequence = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(
            due=self.now + max(0.0, float(delay)),
            sequence=next(self._sequence),
            callback=callback,
        )
        heapq.heappush(self._timers, timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def advance(self, seconds: float) -> int:
        target = self.now + max(0.0, float(seconds))
        fired = 0
        while self._timers and self._timers[0].due <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self.now = timer.due
            timer.callback()
            fired += 1
        self.now = target
        return fired


class Debouncer:
    """Holds at most one pending callback; scheduling replaces the pending one."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, fn: Callable[[], None], delay: float) -> None:
        self.cancel_pending()

        def _fire() -> None:
            self._handle = None
            fn()

        try:
            self._handle = self._scheduler.call_later(delay, _fire)
        except RuntimeError as exc:
            # No running event loop to defer on.
            LOGGER.warning("Debounce unavailable (%s); running callback now", exc)
            fn()

    def cancel_pending(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True
