"""Single-timeline scheduling for feedback, advance and game-over timers.

All callbacks run on the caller's timeline (the asyncio loop, or whoever drives
:class:`ManualScheduler`), so session state needs no locking.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import heapq
import itertools
from typing import Callable, Protocol

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock plus delayed-callback source."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...


@dataclass(order=True)
class _ManualEntry:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic virtual-clock scheduler.

    Time only moves when :meth:`advance` is called; due callbacks run in due
    order, including callbacks scheduled by callbacks within the window.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[_ManualEntry] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callback) -> _ManualEntry:
        entry = _ManualEntry(due=self._now + max(0.0, delay), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, entry)
        return entry

    @property
    def pending(self) -> int:
        """Number of scheduled, not yet cancelled callbacks."""

        return sum(1 for entry in self._queue if not entry.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every callback that falls due."""

        target = self._now + seconds
        while self._queue and self._queue[0].due <= target:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = entry.due
            entry.callback()
        self._now = target

    def run_pending(self) -> None:
        """Run callbacks that are already due without moving the clock."""

        self.advance(0.0)


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback)


class TimerSlot:
    """One named timer: scheduling again replaces the pending callback."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def schedule(self, delay: float, callback: Callback) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self._scheduler.call_later(delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class RepeatingTimer:
    """Fixed-interval timer that re-arms itself until cancelled."""

    def __init__(self, scheduler: Scheduler) -> None:
        self._slot = TimerSlot(scheduler)
        self._interval = 0.0
        self._callback: Callback | None = None

    @property
    def active(self) -> bool:
        return self._slot.active

    def start(self, interval: float, callback: Callback) -> None:
        self._interval = interval
        self._callback = callback
        self._slot.schedule(interval, self._tick)

    def _tick(self) -> None:
        # Re-arm first so the callback may cancel the timer.
        self._slot.schedule(self._interval, self._tick)
        if self._callback is not None:
            self._callback()

    def cancel(self) -> None:
        self._slot.cancel()
