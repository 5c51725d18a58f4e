"""
Timer primitives used by the refresh controller.

Two interchangeable implementations are provided:

- ``LoopTimers`` schedules callbacks on an asyncio event loop.
- ``ManualTimers`` keeps a virtual clock that only moves when ``advance()``
  is called, for simulations and deterministic tests.

Both guarantee that a ``call_later`` callback fires at most once, that a
``call_every`` callback fires at most once per elapsed interval, and that
nothing fires after ``cancel()``, including a cancel issued from inside
the callback itself.
"""

import asyncio
import heapq
import itertools
from typing import Callable, Optional, Protocol

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callback) -> TimerHandle: ...


class _RepeatingLoopTimer:
    """Re-arms a loop ``call_later`` after every firing until cancelled."""

    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callback):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    def start(self) -> "_RepeatingLoopTimer":
        self._handle = self._loop.call_later(self._interval, self._fire)
        return self

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm before running so a cancel() inside the callback sticks
        self._handle = self._loop.call_later(self._interval, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class LoopTimers:
    """Timers backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        return self._get_loop().call_later(delay, callback)

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        return _RepeatingLoopTimer(self._get_loop(), interval, callback).start()


class _ManualTimer:
    def __init__(self, callback: Callback, interval: Optional[float] = None):
        self.callback = callback
        self.interval = interval
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.fired

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Timers driven by a virtual clock, in seconds."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def _push(self, due: float, timer: _ManualTimer) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), timer))

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        timer = _ManualTimer(callback)
        self._push(self._now + delay, timer)
        return timer

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        timer = _ManualTimer(callback, interval=interval)
        self._push(self._now + interval, timer)
        return timer

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing due callbacks in time order.

        Callbacks scheduled while advancing fire too if they fall due within
        the window. Returns the number of callbacks fired.
        """
        target = self._now + seconds
        fired = 0

        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue

            self._now = due
            if timer.interval is not None:
                self._push(due + timer.interval, timer)
            else:
                timer.fired = True

            timer.callback()
            fired += 1

        self._now = target
        return fired

    def pending(self) -> int:
        """Number of timers that can still fire."""
        return sum(1 for _, _, timer in self._queue if timer.active)
