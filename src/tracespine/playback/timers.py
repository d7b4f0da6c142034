"""Timer backends for playback scheduling.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TIMER BACKEND PROTOCOL                                                       │
│                                                                               │
│  Backends control WHEN a deferred callback fires; the scheduler controls     │
│  WHAT happens when it does.                                                  │
│                                                                               │
│   ┌─────────────────────┐   call_later(ms, cb)   ┌─────────────────────┐     │
│   │  PlaybackScheduler  │ ─────────────────────► │  TimerBackend       │     │
│   │                     │ ◄───────────────────── │                     │     │
│   └─────────────────────┘      cb() later        └─────────────────────┘     │
│                                                                               │
│  Implementations:                                                             │
│  - AsyncioTimerBackend: event loop call_later (default)                      │
│  - ManualTimerBackend:  virtual clock, fired explicitly (tests, --instant)   │
│                                                                               │
│  Both are single-threaded: callbacks run on the thread driving the loop     │
│  or calling advance(), never concurrently with each other.                   │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from tracespine.core.logging import get_logger

logger = get_logger(__name__)

TimerCallback = Callable[[], None]


@runtime_checkable
class TimerHandle(Protocol):
    """Handle to one armed timer."""

    def cancel(self) -> None:
        """Prevent the callback from firing. Idempotent."""
        ...

    def cancelled(self) -> bool:
        ...


@runtime_checkable
class TimerBackend(Protocol):
    """Protocol for deferred-callback backends.

    Example (custom backend):
        >>> class MyBackend:
        ...     name = "custom"
        ...
        ...     def call_later(self, delay_ms, callback):
        ...         return my_loop.schedule(delay_ms, callback)
    """

    name: str

    def call_later(self, delay_ms: float, callback: TimerCallback) -> TimerHandle:
        """Arm ``callback`` to run once after ``delay_ms`` milliseconds.

        Never runs the callback synchronously, even for a zero delay.
        """
        ...


class AsyncioTimerBackend:
    """Timer backend on top of an asyncio event loop.

    If no loop is given, the running loop is looked up each time a timer is
    armed, so the backend must be used from inside a running loop.
    """

    name = "asyncio"

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay_ms: float, callback: TimerCallback) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay_ms, 0.0) / 1000.0, callback)


class ManualTimer:
    """Timer armed on a :class:`ManualTimerBackend`."""

    __slots__ = ("due_ms", "callback", "_cancelled")

    def __init__(self, due_ms: float, callback: TimerCallback) -> None:
        self.due_ms = due_ms
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "armed"
        return f"ManualTimer(due_ms={self.due_ms}, {state})"


class ManualTimerBackend:
    """Virtual-clock timer backend.

    Nothing fires until :meth:`advance` or :meth:`run_until_idle` is called.
    Timers fire in due-time order (ties in arm order) and the clock is moved
    to each timer's due time before its callback runs, so timers armed by a
    callback are honoured within the same ``advance`` window.

    Example:
        >>> timers = ManualTimerBackend()
        >>> fired = []
        >>> timers.call_later(100, lambda: fired.append(timers.now_ms))
        ManualTimer(due_ms=100.0, armed)
        >>> timers.advance(100)
        1
        >>> fired
        [100.0]
    """

    name = "manual"

    def __init__(self) -> None:
        self._now_ms = 0.0
        self._seq = itertools.count()
        self._heap: list[tuple[float, int, ManualTimer]] = []
        self._fired = 0

    @property
    def now_ms(self) -> float:
        return self._now_ms

    @property
    def fired(self) -> int:
        """Number of callbacks run so far."""
        return self._fired

    @property
    def pending(self) -> int:
        """Number of armed, uncancelled timers."""
        return sum(1 for _, _, t in self._heap if not t.cancelled())

    def next_due(self) -> float | None:
        """Due time of the earliest pending timer, or ``None``."""
        self._drop_cancelled()
        return self._heap[0][0] if self._heap else None

    def call_later(self, delay_ms: float, callback: TimerCallback) -> ManualTimer:
        timer = ManualTimer(self._now_ms + max(delay_ms, 0.0), callback)
        heapq.heappush(self._heap, (timer.due_ms, next(self._seq), timer))
        return timer

    def advance(self, ms: float) -> int:
        """Move the clock forward by ``ms``, firing every timer that falls due.

        Returns the number of callbacks run.
        """
        target = self._now_ms + max(ms, 0.0)
        count = 0
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            count += self._fire_next()
        self._now_ms = target
        return count

    def run_until_idle(self, limit: int = 100_000) -> int:
        """Fire timers (moving the clock) until none are pending.

        ``limit`` bounds the number of callbacks so a self-rearming callback
        cannot spin forever.
        """
        count = 0
        while count < limit and self.next_due() is not None:
            count += self._fire_next()
        if count >= limit and self.next_due() is not None:
            logger.warning("manual_timers_not_idle", limit=limit, pending=self.pending)
        return count

    def _fire_next(self) -> int:
        due, _, timer = heapq.heappop(self._heap)
        self._now_ms = max(self._now_ms, due)
        self._fired += 1
        timer.callback()
        return 1

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled():
            heapq.heappop(self._heap)
