# aidon_monitor/services/scheduler.py
"""Single-threaded event loop for the HAN pipeline.

Chunk arrivals (posted from the serial reader thread) and alarm expiries are
executed one at a time on the thread that runs the loop, so a cancel or reset
issued by one event can never race with an expiry handled by another. The
clock is injectable; tests pass a fake clock and call ``run_pending()``.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import queue
import time
from typing import Any, Callable, Optional


class TimerHandle:
    __slots__ = ("deadline", "callback", "args", "cancelled")

    def __init__(self, deadline: float, callback: Callable[..., Any], args: tuple):
        self.deadline = deadline
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class Scheduler:
    def __init__(self, clock: Callable[[], float] = time.monotonic, log: Optional[logging.Logger] = None):
        self.clock = clock
        self.log = log or logging.getLogger(__name__)
        self._timers: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()
        self._inbox: queue.SimpleQueue = queue.SimpleQueue()
        self._running = False

    # ------------------------------------------------------------------
    def now(self) -> float:
        return self.clock()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self.clock() + max(0.0, delay), callback, args)
        heapq.heappush(self._timers, (handle.deadline, next(self._seq), handle))
        return handle

    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a callback for the loop thread. Safe from any thread."""
        self._inbox.put((callback, args))

    # ------------------------------------------------------------------
    def _run(self, callback: Callable[..., Any], args: tuple) -> None:
        try:
            callback(*args)
        except Exception:
            self.log.exception("Scheduled callback %r failed", callback)

    def _drain_inbox(self) -> int:
        count = 0
        while True:
            try:
                callback, args = self._inbox.get_nowait()
            except queue.Empty:
                return count
            self._run(callback, args)
            count += 1

    def _pop_due(self) -> Optional[TimerHandle]:
        now = self.clock()
        while self._timers:
            deadline, _, handle = self._timers[0]
            if handle.cancelled:
                heapq.heappop(self._timers)
                continue
            if deadline > now:
                return None
            heapq.heappop(self._timers)
            return handle
        return None

    def time_until_next(self) -> Optional[float]:
        while self._timers and self._timers[0][2].cancelled:
            heapq.heappop(self._timers)
        if not self._timers:
            return None
        return max(0.0, self._timers[0][0] - self.clock())

    def run_pending(self) -> int:
        """Run queued callbacks and due timers until nothing is left to do."""
        total = 0
        while True:
            ran = self._drain_inbox()
            handle = self._pop_due()
            if handle is not None:
                self._run(handle.callback, handle.args)
                ran += 1
            if not ran:
                return total
            total += ran

    def run_forever(self) -> None:
        self._running = True
        self.log.debug("Event loop started")
        while self._running:
            self.run_pending()
            if not self._running:
                break
            try:
                callback, args = self._inbox.get(timeout=self.time_until_next())
            except queue.Empty:
                continue
            self._run(callback, args)
        self.log.debug("Event loop stopped")

    def stop(self) -> None:
        self._running = False
        # Wake a loop blocked on the inbox.
        self._inbox.put((lambda: None, ()))


class Alarm:
    """Fire-once timer that can be re-armed, reset or cancelled."""

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[[], Any]):
        self.scheduler = scheduler
        self.delay = delay
        self._callback = callback
        self._handle: Optional[TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> None:
        if self._handle is None:
            self._handle = self.scheduler.call_later(self.delay, self._fire)

    def reset(self) -> None:
        self.cancel()
        self.arm()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()
