# scheduler.py
"""Single-threaded cooperative timers, driven from the main loop."""
from __future__ import annotations

import heapq
import itertools
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple


@dataclass(order=True)
class TimerHandle:
    due: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: Tuple[Any, ...] = field(compare=False, default=())
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:
    """
    One-shot timers. Nothing runs on its own: the owner calls
    :meth:`run_due` from its loop, so callbacks never overlap.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._heap: List[TimerHandle] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(self.clock() + max(0.0, delay), next(self._seq), callback, args)
        heapq.heappush(self._heap, handle)
        return handle

    def call_at(self, when: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(when, next(self._seq), callback, args)
        heapq.heappush(self._heap, handle)
        return handle

    def cancel_all(self) -> None:
        for handle in self._heap:
            handle.cancel()
        self._heap.clear()

    @property
    def pending(self) -> int:
        return sum(1 for h in self._heap if not h.cancelled)

    def next_due(self) -> Optional[float]:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0].due if self._heap else None

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed, in deadline order."""
        fired = 0
        now = self.clock()
        while self._heap and self._heap[0].due <= now:
            handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle.cancelled = True  # One-shot
            try:
                handle.callback(*handle.args)
            except Exception as exc:  # noqa: BLE001
                print(f"[Timers] Callback {handle.callback!r} failed: {exc}")
                traceback.print_exc()
            fired += 1
        return fired


class FixedTick:
    """
    Periodic task on a fixed grid.

    A tick that arrives while the previous one is still running is skipped,
    and slots missed because a tick overran are skipped too, never queued.
    """

    def __init__(self, timers: TimerQueue, period_s: float, callback: Callable[[], Any]):
        if period_s <= 0:
            raise ValueError("period must be positive")
        self.timers = timers
        self.period_s = period_s
        self.callback = callback

        self.busy = False
        self.fired = 0
        self.skipped = 0
        self._handle: Optional[TimerHandle] = None
        self._next_due: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, immediate: bool = True) -> None:
        if self.running:
            return
        first = self.timers.clock() + (0.0 if immediate else self.period_s)
        self._schedule(first)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._next_due = None

    def fire(self) -> bool:
        """Run the callback now unless a run is already in flight."""
        if self.busy:
            self.skipped += 1
            return False
        self.busy = True
        try:
            self.callback()
            self.fired += 1
        finally:
            self.busy = False
        return True

    # ----------------- Internal core -----------------
    def _schedule(self, when: float) -> None:
        self._next_due = when
        self._handle = self.timers.call_at(when, self._on_timer)

    def _on_timer(self) -> None:
        due = self._next_due if self._next_due is not None else self.timers.clock()
        try:
            self.fire()
        finally:
            # Keep ticking even if this run raised, unless stopped from inside it
            if self._handle is not None:
                self._schedule_after(due)

    def _schedule_after(self, due: float) -> None:
        now = self.timers.clock()
        nxt = due + self.period_s
        if nxt <= now:
            missed = int((now - due) // self.period_s)
            self.skipped += missed
            nxt = due + (missed + 1) * self.period_s
        self._schedule(nxt)
