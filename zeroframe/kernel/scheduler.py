# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Clocks and the deferred-callback scheduler used for simulated job execution.

Everything runs on the caller's thread: ``run_pending`` fires the callbacks
that are due, in due-time order. Scheduling returns a handle that can be
cancelled until the callback has fired.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

logger = logging.getLogger("zeroframe.scheduler")


class SystemClock:
    """Wall clock"""

    def now(self) -> float:
        return time.time()

    def now_iso(self) -> str:
        return datetime.fromtimestamp(self.now(), timezone.utc).isoformat()


class ManualClock(SystemClock):
    """Clock that only moves when told to"""

    def __init__(self, start: float = 1_700_000_000.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float):
        if seconds < 0:
            raise ValueError("Clock cannot move backward")
        self._now += seconds


@dataclass(order=True)
class TimerHandle:
    """A scheduled callback"""
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    label: str = field(default="", compare=False)
    cancelled: bool = field(default=False, compare=False)
    fired: bool = field(default=False, compare=False)

    def cancel(self) -> bool:
        """Cancel the timer. Returns False if it already fired."""
        if self.fired:
            return False
        self.cancelled = True
        return True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class DeferredScheduler:
    """Single-threaded timer queue"""

    def __init__(self, clock: Optional[SystemClock] = None):
        self.clock = clock or SystemClock()
        self._queue: List[TimerHandle] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None], label: str = "") -> TimerHandle:
        handle = TimerHandle(
            due=self.clock.now() + max(0.0, delay),
            seq=next(self._seq),
            callback=callback,
            label=label,
        )
        heapq.heappush(self._queue, handle)
        logger.debug(f"Scheduled {label or 'callback'} in {delay:.2f}s")
        return handle

    def run_pending(self) -> int:
        """Fire every due, non-cancelled callback. Returns how many fired."""
        fired = 0
        now = self.clock.now()
        while self._queue and self._queue[0].due <= now:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            handle.fired = True
            fired += 1
            try:
                handle.callback()
            except Exception as e:
                logger.error(f"Deferred callback {handle.label or '?'} failed: {e}", exc_info=True)
        return fired

    def pending(self) -> int:
        return sum(1 for h in self._queue if h.active)

    def next_due(self) -> Optional[float]:
        due = [h.due for h in self._queue if h.active]
        return min(due) if due else None

    def clear(self):
        for handle in self._queue:
            handle.cancelled = True
        self._queue.clear()
