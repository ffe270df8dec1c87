"""
Delayed callbacks on the frame clock.

The host loop is single threaded, so instead of wall-clock timers the
scheduler is advanced with each frame's timestamp and runs whatever has come
due. Callbacks therefore mutate shared state only between frames.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List


logger = logging.getLogger(__name__)


@dataclass(order=True)
class _Entry:
    due_ms: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class TimerHandle:
    def __init__(self, entry: _Entry) -> None:
        self._entry = entry

    @property
    def due_ms(self) -> float:
        return self._entry.due_ms

    @property
    def cancelled(self) -> bool:
        return self._entry.cancelled

    def cancel(self) -> None:
        self._entry.cancelled = True


class Scheduler:
    def __init__(self) -> None:
        self._queue: List[_Entry] = []
        self._seq = itertools.count()
        self._now_ms = 0.0

    @property
    def now_ms(self) -> float:
        return self._now_ms

    def call_at(self, due_ms: float, callback: Callable[[], None]) -> TimerHandle:
        entry = _Entry(due_ms=due_ms, seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, entry)
        return TimerHandle(entry)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return self.call_at(self._now_ms + max(0.0, delay_ms), callback)

    def cancel(self, handle: TimerHandle) -> None:
        handle.cancel()

    def run_due(self, now_ms: float) -> int:
        """Advance the clock to ``now_ms`` and run every callback due by then."""
        self._now_ms = max(self._now_ms, now_ms)
        ran = 0
        while self._queue and self._queue[0].due_ms <= self._now_ms:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            try:
                entry.callback()
            except Exception:
                logger.warning("Delayed callback raised", exc_info=True)
            ran += 1
        return ran

    def pending(self) -> int:
        return sum(1 for e in self._queue if not e.cancelled)

    def clear(self) -> None:
        for entry in self._queue:
            entry.cancelled = True
        self._queue.clear()
