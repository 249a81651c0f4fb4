"""
Raid Warden - Sliding Window Counter
====================================

Time-windowed event counter with prune-on-read semantics.

DESIGN:
    Timestamps are milliseconds since epoch from an injectable clock so
    tests can place events exactly on the window boundary. Every read and
    write prunes first; an entry t survives only while t > now - window.

    All mutation happens under one lock with no await in between, so
    record_and_count() is atomic even if events are dispatched from more
    than one thread.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque, Optional


Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return int(time.time() * 1000)


class SlidingWindowCounter:
    """
    Counts events within a trailing window.

    Attributes:
        window_ms: Window duration in milliseconds, fixed at construction.
    """

    def __init__(self, window_ms: int, clock: Optional[Clock] = None) -> None:
        if window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {window_ms}")
        self.window_ms = window_ms
        self._clock: Clock = clock or now_ms
        self._events: Deque[int] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: int) -> None:
        cutoff = now - self.window_ms
        while self._events and self._events[0] <= cutoff:
            self._events.popleft()

    def record(self) -> None:
        """Append the current instant."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._events.append(now)

    def count(self) -> int:
        """Prune expired entries and return how many remain."""
        with self._lock:
            self._prune(self._clock())
            return len(self._events)

    def record_and_count(self) -> int:
        """Append the current instant and return the pruned count as one step."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._events.append(now)
            return len(self._events)

    def reset(self) -> None:
        """Drop every recorded entry."""
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        return self.count()


__all__ = ["SlidingWindowCounter", "Clock", "now_ms"]
