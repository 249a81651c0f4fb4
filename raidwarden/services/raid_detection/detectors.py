"""
Raid Warden - Raid Detectors
============================

Threshold detectors over sliding-window counters.

DESIGN:
    observe() records the event and compares against the threshold in
    one synchronous step. A trigger resets the counter before anything
    is awaited, so events arriving while the response runs start a new
    accumulation instead of firing the same raid twice.
"""

from typing import Dict, Optional, Tuple

from raidwarden.core.constants import FLOOD_PRUNE_INTERVAL
from raidwarden.utils.sliding_window import Clock, SlidingWindowCounter


class RaidDetector:
    """
    One event source bound to one counter and threshold.

    Attributes:
        name: Detector name used in alerts and /status.
        threshold: Events within the window that count as a raid.
        counter: The owned sliding-window counter.
    """

    def __init__(
        self,
        name: str,
        threshold: int,
        window_ms: int,
        clock: Optional[Clock] = None,
        counter: Optional[SlidingWindowCounter] = None,
    ) -> None:
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")
        self.name = name
        self.threshold = threshold
        self.counter = counter or SlidingWindowCounter(window_ms, clock)

    @property
    def window_ms(self) -> int:
        return self.counter.window_ms

    def observe(self) -> Optional[int]:
        """
        Record one event.

        Returns:
            The in-window count if this event crossed the threshold, else None.
        """
        count = self.counter.record_and_count()
        if count >= self.threshold:
            self.counter.reset()
            return count
        return None

    def count(self) -> int:
        return self.counter.count()


class MessageFloodDetector:
    """
    Per (guild, author) message counters.

    Counters are created on first message and dropped once their window
    has emptied; the idle sweep runs every FLOOD_PRUNE_INTERVAL messages.
    """

    def __init__(
        self,
        name: str,
        threshold: int,
        window_ms: int,
        clock: Optional[Clock] = None,
        prune_interval: int = FLOOD_PRUNE_INTERVAL,
    ) -> None:
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")
        self.name = name
        self.threshold = threshold
        self.window_ms = window_ms
        self._clock = clock
        self._prune_interval = prune_interval
        self._counters: Dict[Tuple[int, int], SlidingWindowCounter] = {}
        self._since_prune = 0

    def _counter_for(self, guild_id: int, author_id: int) -> SlidingWindowCounter:
        key = (guild_id, author_id)
        counter = self._counters.get(key)
        if counter is None:
            counter = SlidingWindowCounter(self.window_ms, self._clock)
            self._counters[key] = counter
        return counter

    def observe(self, guild_id: int, author_id: int) -> Optional[int]:
        """Record one message; return the count if this author just crossed the threshold."""
        self._since_prune += 1
        if self._since_prune >= self._prune_interval:
            self.prune_idle()

        counter = self._counter_for(guild_id, author_id)
        count = counter.record_and_count()
        if count >= self.threshold:
            counter.reset()
            return count
        return None

    def count(self, guild_id: int, author_id: int) -> int:
        counter = self._counters.get((guild_id, author_id))
        return counter.count() if counter is not None else 0

    def prune_idle(self) -> int:
        """Drop counters with nothing left in their window. Returns how many were dropped."""
        self._since_prune = 0
        idle = [key for key, counter in self._counters.items() if counter.count() == 0]
        for key in idle:
            del self._counters[key]
        return len(idle)

    @property
    def tracked_pairs(self) -> int:
        return len(self._counters)

    def busiest(self) -> int:
        """Highest in-window count across all tracked authors."""
        return max((c.count() for c in self._counters.values()), default=0)


__all__ = ["RaidDetector", "MessageFloodDetector"]
