"""
Render Timer — Monotonic duration measurement per entity.

Started by the before-mount/before-update callbacks and ended by the
matching mounted/updated callback.
"""

import time
from typing import Callable

# Durations are never reported as zero
MIN_DURATION_MS = 0.01


class RenderTimer:
    """Pending start marks keyed by entity id."""
    
    def __init__(self, clock: Callable[[], float] | None = None):
        """
        Args:
            clock: Monotonic clock in seconds (defaults to perf_counter)
        """
        self._clock = clock or time.perf_counter
        self._starts: dict[str, float] = {}
    
    def start(self, entity_id: str) -> None:
        self._starts[entity_id] = self._clock()
    
    def end(self, entity_id: str) -> float | None:
        """Milliseconds since start, or None if never started."""
        started = self._starts.pop(entity_id, None)
        if started is None:
            return None
        elapsed_ms = (self._clock() - started) * 1000.0
        return max(elapsed_ms, MIN_DURATION_MS)
    
    def cancel(self, entity_id: str) -> None:
        self._starts.pop(entity_id, None)
    
    def is_running(self, entity_id: str) -> bool:
        return entity_id in self._starts
    
    @property
    def pending_count(self) -> int:
        return len(self._starts)
    
    def clear(self) -> None:
        self._starts.clear()
