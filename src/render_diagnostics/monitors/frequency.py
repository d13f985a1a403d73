"""
Frequency Monitor — Sliding-window update counts and storm detection.

Each entity keeps the timestamps of its recent update cycles. Entries
that fall out of the window are pruned on every write, and on reads
that pass an explicit `now`, so memory stays bounded by the window.
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

from render_diagnostics.observability import get_logger
from render_diagnostics.snapshot.store import wall_clock_ms
from render_diagnostics.vocabulary import StormSeverity

logger = get_logger("monitors.frequency")


@dataclass(frozen=True)
class StormStatus:
    """An entity updating at or above the storm threshold."""
    entity_id: str
    count: int
    threshold: int
    window_ms: float
    severity: StormSeverity
    
    @property
    def rate_per_second(self) -> float:
        return self.count * 1000.0 / self.window_ms if self.window_ms else 0.0
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "count": self.count,
            "threshold": self.threshold,
            "window_ms": self.window_ms,
            "severity": self.severity.value,
        }


def severity_for(count: int, threshold: int) -> StormSeverity:
    """warning below 2x the threshold, error below 4x, critical beyond."""
    if count < threshold * 2:
        return StormSeverity.WARNING
    if count < threshold * 4:
        return StormSeverity.ERROR
    return StormSeverity.CRITICAL


class FrequencyMonitor:
    """
    Per-entity sliding window of update timestamps.
    """
    
    def __init__(
        self,
        window_ms: float = 1000.0,
        storm_threshold: int = 5,
        clock: Callable[[], float] | None = None,
    ):
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if storm_threshold < 1:
            raise ValueError("storm_threshold must be at least 1")
        self.window_ms = window_ms
        self.storm_threshold = storm_threshold
        self._clock = clock or wall_clock_ms
        self._windows: dict[str, deque[float]] = {}
    
    def record(self, entity_id: str, timestamp: float | None = None) -> int:
        """
        Append one update at `timestamp` and prune the window.
        
        Returns:
            Number of entries pruned
        """
        t = self._clock() if timestamp is None else timestamp
        window = self._windows.get(entity_id)
        if window is None:
            window = deque()
            self._windows[entity_id] = window
        window.append(t)
        return self._prune(entity_id, t)
    
    def _prune(self, entity_id: str, now: float) -> int:
        window = self._windows.get(entity_id)
        if window is None:
            return 0
        cutoff = now - self.window_ms
        pruned = 0
        # Timestamps can arrive out of order; scan rather than pop from the left
        if any(ts <= cutoff for ts in window):
            kept = [ts for ts in window if ts > cutoff]
            pruned = len(window) - len(kept)
            window.clear()
            window.extend(kept)
        if not window:
            del self._windows[entity_id]
        return pruned
    
    def count(self, entity_id: str, now: float | None = None) -> int:
        """Updates inside the window, pruning first when `now` is given."""
        if now is not None:
            self._prune(entity_id, now)
        window = self._windows.get(entity_id)
        return len(window) if window else 0
    
    def is_storm(self, entity_id: str, now: float | None = None) -> bool:
        return self.count(entity_id, now) >= self.storm_threshold
    
    def severity(self, entity_id: str, now: float | None = None) -> StormSeverity | None:
        count = self.count(entity_id, now)
        if count < self.storm_threshold:
            return None
        return severity_for(count, self.storm_threshold)
    
    def storm_status(self, entity_id: str, now: float | None = None) -> StormStatus | None:
        count = self.count(entity_id, now)
        if count < self.storm_threshold:
            return None
        return StormStatus(
            entity_id=entity_id,
            count=count,
            threshold=self.storm_threshold,
            window_ms=self.window_ms,
            severity=severity_for(count, self.storm_threshold),
        )
    
    def active_storms(self, now: float | None = None) -> list[StormStatus]:
        """Storm status of every entity currently over the threshold."""
        storms = []
        for entity_id in list(self._windows):
            status = self.storm_status(entity_id, now)
            if status is not None:
                storms.append(status)
        return storms
    
    def prune_all(self, now: float | None = None) -> int:
        """Prune every window against `now`; returns entries removed."""
        t = self._clock() if now is None else now
        return sum(self._prune(entity_id, t) for entity_id in list(self._windows))
    
    def clear(self, entity_id: str | None = None) -> None:
        if entity_id is not None:
            self._windows.pop(entity_id, None)
        else:
            self._windows.clear()
    
    @property
    def tracked_count(self) -> int:
        return len(self._windows)
