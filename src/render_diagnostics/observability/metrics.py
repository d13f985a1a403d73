"""
Metrics — Counters, gauges and histograms for the diagnostic engine.

Each engine owns its own registry; nothing here is process-global.
All mutation happens on the single thread that drives the engine.
"""

from dataclasses import dataclass, field
from typing import Any


# Upper bounds for render durations: sub-ms, quarter frame, one frame,
# the slow-render hint, and long tasks
RENDER_BUCKETS_MS = (1.0, 4.0, 16.0, 50.0, 100.0, 250.0)


class Counter:
    """Running total; only reset() lowers it."""
    
    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._value = 0.0
    
    def inc(self, amount: float = 1.0) -> None:
        self._value += amount
    
    @property
    def value(self) -> float:
        return self._value
    
    def reset(self) -> None:
        self._value = 0.0


class Gauge:
    """Point-in-time level, e.g. entities currently tracked."""
    
    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._value = 0.0
    
    def set(self, value: float) -> None:
        self._value = value
    
    def inc(self, amount: float = 1.0) -> None:
        self._value += amount
    
    def dec(self, amount: float = 1.0) -> None:
        self._value -= amount
    
    @property
    def value(self) -> float:
        return self._value
    
    def reset(self) -> None:
        self._value = 0.0


class Histogram:
    """
    Distribution summary of observed values.
    
    Keeps count, sum and extremes. With `buckets` (ascending upper
    bounds) it also counts observations per bound, cumulatively, so
    `le_16` reads as "renders that fit in a frame".
    """
    
    def __init__(self, name: str, description: str = "", buckets: tuple[float, ...] | None = None):
        self.name = name
        self.description = description
        self.buckets = tuple(sorted(buckets)) if buckets else ()
        self.reset()
    
    def observe(self, value: float) -> None:
        self._count += 1
        self._sum += value
        self._min = value if self._min is None else min(self._min, value)
        self._max = value if self._max is None else max(self._max, value)
        for i, bound in enumerate(self.buckets):
            if value <= bound:
                self._bucket_counts[i] += 1
    
    @property
    def count(self) -> int:
        return self._count
    
    @property
    def sum(self) -> float:
        return self._sum
    
    @property
    def avg(self) -> float:
        return self._sum / self._count if self._count else 0.0
    
    @property
    def min(self) -> float:
        return self._min if self._min is not None else 0.0
    
    @property
    def max(self) -> float:
        return self._max if self._max is not None else 0.0
    
    def bucket_counts(self) -> dict[str, int]:
        """Cumulative counts keyed `le_<bound>`."""
        return {
            f"le_{bound:g}": n
            for bound, n in zip(self.buckets, self._bucket_counts)
        }
    
    def reset(self) -> None:
        self._count = 0
        self._sum = 0.0
        self._min: float | None = None
        self._max: float | None = None
        self._bucket_counts = [0] * len(self.buckets)
    
    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "count": self._count,
            "sum": self._sum,
            "avg": self.avg,
            "min": self.min,
            "max": self.max,
        }
        if self.buckets:
            data["buckets"] = self.bucket_counts()
        return data


@dataclass
class EngineMetrics:
    """
    Registry for all engine metrics.
    """
    # Cycle metrics
    updates_total: Counter = field(
        default_factory=lambda: Counter("updates_total", "Update cycles observed")
    )
    mounts_total: Counter = field(
        default_factory=lambda: Counter("mounts_total", "Mounts observed")
    )
    unnecessary_total: Counter = field(
        default_factory=lambda: Counter("unnecessary_total", "Cycles classified unnecessary")
    )
    recreations_total: Counter = field(
        default_factory=lambda: Counter("recreations_total", "Recreations detected")
    )
    storms_flagged: Counter = field(
        default_factory=lambda: Counter("storms_flagged", "Records flagged as storm")
    )
    
    # Degradation metrics
    classification_failures: Counter = field(
        default_factory=lambda: Counter("classification_failures", "Classifications degraded to unknown")
    )
    
    # Eviction metrics
    records_evicted: Counter = field(
        default_factory=lambda: Counter("records_evicted", "Records evicted from the ring buffer")
    )
    candidates_evicted: Counter = field(
        default_factory=lambda: Counter("candidates_evicted", "Recreation candidates evicted or expired")
    )
    compactions_total: Counter = field(
        default_factory=lambda: Counter("compactions_total", "Compaction passes run")
    )
    
    # Duration metrics
    render_duration_ms: Histogram = field(
        default_factory=lambda: Histogram("render_duration_ms", "Measured render duration", RENDER_BUCKETS_MS)
    )
    
    # Active state
    tracked_entities: Gauge = field(
        default_factory=lambda: Gauge("tracked_entities", "Entities with retained snapshots")
    )
    
    def to_dict(self) -> dict[str, Any]:
        """Metrics grouped by concern."""
        return {
            "cycles": {
                "updates": self.updates_total.value,
                "mounts": self.mounts_total.value,
                "unnecessary": self.unnecessary_total.value,
                "recreations": self.recreations_total.value,
                "storms_flagged": self.storms_flagged.value,
            },
            "degradation": {
                "classification_failures": self.classification_failures.value,
            },
            "eviction": {
                "records_evicted": self.records_evicted.value,
                "candidates_evicted": self.candidates_evicted.value,
                "compactions": self.compactions_total.value,
            },
            "duration": {
                "render_ms": self.render_duration_ms.to_dict(),
            },
            "state": {
                "tracked_entities": self.tracked_entities.value,
            },
        }
    
    def reset(self) -> None:
        """Zero every metric; used by engine.clear()."""
        self.updates_total.reset()
        self.mounts_total.reset()
        self.unnecessary_total.reset()
        self.recreations_total.reset()
        self.storms_flagged.reset()
        self.classification_failures.reset()
        self.records_evicted.reset()
        self.candidates_evicted.reset()
        self.compactions_total.reset()
        self.render_duration_ms.reset()
        self.tracked_entities.reset()


def create_metrics() -> EngineMetrics:
    """Factory for a fresh metrics registry."""
    return EngineMetrics()
