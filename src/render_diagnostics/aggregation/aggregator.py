"""
Aggregator — Record buffer and rolling per-entity statistics.

Keeps the most recent records in one global FIFO buffer and folds
every record into the stats of its entity. Both structures are
bounded: the buffer by `max_records`, the stats table by
`max_entities` (least recently updated entity evicted).
"""

from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any

from render_diagnostics.aggregation.record import RenderRecord
from render_diagnostics.monitors import FrequencyMonitor
from render_diagnostics.observability import get_logger

logger = get_logger("aggregation")


class MovingAverage:
    """Arithmetic mean of the last `window` values."""
    
    def __init__(self, window: int = 20):
        if window < 1:
            raise ValueError("window must be at least 1")
        self.window = window
        self._values: deque[float] = deque(maxlen=window)
        self._sum = 0.0
    
    def add(self, value: float) -> None:
        if len(self._values) == self.window:
            self._sum -= self._values[0]
        self._values.append(value)
        self._sum += value
    
    def get(self) -> float:
        return self._sum / len(self._values) if self._values else 0.0
    
    def __len__(self) -> int:
        return len(self._values)
    
    def reset(self) -> None:
        self._values.clear()
        self._sum = 0.0


@dataclass
class EntityStats:
    """
    Rolling statistics for one entity.
    """
    entity_id: str
    display_name: str = "Anonymous"
    duration_window: int = 20
    total: int = 0
    necessary: int = 0
    unnecessary: int = 0
    first_timestamp: float | None = None
    last_timestamp: float | None = None
    _durations: MovingAverage = field(init=False, repr=False)
    
    def __post_init__(self):
        self._durations = MovingAverage(self.duration_window)
    
    def record(self, record: RenderRecord) -> None:
        if self.first_timestamp is None:
            self.first_timestamp = record.timestamp
        self.last_timestamp = record.timestamp
        self.display_name = record.display_name
        self.total += 1
        if record.necessary:
            self.necessary += 1
        else:
            self.unnecessary += 1
        if record.duration_ms is not None:
            self._durations.add(record.duration_ms)
    
    @property
    def unnecessary_percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return self.unnecessary / self.total * 100
    
    @property
    def avg_duration_ms(self) -> float:
        return self._durations.get()
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "display_name": self.display_name,
            "total": self.total,
            "necessary": self.necessary,
            "unnecessary": self.unnecessary,
            "unnecessary_percentage": round(self.unnecessary_percentage, 1),
            "avg_duration_ms": round(self.avg_duration_ms, 2),
            "first_timestamp": self.first_timestamp,
            "last_timestamp": self.last_timestamp,
        }


@dataclass
class AggregateSummary:
    """Totals across all tracked entities."""
    total_entities: int = 0
    total_updates: int = 0
    total_unnecessary: int = 0
    unnecessary_percentage: float = 0.0
    records_stored: int = 0
    active_storms: int = 0
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entities": self.total_entities,
            "total_updates": self.total_updates,
            "total_unnecessary": self.total_unnecessary,
            "unnecessary_percentage": round(self.unnecessary_percentage, 1),
            "records_stored": self.records_stored,
            "active_storms": self.active_storms,
        }


class Aggregator:
    """
    Bounded record buffer plus per-entity stats.
    
    Usage:
        aggregator = Aggregator(max_records=1000)
        aggregator.add(record)
        print(aggregator.summary().to_dict())
    """
    
    def __init__(
        self,
        max_records: int = 1000,
        duration_window: int = 20,
        max_entities: int = 5000,
        frequency: FrequencyMonitor | None = None,
    ):
        """
        Initialize aggregator.
        
        Args:
            max_records: Global record buffer size
            duration_window: Durations averaged per entity
            max_entities: Entities with stats (least recently updated evicted)
            frequency: Monitor consulted for the active storm count
        """
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self.max_records = max_records
        self.duration_window = duration_window
        self.max_entities = max_entities
        self.frequency = frequency
        self._records: deque[RenderRecord] = deque(maxlen=max_records)
        self._stats: OrderedDict[str, EntityStats] = OrderedDict()
        self.records_evicted = 0
        self.stats_evicted = 0
    
    def add(self, record: RenderRecord) -> RenderRecord:
        """Append a record and fold it into its entity's stats."""
        if len(self._records) == self.max_records:
            self.records_evicted += 1
        self._records.append(record)
        
        stats = self._stats.get(record.entity_id)
        if stats is None:
            stats = EntityStats(
                entity_id=record.entity_id,
                display_name=record.display_name,
                duration_window=self.duration_window,
            )
            self._stats[record.entity_id] = stats
        else:
            self._stats.move_to_end(record.entity_id)
        stats.record(record)
        
        while len(self._stats) > self.max_entities:
            evicted, _ = self._stats.popitem(last=False)
            self.stats_evicted += 1
            logger.debug(f"Evicted stats of {evicted}")
        return record
    
    # -------------------------------------------------------------------------
    # Record queries
    # -------------------------------------------------------------------------
    
    def recent(self, limit: int = 20) -> list[RenderRecord]:
        return _tail(list(self._records), limit)
    
    def for_entity(self, entity_id: str, limit: int = 50) -> list[RenderRecord]:
        return _tail([r for r in self._records if r.entity_id == entity_id], limit)
    
    def unnecessary(self, limit: int = 50) -> list[RenderRecord]:
        return _tail([r for r in self._records if r.is_unnecessary], limit)
    
    @property
    def record_count(self) -> int:
        return len(self._records)
    
    # -------------------------------------------------------------------------
    # Stats queries
    # -------------------------------------------------------------------------
    
    def stats(self, entity_id: str) -> EntityStats | None:
        return self._stats.get(entity_id)
    
    def all_stats(self) -> list[EntityStats]:
        return list(self._stats.values())
    
    def top_unnecessary(self, limit: int = 10) -> list[EntityStats]:
        """Entities with the most unnecessary updates."""
        offenders = [s for s in self._stats.values() if s.unnecessary > 0]
        offenders.sort(key=lambda s: s.unnecessary, reverse=True)
        return offenders[:limit]
    
    def top_slowest(self, limit: int = 10) -> list[EntityStats]:
        """Entities with the highest average duration."""
        timed = [s for s in self._stats.values() if s.avg_duration_ms > 0]
        timed.sort(key=lambda s: s.avg_duration_ms, reverse=True)
        return timed[:limit]
    
    def summary(self, now: float | None = None) -> AggregateSummary:
        stats = self._stats.values()
        total = sum(s.total for s in stats)
        unnecessary = sum(s.unnecessary for s in stats)
        storms = len(self.frequency.active_storms(now)) if self.frequency else 0
        return AggregateSummary(
            total_entities=len(self._stats),
            total_updates=total,
            total_unnecessary=unnecessary,
            unnecessary_percentage=(unnecessary / total * 100) if total else 0.0,
            records_stored=len(self._records),
            active_storms=storms,
        )
    
    def clear(self, entity_id: str | None = None) -> None:
        """Drop one entity's records and stats, or everything."""
        if entity_id is not None:
            kept = [r for r in self._records if r.entity_id != entity_id]
            self._records = deque(kept, maxlen=self.max_records)
            self._stats.pop(entity_id, None)
        else:
            self._records.clear()
            self._stats.clear()


def _tail(items: list[RenderRecord], limit: int | None) -> list[RenderRecord]:
    if limit is None or limit <= 0 or limit >= len(items):
        return items
    return items[-limit:]
