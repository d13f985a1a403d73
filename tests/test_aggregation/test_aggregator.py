"""Tests for the aggregator."""

import pytest

from render_diagnostics.aggregation import Aggregator, MovingAverage, RenderRecord
from render_diagnostics.monitors import FrequencyMonitor
from render_diagnostics.vocabulary import Cause


def record(entity_id="c1", necessary=True, duration_ms=None, timestamp=1.0) -> RenderRecord:
    return RenderRecord(
        timestamp=timestamp,
        entity_id=entity_id,
        display_name=entity_id.upper(),
        necessary=necessary,
        cause=Cause.PROPS_CHANGED if necessary else Cause.REFERENCE_CHANGES_ONLY,
        duration_ms=duration_ms,
    )


class TestMovingAverage:
    """Tests for the fixed-window average."""
    
    def test_empty_is_zero(self):
        assert MovingAverage(3).get() == 0.0
    
    def test_window_drops_oldest(self):
        avg = MovingAverage(3)
        for v in (10, 1, 2, 3):
            avg.add(v)
        assert avg.get() == 2.0
        assert len(avg) == 3


class TestBuffer:
    """Tests for the global record buffer."""
    
    def test_fifo_bound(self):
        """max_records + 10 records leave the latest max_records."""
        aggregator = Aggregator(max_records=5)
        for t in range(15):
            aggregator.add(record(timestamp=float(t)))
        
        assert aggregator.record_count == 5
        assert [r.timestamp for r in aggregator.recent(100)] == [10.0, 11.0, 12.0, 13.0, 14.0]
        assert aggregator.records_evicted == 10
    
    def test_queries(self):
        aggregator = Aggregator()
        aggregator.add(record("a", necessary=False))
        aggregator.add(record("b"))
        aggregator.add(record("a"))
        
        assert len(aggregator.for_entity("a")) == 2
        assert len(aggregator.unnecessary()) == 1
        assert len(aggregator.recent(2)) == 2


class TestStats:
    """Tests for per-entity statistics."""
    
    def test_split_and_average(self):
        aggregator = Aggregator(duration_window=2)
        aggregator.add(record("a", duration_ms=10))
        aggregator.add(record("a", necessary=False, duration_ms=2))
        aggregator.add(record("a", necessary=False, duration_ms=4))
        
        stats = aggregator.stats("a")
        assert stats.total == 3
        assert stats.necessary == 1
        assert stats.unnecessary == 2
        assert stats.avg_duration_ms == 3.0
        assert stats.to_dict()["unnecessary_percentage"] == 66.7
    
    def test_top_unnecessary(self):
        aggregator = Aggregator()
        for _ in range(3):
            aggregator.add(record("worst", necessary=False))
        aggregator.add(record("mild", necessary=False))
        aggregator.add(record("clean"))
        
        assert [s.entity_id for s in aggregator.top_unnecessary(5)] == ["worst", "mild"]
    
    def test_top_slowest(self):
        aggregator = Aggregator()
        aggregator.add(record("fast", duration_ms=1))
        aggregator.add(record("slow", duration_ms=30))
        aggregator.add(record("untimed"))
        
        assert [s.entity_id for s in aggregator.top_slowest()] == ["slow", "fast"]
    
    def test_entity_cap(self):
        aggregator = Aggregator(max_entities=2)
        for entity_id in ("a", "b", "a", "c"):
            aggregator.add(record(entity_id))
        
        assert aggregator.stats("b") is None
        assert aggregator.stats("a").total == 2
        assert aggregator.stats_evicted == 1


class TestSummary:
    """Tests for totals and clearing."""
    
    def test_summary(self):
        frequency = FrequencyMonitor(window_ms=1000, storm_threshold=2)
        frequency.record("a", 0)
        frequency.record("a", 1)
        aggregator = Aggregator(frequency=frequency)
        aggregator.add(record("a", necessary=False))
        aggregator.add(record("b"))
        
        summary = aggregator.summary().to_dict()
        assert summary == {
            "total_entities": 2,
            "total_updates": 2,
            "total_unnecessary": 1,
            "unnecessary_percentage": 50.0,
            "records_stored": 2,
            "active_storms": 1,
        }
    
    def test_empty_summary(self):
        assert Aggregator().summary().unnecessary_percentage == 0.0
    
    def test_clear_entity(self):
        aggregator = Aggregator()
        aggregator.add(record("a"))
        aggregator.add(record("b"))
        aggregator.clear("a")
        
        assert aggregator.for_entity("a") == []
        assert aggregator.stats("a") is None
        assert aggregator.record_count == 1
        
        aggregator.clear()
        assert aggregator.record_count == 0
