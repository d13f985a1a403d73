"""Tests for the auxiliary signal sampler."""

import pytest

from render_diagnostics.signals import CycleSignals, EventSampler, SignalEvent, analyze_derived
from render_diagnostics.vocabulary import SignalKind, TargetType


@pytest.fixture
def sampler(clock) -> EventSampler:
    return EventSampler(clock=clock)


class TestBrackets:
    """Tests for cycle scoping."""
    
    def test_ignored_outside_cycle(self, sampler):
        """Nothing is logged without an open cycle."""
        assert sampler.record_read(TargetType.REF, "count") is False
        assert sampler.reads("c1") == []
    
    def test_logged_inside_cycle(self, sampler):
        sampler.begin("c1")
        sampler.record_read(TargetType.REF, "count")
        sampler.record_write(TargetType.REACTIVE, "items", old_value=1, new_value=2)
        signals = sampler.end("c1")
        
        assert len(signals.reads) == 1
        assert signals.writes[0].key == "items"
        assert not sampler.is_sampling()
    
    def test_nested_cycles_attribute_to_innermost(self, sampler):
        """A child cycle inside the parent's keeps its own signals."""
        sampler.begin("parent")
        sampler.record_read(key="p1")
        sampler.begin("child")
        sampler.record_read(key="c1")
        child = sampler.end("child")
        sampler.record_read(key="p2")
        parent = sampler.end("parent")
        
        assert [e.key for e in child.reads] == ["c1"]
        assert [e.key for e in parent.reads] == ["p1", "p2"]
    
    def test_explicit_entity_must_be_open(self, sampler):
        sampler.begin("c1")
        assert sampler.record_read(key="x", entity_id="other") is False
        assert sampler.record_read(key="x", entity_id="c1") is True
    
    def test_end_without_open_cycle_is_empty(self, sampler):
        """A close with no matching open does not return the last cycle's logs."""
        with sampler.sampling("c1"):
            sampler.record_read(TargetType.COMPUTED, "total")
        
        signals = sampler.end("c1")
        assert signals.is_empty
        assert [e.key for e in sampler.reads("c1")] == ["total"]
    
    def test_begin_resets_logs(self, sampler):
        with sampler.sampling("c1"):
            sampler.record_read(key="old")
        with sampler.sampling("c1"):
            sampler.record_read(key="new")
        
        assert [e.key for e in sampler.reads("c1")] == ["new"]
    
    def test_context_manager_closes_on_error(self, sampler):
        with pytest.raises(RuntimeError):
            with sampler.sampling("c1"):
                raise RuntimeError("render failed")
        assert not sampler.is_sampling("c1")
    
    def test_disabled_sampler_never_opens(self, clock):
        sampler = EventSampler(clock=clock, enabled=False)
        sampler.begin("c1")
        assert sampler.record_read(key="x") is False


class TestBounds:
    """Tests for caps and sampling."""
    
    def test_logs_capped_fifo(self, clock):
        sampler = EventSampler(max_events_per_entity=2, clock=clock)
        sampler.begin("c1")
        for key in ("a", "b", "c"):
            sampler.record_read(key=key)
        
        assert [e.key for e in sampler.reads("c1")] == ["b", "c"]
    
    def test_sampling_rate_uses_rng(self, clock):
        draws = iter([0.1, 0.9, 0.4])
        sampler = EventSampler(sampling_rate=0.5, rng=lambda: next(draws), clock=clock)
        sampler.begin("c1")
        kept = [sampler.record_read(key=k) for k in ("a", "b", "c")]
        
        assert kept == [True, False, True]
        assert sampler.memory_stats()["events_dropped"] == 1
    
    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            EventSampler(sampling_rate=0)


class TestEvents:
    """Tests for event descriptions and derived analysis."""
    
    def test_describe_write(self):
        event = SignalEvent(
            kind=SignalKind.WRITE,
            target_type=TargetType.REF,
            key="count",
            operation="set",
            old_value=1,
            new_value=2,
        )
        assert event.describe() == "set ref[count]: 1 → 2"
        assert event.to_dict()["old_value"] == "1"
    
    def test_long_strings_truncated(self):
        event = SignalEvent(kind=SignalKind.WRITE, key="k", new_value="x" * 30)
        assert event.to_dict()["new_value"] == '"' + "x" * 20 + '..."'
    
    def test_stale_derived_suspected(self):
        signals = CycleSignals(reads=(SignalEvent(SignalKind.READ, TargetType.COMPUTED, key="total"),))
        analysis = analyze_derived(signals)
        
        assert analysis.read_count == 1
        assert analysis.keys == {"total"}
        assert analysis.stale_suspected
    
    def test_not_stale_with_writes(self):
        signals = CycleSignals(
            reads=(SignalEvent(SignalKind.READ, TargetType.COMPUTED, key="total"),),
            writes=(SignalEvent(SignalKind.WRITE, TargetType.REF, key="count"),),
        )
        assert not analyze_derived(signals).stale_suspected
    
    def test_clear(self, sampler):
        sampler.begin("c1")
        sampler.record_read(key="x")
        sampler.clear()
        assert sampler.memory_stats()["entities"] == 0
        assert not sampler.is_sampling()
