"""Tests for record detectors and the registry."""

import logging

import pytest

from render_diagnostics import CycleInput
from render_diagnostics.aggregation import RenderRecord
from render_diagnostics.detectors import (
    BaseDetector,
    Detector,
    DetectorNotFoundError,
    Finding,
    ReferenceChurnDetector,
    RenderStormDetector,
    SlowRenderDetector,
    UnstableKeyDetector,
    create_default_registry,
    create_registry,
)
from render_diagnostics.vocabulary import Cause, FindingSeverity, StormSeverity


def record(**overrides) -> RenderRecord:
    data = {
        "timestamp": 1.0,
        "entity_id": "c1",
        "display_name": "UserCard",
        "necessary": True,
        "cause": Cause.PROPS_CHANGED,
    }
    data.update(overrides)
    return RenderRecord(**data)


class ExplodingDetector(BaseDetector):
    @property
    def name(self) -> str:
        return "exploding"
    
    def detect(self, record):
        raise RuntimeError("detector bug")


class TestSlowRender:
    """Tests for duration findings."""
    
    def test_fast_render_ignored(self):
        assert SlowRenderDetector().detect(record(duration_ms=5)) is None
        assert SlowRenderDetector().detect(record()) is None
    
    def test_warning_over_frame(self):
        finding = SlowRenderDetector().detect(record(duration_ms=20))
        assert finding.severity == FindingSeverity.WARNING
        assert finding.details["duration_ms"] == 20
    
    def test_error_over_limit(self):
        finding = SlowRenderDetector().detect(record(duration_ms=150))
        assert finding.severity == FindingSeverity.ERROR
        assert "150.0ms" in finding.message


class TestRenderStorm:
    """Tests for storm findings."""
    
    def test_reports_start_and_escalation_only(self):
        detector = RenderStormDetector()
        warn = record(is_storm=True, storm_severity=StormSeverity.WARNING)
        err = record(is_storm=True, storm_severity=StormSeverity.ERROR)
        
        assert detector.detect(warn).severity == FindingSeverity.WARNING
        assert detector.detect(warn) is None
        assert detector.detect(err).severity == FindingSeverity.ERROR
        assert detector.detect(record()) is None
        assert detector.detect(warn) is not None


class TestReferenceChurn:
    """Tests for repeated reference-only updates."""
    
    def test_reports_at_streak(self):
        detector = ReferenceChurnDetector(min_consecutive=2)
        churn = record(
            necessary=False,
            cause=Cause.REFERENCE_CHANGES_ONLY,
            props_diff={"changed": {"user": {"deep_equal": True}}, "added": {}, "removed": {}},
        )
        
        assert detector.detect(churn) is None
        finding = detector.detect(churn)
        assert finding.details["keys"] == ["user"]
        assert detector.detect(churn) is None
    
    def test_streak_resets(self):
        detector = ReferenceChurnDetector(min_consecutive=2)
        churn = record(necessary=False, cause=Cause.REFERENCE_CHANGES_ONLY)
        detector.detect(churn)
        detector.detect(record())
        assert detector.detect(churn) is None


class TestUnstableKey:
    """Tests for recreation findings."""
    
    def test_recreation_reported(self):
        finding = UnstableKeyDetector().detect(record(
            necessary=False,
            cause=Cause.COMPONENT_RECREATION,
            is_recreation=True,
            props_diff={"changed": {"key": {}}, "added": {}, "removed": {}},
        ))
        assert finding.details["mismatched_keys"] == ["key"]
        assert "key" in finding.message
    
    def test_plain_record_ignored(self):
        assert UnstableKeyDetector().detect(record()) is None


class TestRegistry:
    """Tests for registration and running."""
    
    def test_default_registry(self):
        registry = create_default_registry()
        assert registry.list_detector_names() == [
            "slow_render",
            "render_storm",
            "reference_churn",
            "unstable_key",
        ]
        assert all(isinstance(d, Detector) for d in registry.list_detectors())
    
    def test_register_unregister(self):
        registry = create_registry()
        registry.register(SlowRenderDetector())
        assert registry.get("slow_render") is not None
        assert registry.unregister("slow_render") is not None
        with pytest.raises(DetectorNotFoundError):
            registry.require("slow_render")
    
    def test_failing_detector_skipped(self, caplog):
        registry = create_registry()
        registry.register(ExplodingDetector())
        registry.register(SlowRenderDetector())
        
        with caplog.at_level(logging.ERROR, logger="render_diagnostics"):
            findings = registry.run(record(duration_ms=30))
        
        assert [f.detector for f in findings] == ["slow_render"]
        assert "detector bug" in caplog.text
    
    def test_findings_bounded_and_queryable(self):
        seen = []
        registry = create_registry(max_findings=2, on_finding=seen.append)
        registry.register(SlowRenderDetector())
        for entity_id in ("a", "b", "c"):
            registry.run(record(entity_id=entity_id, duration_ms=30))
        
        assert [f.entity_id for f in registry.findings()] == ["b", "c"]
        assert len(registry.findings(entity_id="c")) == 1
        assert len(seen) == 3
        registry.clear()
        assert registry.findings() == []
    
    def test_finding_to_dict(self):
        finding = Finding.for_record("x", FindingSeverity.INFO, "msg", record(), extra=1)
        d = finding.to_dict()
        assert d["severity"] == "info"
        assert d["details"] == {"extra": 1}
    
    def test_attach_to_engine(self, engine):
        registry = create_default_registry()
        detach = registry.attach(engine)
        engine.on_mounted("c1", CycleInput("Slow", timestamp=1.0, duration_ms=200.0))
        detach()
        engine.on_mounted("c2", CycleInput("Slow", timestamp=2.0, duration_ms=200.0))
        
        assert [f.entity_id for f in registry.findings(detector="slow_render")] == ["c1"]
