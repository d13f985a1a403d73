"""Tests for the render record model."""

from uuid import UUID

import pytest
from pydantic import ValidationError

from render_diagnostics.aggregation import RenderRecord
from render_diagnostics.vocabulary import AttributeGroup, Cause, StormSeverity


class TestRenderRecord:
    """Tests for record validation and helpers."""
    
    def test_minimal_record(self):
        record = RenderRecord(timestamp=1.0, entity_id="c1", necessary=True, cause=Cause.INITIAL_RENDER)
        
        assert isinstance(record.id, UUID)
        assert record.display_name == "Anonymous"
        assert record.suggestions == []
        assert not record.is_storm
    
    def test_ids_unique(self):
        a = RenderRecord(timestamp=1.0, entity_id="c1", necessary=True, cause="initial-render")
        b = RenderRecord(timestamp=1.0, entity_id="c1", necessary=True, cause="initial-render")
        assert a.id != b.id
    
    def test_cause_coerced_from_value(self):
        record = RenderRecord(timestamp=1.0, entity_id="c1", necessary=False, cause="ancestor-rerender")
        assert record.cause is Cause.ANCESTOR_RERENDER
        assert record.is_unnecessary
    
    def test_rejects_unknown_cause(self):
        with pytest.raises(ValidationError):
            RenderRecord(timestamp=1.0, entity_id="c1", necessary=True, cause="bored")
    
    def test_rejects_negative_duration(self):
        with pytest.raises(ValidationError):
            RenderRecord(timestamp=1.0, entity_id="c1", necessary=True, cause="unknown", duration_ms=-1)
    
    def test_to_summary(self):
        record = RenderRecord(
            timestamp=1.0,
            entity_id="c1",
            display_name="UserCard",
            necessary=True,
            cause=Cause.PROPS_CHANGED,
            attributed_group=AttributeGroup.PROPS,
            attributed_key="user",
            duration_ms=2.5,
            is_storm=True,
            storm_severity=StormSeverity.ERROR,
        )
        summary = record.to_summary()
        
        assert "UserCard (c1): necessary, props-changed" in summary
        assert "key=props.user" in summary
        assert "2.50ms" in summary
        assert "storm=error" in summary
    
    def test_json_dump(self):
        record = RenderRecord(timestamp=1.0, entity_id="c1", necessary=False, cause=Cause.REFERENCE_CHANGES_ONLY)
        data = record.model_dump(mode="json")
        assert data["cause"] == "reference-changes-only"
        assert isinstance(data["id"], str)
