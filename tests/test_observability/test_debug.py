"""Tests for classification traces."""

import json

import pytest

from render_diagnostics.observability import ClassificationTrace, DebugRecorder


def _trace(entity_id: str = "c1", cause: str = "props-changed") -> ClassificationTrace:
    return ClassificationTrace(
        entity_id=entity_id,
        display_name="UserCard",
        cycle_timestamp=20.0,
        previous_timestamp=10.0,
        props_changed=["user"],
        necessary=cause != "reference-changes-only",
        cause=cause,
        attributed_key="user",
    )


class TestClassificationTrace:
    """Tests for trace serialization."""
    
    def test_to_dict(self):
        """Groups diff keys and decision."""
        d = _trace().to_dict()
        assert d["entity_id"] == "c1"
        assert d["props"]["changed"] == ["user"]
        assert d["decision"]["cause"] == "props-changed"
        assert d["decision"]["attributed_key"] == "user"
    
    def test_to_json(self):
        """JSON round-trips through the standard parser."""
        parsed = json.loads(_trace().to_json())
        assert parsed["display_name"] == "UserCard"


class TestDebugRecorder:
    """Tests for debug recorder."""
    
    def test_disabled_by_default(self):
        """Recorder is disabled by default and drops traces."""
        recorder = DebugRecorder()
        assert recorder.enabled is False
        assert recorder.capture(_trace()) is None
        assert recorder.get_traces() == []
    
    def test_capture_and_query(self):
        """Captured traces can be filtered."""
        recorder = DebugRecorder(enabled=True, log_to_console=False)
        recorder.capture(_trace("c1"))
        recorder.capture(_trace("c2", cause="reference-changes-only"))
        recorder.capture(_trace("c1", cause="reference-changes-only"))
        
        assert len(recorder.get_traces(entity_id="c1")) == 2
        assert len(recorder.get_traces(cause="reference-changes-only")) == 2
    
    def test_max_traces(self):
        """Oldest traces are dropped."""
        recorder = DebugRecorder(enabled=True, log_to_console=False, max_traces=2)
        for i in range(3):
            recorder.capture(_trace(f"c{i}"))
        
        assert [t.entity_id for t in recorder.get_traces()] == ["c1", "c2"]
    
    def test_save_to_file(self, tmp_path):
        """Saves traces as JSON files."""
        recorder = DebugRecorder(enabled=True, output_dir=tmp_path, log_to_console=False)
        recorder.capture(_trace("list/item:3"))
        
        files = list(tmp_path.glob("*.json"))
        assert len(files) == 1
        assert files[0].name.startswith("list_item_3_")
    
    def test_clear(self):
        recorder = DebugRecorder(enabled=True, log_to_console=False)
        recorder.capture(_trace())
        recorder.clear()
        assert recorder.get_traces() == []
