"""
Debug Mode — Classification traces for development.

When enabled, records how each cycle was classified: which keys
changed, which of them were reference-only, and the resulting
decision. Makes the heuristic explainable after the fact.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from render_diagnostics.observability.logging import get_logger

logger = get_logger("debug")


@dataclass
class ClassificationTrace:
    """
    Captures the inputs and outcome of one classification.
    """
    entity_id: str
    display_name: str = ""
    captured_at: datetime = field(default_factory=datetime.now)
    cycle_timestamp: float = 0.0
    previous_timestamp: float | None = None
    
    # Diff keys
    props_changed: list[str] = field(default_factory=list)
    props_reference_only: list[str] = field(default_factory=list)
    props_added: list[str] = field(default_factory=list)
    props_removed: list[str] = field(default_factory=list)
    state_changed: list[str] = field(default_factory=list)
    state_reference_only: list[str] = field(default_factory=list)
    
    # Decision
    necessary: bool = False
    cause: str = ""
    attributed_key: str | None = None
    signal_reads: int = 0
    signal_writes: int = 0
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "display_name": self.display_name,
            "captured_at": self.captured_at.isoformat(),
            "cycle_timestamp": self.cycle_timestamp,
            "previous_timestamp": self.previous_timestamp,
            "props": {
                "changed": self.props_changed,
                "reference_only": self.props_reference_only,
                "added": self.props_added,
                "removed": self.props_removed,
            },
            "state": {
                "changed": self.state_changed,
                "reference_only": self.state_reference_only,
            },
            "decision": {
                "necessary": self.necessary,
                "cause": self.cause,
                "attributed_key": self.attributed_key,
            },
            "signals": {
                "reads": self.signal_reads,
                "writes": self.signal_writes,
            },
        }
    
    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


class DebugRecorder:
    """
    Records classification traces during engine execution.
    
    Disabled recorders accept and drop everything.
    """
    
    def __init__(
        self,
        enabled: bool = False,
        output_dir: Path | str | None = None,
        log_to_console: bool = True,
        max_traces: int = 500,
    ):
        """
        Initialize debug recorder.
        
        Args:
            enabled: Whether to capture traces
            output_dir: Directory to save traces (None = don't save)
            log_to_console: Log summaries at DEBUG level
            max_traces: Oldest traces are dropped beyond this count
        """
        self.enabled = enabled
        self.output_dir = Path(output_dir) if output_dir else None
        self.log_to_console = log_to_console
        self.max_traces = max_traces
        self._traces: list[ClassificationTrace] = []
        
        if self.output_dir:
            self.output_dir.mkdir(parents=True, exist_ok=True)
    
    def capture(self, trace: ClassificationTrace) -> ClassificationTrace | None:
        """
        Record a trace.
        
        Returns the trace if enabled, None otherwise.
        """
        if not self.enabled:
            return None
        
        self._traces.append(trace)
        if len(self._traces) > self.max_traces:
            del self._traces[0]
        
        if self.log_to_console:
            self._log_trace(trace)
        
        if self.output_dir:
            self._save_trace(trace)
        
        return trace
    
    def get_traces(
        self,
        entity_id: str | None = None,
        cause: str | None = None,
    ) -> list[ClassificationTrace]:
        """Query recorded traces."""
        traces = self._traces
        
        if entity_id:
            traces = [t for t in traces if t.entity_id == entity_id]
        if cause:
            traces = [t for t in traces if t.cause == cause]
        
        return list(traces)
    
    def clear(self) -> None:
        """Clear captured traces."""
        self._traces.clear()
    
    def _log_trace(self, trace: ClassificationTrace) -> None:
        logger.debug(
            f"{trace.display_name or trace.entity_id} classified {trace.cause}: "
            f"props changed={trace.props_changed} "
            f"(reference-only={trace.props_reference_only}), "
            f"state changed={trace.state_changed} "
            f"(reference-only={trace.state_reference_only})"
        )
    
    def _save_trace(self, trace: ClassificationTrace) -> None:
        if not self.output_dir:
            return
        
        safe_id = "".join(c if c.isalnum() or c in "-_" else "_" for c in trace.entity_id)
        filename = f"{safe_id}_{trace.captured_at.strftime('%H%M%S%f')}.json"
        filepath = self.output_dir / filename
        
        with open(filepath, "w") as f:
            f.write(trace.to_json())
