"""
Detector Registry — Runs registered detectors over emitted records.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from render_diagnostics.aggregation import RenderRecord
from render_diagnostics.detectors.base import Detector, Finding
from render_diagnostics.observability import get_logger

if TYPE_CHECKING:
    from render_diagnostics.engine import RenderDiagnosticEngine

logger = get_logger("detectors")


class DetectorNotFoundError(Exception):
    """Raised when a requested detector doesn't exist."""
    pass


@dataclass
class DetectorRegistry:
    """
    Registry of record detectors.
    
    Usage:
        registry = create_default_registry()
        detach = registry.attach(engine)
        ...
        for finding in registry.findings():
            print(finding.message)
    """
    max_findings: int = 500
    on_finding: Callable[[Finding], None] | None = None
    _detectors: dict[str, Detector] = field(default_factory=dict)
    _findings: deque[Finding] = field(init=False)
    
    def __post_init__(self):
        self._findings = deque(maxlen=self.max_findings)
    
    def register(self, detector: Detector) -> None:
        """Register a detector, replacing one with the same name."""
        self._detectors[detector.name] = detector
    
    def unregister(self, name: str) -> Detector | None:
        """Unregister and return a detector."""
        return self._detectors.pop(name, None)
    
    def get(self, name: str) -> Detector | None:
        return self._detectors.get(name)
    
    def require(self, name: str) -> Detector:
        detector = self.get(name)
        if detector is None:
            raise DetectorNotFoundError(f"Detector not found: {name}")
        return detector
    
    def list_detectors(self) -> list[Detector]:
        return list(self._detectors.values())
    
    def list_detector_names(self) -> list[str]:
        return list(self._detectors.keys())
    
    def run(self, record: RenderRecord) -> list[Finding]:
        """
        Run every detector over one record.
        
        A failing detector is logged and skipped; the others still run.
        """
        found: list[Finding] = []
        for name, detector in list(self._detectors.items()):
            try:
                finding = detector.detect(record)
            except Exception as exc:
                logger.error(f"Detector {name} failed on {record.entity_id}: {exc}", exc_info=True)
                continue
            if finding is not None:
                found.append(finding)
        
        for finding in found:
            self._findings.append(finding)
            if self.on_finding is not None:
                self.on_finding(finding)
        return found
    
    def attach(self, engine: "RenderDiagnosticEngine") -> Callable[[], None]:
        """Run on every record the engine emits; returns the detach function."""
        return engine.subscribe(self.run)
    
    def findings(self, entity_id: str | None = None, detector: str | None = None) -> list[Finding]:
        """Query retained findings."""
        results = list(self._findings)
        if entity_id is not None:
            results = [f for f in results if f.entity_id == entity_id]
        if detector is not None:
            results = [f for f in results if f.detector == detector]
        return results
    
    def clear(self) -> None:
        self._findings.clear()


def create_registry(**kwargs) -> DetectorRegistry:
    """Factory for an empty detector registry."""
    return DetectorRegistry(**kwargs)
