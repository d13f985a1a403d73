"""
Detector Infrastructure — Protocol and types for record-level detectors.

Detectors are heuristics composed after the engine: they look at one
emitted RenderRecord at a time and may report a Finding. They never
feed back into classification.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from render_diagnostics.aggregation import RenderRecord
from render_diagnostics.vocabulary import FindingSeverity


@dataclass
class Finding:
    """
    Something a detector noticed about a record.
    """
    detector: str
    severity: FindingSeverity
    message: str
    entity_id: str
    display_name: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    detected_at: datetime = field(default_factory=datetime.now)
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "detector": self.detector,
            "severity": self.severity.value,
            "message": self.message,
            "entity_id": self.entity_id,
            "display_name": self.display_name,
            "details": self.details,
            "detected_at": self.detected_at.isoformat(),
        }
    
    @classmethod
    def for_record(
        cls,
        detector: str,
        severity: FindingSeverity,
        message: str,
        record: RenderRecord,
        **details: Any,
    ) -> "Finding":
        """Create a finding about a record's entity."""
        return cls(
            detector=detector,
            severity=severity,
            message=message,
            entity_id=record.entity_id,
            display_name=record.display_name,
            details=details,
        )


@runtime_checkable
class Detector(Protocol):
    """
    Protocol for record detectors.
    """
    
    @property
    def name(self) -> str:
        """Unique detector identifier."""
        ...
    
    def detect(self, record: RenderRecord) -> Finding | None:
        """Inspect one record."""
        ...


class BaseDetector(ABC):
    """
    Abstract base class for detector implementations.
    
    Subclasses implement detect().
    """
    
    @property
    @abstractmethod
    def name(self) -> str:
        pass
    
    @property
    def description(self) -> str:
        return ""
    
    @abstractmethod
    def detect(self, record: RenderRecord) -> Finding | None:
        pass
    
    def __repr__(self) -> str:
        return f"<Detector:{self.name}>"
