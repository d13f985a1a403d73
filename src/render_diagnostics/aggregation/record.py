"""
Render Record — One classified update cycle, as emitted to subscribers.

Merges snapshot metadata, the necessity classification, the storm
flag and the recreation flag into a single validated model.
"""

from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from render_diagnostics.vocabulary import (
    AttributeGroup,
    Cause,
    StormSeverity,
)


class RenderRecord(BaseModel):
    """
    Classified update cycle.
    
    Provides:
    - Identification (id, entity_id, display_name, parent_id)
    - Timing (timestamp, duration_ms)
    - Decision (necessary, cause, attribution, diffs)
    - Flags (storm, recreation)
    - Advice (suggestions)
    """
    
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique identifier for this record"
    )
    
    timestamp: float = Field(
        ...,
        description="Cycle timestamp in wall-clock milliseconds"
    )
    
    entity_id: str = Field(
        ...,
        description="Entity that updated"
    )
    
    display_name: str = Field(
        default="Anonymous",
        description="Human readable entity name"
    )
    
    parent_id: str | None = Field(
        default=None,
        description="Parent entity, if known"
    )
    
    necessary: bool = Field(
        ...,
        description="Whether the cycle's output could have changed"
    )
    
    cause: Cause = Field(
        ...,
        description="Why the cycle happened"
    )
    
    attributed_group: AttributeGroup | None = Field(
        default=None,
        description="Attribute group holding the real change"
    )
    
    attributed_key: str | None = Field(
        default=None,
        description="First key whose content changed"
    )
    
    duration_ms: float | None = Field(
        default=None,
        ge=0,
        description="Measured or reported render duration"
    )
    
    props_diff: dict[str, Any] | None = Field(
        default=None,
        description="Serialized props diff (changed/added/removed)"
    )
    
    state_diff: dict[str, Any] | None = Field(
        default=None,
        description="Serialized state diff (changed/added/removed)"
    )
    
    is_storm: bool = Field(
        default=False,
        description="Entity is at or above the storm threshold"
    )
    
    storm_severity: StormSeverity | None = Field(
        default=None,
        description="Storm severity when is_storm is set"
    )
    
    is_recreation: bool = Field(
        default=False,
        description="Mount recognised as a recreation of a recent unmount"
    )
    
    suggestions: list[str] = Field(
        default_factory=list,
        description="Remediation hints, most urgent first"
    )
    
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
                    "timestamp": 1735000000000.0,
                    "entity_id": "c42",
                    "display_name": "UserCard",
                    "parent_id": "c7",
                    "necessary": False,
                    "cause": "reference-changes-only",
                    "attributed_group": None,
                    "attributed_key": None,
                    "duration_ms": 1.3,
                    "props_diff": {"changed": {}, "added": {}, "removed": {}},
                    "state_diff": None,
                    "is_storm": False,
                    "storm_severity": None,
                    "is_recreation": False,
                    "suggestions": [],
                }
            ]
        }
    }
    
    @property
    def is_unnecessary(self) -> bool:
        return not self.necessary
    
    def to_summary(self) -> str:
        verdict = "necessary" if self.necessary else "unnecessary"
        parts = [f"{self.display_name} ({self.entity_id}): {verdict}, {self.cause.value}"]
        if self.attributed_key:
            group = self.attributed_group.value if self.attributed_group else "?"
            parts.append(f"key={group}.{self.attributed_key}")
        if self.duration_ms is not None:
            parts.append(f"{self.duration_ms:.2f}ms")
        if self.is_storm and self.storm_severity:
            parts.append(f"storm={self.storm_severity.value}")
        if self.is_recreation:
            parts.append("recreated")
        return " ".join(parts)
