"""
Engine Config — Validated options for the diagnostic engine.

Options are snake_case; the camelCase spelling of every option is
accepted as an alias. Unknown options are rejected, so a misspelt
option fails loudly at construction instead of being ignored.
"""

import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


NameFilter = str | re.Pattern


class EngineConfig(BaseModel):
    """
    Engine configuration.
    
    Usage:
        config = EngineConfig(storm_threshold=10)
        config = EngineConfig.model_validate({"stormThreshold": 10})
    """
    
    # Switches
    enabled: bool = Field(default=True, description="Process lifecycle callbacks at all")
    detect_unnecessary: bool = Field(default=True, description="Classify updates and correlate recreations")
    track_signals: bool = Field(default=True, description="Log auxiliary read/write signals")
    
    # Filters
    include: list[NameFilter] = Field(
        default_factory=list,
        description="Only track display names matching one of these (substring or regex)"
    )
    exclude: list[NameFilter] = Field(
        default_factory=list,
        description="Never track display names matching one of these (substring or regex)"
    )
    dynamic_filtering: bool = Field(
        default=False,
        description="Start with per-entity filtering on: only explicitly enabled entity ids are tracked"
    )
    
    # Bounds
    history_size: int = Field(default=50, ge=1, description="Snapshots kept per entity")
    max_records: int = Field(default=1000, ge=1, description="Records kept in the global buffer")
    max_tracked_entities: int = Field(default=5000, ge=1, description="Entities with snapshots or stats")
    duration_window: int = Field(default=20, ge=1, description="Durations in each moving average")
    snapshot_max_age_ms: float = Field(default=60000, gt=0, description="Snapshots older than this are compacted away")
    
    # Storms
    frequency_window_ms: float = Field(default=1000, gt=0, description="Sliding window for update counts")
    storm_threshold: int = Field(default=5, ge=1, description="Updates per window that make a storm")
    
    # Recreation
    recreation_window_ms: float = Field(default=100, gt=0, description="Max unmount-to-mount gap")
    recreation_max_tracked: int = Field(default=100, ge=1, description="Pending unmount candidates")
    recreation_similarity_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0,
        description="Minimum matched/distinct prop key ratio"
    )
    
    # Signals
    sampling_rate: float = Field(default=1.0, gt=0.0, le=1.0, description="Fraction of signals kept")
    max_events_per_entity: int = Field(default=100, ge=1, description="Cap of each signal log")
    
    # Timing
    slow_render_ms: float = Field(default=50, ge=0, description="Durations above this get a hint")
    compaction_interval_ms: float = Field(default=30000, ge=0, description="0 disables compaction")
    
    # Debug
    debug: bool = Field(default=False, description="Record classification traces")
    debug_output_dir: Path | None = Field(default=None, description="Write traces here as JSON")
    
    @field_validator("include", "exclude", mode="before")
    @classmethod
    def coerce_single_filter(cls, v):
        """Accept a lone string or pattern in place of a list."""
        if isinstance(v, (str, re.Pattern)):
            return [v]
        return v
    
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "forbid",
    }
    
    def matches_filters(self, display_name: str) -> bool:
        """Whether an entity with this name should be tracked."""
        if self.include and not any(_matches(f, display_name) for f in self.include):
            return False
        return not any(_matches(f, display_name) for f in self.exclude)


def _matches(name_filter: NameFilter, display_name: str) -> bool:
    if isinstance(name_filter, re.Pattern):
        return name_filter.search(display_name) is not None
    return name_filter in display_name
