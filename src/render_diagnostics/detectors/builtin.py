"""
Built-in Detectors — Record-level heuristics shipped with the engine.

- slow_render: render durations over a frame budget
- render_storm: entities entering or escalating a storm
- reference_churn: repeated reference-only updates
- unstable_key: entities recreated instead of updated
"""

from render_diagnostics.aggregation import RenderRecord
from render_diagnostics.detectors.base import BaseDetector, Finding
from render_diagnostics.detectors.registry import DetectorRegistry, create_registry
from render_diagnostics.vocabulary import Cause, FindingSeverity, StormSeverity


# One frame at 60 fps
FRAME_BUDGET_MS = 16.0


class SlowRenderDetector(BaseDetector):
    """Flags renders slower than a frame, and much slower than a frame."""
    
    def __init__(self, warn_ms: float = FRAME_BUDGET_MS, error_ms: float = 100.0):
        if error_ms < warn_ms:
            raise ValueError("error_ms must not be below warn_ms")
        self.warn_ms = warn_ms
        self.error_ms = error_ms
    
    @property
    def name(self) -> str:
        return "slow_render"
    
    @property
    def description(self) -> str:
        return f"Render durations over {self.warn_ms:.0f}ms"
    
    def detect(self, record: RenderRecord) -> Finding | None:
        duration = record.duration_ms
        if duration is None or duration < self.warn_ms:
            return None
        severity = FindingSeverity.ERROR if duration >= self.error_ms else FindingSeverity.WARNING
        limit = self.error_ms if severity == FindingSeverity.ERROR else self.warn_ms
        return Finding.for_record(
            self.name,
            severity,
            f"{record.display_name} took {duration:.1f}ms to render (limit {limit:.0f}ms)",
            record,
            duration_ms=duration,
        )


STORM_FINDING_SEVERITY = {
    StormSeverity.WARNING: FindingSeverity.WARNING,
    StormSeverity.ERROR: FindingSeverity.ERROR,
    StormSeverity.CRITICAL: FindingSeverity.CRITICAL,
}

_STORM_RANK = {
    StormSeverity.WARNING: 1,
    StormSeverity.ERROR: 2,
    StormSeverity.CRITICAL: 3,
}


class RenderStormDetector(BaseDetector):
    """
    Reports a storm once when it starts and again when it escalates.
    """
    
    def __init__(self):
        self._current: dict[str, StormSeverity] = {}
    
    @property
    def name(self) -> str:
        return "render_storm"
    
    def detect(self, record: RenderRecord) -> Finding | None:
        if not record.is_storm or record.storm_severity is None:
            self._current.pop(record.entity_id, None)
            return None
        
        previous = self._current.get(record.entity_id)
        self._current[record.entity_id] = record.storm_severity
        if previous is not None and _STORM_RANK[record.storm_severity] <= _STORM_RANK[previous]:
            return None
        
        return Finding.for_record(
            self.name,
            STORM_FINDING_SEVERITY[record.storm_severity],
            f"{record.display_name} is in a render storm ({record.storm_severity.value})",
            record,
            storm_severity=record.storm_severity.value,
        )


class ReferenceChurnDetector(BaseDetector):
    """
    Flags entities receiving new-but-equal values several cycles in a row.
    """
    
    def __init__(self, min_consecutive: int = 3):
        if min_consecutive < 1:
            raise ValueError("min_consecutive must be at least 1")
        self.min_consecutive = min_consecutive
        self._streaks: dict[str, int] = {}
    
    @property
    def name(self) -> str:
        return "reference_churn"
    
    def detect(self, record: RenderRecord) -> Finding | None:
        if record.cause != Cause.REFERENCE_CHANGES_ONLY:
            self._streaks.pop(record.entity_id, None)
            return None
        
        streak = self._streaks.get(record.entity_id, 0) + 1
        self._streaks[record.entity_id] = streak
        if streak != self.min_consecutive:
            return None
        
        keys = _reference_only_keys(record)
        return Finding.for_record(
            self.name,
            FindingSeverity.WARNING,
            f"{record.display_name} re-rendered {streak} times in a row for "
            f"reference-only changes ({', '.join(keys) or 'no keys'})",
            record,
            keys=keys,
            streak=streak,
        )


class UnstableKeyDetector(BaseDetector):
    """Flags recreations, the signature of an unstable key."""
    
    @property
    def name(self) -> str:
        return "unstable_key"
    
    def detect(self, record: RenderRecord) -> Finding | None:
        if not record.is_recreation:
            return None
        changed = sorted((record.props_diff or {}).get("changed", {}))
        return Finding.for_record(
            self.name,
            FindingSeverity.WARNING,
            f"{record.display_name} was destroyed and recreated instead of updated; "
            "check its key",
            record,
            mismatched_keys=changed,
        )


def _reference_only_keys(record: RenderRecord) -> list[str]:
    keys: list[str] = []
    for diff in (record.props_diff, record.state_diff):
        if not diff:
            continue
        for key, change in diff.get("changed", {}).items():
            if change.get("deep_equal"):
                keys.append(key)
    return keys


def create_default_registry(**kwargs) -> DetectorRegistry:
    """Registry holding every built-in detector."""
    registry = create_registry(**kwargs)
    registry.register(SlowRenderDetector())
    registry.register(RenderStormDetector())
    registry.register(ReferenceChurnDetector())
    registry.register(UnstableKeyDetector())
    return registry
