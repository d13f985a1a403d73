"""
Necessity Classifier — Decides whether an update cycle was necessary.

Compares two consecutive snapshots of one entity. The decision is
driven only by the structural diff of both attribute groups; signal
activity and timing add suggestions but never flip the verdict.

Decision procedure:
    1. Diff props and state
    2. No real change in either group:
         both diffs empty           -> ancestor-rerender
         only reference changes     -> reference-changes-only
    3. Otherwise necessary, attributed to the group(s) with a real
       change and to the first key that changed in content
"""

from dataclasses import dataclass, field
from typing import Any

from render_diagnostics.comparison import DiffResult, compute_diff
from render_diagnostics.observability import ClassificationTrace, DebugRecorder, get_logger
from render_diagnostics.signals import CycleSignals, analyze_derived
from render_diagnostics.snapshot import Snapshot
from render_diagnostics.snapshot.serializer import is_function_sentinel
from render_diagnostics.vocabulary import AttributeGroup, Cause

logger = get_logger("classification")


UNKNOWN_KEY = "unknown"

STABLE_REFERENCE_HINT = (
    "Prop '{key}' receives a new but identical value on every render; "
    "keep a stable reference or memoize it in the parent"
)
INLINE_CALLBACK_HINT = (
    "Prop '{key}' is a function recreated on every render; "
    "define it once outside the render path"
)
ANCESTOR_HINT = (
    "Nothing this entity reads changed; an ancestor re-rendered it. "
    "Memoize the entity or split the ancestor's state"
)
SLOW_RENDER_HINT = "Render took {duration:.1f}ms (over {limit:.0f}ms); consider splitting or virtualizing it"
STALE_DERIVED_HINT = (
    "Derived values ({keys}) were read with no write in this cycle; "
    "they may be cached stale or re-evaluated needlessly (low confidence)"
)


class ClassificationError(Exception):
    """Raised when two snapshots cannot be compared."""
    pass


@dataclass
class Classification:
    """
    Outcome of one necessity classification.
    """
    necessary: bool
    cause: Cause
    attributed_key: str | None = None
    attributed_group: AttributeGroup | None = None
    suggestions: list[str] = field(default_factory=list)
    props_diff: DiffResult | None = None
    state_diff: DiffResult | None = None
    
    @property
    def is_unnecessary(self) -> bool:
        return not self.necessary
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "necessary": self.necessary,
            "cause": self.cause.value,
            "attributed_key": self.attributed_key,
            "attributed_group": self.attributed_group.value if self.attributed_group else None,
            "suggestions": list(self.suggestions),
            "props_diff": self.props_diff.to_dict() if self.props_diff else None,
            "state_diff": self.state_diff.to_dict() if self.state_diff else None,
        }


def initial_classification() -> Classification:
    """Classification of a first mount."""
    return Classification(necessary=True, cause=Cause.INITIAL_RENDER)


def unknown_classification(necessary: bool = False) -> Classification:
    return Classification(necessary=necessary, cause=Cause.UNKNOWN)


class NecessityClassifier:
    """
    Classifies snapshot pairs.
    
    Usage:
        classifier = NecessityClassifier()
        result = classifier.classify(prev, curr, signals)
        if not result.necessary:
            print(result.cause, result.suggestions)
    """
    
    def __init__(
        self,
        slow_render_ms: float = 50.0,
        debug: DebugRecorder | None = None,
    ):
        self.slow_render_ms = slow_render_ms
        self.debug = debug
        self.failures = 0
    
    def classify(
        self,
        prev: Snapshot,
        curr: Snapshot,
        signals: CycleSignals | None = None,
    ) -> Classification:
        """
        Classify the cycle that produced `curr`.
        
        Never raises: any failure degrades to necessary=False with
        cause unknown, and is logged.
        """
        try:
            result = self._classify(prev, curr, signals)
        except Exception:
            self.failures += 1
            logger.warning(
                f"Classification failed for {getattr(curr, 'entity_id', '?')}; "
                f"degrading to {Cause.UNKNOWN.value}",
                exc_info=True,
            )
            return unknown_classification()
        
        if self.debug is not None:
            self.debug.capture(self._trace(prev, curr, signals, result))
        return result
    
    def _classify(
        self,
        prev: Snapshot,
        curr: Snapshot,
        signals: CycleSignals | None,
    ) -> Classification:
        self._validate_pair(prev, curr)
        
        props_diff = compute_diff(prev.props, curr.props)
        state_diff = compute_diff(prev.state, curr.state)
        props_real = props_diff.has_real_change
        state_real = state_diff.has_real_change
        
        if not props_real and not state_real:
            if props_diff.is_empty and state_diff.is_empty:
                cause = Cause.ANCESTOR_RERENDER
            else:
                cause = Cause.REFERENCE_CHANGES_ONLY
            result = Classification(
                necessary=False,
                cause=cause,
                props_diff=props_diff,
                state_diff=state_diff,
            )
        else:
            if props_real and state_real:
                group, cause = AttributeGroup.BOTH, Cause.PROPS_AND_STATE_CHANGED
                key = props_diff.first_real_change_key() or state_diff.first_real_change_key()
            elif props_real:
                group, cause = AttributeGroup.PROPS, Cause.PROPS_CHANGED
                key = props_diff.first_real_change_key()
            else:
                group, cause = AttributeGroup.STATE, Cause.STATE_CHANGED
                key = state_diff.first_real_change_key()
            result = Classification(
                necessary=True,
                cause=cause,
                attributed_key=key or UNKNOWN_KEY,
                attributed_group=group,
                props_diff=props_diff,
                state_diff=state_diff,
            )
        
        result.suggestions = self._suggest(result, curr, signals)
        return result
    
    def _validate_pair(self, prev: Snapshot, curr: Snapshot) -> None:
        if prev.entity_id != curr.entity_id:
            raise ClassificationError(
                f"Snapshots belong to different entities: {prev.entity_id} != {curr.entity_id}"
            )
        if prev.timestamp > curr.timestamp:
            raise ClassificationError(
                f"Snapshots out of order for {curr.entity_id}: "
                f"{prev.timestamp} > {curr.timestamp}"
            )
    
    # -------------------------------------------------------------------------
    # Suggestions
    # -------------------------------------------------------------------------
    
    def _suggest(
        self,
        result: Classification,
        curr: Snapshot,
        signals: CycleSignals | None,
    ) -> list[str]:
        suggestions: list[str] = []
        
        if result.props_diff is not None:
            for key, change in result.props_diff.changed.items():
                if change.deep_equal:
                    suggestions.append(STABLE_REFERENCE_HINT.format(key=key))
                elif is_function_sentinel(change.from_value) and is_function_sentinel(change.to_value):
                    suggestions.append(INLINE_CALLBACK_HINT.format(key=key))
        
        if result.cause == Cause.ANCESTOR_RERENDER:
            suggestions.append(ANCESTOR_HINT)
        
        if curr.duration_ms is not None and curr.duration_ms > self.slow_render_ms:
            suggestions.append(
                SLOW_RENDER_HINT.format(duration=curr.duration_ms, limit=self.slow_render_ms)
            )
        
        if signals is not None:
            derived = analyze_derived(signals)
            if derived.stale_suspected:
                keys = ", ".join(sorted(derived.keys)) or "anonymous"
                suggestions.append(STALE_DERIVED_HINT.format(keys=keys))
        
        return suggestions
    
    def _trace(
        self,
        prev: Snapshot,
        curr: Snapshot,
        signals: CycleSignals | None,
        result: Classification,
    ) -> ClassificationTrace:
        props_diff = result.props_diff or DiffResult()
        state_diff = result.state_diff or DiffResult()
        return ClassificationTrace(
            entity_id=curr.entity_id,
            display_name=curr.display_name,
            cycle_timestamp=curr.timestamp,
            previous_timestamp=prev.timestamp,
            props_changed=list(props_diff.changed),
            props_reference_only=props_diff.reference_only_keys,
            props_added=list(props_diff.added),
            props_removed=list(props_diff.removed),
            state_changed=list(state_diff.changed),
            state_reference_only=state_diff.reference_only_keys,
            necessary=result.necessary,
            cause=result.cause.value,
            attributed_key=result.attributed_key,
            signal_reads=len(signals.reads) if signals else 0,
            signal_writes=len(signals.writes) if signals else 0,
        )
