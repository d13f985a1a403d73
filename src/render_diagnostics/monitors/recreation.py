"""
Recreation Detector — Correlates unmounts with near-identical remounts.

An entity destroyed and replaced by a structurally similar one under
the same parent, within a short window, was almost certainly recreated
where it should have been patched in place (an unstable key is the
usual culprit). Unmounts are remembered as candidates keyed by a
signature of display name and prop keys; a mount consumes the matching
candidate.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from render_diagnostics.comparison import Change, DiffResult, is_deep_equal
from render_diagnostics.observability import get_logger
from render_diagnostics.snapshot import Snapshot
from render_diagnostics.snapshot.serializer import is_function_sentinel
from render_diagnostics.snapshot.store import wall_clock_ms

logger = get_logger("monitors.recreation")


RECREATION_SUGGESTIONS = (
    "Entity is being recreated instead of updated",
    "Check for a dynamic key binding that changes on every render",
    "Remove the key or derive it from a stable identifier",
    "Recreation discards local state and rebuilds the whole subtree",
)

# Key count difference beyond which two prop maps are never similar
MAX_KEY_COUNT_GAP = 2


@dataclass(frozen=True)
class RecreationCandidate:
    """An entity recently unmounted, waiting for a similar remount."""
    signature: str
    entity_id: str
    display_name: str
    props: dict[str, Any]
    timestamp: float
    parent_id: str | None = None


@dataclass(frozen=True)
class KeyMismatch:
    key: str
    old: Any
    new: Any


@dataclass
class Similarity:
    """Key-level similarity between two prop maps."""
    score: float
    is_similar: bool
    mismatches: list[KeyMismatch] = field(default_factory=list)


@dataclass
class RecreationMatch:
    """
    A mount recognised as a recreation of a recent unmount.
    """
    previous_entity_id: str
    time_since_unmount_ms: float
    similarity: float
    mismatches: list[KeyMismatch] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=lambda: list(RECREATION_SUGGESTIONS))
    
    @property
    def details(self) -> str:
        return f"Entity was unmounted and remounted within {self.time_since_unmount_ms:.0f}ms"
    
    def as_diff(self) -> DiffResult:
        """Mismatched keys as a props diff."""
        diff = DiffResult()
        for m in self.mismatches:
            diff.changed[m.key] = Change(
                from_value=m.old,
                to_value=m.new,
                same_reference=m.old is m.new,
                deep_equal=False,
            )
        return diff
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "previous_entity_id": self.previous_entity_id,
            "time_since_unmount_ms": self.time_since_unmount_ms,
            "similarity": self.similarity,
            "details": self.details,
            "mismatches": [{"key": m.key, "old": m.old, "new": m.new} for m in self.mismatches],
        }


def signature(display_name: str, props: Mapping[str, Any]) -> str:
    """Display name plus sorted prop keys."""
    return f"{display_name}-{','.join(sorted(props))}"


def _values_match(old: Any, new: Any) -> bool:
    if is_function_sentinel(old) and is_function_sentinel(new):
        return True
    return is_deep_equal(old, new)


class RecreationDetector:
    """
    Bounded store of unmount candidates.
    
    Usage:
        detector.record_unmount(last_snapshot, parent_id="list")
        match = detector.check(new_snapshot, parent_id="list")
        if match:
            print(match.details)
    """
    
    def __init__(
        self,
        window_ms: float = 100.0,
        max_tracked: int = 100,
        similarity_threshold: float = 0.7,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize detector.
        
        Args:
            window_ms: Maximum unmount-to-mount gap for a match
            max_tracked: Candidate cap (oldest evicted)
            similarity_threshold: Minimum matched/distinct key ratio
            clock: Wall clock in milliseconds
        """
        self.window_ms = window_ms
        self.max_tracked = max_tracked
        self.similarity_threshold = similarity_threshold
        self._clock = clock or wall_clock_ms
        self._candidates: OrderedDict[str, RecreationCandidate] = OrderedDict()
        self.evicted = 0
    
    def record_unmount(
        self,
        snapshot: Snapshot,
        parent_id: str | None = None,
        now: float | None = None,
    ) -> RecreationCandidate:
        """Remember an unmounted entity as a candidate."""
        t = self._clock() if now is None else now
        self.cleanup(t)
        
        sig = signature(snapshot.display_name, snapshot.props)
        candidate = RecreationCandidate(
            signature=sig,
            entity_id=snapshot.entity_id,
            display_name=snapshot.display_name,
            props=snapshot.props,
            timestamp=t,
            parent_id=parent_id if parent_id is not None else snapshot.parent_id,
        )
        self._candidates.pop(sig, None)
        self._candidates[sig] = candidate
        
        while len(self._candidates) > self.max_tracked:
            oldest = min(self._candidates.values(), key=lambda c: c.timestamp)
            del self._candidates[oldest.signature]
            self.evicted += 1
            logger.debug(f"Evicted recreation candidate {oldest.signature}")
        return candidate
    
    def check(
        self,
        snapshot: Snapshot,
        parent_id: str | None = None,
        now: float | None = None,
    ) -> RecreationMatch | None:
        """
        Match a fresh mount against the candidates.
        
        A matching candidate is consumed.
        """
        t = self._clock() if now is None else now
        self.cleanup(t)
        
        sig = signature(snapshot.display_name, snapshot.props)
        candidate = self._candidates.get(sig)
        if candidate is None:
            return None
        
        elapsed = t - candidate.timestamp
        parent = parent_id if parent_id is not None else snapshot.parent_id
        if elapsed > self.window_ms or candidate.parent_id != parent:
            return None
        
        similarity = self.compare(candidate.props, snapshot.props)
        if not similarity.is_similar:
            return None
        
        del self._candidates[sig]
        return RecreationMatch(
            previous_entity_id=candidate.entity_id,
            time_since_unmount_ms=elapsed,
            similarity=similarity.score,
            mismatches=similarity.mismatches,
        )
    
    def compare(self, old: Mapping[str, Any], new: Mapping[str, Any]) -> Similarity:
        """matched / distinct keys; no keys at all scores 0."""
        if abs(len(old) - len(new)) > MAX_KEY_COUNT_GAP:
            return Similarity(score=0.0, is_similar=False)
        
        total = len(set(old) | set(new))
        matched = 0
        mismatches = []
        for key, value in old.items():
            if key not in new:
                continue
            if _values_match(value, new[key]):
                matched += 1
            else:
                mismatches.append(KeyMismatch(key=key, old=value, new=new[key]))
        
        score = matched / total if total else 0.0
        return Similarity(
            score=score,
            is_similar=score >= self.similarity_threshold,
            mismatches=mismatches,
        )
    
    def cleanup(self, now: float | None = None) -> int:
        """Drop candidates older than twice the window."""
        t = self._clock() if now is None else now
        cutoff = t - self.window_ms * 2
        stale = [sig for sig, c in self._candidates.items() if c.timestamp < cutoff]
        for sig in stale:
            del self._candidates[sig]
        return len(stale)
    
    @property
    def pending_count(self) -> int:
        return len(self._candidates)
    
    def pending(self) -> list[RecreationCandidate]:
        return list(self._candidates.values())
    
    def clear(self) -> None:
        self._candidates.clear()
