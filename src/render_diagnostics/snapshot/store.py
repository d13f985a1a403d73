"""
Snapshot Store — Per-entity bounded history of captured snapshots.

Holds, for every tracked entity, the most recent serialized attribute
states in capture order. History length is capped per entity (oldest
evicted first) and the number of tracked entities is capped as a
safety net against missed disposal calls.
"""

import time
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from render_diagnostics.observability import get_logger
from render_diagnostics.snapshot.serializer import capture_attributes

logger = get_logger("snapshot")


def wall_clock_ms() -> float:
    """Wall-clock time in milliseconds."""
    return time.time() * 1000.0


@dataclass(frozen=True)
class Entity:
    """
    One trackable instance in the observed tree.
    
    Created and destroyed by the host; the engine only refers to it.
    """
    entity_id: str
    display_name: str = "Anonymous"
    parent_id: str | None = None


@dataclass(frozen=True)
class Snapshot:
    """
    Serialized attribute state of an entity at one update cycle.
    
    Treat `props` and `state` as read-only once captured.
    """
    entity_id: str
    display_name: str
    timestamp: float
    props: dict[str, Any] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)
    duration_ms: float | None = None
    parent_id: str | None = None
    
    @property
    def entity(self) -> Entity:
        return Entity(self.entity_id, self.display_name, self.parent_id)
    
    def to_lightweight(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "timestamp": self.timestamp,
            "display_name": self.display_name,
            "props": self.props,
            "state": self.state,
        }
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "display_name": self.display_name,
            "parent_id": self.parent_id,
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
            "props": self.props,
            "state": self.state,
            "has_props": bool(self.props),
            "has_state": bool(self.state),
        }


def _capture_group(attributes: Mapping[str, Any] | None, group: str, state: bool) -> dict[str, Any]:
    try:
        return capture_attributes(attributes, unwrap=state, skip_internal=state)
    except Exception:
        logger.warning(f"Failed to capture {group}", exc_info=True)
        return {"__error": f"Failed to capture {group}"}


class SnapshotStore:
    """
    Per-entity snapshot history.
    
    Entities are kept in least-recently-captured order so the
    entity cap evicts the one that has been quiet the longest.
    """
    
    def __init__(
        self,
        history_size: int = 50,
        max_entities: int | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize store.
        
        Args:
            history_size: Snapshots retained per entity
            max_entities: Entities retained (None = unbounded)
            clock: Wall clock in milliseconds
        """
        if history_size < 1:
            raise ValueError("history_size must be at least 1")
        self.history_size = history_size
        self.max_entities = max_entities
        self._clock = clock or wall_clock_ms
        self._histories: OrderedDict[str, deque[Snapshot]] = OrderedDict()
    
    def capture(
        self,
        entity: Entity,
        props: Mapping[str, Any] | None = None,
        state: Mapping[str, Any] | None = None,
        duration_ms: float | None = None,
        timestamp: float | None = None,
    ) -> Snapshot:
        """
        Serialize raw attributes into a snapshot and retain it.
        """
        snapshot = Snapshot(
            entity_id=entity.entity_id,
            display_name=entity.display_name,
            parent_id=entity.parent_id,
            timestamp=self._clock() if timestamp is None else timestamp,
            duration_ms=duration_ms,
            props=_capture_group(props, "props", state=False),
            state=_capture_group(state, "state", state=True),
        )
        return self.retain(snapshot)
    
    def retain(self, snapshot: Snapshot) -> Snapshot:
        """Append an already built snapshot to its entity's history."""
        history = self._histories.get(snapshot.entity_id)
        if history is None:
            history = deque(maxlen=self.history_size)
            self._histories[snapshot.entity_id] = history
        else:
            self._histories.move_to_end(snapshot.entity_id)
        history.append(snapshot)
        
        if self.max_entities is not None:
            while len(self._histories) > self.max_entities:
                evicted, _ = self._histories.popitem(last=False)
                logger.debug(f"Evicted snapshot history of {evicted}")
        return snapshot
    
    def latest(self, entity_id: str) -> Snapshot | None:
        history = self._histories.get(entity_id)
        if not history:
            return None
        return history[-1]
    
    def previous(self, entity_id: str) -> Snapshot | None:
        history = self._histories.get(entity_id)
        if not history or len(history) < 2:
            return None
        return history[-2]
    
    def history(self, entity_id: str, limit: int | None = None) -> list[Snapshot]:
        history = list(self._histories.get(entity_id, ()))
        if limit and limit < len(history):
            return history[-limit:]
        return history
    
    def count(self, entity_id: str) -> int:
        history = self._histories.get(entity_id)
        return len(history) if history else 0
    
    @property
    def tracked_count(self) -> int:
        return len(self._histories)
    
    @property
    def total_count(self) -> int:
        return sum(len(h) for h in self._histories.values())
    
    def clear(self, entity_id: str | None = None) -> None:
        """Drop one entity's history, or everything."""
        if entity_id is not None:
            self._histories.pop(entity_id, None)
        else:
            self._histories.clear()
    
    def prune(self, max_age_ms: float = 60000, now: float | None = None) -> int:
        """
        Drop snapshots older than max_age_ms.
        
        Entities left without snapshots are forgotten.
        
        Returns:
            Number of snapshots removed
        """
        cutoff = (self._clock() if now is None else now) - max_age_ms
        removed = 0
        for entity_id in list(self._histories):
            history = self._histories[entity_id]
            kept = [s for s in history if s.timestamp > cutoff]
            removed += len(history) - len(kept)
            if not kept:
                del self._histories[entity_id]
            elif len(kept) != len(history):
                self._histories[entity_id] = deque(kept, maxlen=self.history_size)
        return removed
