"""
Event Sampler — Bounded, rate-sampled read/write log per entity.

The host reports auxiliary dependency signals (a value was read while
rendering, a value was written and triggered a re-render). Signals are
only logged while an entity's update cycle is open, and always against
the innermost open cycle, so a child cycle running inside its parent's
never has its signals attributed to the parent.
"""

import random
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from render_diagnostics.observability import get_logger
from render_diagnostics.snapshot.store import wall_clock_ms
from render_diagnostics.vocabulary import SignalKind, TargetType

logger = get_logger("signals")


def format_value(value: Any) -> str:
    """Short, bounded description of a signal value."""
    if value is None:
        return "None"
    if isinstance(value, str):
        return f'"{value[:20]}..."' if len(value) > 20 else f'"{value}"'
    if isinstance(value, (bool, int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return f"Array({len(value)})"
    if isinstance(value, dict):
        return f"{{{len(value)} keys}}"
    return type(value).__name__


@dataclass(frozen=True)
class SignalEvent:
    """
    One observed dependency read or write.
    """
    kind: SignalKind
    target_type: TargetType = TargetType.UNKNOWN
    key: str | None = None
    operation: str = "get"
    old_value: Any = None
    new_value: Any = None
    timestamp: float = 0.0
    
    def describe(self) -> str:
        key = f"[{self.key}]" if self.key is not None else ""
        desc = f"{self.operation} {self.target_type.value}{key}"
        if self.kind == SignalKind.WRITE and self.operation == "set" and self.key is not None:
            desc += f": {format_value(self.old_value)} → {format_value(self.new_value)}"
        return desc
    
    def to_dict(self) -> dict[str, Any]:
        data = {
            "kind": self.kind.value,
            "operation": self.operation,
            "key": self.key,
            "target_type": self.target_type.value,
            "timestamp": self.timestamp,
        }
        if self.kind == SignalKind.WRITE:
            data["old_value"] = format_value(self.old_value)
            data["new_value"] = format_value(self.new_value)
        return data


@dataclass(frozen=True)
class CycleSignals:
    """Immutable view of the signals logged during one cycle."""
    reads: tuple[SignalEvent, ...] = ()
    writes: tuple[SignalEvent, ...] = ()
    
    @property
    def is_empty(self) -> bool:
        return not self.reads and not self.writes
    
    def derived_reads(self) -> list[SignalEvent]:
        return [e for e in self.reads if e.target_type == TargetType.COMPUTED]
    
    def derived_writes(self) -> list[SignalEvent]:
        return [e for e in self.writes if e.target_type == TargetType.COMPUTED]


@dataclass
class DerivedAccess:
    """
    Summary of derived (computed) value access during one cycle.
    """
    read_count: int = 0
    keys: set[str] = field(default_factory=set)
    writes: list[dict[str, Any]] = field(default_factory=list)
    stale_suspected: bool = False
    
    @property
    def has_access(self) -> bool:
        return self.read_count > 0


def analyze_derived(signals: CycleSignals) -> DerivedAccess:
    """
    Summarise derived-value reads and writes.
    
    Derived reads with no write at all in the cycle suggest a cached
    computation that is stale or re-evaluated for nothing.
    """
    derived = signals.derived_reads()
    analysis = DerivedAccess(
        read_count=len(derived),
        keys={e.key for e in derived if e.key is not None},
        writes=[e.to_dict() for e in signals.derived_writes()],
    )
    analysis.stale_suspected = analysis.has_access and not signals.writes
    return analysis


class EventSampler:
    """
    Dual capped log of read/write signals, scoped to open cycles.
    
    Each entity keeps two independent FIFO logs. Opening a cycle
    resets that entity's logs; closing it freezes them until the
    next cycle opens.
    """
    
    def __init__(
        self,
        max_events_per_entity: int = 100,
        sampling_rate: float = 1.0,
        rng: Callable[[], float] | None = None,
        clock: Callable[[], float] | None = None,
        enabled: bool = True,
    ):
        """
        Initialize sampler.
        
        Args:
            max_events_per_entity: Cap for each of the two logs
            sampling_rate: Fraction of events kept (1.0 keeps all)
            rng: Uniform [0, 1) source used for sampling
            clock: Wall clock in milliseconds
            enabled: Disabled samplers never open cycles
        """
        if not 0.0 < sampling_rate <= 1.0:
            raise ValueError("sampling_rate must be in (0, 1]")
        self.max_events_per_entity = max_events_per_entity
        self.sampling_rate = sampling_rate
        self.enabled = enabled
        self._rng = rng or random.random
        self._clock = clock or wall_clock_ms
        self._reads: dict[str, deque[SignalEvent]] = {}
        self._writes: dict[str, deque[SignalEvent]] = {}
        self._open: list[str] = []
        self.events_seen = 0
        self.events_dropped = 0
    
    # -------------------------------------------------------------------------
    # Cycle brackets
    # -------------------------------------------------------------------------
    
    def begin(self, entity_id: str) -> None:
        """Open a cycle for entity_id and reset its logs."""
        if not self.enabled or entity_id in self._open:
            return
        self._reads[entity_id] = deque(maxlen=self.max_events_per_entity)
        self._writes[entity_id] = deque(maxlen=self.max_events_per_entity)
        self._open.append(entity_id)
    
    def end(self, entity_id: str) -> CycleSignals:
        """
        Close entity_id's cycle and return what it logged.
        
        Without an open bracket nothing belongs to this cycle, so the
        result is empty even if an earlier cycle left logs behind.
        """
        if entity_id not in self._open:
            return CycleSignals()
        # Normally the innermost; tolerate out-of-order closes
        self._open.reverse()
        self._open.remove(entity_id)
        self._open.reverse()
        return self.signals(entity_id)
    
    @contextmanager
    def sampling(self, entity_id: str) -> Iterator["EventSampler"]:
        """Bracket one cycle: `with sampler.sampling("c1"): ...`"""
        self.begin(entity_id)
        try:
            yield self
        finally:
            self.end(entity_id)
    
    @property
    def current_entity(self) -> str | None:
        return self._open[-1] if self._open else None
    
    def is_sampling(self, entity_id: str | None = None) -> bool:
        if entity_id is None:
            return bool(self._open)
        return entity_id in self._open
    
    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------
    
    def record_read(
        self,
        target_type: TargetType = TargetType.UNKNOWN,
        key: str | None = None,
        operation: str = "get",
        entity_id: str | None = None,
    ) -> bool:
        """Log a dependency read. Returns True if it was kept."""
        event = SignalEvent(
            kind=SignalKind.READ,
            target_type=target_type,
            key=key,
            operation=operation,
            timestamp=self._clock(),
        )
        return self._log(self._reads, event, entity_id)
    
    def record_write(
        self,
        target_type: TargetType = TargetType.UNKNOWN,
        key: str | None = None,
        operation: str = "set",
        old_value: Any = None,
        new_value: Any = None,
        entity_id: str | None = None,
    ) -> bool:
        """Log a dependency write. Returns True if it was kept."""
        event = SignalEvent(
            kind=SignalKind.WRITE,
            target_type=target_type,
            key=key,
            operation=operation,
            old_value=old_value,
            new_value=new_value,
            timestamp=self._clock(),
        )
        return self._log(self._writes, event, entity_id)
    
    def _log(
        self,
        logs: dict[str, deque[SignalEvent]],
        event: SignalEvent,
        entity_id: str | None,
    ) -> bool:
        target = entity_id if entity_id is not None else self.current_entity
        if target is None or target not in self._open:
            return False
        
        self.events_seen += 1
        if self.sampling_rate < 1.0 and self._rng() >= self.sampling_rate:
            self.events_dropped += 1
            return False
        
        logs[target].append(event)
        return True
    
    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    
    def reads(self, entity_id: str) -> list[SignalEvent]:
        return list(self._reads.get(entity_id, ()))
    
    def writes(self, entity_id: str) -> list[SignalEvent]:
        return list(self._writes.get(entity_id, ()))
    
    def signals(self, entity_id: str) -> CycleSignals:
        return CycleSignals(
            reads=tuple(self._reads.get(entity_id, ())),
            writes=tuple(self._writes.get(entity_id, ())),
        )
    
    def analyze_derived_access(self, entity_id: str) -> DerivedAccess:
        return analyze_derived(self.signals(entity_id))
    
    def clear(self, entity_id: str | None = None) -> None:
        """Forget one entity's logs, or everything."""
        if entity_id is not None:
            self._reads.pop(entity_id, None)
            self._writes.pop(entity_id, None)
            if entity_id in self._open:
                self._open.remove(entity_id)
        else:
            self._reads.clear()
            self._writes.clear()
            self._open.clear()
    
    def memory_stats(self) -> dict[str, Any]:
        return {
            "entities": len(self._reads),
            "read_events": sum(len(d) for d in self._reads.values()),
            "write_events": sum(len(d) for d in self._writes.values()),
            "max_events_per_entity": self.max_events_per_entity,
            "sampling_rate": self.sampling_rate,
            "events_seen": self.events_seen,
            "events_dropped": self.events_dropped,
            "enabled": self.enabled,
        }
