"""
Snapshot — Capturing and retaining serialized attribute state.

Provides:
- serialize / capture_attributes: cycle-safe, depth-bounded capture
- Ref / Computed / Reactive: host wrapper containers
- Entity / Snapshot / SnapshotStore: bounded per-entity history
"""

from render_diagnostics.snapshot.wrappers import (
    Ref,
    Computed,
    Reactive,
    unwrap,
)
from render_diagnostics.snapshot.serializer import (
    DEFAULT_MAX_DEPTH,
    CAPTURE_MAX_DEPTH,
    CIRCULAR_REFERENCE,
    MAX_DEPTH_REACHED,
    SERIALIZATION_ERROR,
    ACCESS_ERROR,
    KEYS_NOT_ENUMERABLE,
    serialize,
    capture_attributes,
    function_sentinel,
    is_function_sentinel,
    is_sentinel,
)
from render_diagnostics.snapshot.store import (
    Entity,
    Snapshot,
    SnapshotStore,
    wall_clock_ms,
)

__all__ = [
    # Wrappers
    "Ref",
    "Computed",
    "Reactive",
    "unwrap",
    # Serializer
    "DEFAULT_MAX_DEPTH",
    "CAPTURE_MAX_DEPTH",
    "CIRCULAR_REFERENCE",
    "MAX_DEPTH_REACHED",
    "SERIALIZATION_ERROR",
    "ACCESS_ERROR",
    "KEYS_NOT_ENUMERABLE",
    "serialize",
    "capture_attributes",
    "function_sentinel",
    "is_function_sentinel",
    "is_sentinel",
    # Store
    "Entity",
    "Snapshot",
    "SnapshotStore",
    "wall_clock_ms",
]
