"""
Serializer — Bounded-depth, cycle-safe plain representation of values.

Turns an arbitrary attribute value graph into dicts, lists and
primitives that can be diffed and retained. Whatever cannot or should
not be represented directly is replaced by a sentinel string:

    [Function: name]           callables
    [Max Depth Reached]        nesting beyond max_depth
    [Circular Reference]       re-entry into an already visited object
    [Serialization Error]      a field whose access raised
    [Access Error]             a top-level attribute whose access raised

The visited set is identity based and never shrinks during one call,
so a value reachable through two paths is serialized once and the
second path yields the circular sentinel.
"""

import dataclasses
import re
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from render_diagnostics.snapshot.wrappers import Computed, Reactive, Ref, unwrap as unwrap_value


DEFAULT_MAX_DEPTH = 5
CAPTURE_MAX_DEPTH = 3

CIRCULAR_REFERENCE = "[Circular Reference]"
MAX_DEPTH_REACHED = "[Max Depth Reached]"
SERIALIZATION_ERROR = "[Serialization Error]"
ACCESS_ERROR = "[Access Error]"
KEYS_NOT_ENUMERABLE = "[Object - Keys Not Enumerable]"
FUNCTION_SENTINEL_PREFIX = "[Function:"

# Bookkeeping keys hosts put on state that never belong in a diff
INTERNAL_KEYS = frozenset({
    "render_count",
    "force_render_trigger",
    "instance",
})

PRIMITIVE_TYPES = (str, bytes, int, float, complex, bool, Enum)


def function_sentinel(fn: Any) -> str:
    """Display sentinel for a callable, tagged with its name."""
    name = getattr(fn, "__name__", None)
    if name is None:
        # functools.partial and friends
        name = getattr(getattr(fn, "func", None), "__name__", None)
    if not name or name == "<lambda>":
        name = "anonymous"
    return f"[Function: {name}]"


def is_function_sentinel(value: Any) -> bool:
    """True if value is a serialized callable."""
    return isinstance(value, str) and value.startswith(FUNCTION_SENTINEL_PREFIX)


def is_sentinel(value: Any) -> bool:
    """True if value is any serializer placeholder."""
    return isinstance(value, str) and (
        is_function_sentinel(value)
        or value in {
            CIRCULAR_REFERENCE,
            MAX_DEPTH_REACHED,
            SERIALIZATION_ERROR,
            ACCESS_ERROR,
            KEYS_NOT_ENUMERABLE,
        }
    )


def serialize(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """
    Convert a value graph into a plain, acyclic, depth-bounded form.
    
    Args:
        value: Anything reachable from a component attribute
        max_depth: Containers nested deeper than this become a sentinel
    
    Returns:
        Plain data: None, primitives, lists, dicts and sentinel strings
    """
    # Holding the visited objects keeps their ids from being reused by
    # values created mid-walk (a Computed getter returns fresh objects)
    seen: dict[int, Any] = {}
    
    def walk(val: Any, depth: int) -> Any:
        if val is None:
            return None
        if isinstance(val, PRIMITIVE_TYPES):
            return val
        if callable(val):
            return function_sentinel(val)
        if depth > max_depth:
            return MAX_DEPTH_REACHED
        if id(val) in seen:
            return CIRCULAR_REFERENCE
        seen[id(val)] = val
        
        if isinstance(val, Ref):
            try:
                inner = val.value
            except Exception:
                return SERIALIZATION_ERROR
            tag = "ComputedRef" if isinstance(val, Computed) else "Ref"
            return {"__type": tag, "value": walk(inner, depth + 1)}
        if isinstance(val, Reactive):
            return {"__type": "Reactive", "value": walk(val.to_raw(), depth + 1)}
        
        if isinstance(val, (list, tuple)):
            return [walk(item, depth + 1) for item in val]
        if isinstance(val, (set, frozenset)):
            items = [walk(item, depth + 1) for item in val]
            return {"__type": "Set", "value": sorted(items, key=repr)}
        if isinstance(val, (datetime, date)):
            return {"__type": "Date", "value": val.isoformat()}
        if isinstance(val, re.Pattern):
            return {"__type": "RegExp", "value": repr(val)}
        
        try:
            fields = _public_fields(val)
        except Exception:
            return KEYS_NOT_ENUMERABLE
        
        result: dict[str, Any] = {}
        for key, getter in fields:
            try:
                result[key] = walk(getter(), depth + 1)
            except Exception:
                result[key] = SERIALIZATION_ERROR
        return result
    
    return walk(value, 0)


def _public_fields(val: Any) -> list[tuple[str, Any]]:
    """
    List (key, getter) pairs for the public fields of a container.
    
    Getters defer the actual access so one failing field can be
    isolated by the caller.
    """
    if isinstance(val, Mapping):
        keys = [(k if isinstance(k, str) else str(k), k) for k in val.keys()]
        return [
            (name, (lambda k=k: val[k]))
            for name, k in keys
            if not name.startswith("_")
        ]
    if isinstance(val, BaseModel):
        names = list(type(val).model_fields)
    elif dataclasses.is_dataclass(val):
        names = [f.name for f in dataclasses.fields(val)]
    else:
        names = list(vars(val))
    return [
        (name, (lambda n=name: getattr(val, n)))
        for name in names
        if not name.startswith("_")
    ]


def capture_attributes(
    attributes: Mapping[str, Any] | None,
    max_depth: int = CAPTURE_MAX_DEPTH,
    unwrap: bool = False,
    skip_internal: bool = False,
) -> dict[str, Any]:
    """
    Capture one attribute group of an entity.
    
    Args:
        attributes: Raw attribute map handed over by the host
        max_depth: Depth bound for each attribute value
        unwrap: Strip top-level wrappers without a type marker
            (internally owned state is read through its box)
        skip_internal: Also drop `$`-prefixed and bookkeeping keys
            (state only; props are kept as the host passed them)
    
    Returns:
        Serialized attribute map; a failing attribute becomes ACCESS_ERROR
    """
    if not attributes:
        return {}
    
    snapshot: dict[str, Any] = {}
    for key in list(attributes.keys()):
        name = key if isinstance(key, str) else str(key)
        if name.startswith("_"):
            continue
        if skip_internal and (name.startswith("$") or name in INTERNAL_KEYS):
            continue
        try:
            value = attributes[key]
            if unwrap:
                value = unwrap_value(value)
            snapshot[name] = serialize(value, max_depth)
        except Exception:
            snapshot[name] = ACCESS_ERROR
    return snapshot
