"""
Structural Differ — Equality and diff primitives.

Three levels of comparison are used throughout the engine:

- strict: containers compare by identity, primitives by value. This
  is what decides whether a key "changed".
- shallow: one level of strict comparison across keys.
- deep: recursive structural equality, cycle safe. This is what
  separates a real change from a reference-only change.

Known limitation: callables are compared through their serialized
sentinel text. Two different closures with the same name look equal,
and two function sentinels in a diff are always treated as not deep
equal, so the differ errs toward "changed" rather than hide a change.
"""

import dataclasses
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from render_diagnostics.snapshot.serializer import is_function_sentinel
from render_diagnostics.snapshot.wrappers import Reactive, Ref


def is_primitive(value: Any) -> bool:
    """True for immutable scalar values compared by value."""
    return value is None or isinstance(value, (str, bytes, int, float, complex, bool, Enum))


def strict_equal(a: Any, b: Any) -> bool:
    """Identity for containers, value for primitives; bool never equals a number."""
    if a is b:
        return True
    if not (is_primitive(a) and is_primitive(b)):
        return False
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _fields_of(value: Any) -> dict[str, Any] | None:
    """Instance fields of a record-like object, None if it has none."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    try:
        return dict(vars(value))
    except TypeError:
        return None


def is_deep_equal(
    a: Any,
    b: Any,
    _visited: dict[tuple[int, int], tuple[Any, Any]] | None = None,
) -> bool:
    """
    Structural equality.
    
    Cycles are handled with a visited set of (id(a), id(b)) pairs: a
    pair already under comparison is assumed equal, so mutually
    cyclic graphs terminate. The pair map also holds the compared
    objects so their ids stay unique for the duration of the call.
    """
    if a is b:
        return True
    if a is None or b is None:
        return False
    if is_primitive(a) or is_primitive(b):
        return strict_equal(a, b)
    
    if isinstance(a, date) and isinstance(b, date):
        return type(a) is type(b) and a == b
    if isinstance(a, re.Pattern) and isinstance(b, re.Pattern):
        return a.pattern == b.pattern and a.flags == b.flags
    
    if type(a) is not type(b):
        return False
    
    visited = _visited if _visited is not None else {}
    pair = (id(a), id(b))
    if pair in visited:
        return True
    visited[pair] = (a, b)
    
    if _is_sequence(a):
        if len(a) != len(b):
            return False
        return all(is_deep_equal(x, y, visited) for x, y in zip(a, b))
    
    if isinstance(a, Mapping):
        if len(a) != len(b):
            return False
        return all(key in b and is_deep_equal(a[key], b[key], visited) for key in a)
    
    if isinstance(a, (set, frozenset)):
        return a == b
    if isinstance(a, Ref):
        return is_deep_equal(a.value, b.value, visited)
    if isinstance(a, Reactive):
        return is_deep_equal(a.to_raw(), b.to_raw(), visited)
    
    fields_a, fields_b = _fields_of(a), _fields_of(b)
    if fields_a is None or fields_b is None:
        return a == b
    return is_deep_equal(fields_a, fields_b, visited)


def shallow_equal(a: Any, b: Any) -> bool:
    """
    One-level equality.
    
    Both sides must be containers of the same "arrayness" with the
    same number of keys. Callables must be the very same object.
    """
    if a is b:
        return True
    if a is None or b is None:
        return False
    a_seq, b_seq = _is_sequence(a), _is_sequence(b)
    if a_seq != b_seq:
        return False
    if not a_seq and not (isinstance(a, Mapping) and isinstance(b, Mapping)):
        return False
    if len(a) != len(b):
        return False
    
    keys = range(len(a)) if a_seq else a.keys()
    for key in keys:
        if not a_seq and key not in b:
            return False
        x, y = a[key], b[key]
        if callable(x) or callable(y):
            if x is not y:
                return False
        elif not strict_equal(x, y):
            return False
    return True


def has_different_reference_but_same_content(prev: Any, next_: Any) -> bool:
    """True for a reference-only change."""
    if prev is next_:
        return False
    if is_primitive(prev) or is_primitive(next_):
        return False
    return is_deep_equal(prev, next_)


@dataclass(frozen=True)
class Change:
    """One key present on both sides with a different value."""
    from_value: Any
    to_value: Any
    same_reference: bool
    deep_equal: bool
    
    @property
    def is_reference_only(self) -> bool:
        return self.deep_equal and not self.same_reference
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_value,
            "to": self.to_value,
            "same_reference": self.same_reference,
            "deep_equal": self.deep_equal,
        }


@dataclass
class DiffResult:
    """
    Key-level difference between two attribute maps.
    """
    changed: dict[str, Change] = field(default_factory=dict)
    added: dict[str, Any] = field(default_factory=dict)
    removed: dict[str, Any] = field(default_factory=dict)
    
    @property
    def is_empty(self) -> bool:
        return not (self.changed or self.added or self.removed)
    
    @property
    def has_real_change(self) -> bool:
        """A content change, an added key or a removed key."""
        if self.added or self.removed:
            return True
        return any(not c.deep_equal for c in self.changed.values())
    
    @property
    def reference_only_keys(self) -> list[str]:
        return [k for k, c in self.changed.items() if c.deep_equal]
    
    def first_real_change_key(self) -> str | None:
        """First changed key lacking deep equality, else first added/removed key."""
        for key, change in self.changed.items():
            if not change.deep_equal:
                return key
        for key in self.added:
            return key
        for key in self.removed:
            return key
        return None
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "changed": {k: c.to_dict() for k, c in self.changed.items()},
            "added": dict(self.added),
            "removed": dict(self.removed),
        }


def compute_diff(prev: Mapping[str, Any] | None, next_: Mapping[str, Any] | None) -> DiffResult:
    """
    Diff two attribute maps over the union of their keys.
    
    A key present on both sides is reported as changed only when its
    values are not strictly equal; each change records whether the
    reference survived and whether the content is deep equal.
    """
    diff = DiffResult()
    if prev is None and next_ is None:
        return diff
    if prev is None:
        diff.added = dict(next_)
        return diff
    if next_ is None:
        diff.removed = dict(prev)
        return diff
    
    keys = list(prev.keys()) + [k for k in next_.keys() if k not in prev]
    for key in keys:
        had_key, has_key = key in prev, key in next_
        if not had_key:
            diff.added[key] = next_[key]
        elif not has_key:
            diff.removed[key] = prev[key]
        elif not strict_equal(prev[key], next_[key]):
            before, after = prev[key], next_[key]
            if is_function_sentinel(before) and is_function_sentinel(after):
                deep_equal = False
            else:
                deep_equal = is_deep_equal(before, after)
            diff.changed[key] = Change(
                from_value=before,
                to_value=after,
                same_reference=before is after,
                deep_equal=deep_equal,
            )
    return diff
