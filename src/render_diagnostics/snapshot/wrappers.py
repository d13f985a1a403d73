"""
Wrappers — Single-level containers of the host runtime's state model.

The host keeps some state in boxed values (`Ref`, and the derived
`Computed`) and in tracked objects (`Reactive`). The serializer
unwraps these one level and tags them instead of walking their
bookkeeping fields.
"""

from typing import Any, Callable


class Ref:
    """A boxed value."""
    
    def __init__(self, value: Any = None):
        self._value = value
    
    @property
    def value(self) -> Any:
        return self._value
    
    @value.setter
    def value(self, new_value: Any) -> None:
        self._value = new_value
    
    def __repr__(self) -> str:
        return f"Ref({self._value!r})"


class Computed(Ref):
    """
    A boxed value derived from a getter.
    
    The getter runs on every read; caching is the host's business.
    """
    
    def __init__(self, getter: Callable[[], Any]):
        super().__init__(None)
        self._getter = getter
    
    @property
    def value(self) -> Any:
        return self._getter()
    
    @value.setter
    def value(self, new_value: Any) -> None:
        raise AttributeError("Computed values are read-only")
    
    def __repr__(self) -> str:
        return f"Computed({getattr(self._getter, '__name__', 'anonymous')})"


class Reactive:
    """A tracked object wrapping a raw target."""
    
    def __init__(self, target: Any):
        self._raw = target
    
    def to_raw(self) -> Any:
        """Return the untracked target."""
        return self._raw
    
    def __getitem__(self, key: Any) -> Any:
        return self._raw[key]
    
    def __setitem__(self, key: Any, value: Any) -> None:
        self._raw[key] = value
    
    def __repr__(self) -> str:
        return f"Reactive({self._raw!r})"


def unwrap(value: Any) -> Any:
    """Strip one wrapper level, leaving other values untouched."""
    if isinstance(value, Ref):
        return value.value
    if isinstance(value, Reactive):
        return value.to_raw()
    return value
