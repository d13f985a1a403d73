"""
Comparison — Equality and diff primitives shared by the engine.
"""

from render_diagnostics.comparison.differ import (
    Change,
    DiffResult,
    compute_diff,
    has_different_reference_but_same_content,
    is_deep_equal,
    is_primitive,
    shallow_equal,
    strict_equal,
)

__all__ = [
    "Change",
    "DiffResult",
    "compute_diff",
    "has_different_reference_but_same_content",
    "is_deep_equal",
    "is_primitive",
    "shallow_equal",
    "strict_equal",
]
