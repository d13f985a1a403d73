"""
render_diagnostics — Redundant and pathological re-render diagnosis.

Classifies every observed update cycle of a component tree as necessary
or not, attributes a cause, flags update storms and flags entities that
are destroyed and recreated instead of patched.
"""

__version__ = "0.1.0"

from render_diagnostics.engine import (
    CycleInput,
    EngineConfig,
    RenderDiagnosticEngine,
    create_engine,
)
from render_diagnostics.aggregation import RenderRecord

__all__ = [
    "__version__",
    "CycleInput",
    "EngineConfig",
    "RenderDiagnosticEngine",
    "RenderRecord",
    "create_engine",
]
