"""
Engine — Configuration, render timing and the diagnostic engine.
"""

from render_diagnostics.engine.config import EngineConfig
from render_diagnostics.engine.timing import MIN_DURATION_MS, RenderTimer
from render_diagnostics.engine.engine import (
    CycleInput,
    RecordCallback,
    RenderDiagnosticEngine,
    Scheduler,
    create_engine,
)

__all__ = [
    "EngineConfig",
    "MIN_DURATION_MS",
    "RenderTimer",
    "CycleInput",
    "RecordCallback",
    "RenderDiagnosticEngine",
    "Scheduler",
    "create_engine",
]
