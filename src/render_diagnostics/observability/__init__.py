"""
Observability — Logging, metrics, and classification traces.

Provides:
- Structured logging with cycle ID correlation
- Per-engine metrics (counters, gauges, histograms)
- Debug recorder for classification traces
"""

from render_diagnostics.observability.logging import (
    set_cycle_id,
    get_cycle_id,
    make_cycle_id,
    configure_logging,
    get_logger,
    LogContext,
    CycleFilter,
    JSONFormatter,
    ReadableFormatter,
)
from render_diagnostics.observability.metrics import (
    RENDER_BUCKETS_MS,
    Counter,
    Gauge,
    Histogram,
    EngineMetrics,
    create_metrics,
)
from render_diagnostics.observability.debug import (
    ClassificationTrace,
    DebugRecorder,
)

__all__ = [
    # Logging
    "set_cycle_id",
    "get_cycle_id",
    "make_cycle_id",
    "configure_logging",
    "get_logger",
    "LogContext",
    "CycleFilter",
    "JSONFormatter",
    "ReadableFormatter",
    # Metrics
    "RENDER_BUCKETS_MS",
    "Counter",
    "Gauge",
    "Histogram",
    "EngineMetrics",
    "create_metrics",
    # Debug
    "ClassificationTrace",
    "DebugRecorder",
]
