"""
Aggregation — Render records and rolling statistics.
"""

from render_diagnostics.aggregation.record import RenderRecord
from render_diagnostics.aggregation.aggregator import (
    AggregateSummary,
    Aggregator,
    EntityStats,
    MovingAverage,
)

__all__ = [
    "RenderRecord",
    "AggregateSummary",
    "Aggregator",
    "EntityStats",
    "MovingAverage",
]
