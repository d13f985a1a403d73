"""
Signals — Auxiliary read/write dependency events per update cycle.
"""

from render_diagnostics.signals.sampler import (
    CycleSignals,
    DerivedAccess,
    EventSampler,
    SignalEvent,
    analyze_derived,
    format_value,
)

__all__ = [
    "CycleSignals",
    "DerivedAccess",
    "EventSampler",
    "SignalEvent",
    "analyze_derived",
    "format_value",
]
