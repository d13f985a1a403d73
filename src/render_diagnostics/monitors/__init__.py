"""
Monitors — Update frequency storms and identity churn.
"""

from render_diagnostics.monitors.frequency import (
    FrequencyMonitor,
    StormStatus,
    severity_for,
)
from render_diagnostics.monitors.recreation import (
    RECREATION_SUGGESTIONS,
    KeyMismatch,
    RecreationCandidate,
    RecreationDetector,
    RecreationMatch,
    Similarity,
    signature,
)

__all__ = [
    # Frequency
    "FrequencyMonitor",
    "StormStatus",
    "severity_for",
    # Recreation
    "RECREATION_SUGGESTIONS",
    "KeyMismatch",
    "RecreationCandidate",
    "RecreationDetector",
    "RecreationMatch",
    "Similarity",
    "signature",
]
