"""
Detectors — Heuristics composed after the engine.

Provides:
- Finding / Detector / BaseDetector: detector contract
- DetectorRegistry: runs detectors on emitted records
- Built-ins: slow renders, storms, reference churn, unstable keys
"""

from render_diagnostics.detectors.base import (
    BaseDetector,
    Detector,
    Finding,
)
from render_diagnostics.detectors.registry import (
    DetectorNotFoundError,
    DetectorRegistry,
    create_registry,
)
from render_diagnostics.detectors.builtin import (
    FRAME_BUDGET_MS,
    ReferenceChurnDetector,
    RenderStormDetector,
    SlowRenderDetector,
    UnstableKeyDetector,
    create_default_registry,
)

__all__ = [
    # Base
    "BaseDetector",
    "Detector",
    "Finding",
    # Registry
    "DetectorNotFoundError",
    "DetectorRegistry",
    "create_registry",
    # Built-ins
    "FRAME_BUDGET_MS",
    "ReferenceChurnDetector",
    "RenderStormDetector",
    "SlowRenderDetector",
    "UnstableKeyDetector",
    "create_default_registry",
]
