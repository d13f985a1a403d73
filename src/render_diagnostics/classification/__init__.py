"""
Classification — Necessity decision for update cycles.
"""

from render_diagnostics.classification.classifier import (
    Classification,
    ClassificationError,
    NecessityClassifier,
    initial_classification,
    unknown_classification,
)

__all__ = [
    "Classification",
    "ClassificationError",
    "NecessityClassifier",
    "initial_classification",
    "unknown_classification",
]
