"""
Vocabulary — Enumerated labels shared by every engine component.
"""

from render_diagnostics.vocabulary.enums import (
    Cause,
    AttributeGroup,
    StormSeverity,
    SignalKind,
    TargetType,
    FindingSeverity,
)

# Causes that mark a cycle as unnecessary
UNNECESSARY_CAUSES = frozenset({
    Cause.ANCESTOR_RERENDER,
    Cause.REFERENCE_CHANGES_ONLY,
    Cause.COMPONENT_RECREATION,
})

__all__ = [
    "Cause",
    "AttributeGroup",
    "StormSeverity",
    "SignalKind",
    "TargetType",
    "FindingSeverity",
    "UNNECESSARY_CAUSES",
]
