"""
Vocabulary enums — the shared language of the diagnostic engine.

All enumerated labels that appear on classifications, records,
storm reports, auxiliary signals and detector findings.
"""

from enum import Enum


# =============================================================================
# CLASSIFICATION
# =============================================================================

class Cause(str, Enum):
    """
    Why an update cycle happened, as far as the engine can tell.
    
    Unnecessary causes are ANCESTOR_RERENDER, REFERENCE_CHANGES_ONLY
    and COMPONENT_RECREATION. UNKNOWN is used when classification
    degraded or no previous snapshot was available.
    """
    INITIAL_RENDER = "initial-render"
    ANCESTOR_RERENDER = "ancestor-rerender"          # Attributes byte-identical
    REFERENCE_CHANGES_ONLY = "reference-changes-only"  # New objects, same content
    PROPS_CHANGED = "props-changed"
    STATE_CHANGED = "state-changed"
    PROPS_AND_STATE_CHANGED = "props-and-state-changed"
    COMPONENT_RECREATION = "component-recreation"
    UNKNOWN = "unknown"


class AttributeGroup(str, Enum):
    """
    Which attribute group a real change was attributed to.
    
    PROPS are caller-supplied inputs, STATE is internally owned.
    """
    PROPS = "props"
    STATE = "state"
    BOTH = "both"


# =============================================================================
# FREQUENCY
# =============================================================================

class StormSeverity(str, Enum):
    """
    Severity of an update storm relative to the configured threshold.
    
    WARNING below 2x threshold, ERROR below 4x, CRITICAL beyond.
    """
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# =============================================================================
# AUXILIARY SIGNALS
# =============================================================================

class SignalKind(str, Enum):
    """Direction of an auxiliary dependency signal."""
    READ = "read"      # A dependency was tracked during the cycle
    WRITE = "write"    # A dependency was triggered during the cycle


class TargetType(str, Enum):
    """Kind of value a read/write signal touched."""
    REF = "ref"
    REACTIVE = "reactive"
    COMPUTED = "computed"
    OBJECT = "object"
    ARRAY = "array"
    MAP = "map"
    SET = "set"
    UNKNOWN = "unknown"


# =============================================================================
# DETECTORS
# =============================================================================

class FindingSeverity(str, Enum):
    """Severity attached to a detector finding."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
