"""
Logging — Structured logging with update-cycle correlation.

Every log line emitted while an update cycle is being processed
carries the cycle id (entity id and cycle timestamp), so a reader
can group the serializer, classifier and monitor output of one cycle.
"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any


# Context variable for the cycle currently being processed
_cycle_id: ContextVar[str | None] = ContextVar("cycle_id", default=None)

# Render fields a call site may attach with `extra=`
RECORD_FIELDS = ("entity_id", "cause", "storm_severity")


def set_cycle_id(cid: str | None) -> None:
    """Set cycle ID for current context."""
    _cycle_id.set(str(cid) if cid else None)


def get_cycle_id() -> str | None:
    """Get cycle ID from current context."""
    return _cycle_id.get()


def make_cycle_id(entity_id: str, timestamp: float) -> str:
    """Build the cycle id used to correlate log lines."""
    return f"{entity_id}@{timestamp:.2f}"


class CycleFilter(logging.Filter):
    """Adds cycle_id to log records."""
    
    def filter(self, record: logging.LogRecord) -> bool:
        record.cycle_id = get_cycle_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line, with any render fields passed via `extra=`.
    """
    
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "cycle_id": getattr(record, "cycle_id", None),
        }
        
        for key in RECORD_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value
        
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        
        return json.dumps(log_data, default=str)


class ReadableFormatter(logging.Formatter):
    """
    Human-readable formatter for development.
    """
    
    def format(self, record: logging.LogRecord) -> str:
        cid = getattr(record, "cycle_id", "-") or "-"
        
        base = f"{record.levelname:<7} [{cid}] {record.name}: {record.getMessage()}"
        
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        
        return base


def configure_logging(
    level: int = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
) -> None:
    """
    Configure render_diagnostics logging.
    
    Args:
        level: Logging level
        json_format: Use JSON format (for log shipping)
        stream: Output stream (default: stderr)
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(CycleFilter())
    
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ReadableFormatter())
    
    root = logging.getLogger("render_diagnostics")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger for an engine component."""
    return logging.getLogger(f"render_diagnostics.{name}")


class LogContext:
    """
    Context manager that scopes a cycle id.
    
    Usage:
        with LogContext(make_cycle_id("c1", now)):
            logger.debug("Classifying...")  # Includes cycle_id
    """
    
    def __init__(self, cycle_id: str | None):
        self.cycle_id = cycle_id
        self._token = None
    
    def __enter__(self):
        self._token = _cycle_id.set(str(self.cycle_id) if self.cycle_id else None)
        return self
    
    def __exit__(self, *args):
        if self._token is not None:
            _cycle_id.reset(self._token)
