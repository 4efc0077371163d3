"""Structured event logging for exprparse.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from exprparse.logging.events import (
    EventLevel,
    EventType,
    ExprEvent,
    emit,
    get_sink,
    make_formula_event,
    set_project_dir,
    truncate_context,
)
from exprparse.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "ExprEvent",
    "emit",
    "get_sink",
    "make_formula_event",
    "set_project_dir",
    "truncate_context",
]
