"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and printed to stderr.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Parsing
    formula_parsed = "formula_parsed"
    formula_parse_failed = "formula_parse_failed"
    formula_limit_exceeded = "formula_limit_exceeded"

    # Evaluation
    formula_evaluated = "formula_evaluated"

    # Inputs
    bindings_line_skipped = "bindings_line_skipped"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

PARSE_SYNTAX_ERROR = "parse_syntax_error"
PARSE_LIMIT_EXCEEDED = "parse_limit_exceeded"
BINDING_UNPARSEABLE = "binding_unparseable"


# ---------------------------------------------------------------------------
# Context truncation
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 256


def truncate_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with long string values truncated.

    Formulas can be arbitrarily long; event lines stay bounded.
    """
    out: dict[str, Any] = {}
    for k, v in context.items():
        if isinstance(v, dict):
            out[k] = truncate_context(v)
        elif isinstance(v, str) and len(v) > _MAX_VALUE_LEN:
            out[k] = v[:_MAX_VALUE_LEN] + "...[truncated]"
        else:
            out[k] = v
    return out


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class ExprEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


def make_formula_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    formula: str,
    source: str | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> ExprEvent:
    """Build an event attributed to a formula (and where it came from)."""
    ctx: dict[str, Any] = {"formula": formula}
    if source is not None:
        ctx["source"] = source
    if extra:
        ctx.update(extra)
    return ExprEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=ctx,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Set by ``set_project_dir``; ``None`` means events are discarded.
_sink: Any = None  # EventSink | None


def set_project_dir(
    project_dir: Path | None,
    *,
    fsync: bool = False,
    tail_bytes: int | None = None,
) -> None:
    """Configure the module-level event sink for a project directory.

    Called by the CLI when ``logging_enabled`` is set in ``exprparse.yaml``.
    Passing ``None`` detaches the sink so later ``emit()`` calls are
    discarded.
    """
    global _sink
    from exprparse.logging.sink import EventSink

    if project_dir is None:
        _sink = None
        return
    _sink = EventSink(Path(project_dir), fsync=fsync, tail_bytes=tail_bytes)


def get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float | None = None
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if _last_stderr_ts is not None and now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[exprparse] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Safe emit
# ---------------------------------------------------------------------------


def emit(event: ExprEvent) -> None:
    """Write an event to the configured sink.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    try:
        sink = get_sink()
        if sink is None:
            return
        event = event.model_copy(update={"context": truncate_context(event.context)})
        sink.write(event)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")

