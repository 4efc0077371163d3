"""Filesystem NDJSON event sink with concurrency-safe appends.

Events are appended as one JSON line per event to
``<project_dir>/logs/events.ndjson``.  Writes hold an exclusive
``fcntl.flock`` and reads a shared one; on platforms without ``fcntl``
locking is skipped.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from exprparse.logging.events import ExprEvent

try:
    import fcntl

    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False

# Default tail-read size (2 MB)
_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024

_MAX_READ_LIMIT = 2000


class EventSink:
    """Append-only NDJSON log for one project directory."""

    def __init__(self, project_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.path = project_dir / "logs" / "events.ndjson"
        self._fsync = fsync
        self._tail_bytes = tail_bytes if tail_bytes is not None else _DEFAULT_TAIL_BYTES

    def write(self, event: ExprEvent) -> None:
        """Append *event* as one JSON line, creating ``logs/`` on first use."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(event.model_dump(mode="json"), sort_keys=True) + "\n"
        fd = os.open(str(self.path), os.O_WRONLY | os.O_CREAT | os.O_APPEND)
        try:
            if _HAS_FCNTL:
                fcntl.flock(fd, fcntl.LOCK_EX)
            os.write(fd, line.encode("utf-8"))
            if self._fsync:
                os.fsync(fd)
        finally:
            if _HAS_FCNTL:
                fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    def read(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Return up to *limit* matching events, newest first.

        Only the last ``tail_bytes`` of the log are scanned.
        """
        limit = min(limit, _MAX_READ_LIMIT)
        matched: list[dict[str, Any]] = []
        for event in reversed(self._tail_events()):
            if level and event.get("level") != level:
                continue
            if event_type and event.get("event_type") != event_type:
                continue
            matched.append(event)
            if len(matched) >= limit:
                break
        return matched

    def _tail_events(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, "rb") as f:
            if _HAS_FCNTL:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                size = os.fstat(f.fileno()).st_size
                start = max(0, size - self._tail_bytes)
                f.seek(start)
                data = f.read()
            finally:
                if _HAS_FCNTL:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        lines = data.decode("utf-8", errors="replace").splitlines()
        if start > 0 and lines:
            # first line was cut by the seek
            lines = lines[1:]

        events: list[dict[str, Any]] = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return events
