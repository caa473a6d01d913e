"""Structured Logging — one JSON object per record, carrying scheduling identifiers.

Invariants:
    - Every record has timestamp (the record's creation time, UTC), level,
      logger and message
    - Only whitelisted extras are emitted (CONTEXT_FIELDS); None values are dropped
    - setup_logging() owns exactly one root handler: calling it again swaps
      that handler instead of adding a second one

Design Decisions:
    - Extras passed through logging's own `extra=` mechanism: call sites need
      no logging wrapper, and the text format simply ignores them
"""

import json
import logging
from datetime import datetime, timezone

CONTEXT_FIELDS = (
    "user_id", "task_id", "time_slot_id",
    "conflict_count", "error_code", "operation", "path",
)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


_installed: logging.Handler | None = None


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the application's root handler; fmt is "json" or anything else for text."""
    global _installed
    root = logging.getLogger()
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    if _installed is not None:
        root.removeHandler(_installed)
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))
    _installed = handler
    return handler
