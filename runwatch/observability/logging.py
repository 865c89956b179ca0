"""Structured JSON log output for runtime entrypoints.

Modules log through `logging.getLogger(__name__)` and pass structured fields
as `extra={"structured": {...}}`; this module only renders them.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON documents."""

    def __init__(self, service_name: str = "runwatch"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service.name": self.service_name,
        }

        structured = getattr(record, "structured", None)
        if isinstance(structured, dict):
            entry.update(structured)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception.type"] = record.exc_info[0].__name__
            entry["exception.message"] = str(record.exc_info[1])

        return json.dumps(entry, default=str)


def observability_configure_logging(level: str = "INFO") -> None:
    """Route root logging to stderr as JSON lines.

    Stdout is left free for the emitted session record.

    Args:
        level: Root log level name.
    """

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    for existing_handler in list(root_logger.handlers):
        root_logger.removeHandler(existing_handler)
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())
