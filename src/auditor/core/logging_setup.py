"""Logging setup for the auditor process."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Third-party loggers that follow the configured level.
_FOLLOWERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "watchdog")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message (+ exc)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str = "INFO", fmt: str = "text") -> logging.Handler:
    """
    Install a single stderr handler on the ``auditor`` logger.

    Calling this again replaces the previous handler rather than stacking
    another one. Returns the installed handler.
    """
    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger("auditor")
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False

    # uvicorn/watchdog: watchdog is chatty at DEBUG, keep it at WARNING minimum
    for name in _FOLLOWERS:
        lg = logging.getLogger(name)
        lg.setLevel(logging.WARNING if name == "watchdog" and level == "DEBUG" else level)

    return handler
