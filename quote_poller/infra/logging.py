"""Logging configuration helpers."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per record.

    Keys come in a fixed order: ``event`` (when given), ``timestamp``, ``level``,
    ``logger``, ``message``, then the remaining ``extra`` fields sorted by name,
    so per-symbol lines line up when tailing the poller output.
    """

    _standard_attrs = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - logging interface name
        extras = {key: value for key, value in record.__dict__.items() if key not in self._standard_attrs}
        payload: Dict[str, Any] = {}
        if "event" in extras:
            payload["event"] = extras.pop("event")
        payload["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        payload["level"] = record.levelname
        payload["logger"] = record.name
        payload["message"] = record.getMessage()
        for key in sorted(extras):
            payload.setdefault(key, extras[key])

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure the root logger; ``LOG_LEVEL`` in the environment wins over ``level``."""

    level_name = os.getenv("LOG_LEVEL", level)
    resolved = getattr(logging, level_name.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(resolved)
    root.handlers.clear()

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(resolved)
    handler.setFormatter(JsonFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)


__all__ = ["configure_logging", "JsonFormatter"]
