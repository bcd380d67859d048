from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

_RESERVED = {
    "levelname", "levelno", "name", "msg", "args", "exc_info", "exc_text", "stack_info",
    "lineno", "pathname", "filename", "module", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "message",
    "asctime", "taskName",
}

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # pass through extra fields
        for key, value in record.__dict__.items():
            if key in _RESERVED:
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> None:
    """Configure the root logger once; later calls are no-ops.

    Defaults come from ``LOG_LEVEL`` / ``LOG_JSON`` in the settings.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    if level is None or json_format is None:
        from laundry_ops.config import get_settings

        settings = get_settings()
        level = level or settings.LOG_LEVEL
        json_format = settings.LOG_JSON if json_format is None else json_format

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
