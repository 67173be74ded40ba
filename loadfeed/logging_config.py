"""Structured logging configuration for loadfeed."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import orjson

LOG_LEVEL_ENV = "LOADFEED_LOG_LEVEL"
LOG_FORMAT_ENV = "LOADFEED_LOG_FORMAT"  # "json" | "text" (default)

ROOT_LOGGER_NAME = "loadfeed"

# Invocation fields passed via `extra=` by the engine; copied into JSON lines when set
INVOCATION_FIELDS = ("scenario", "step", "invocation", "status_code", "timeout_ms")


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name. Configures root loadfeed logger on first use."""
    if name == ROOT_LOGGER_NAME:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
    else:
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    if not logger.handlers and logger.level == logging.NOTSET:
        _configure_loadfeed_logging()
    return logger


def _configure_loadfeed_logging() -> None:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return
    level_name = (os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stderr)
    fmt_env = (os.environ.get(LOG_FORMAT_ENV) or "text").lower()
    if fmt_env == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
    root.addHandler(handler)


class _JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers. Invocation fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        obj: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt or "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in INVOCATION_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                obj[field] = value
        if record.exc_info:
            obj["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(obj, default=str).decode("utf-8")
