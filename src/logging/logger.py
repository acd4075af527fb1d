# src/logging/logger.py - v3
"""Logger factory with JSON and text formatters.

Both formatters read the contextvars snapshot from logging.context, so a
line logged deep inside a processor still carries the blueprint and run it
belongs to.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from blueprints_rag.logging.context import LogContext, get_context

ROOT_LOGGER_NAME = "blueprints_rag"


def _utc_timestamp() -> datetime:
    return datetime.now(timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _utc_timestamp().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        # logger.info(..., extra={"data": {...}})
        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line text for terminals: ``time [LEVEL] logger <bp> [proc] (step) - msg``."""

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{_utc_timestamp():%Y-%m-%d %H:%M:%S} [{record.levelname:8s}] {record.name}"
            f"{_context_markers(get_context())} - {record.getMessage()}"
        )
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _context_markers(ctx: LogContext) -> str:
    markers = ""
    if ctx.blueprint_id:
        markers += f" <{ctx.blueprint_id}>"
    if ctx.processor:
        markers += f" [{ctx.processor}]"
    if ctx.step:
        markers += f" ({ctx.step})"
    return markers


def get_logger(name: str) -> logging.Logger:
    """Child of the package root logger; configured by setup_logging()."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Configure the ``blueprints_rag`` root logger.

    Re-running replaces the previous handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "json" or "text".
        log_file: Optional file path; stdout is always attached.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(create_rotating_handler(str(log_file), rotation, retention))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)


def setup_logging_from_settings(settings: Any) -> None:
    """Apply the log_* fields of Settings."""
    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


_SIZE_RE = re.compile(r"(\d+)\s*([KMG]?B)?")
_SIZE_UNITS = {"": 1, "B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """'10MB' / '512KB' / '100' -> bytes."""
    match = _SIZE_RE.fullmatch(size_str.strip().upper())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _SIZE_UNITS[match.group(2) or ""]


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Size-based rotating file handler; parent directories are created."""
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
