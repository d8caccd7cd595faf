"""Centralized logging configuration for storyflow.

Two kinds of logs exist side by side:

- Python logging for the library itself (``logging.getLogger(__name__)``),
  configured once here.
- The per-run execution log that the scheduler hands to ``on_log``. Those
  lines use the workflow's own levels (info/success/warning/error) and are
  mirrored into Python logging via :func:`mirror_execution_line`.

Usage:
    from storyflow.core.logging_config import configure_logging, get_logger

    configure_logging(level="DEBUG", format="json")
    logger = get_logger(__name__)

Environment Variables:
    STORYFLOW_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    STORYFLOW_LOG_FORMAT: Output format ("text" or "json")
    STORYFLOW_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from storyflow.core.types import LogLevel

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_FORMAT_WITH_MS = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)

_configured = False


@dataclass
class LogConfig:
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format: Output format ("text" or "json").
        file_path: Optional file path for file logging.
        include_ms: Include milliseconds in timestamp.
    """

    level: str = "INFO"
    format: Literal["text", "json"] = "text"
    file_path: str | None = None
    include_ms: bool = True

    @classmethod
    def from_env(cls) -> LogConfig:
        """Build a config from STORYFLOW_LOG_* environment variables."""
        fmt = os.environ.get("STORYFLOW_LOG_FORMAT", "text").lower()
        return cls(
            level=os.environ.get("STORYFLOW_LOG_LEVEL", "INFO").upper(),
            format="json" if fmt == "json" else "text",
            file_path=os.environ.get("STORYFLOW_LOG_FILE") or None,
        )

    def build_formatter(self) -> logging.Formatter:
        if self.format == "json":
            return JsonFormatter()
        fmt = TEXT_FORMAT_WITH_MS if self.include_ms else TEXT_FORMAT
        return logging.Formatter(fmt, datefmt=DATE_FORMAT)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs one object per record:
    {
        "timestamp": "2025-12-28T14:30:00.123456",
        "level": "INFO",
        "logger": "storyflow.core.engine.scheduler",
        "message": "node_dispatched: node_id=n1, type=task",
        "extra": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    file_path: str | None = None,
    include_ms: bool = True,
    force: bool = False,
) -> None:
    """Configure root logging for the application.

    Call once at startup. Subsequent calls are ignored unless ``force=True``.
    Explicit arguments win over STORYFLOW_LOG_* environment variables.

    Args:
        level: Log level. Defaults to STORYFLOW_LOG_LEVEL or "INFO".
        format: Output format. Defaults to STORYFLOW_LOG_FORMAT or "text".
        file_path: Optional log file. Defaults to STORYFLOW_LOG_FILE.
        include_ms: Include milliseconds in text timestamps.
        force: Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return

    config = LogConfig.from_env()
    if level:
        config.level = level.upper()
    if format:
        config.format = format
    if file_path:
        config.file_path = file_path
    config.include_ms = include_ms

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level))
    root_logger.handlers.clear()

    formatter = config.build_formatter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.file_path:
        file_handler = logging.FileHandler(config.file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically ``__name__``)."""
    return logging.getLogger(name)


def set_level(level: str, logger_name: str | None = None) -> None:
    """Set log level for a specific logger or the root logger."""
    logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))


def mirror_execution_line(logger: logging.Logger, message: str, level: LogLevel | str) -> None:
    """Forward one execution-log line to Python logging at DEBUG.

    The original severity is attached as the ``execution_level`` extra field.
    """
    level = LogLevel(level)
    logger.debug("execution_log: %s", message, extra={"execution_level": level.value})

