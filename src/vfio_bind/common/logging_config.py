"""
Logging configuration for vfio-bind.

Console logs go to stderr (stdout carries only rebind progress); an
optional rotating log file receives everything at DEBUG, as text or JSON.
Records created inside a LogContext carry its key-value pairs, which
both file formats print.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import json
from pathlib import Path
from typing import Any, Dict, Optional

CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d] %(message)s"


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "context", None) or {}


class ContextFormatter(logging.Formatter):
    """Text formatter that appends the LogContext as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        result = super().format(record)
        context = _record_context(record)
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in context.items())
            result = f"{result} [{pairs}]"
        return result


class JSONFormatter(logging.Formatter):
    """JSON log formatter, one object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }

        context = _record_context(record)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ColoredFormatter(logging.Formatter):
    """Colors the level name on a terminal."""

    COLORS = {
        logging.DEBUG: "\033[36m",    # Cyan
        logging.INFO: "\033[32m",     # Green
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",    # Red
        logging.CRITICAL: "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        record.levelname = f"{self.COLORS.get(record.levelno, '')}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # other handlers see the plain name
            record.levelname = levelname


def setup_logging(
    level: int = logging.WARNING,
    log_file: Optional[Path] = None,
    json_logs: bool = False,
):
    """
    Configure logging for vfio-bind.

    Args:
        level: Console logging level (default: WARNING)
        log_file: Path to a rotating log file (optional, logs at DEBUG)
        json_logs: Use JSON format for the log file
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    formatter_class = ColoredFormatter if sys.stderr.isatty() else logging.Formatter
    console_handler.setFormatter(formatter_class(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=1024 * 1024,  # 1MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter() if json_logs else ContextFormatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)


class LogContext:
    """
    Context manager that attaches key-value pairs to log records.

    Nested contexts merge, the inner values winning.

    Example:
        with LogContext(bdf="0000:01:00.0"):
            logger.info("Unbinding")  # file logs will include bdf
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._old_factory = None

    def __enter__(self):
        self._old_factory = old_factory = logging.getLogRecordFactory()
        context = self.context

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.context = {**_record_context(record), **context}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, *args):
        logging.setLogRecordFactory(self._old_factory)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the vfio_bind namespace.

    Args:
        name: Logger name (e.g. "cli")

    Returns:
        Logger instance
    """
    return logging.getLogger(f"vfio_bind.{name}")
