"""
Structured logging utilities for SongPrint.

JSON lines for index-building jobs and log shipping, colored text for
interactive recognition from the terminal.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON string."""
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Context attached via LoggerAdapter or extra={...}
        context = {
            key: value for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS
        }
        if context:
            log_obj["context"] = context

        return json.dumps(log_obj, default=str)


class ColoredFormatter(logging.Formatter):
    """Adds ANSI colors to level names for terminal output."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format with color codes."""
        color = self.COLORS.get(record.levelname, "")
        # Copy so the color codes don't leak into other handlers
        record = logging.makeLogRecord(vars(record))
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 5,
    console_enabled: bool = True,
    colored: bool = True,
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Console output format ("json" or "text")
        log_file: Optional file path for log output (always JSON)
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup files to keep
        console_enabled: Whether to log to console
        colored: Whether to use colored output (text format only)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = []

    if log_format == "json":
        formatter = JSONFormatter()
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        datefmt = "%Y-%m-%d %H:%M:%S"
        if colored and console_enabled:
            formatter = ColoredFormatter(fmt, datefmt)
        else:
            formatter = logging.Formatter(fmt, datefmt)

    if console_enabled:
        # stderr keeps stdout free for recognition results
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically a component name such as "matching")

    Returns:
        logging.Logger: Configured logger instance
    """
    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that merges persistent context into every record.

    Used to tag all log lines of one recognition request with the query
    it belongs to.
    """

    def process(
        self, msg: str, kwargs: Dict[str, Any]
    ) -> tuple[str, Dict[str, Any]]:
        """Add extra context to log message."""
        extra = dict(self.extra)
        extra.update(kwargs.get("extra", {}))
        kwargs["extra"] = extra
        return msg, kwargs


def create_logger_with_context(
    name: str, context: Dict[str, Any]
) -> LoggerAdapter:
    """
    Create a logger with persistent context.

    Example:
        logger = create_logger_with_context("recognizer", {"query": "clip.wav"})
        logger.info("Ranked 3 candidates")
        # JSON: {"message": "Ranked 3 candidates", "context": {"query": "clip.wav"}, ...}
    """
    return LoggerAdapter(get_logger(name), context)
