"""Logging configuration for the workflow visualizer."""

import logging
import sys
import json
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any

DEFAULT_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request fields (request id, method, path); one copy per asyncio task.
_request_context: ContextVar[Dict[str, Any]] = ContextVar("visualizer_request_context", default={})


class StructuredFormatter(logging.Formatter):
    """Renders each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}"
        }
        entry.update(getattr(record, "extra_fields", {}))

        if record.exc_info and record.exc_info[0] is not None:
            error_type, error, tb = record.exc_info
            entry["exception"] = {
                "type": error_type.__name__,
                "message": str(error),
                "traceback": traceback.format_exception(error_type, error, tb)
            }

        return json.dumps(entry, default=str)


class RequestContextFilter(logging.Filter):
    """Copies the current request context onto every record it sees."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _request_context.get()
        if context:
            fields = dict(getattr(record, "extra_fields", {}))
            fields.update(context)
            record.extra_fields = fields
        return True


def _build_formatter(structured: bool, log_format: Optional[str]) -> logging.Formatter:
    if structured:
        return StructuredFormatter()
    return logging.Formatter(fmt=log_format or DEFAULT_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter) -> None:
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    root.addHandler(handler)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    structured: bool = False,
    max_size: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure root logging for the service and the CLI.

    Replaces any handlers already installed on the root logger, so calling
    it again (a second app in the same process) does not duplicate output.

    Args:
        level: Logging level name
        log_file: Optional path of a size-rotated log file
        log_format: Format string for plain-text output
        structured: Emit JSON lines instead of plain text
        max_size: Rotation threshold in bytes
        backup_count: Rotated files to keep

    Returns:
        The root logger
    """
    level = level.upper()
    formatter = _build_formatter(structured, log_format)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    _attach(root, logging.StreamHandler(sys.stdout), formatter)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        _attach(root, RotatingFileHandler(log_file, maxBytes=max_size, backupCount=backup_count), formatter)

    for noisy in ("uvicorn.access", "asyncio", "multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger("visualizer").setLevel(logging.DEBUG if level == "DEBUG" else logging.INFO)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)


def set_logging_context(**kwargs):
    """Add fields to the context of the current request."""
    _request_context.set({**_request_context.get(), **kwargs})


def clear_logging_context():
    """Drop every context field of the current request."""
    _request_context.set({})


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log a message with additional structured fields."""
    logger.log(level, message, extra={"extra_fields": context})
