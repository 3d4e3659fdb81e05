"""Logging setup with structured output and run context propagation.

    - Text or JSON (one object per line) console output
    - Optional rotating log file when LOG_DIR is set
    - Run ID stamped on every record of a relay run

Usage:
    >>> from observability.logging import setup_logging, set_run_context
    >>> setup_logging(config)
    >>> set_run_context(run_id="abc123")
    >>> logger.info("Feed loaded")  # Includes run_id automatically
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Any

# Context variable for run ID propagation
run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")

# Standard LogRecord attributes, excluded when collecting `extra` fields
_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "run_id", "message",
})


def set_run_context(run_id: str) -> None:
    """Set the current run ID for log context propagation."""
    run_id_var.set(run_id)


def clear_context() -> None:
    """Clear all logging context variables."""
    run_id_var.set("-")


class ContextFilter(logging.Filter):
    """Filter that injects the run ID into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = run_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Output format:
        {"timestamp": "...", "level": "INFO", "logger": "...", "message": "...", "run_id": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
        }

        if record.levelno >= logging.WARNING:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Text formatter with run context.

    Format: TIMESTAMP [LEVEL] [run_id] logger: message
    """

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(run_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Configure logging with a console handler and an optional file handler.

    If LOG_DIR is set but not writable, falls back to console-only logging.

    Args:
        config: Configuration with logging settings
        verbose: If True, force DEBUG level on the console

    Returns:
        True if file logging is enabled, False if console-only
    """
    console_level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)

    context_filter = ContextFilter()

    if config.log_format == "json":
        console_fmt: logging.Formatter = JsonFormatter()
        file_fmt: logging.Formatter = JsonFormatter()
    else:
        console_fmt = TextFormatter(include_date=False)
        file_fmt = TextFormatter(include_date=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(console_fmt)
    console.addFilter(context_filter)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove existing handlers to avoid duplicates
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    root.addHandler(console)

    file_logging_enabled = False
    if config.log_dir is not None:
        try:
            config.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = config.log_dir / "feedrelay.log"

            if config.log_max_bytes > 0:
                file_handler: logging.Handler = RotatingFileHandler(
                    log_file,
                    maxBytes=config.log_max_bytes,
                    backupCount=config.log_backup_count,
                    encoding="utf-8",
                )
            else:
                file_handler = TimedRotatingFileHandler(
                    log_file,
                    when="midnight",
                    interval=1,
                    backupCount=config.log_backup_count,
                    encoding="utf-8",
                )

            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(file_fmt)
            file_handler.addFilter(context_filter)
            root.addHandler(file_handler)
            file_logging_enabled = True

        except OSError as e:
            print(
                f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
                "Falling back to console-only logging.",
                file=sys.stderr,
            )

    # Reduce noise from third-party libraries
    for lib in ("aiohttp", "asyncio", "botocore", "boto3", "urllib3"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return file_logging_enabled
