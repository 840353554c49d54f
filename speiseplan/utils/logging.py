"""
Speiseplan Logging Configuration
================================

Logger setup for console and rotating JSON files, plus component-scoped
adapters that tag every record with the canteen or meal it concerns.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_STANDARD_RECORD_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {
    "message",
    "asctime",
    "taskName",
}

# Promoted to top-level keys in JSON output and shown inline on the console.
CONTEXT_FIELDS = ("component", "canteen", "meal_id")

_NOISY_LIBRARIES = {
    "aiohttp": logging.WARNING,
    "feedparser": logging.WARNING,
    "bs4": logging.ERROR,
}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: v for k, v in record.__dict__.items() if k not in _STANDARD_RECORD_FIELDS
    }


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log files and log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        extra = _extra_fields(record)
        for key in CONTEXT_FIELDS:
            if key in extra:
                log_data[key] = extra.pop(key)
        if extra:
            log_data["extra"] = extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Compact console lines: time, level, component and meal context."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _context(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", None) or record.name
        parts = [component]
        canteen = getattr(record, "canteen", None)
        if canteen:
            parts.append(f"canteen={canteen}")
        meal_id = getattr(record, "meal_id", None)
        if meal_id is not None:
            parts.append(f"meal={meal_id}")
        return " ".join(parts)

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        formatted = f"[{timestamp}] {level} {self._context(record)} - {record.getMessage()}"

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def _console_handler(structured: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(ColoredConsoleFormatter(use_color=sys.stderr.isatty()))
    return handler


def _file_handler(log_file: str, max_file_size: int, backup_count: int) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
    )
    # Files are always JSON so they stay machine readable
    handler.setFormatter(StructuredFormatter())
    return handler


def setup_logger(
    name: str = "speiseplan",
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Set up a logger with console and/or rotating file output.

    Calling it again for the same name replaces the previous handlers.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        console: Whether to log to stderr
        structured: Whether console output is JSON as well
        max_file_size: Maximum log file size in bytes
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if console:
        logger.addHandler(_console_handler(structured))
    if log_file:
        logger.addHandler(_file_handler(log_file, max_file_size, backup_count))

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that merges its context into each call's ``extra``."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    canteen: Optional[str] = None,
    meal_id: Optional[int] = None,
) -> LoggerAdapter:
    """Get a logger adapter with component-specific context.

    Args:
        component_name: Name of the component (e.g., 'feed_ingestion', 'catalog')
        canteen: Associated canteen name (optional)
        meal_id: Associated meal ID (optional)

    Returns:
        Logger adapter named ``speiseplan.<component_name>``
    """
    extra_context: Dict[str, Any] = {"component": component_name}

    if canteen:
        extra_context["canteen"] = canteen
    if meal_id is not None:
        extra_context["meal_id"] = meal_id

    return LoggerAdapter(logging.getLogger(f"speiseplan.{component_name}"), extra_context)


def get_feed_logger() -> LoggerAdapter:
    """Get logger for feed ingestion."""
    return get_logger_for_component("feed_ingestion")


def get_detail_logger(meal_id: Optional[int] = None) -> LoggerAdapter:
    """Get logger for detail page enrichment of one meal."""
    return get_logger_for_component("detail_enrichment", meal_id=meal_id)


def get_catalog_logger() -> LoggerAdapter:
    """Get logger for the catalog store."""
    return get_logger_for_component("catalog")


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
) -> None:
    """Configure the ``speiseplan`` logger tree and quiet chatty libraries.

    Args:
        log_level: Global log level
        log_file: Path to the JSON log file, no file logging if None
        enable_console: Whether to log to stderr
        structured_logging: Whether console output is JSON
        max_file_size_mb: Rotate the log file after this many megabytes
        backup_count: Number of rotated files to keep
    """
    setup_logger(
        name="speiseplan",
        level=log_level,
        log_file=log_file,
        console=enable_console,
        structured=structured_logging,
        max_file_size=max_file_size_mb * 1024 * 1024,
        backup_count=backup_count,
    )

    for library, level in _NOISY_LIBRARIES.items():
        logging.getLogger(library).setLevel(level)


class PerformanceLogger:
    """Context manager that times an operation and logs the outcome.

    Completion is logged at INFO, or at WARNING once ``slow_after`` seconds
    are exceeded. Failures are logged at ERROR and the exception propagates.
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        slow_after: Optional[float] = None,
        **kwargs,
    ):
        self.logger = logger
        self.operation = operation
        self.slow_after = slow_after
        self.context = kwargs
        self.duration: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", extra=dict(self.context))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._started is None:
            return

        self.duration = time.perf_counter() - self._started
        context = {
            **self.context,
            "duration_seconds": round(self.duration, 3),
            "success": exc_type is None,
        }

        if exc_type:
            self.logger.error(
                f"Failed {self.operation} after {self.duration:.3f}s: "
                f"{exc_type.__name__}",
                extra=context,
            )
        elif self.slow_after is not None and self.duration > self.slow_after:
            self.logger.warning(
                f"Slow {self.operation}: {self.duration:.3f}s", extra=context
            )
        else:
            self.logger.info(
                f"Completed {self.operation} in {self.duration:.3f}s", extra=context
            )
