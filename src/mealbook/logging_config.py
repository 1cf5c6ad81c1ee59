"""Structured logging configuration for the mealbook application."""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Context variables for request tracking
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[str | None] = ContextVar("user_id", default=None)
meal_plan_id_ctx: ContextVar[str | None] = ContextVar("meal_plan_id", default=None)

_CONTEXT_VARS: dict[str, ContextVar] = {
    "request_id": request_id_ctx,
    "user_id": user_id_ctx,
    "meal_plan_id": meal_plan_id_ctx,
}

# Label and truncation for the text formatter; uuids are cut to 8 chars
_TEXT_LABELS: dict[str, tuple[str, int | None]] = {
    "request_id": ("req", 8),
    "user_id": ("user", None),
    "meal_plan_id": ("plan", 8),
}

# Third-party loggers that are too chatty at the application level
_LIBRARY_LEVELS = {
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncio": logging.WARNING,
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
}


def current_context() -> dict[str, str]:
    """Collect the context variables that are currently set."""
    return {name: value for name, var in _CONTEXT_VARS.items() if (value := var.get())}


class StructuredJsonFormatter(logging.Formatter):
    """JSON formatter for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_data: dict[str, Any] = {
            "timestamp": created.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **current_context(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["location"] = {
            "module": record.module,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


class ContextualFormatter(logging.Formatter):
    """Human-readable formatter with context for development."""

    def format(self, record: logging.LogRecord) -> str:
        context_parts = []
        for name, value in current_context().items():
            label, width = _TEXT_LABELS[name]
            context_parts.append(f"{label}={value[:width] if width else value}")
        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        formatted = (
            f"{timestamp} | {record.levelname:<8} | {record.name}{context_str} | "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that copies the current context onto each record."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**current_context(), **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger for the given module name."""
    return ContextLogger(logging.getLogger(name), {})


def _use_json(json_format: bool | None) -> bool:
    if json_format is not None:
        return json_format
    if os.getenv("LOG_FORMAT", "").lower() == "json":
        return True
    # Production behind a process manager: no terminal attached
    return os.getenv("ENVIRONMENT", "development") == "production" and not sys.stdout.isatty()


def _add_handler(
    root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter, level: int
) -> None:
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)


def configure_logging(
    log_level: str = "INFO",
    json_format: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    Configure logging for the application.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            The LOG_LEVEL environment variable takes precedence.
        json_format: Use JSON format for logs. If None, LOG_FORMAT=json or a
            production environment without a terminal selects it.
        log_file: Optional file path to write logs to.
    """
    use_json = _use_json(json_format)
    level_name = os.getenv("LOG_LEVEL", log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    formatter = StructuredJsonFormatter() if use_json else ContextualFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    _add_handler(root_logger, logging.StreamHandler(sys.stdout), formatter, level)
    if log_file:
        _add_handler(root_logger, logging.FileHandler(log_file), formatter, level)

    logging.getLogger("mealbook").setLevel(level)
    for library, library_level in _LIBRARY_LEVELS.items():
        logging.getLogger(library).setLevel(library_level)

    get_logger(__name__).info(
        f"Logging configured: level={level_name}, format={'json' if use_json else 'text'}"
    )


def set_context(
    request_id: str | None = None,
    user_id: str | None = None,
    meal_plan_id: str | None = None,
) -> None:
    """Set logging context variables. None leaves a variable unchanged."""
    for name, value in (
        ("request_id", request_id),
        ("user_id", user_id),
        ("meal_plan_id", meal_plan_id),
    ):
        if value is not None:
            _CONTEXT_VARS[name].set(value)


def clear_context() -> None:
    """Clear all logging context variables."""
    for var in _CONTEXT_VARS.values():
        var.set(None)


class LoggingContext:
    """
    Context manager for setting logging context.

    Values are restored on exit, so nested contexts (a request, then a
    meal plan inside it) unwind cleanly.
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | None = None,
        meal_plan_id: str | None = None,
    ):
        self._values = {
            "request_id": request_id,
            "user_id": user_id,
            "meal_plan_id": meal_plan_id,
        }
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "LoggingContext":
        for name, value in self._values.items():
            if value is not None:
                self._tokens[name] = _CONTEXT_VARS[name].set(value)
        return self

    def __exit__(self, *args: Any) -> None:
        for name, token in self._tokens.items():
            _CONTEXT_VARS[name].reset(token)
        self._tokens.clear()
