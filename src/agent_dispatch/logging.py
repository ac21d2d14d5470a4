"""
Structured logging for agent-dispatch.

This module provides:
- Structured log records with consistent correlation fields
  (job, agent, user, session)
- JSON and human-readable formatters
- Package-level logging configuration
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .config.logging import LoggingConfig

ROOT_LOGGER_NAME = "agent_dispatch"


# =============================================================================
# Log Context
# =============================================================================


@dataclass
class LogContext:
    """Context information attached to log records."""

    job_id: str | None = None
    agent_name: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in asdict(self).items() if v is not None and k != "extra"}
        d.update(self.extra)
        return d

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            job_id=kwargs.get("job_id", self.job_id),
            agent_name=kwargs.get("agent_name", self.agent_name),
            user_id=kwargs.get("user_id", self.user_id),
            session_id=kwargs.get("session_id", self.session_id),
            operation=kwargs.get("operation", self.operation),
            extra={**self.extra, **kwargs.get("extra", {})},
        )


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger that attaches correlation fields to every record.

    Records are emitted through a standard ``logging.Logger``; fields are
    placed in ``record.fields`` so ``JSONFormatter`` can serialize them and
    ``TextFormatter`` can append them as ``key=value`` pairs.

    Example:
        ```python
        log = StructuredLogger("agent_dispatch.orchestration")

        with log.context(job_id=job.job_id, agent_name="falcon"):
            log.info("Stage-2 message sent", stage="completion")
        ```
    """

    def __init__(self, name: str = ROOT_LOGGER_NAME):
        self.name = name
        self._logger = logging.getLogger(name)
        self._context: ContextVar[LogContext] = ContextVar(f"log_context:{name}", default=LogContext())

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @contextmanager
    def context(self, **kwargs) -> Iterator[LogContext]:
        """Temporarily extend the log context of the current task."""
        token = self._context.set(self._context.get().with_update(**kwargs))
        try:
            yield self._context.get()
        finally:
            self._context.reset(token)

    def _log(
        self,
        level: int,
        message: str,
        data: dict[str, Any] | None = None,
        exc_info: bool = False,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields = self._context.get().to_dict()
        if data:
            fields.update(data)
        self._logger.log(level, message, extra={"fields": fields}, exc_info=exc_info)

    def debug(self, message: str, /, **kwargs) -> None:
        self._log(logging.DEBUG, message, data=kwargs)

    def info(self, message: str, /, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, /, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def error(self, message: str, /, **kwargs) -> None:
        self._log(logging.ERROR, message, data=kwargs)

    def log_error(
        self,
        error: BaseException,
        message: str | None = None,
        **kwargs,
    ) -> None:
        """Log an exception with its traceback and error details."""
        error_data = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            **kwargs,
        }

        # Extract additional info from DispatchError
        if hasattr(error, "code"):
            error_data["error_code"] = str(error.code.value)
        if getattr(error, "context", None) is not None and hasattr(error.context, "to_dict"):
            error_data["error_context"] = {
                k: v for k, v in error.context.to_dict().items() if v is not None
            }

        self._log(
            logging.ERROR,
            message or f"Error: {error}",
            data=error_data,
            exc_info=True,
        )


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "fields", {}) or {})

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, colors: bool = True):
        super().__init__()
        self.colors = colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "") if self.colors else ""
        reset = self.RESET if color else ""

        line = f"{timestamp} {color}{record.levelname:8}{reset} {record.name}: {record.getMessage()}"
        fields = getattr(record, "fields", None)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Utilities
# =============================================================================


def truncate_for_log(text: str, max_length: int = 200) -> str:
    """Truncate text for logging."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... ({len(text)} chars total)"


def get_logger(name: str = ROOT_LOGGER_NAME) -> StructuredLogger:
    """Create a structured logger for a module."""
    return StructuredLogger(name)


def configure_logging(
    config: LoggingConfig | None = None,
    *,
    stream: Any = None,
) -> logging.Logger:
    """Attach a single formatted handler to the package root logger.

    Calling this again replaces the handler installed by the previous call.
    """
    config = config or LoggingConfig()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, config.level))

    for handler in list(root.handlers):
        if getattr(handler, "_agent_dispatch_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler._agent_dispatch_handler = True  # type: ignore[attr-defined]
    if config.format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())
    root.addHandler(handler)
    return root


__all__ = [
    "LogContext",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "truncate_for_log",
    "get_logger",
    "configure_logging",
    "ROOT_LOGGER_NAME",
]
