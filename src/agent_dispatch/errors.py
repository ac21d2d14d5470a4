"""
Error taxonomy for agent-dispatch.

This module provides a small exception hierarchy with:
- Error codes for programmatic handling
- Structured context for debugging
- A clear split between errors raised to API callers (queue lookup,
  validation) and errors that are only ever captured and logged
  (execution, message generation, routing resolution)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the dispatcher."""

    # Queue errors (1xxx)
    QUEUE_ERROR = "ERR_1000"
    QUEUE_NOT_FOUND = "ERR_1001"
    JOB_VALIDATION = "ERR_1002"
    INVALID_TRANSITION = "ERR_1003"

    # Execution errors (2xxx)
    JOB_EXECUTION = "ERR_2000"

    # Messaging errors (3xxx)
    MESSAGE_GENERATION = "ERR_3000"
    ROUTING_RESOLUTION = "ERR_3001"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    job_id: str | None = None
    agent_name: str | None = None
    user_id: str | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "agent_name": self.agent_name,
            "user_id": self.user_id,
            "operation": self.operation,
            **self.extra,
        }


class DispatchError(Exception):
    """
    Base exception for all dispatcher errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.job_id:
            parts.append(f"(job_id={self.context.job_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Queue Errors
# =============================================================================


class QueueError(DispatchError):
    """Base class for job queue errors."""

    code = ErrorCode.QUEUE_ERROR


class QueueNotFoundError(QueueError):
    """No queue exists for the requested agent name."""

    code = ErrorCode.QUEUE_NOT_FOUND

    def __init__(self, agent_name: str, **kwargs):
        kwargs.setdefault("context", ErrorContext(agent_name=agent_name))
        super().__init__(f"Queue not found for agent: {agent_name}", **kwargs)
        self.agent_name = agent_name


class JobValidationError(QueueError):
    """Job input did not match the schema registered for its job type."""

    code = ErrorCode.JOB_VALIDATION

    def __init__(
        self,
        message: str,
        *,
        job_type: str | None = None,
        errors: list[str] | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.job_type = job_type
        self.errors = errors or []


class InvalidTransitionError(QueueError):
    """A job record was asked to move to a state it cannot reach."""

    code = ErrorCode.INVALID_TRANSITION


# =============================================================================
# Execution / Messaging Errors
# =============================================================================


class JobExecutionError(DispatchError):
    """An agent executor failed while running a job.

    Captured per job by the queue and never propagated to the caller
    of ``add_job``.
    """

    code = ErrorCode.JOB_EXECUTION


class MessageGenerationError(DispatchError):
    """Generating an acknowledgment or completion message failed."""

    code = ErrorCode.MESSAGE_GENERATION


class RoutingResolutionError(DispatchError):
    """The owning user/session of a finished job could not be determined."""

    code = ErrorCode.ROUTING_RESOLUTION


class ConfigError(DispatchError):
    """Invalid configuration."""

    code = ErrorCode.CONFIG_ERROR


def error_message(exc: BaseException) -> str:
    """Return the plain message of an exception, without code prefixes."""
    if isinstance(exc, DispatchError):
        return exc.message
    text = str(exc)
    return text or type(exc).__name__


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "DispatchError",
    "QueueError",
    "QueueNotFoundError",
    "JobValidationError",
    "InvalidTransitionError",
    "JobExecutionError",
    "MessageGenerationError",
    "RoutingResolutionError",
    "ConfigError",
    "error_message",
]
