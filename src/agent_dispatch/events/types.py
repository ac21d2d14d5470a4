"""
Queue lifecycle event types.

Each lifecycle transition of a job is described by its own typed event:

- JobAdded: a job was accepted into an agent queue
- JobProgress: an executor reported progress for a running job
- JobCompleted: a job finished with a successful result
- JobFailed: a job finished with an error

Events are transient; they are never persisted by the dispatcher itself.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, TYPE_CHECKING

if TYPE_CHECKING:
    from ..jobs.inputs import JobResult
    from ..jobs.types import JobRecord


class QueueEventType(str, Enum):
    """Event type names, as used on the client transport."""

    JOB_ADDED = "job:added"
    JOB_PROGRESS = "job:progress"
    JOB_COMPLETED = "job:completed"
    JOB_FAILED = "job:failed"


@dataclass(frozen=True)
class QueueEvent:
    """Fields shared by every queue event.

    ``agent_name`` is the name of the queue that emitted the event.
    ``user_id`` is None when the owning job could not be determined.
    """

    type: ClassVar[QueueEventType]
    handler_name: ClassVar[str]

    job_id: str
    agent_name: str
    user_id: str | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "job_id": self.job_id,
            "agent_name": self.agent_name,
            "user_id": self.user_id,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class JobAdded(QueueEvent):
    type: ClassVar[QueueEventType] = QueueEventType.JOB_ADDED
    handler_name: ClassVar[str] = "on_job_added"

    job_type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "job_type": self.job_type}


@dataclass(frozen=True)
class JobProgress(QueueEvent):
    type: ClassVar[QueueEventType] = QueueEventType.JOB_PROGRESS
    handler_name: ClassVar[str] = "on_job_progress"

    progress: int = 0
    message: str | None = None
    stage: str | None = None
    estimated_time_remaining: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "progress": self.progress,
            "message": self.message,
            "stage": self.stage,
            "estimated_time_remaining": self.estimated_time_remaining,
        }


@dataclass(frozen=True)
class JobCompleted(QueueEvent):
    type: ClassVar[QueueEventType] = QueueEventType.JOB_COMPLETED
    handler_name: ClassVar[str] = "on_job_completed"

    result: JobResult | None = None
    # Terminal record of the job; None when published outside a queue
    job: JobRecord | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "result": self.result.to_dict() if self.result else None,
        }


@dataclass(frozen=True)
class JobFailed(QueueEvent):
    type: ClassVar[QueueEventType] = QueueEventType.JOB_FAILED
    handler_name: ClassVar[str] = "on_job_failed"

    error: str = ""
    job: JobRecord | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "error": self.error}


__all__ = [
    "QueueEventType",
    "QueueEvent",
    "JobAdded",
    "JobProgress",
    "JobCompleted",
    "JobFailed",
]
