"""
Job types for the agent queues.

This module defines the JobStatus enum, the JobRecord value object and the
QueueStats snapshot that form the core of the job lifecycle.
"""

from __future__ import annotations

import itertools
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from ..errors import ErrorContext, InvalidTransitionError
from .inputs import JobResult


class JobStatus(str, Enum):
    """Job lifecycle states.

    State transitions:
    - WAITING -> ACTIVE (drained from its agent queue)
    - ACTIVE -> COMPLETED (executor returned a successful result)
    - ACTIVE -> FAILED (executor raised or returned an unsuccessful result)

    There are no retries and no re-queueing; terminal states are final.
    """
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in {JobStatus.COMPLETED, JobStatus.FAILED}


# Valid state transitions
VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.WAITING: {JobStatus.ACTIVE},
    JobStatus.ACTIVE: {JobStatus.COMPLETED, JobStatus.FAILED},
    # Terminal states have no valid transitions
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


_job_counter = itertools.count(1)


def new_job_id() -> str:
    """Generate a job id that is unique for the lifetime of the process."""
    return f"job_{next(_job_counter)}_{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class JobRecord:
    """Record of one unit of work submitted to an agent queue.

    Records are immutable: every state change produces a new record, so a
    terminal record handed out by the queue never changes afterwards.
    """
    # Identity
    job_id: str = field(default_factory=new_job_id)
    agent_name: str = ""
    job_type: str = ""

    # Ownership
    user_id: str = ""
    session_id: str | None = None
    original_message: str | None = None

    # Payload
    input_data: dict[str, Any] = field(default_factory=dict)

    # Status
    status: JobStatus = JobStatus.WAITING
    progress: int = 0

    # Scheduling hints
    priority: int = 0
    delay: float = 0.0

    # Timestamps
    created_at: float = field(default_factory=time.time)
    processed_at: float | None = None
    finished_at: float | None = None

    # Outcome
    result: JobResult | None = None
    error: str | None = None

    @property
    def available_at(self) -> float:
        """Earliest time the job may start."""
        return self.created_at + self.delay

    @property
    def name(self) -> str:
        return f"{self.agent_name}_job"

    def can_transition_to(self, new_status: JobStatus) -> bool:
        """Check if transition to new_status is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: JobStatus, *, now: float | None = None) -> JobRecord:
        """Create a new JobRecord with updated status.

        Raises:
            InvalidTransitionError: If the transition is invalid
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Invalid transition: {self.status.value} -> {new_status.value}",
                context=ErrorContext(job_id=self.job_id, agent_name=self.agent_name),
            )

        now = time.time() if now is None else now
        updates: dict[str, Any] = {"status": new_status}

        if new_status == JobStatus.ACTIVE:
            updates["processed_at"] = now
        if new_status.is_terminal:
            updates["finished_at"] = now

        return replace(self, **updates)

    def start(self) -> JobRecord:
        return self.transition_to(JobStatus.ACTIVE)

    def complete(self, result: JobResult) -> JobRecord:
        record = self.transition_to(JobStatus.COMPLETED)
        return replace(record, result=result, progress=100)

    def fail(self, error: str) -> JobRecord:
        record = self.transition_to(JobStatus.FAILED)
        return replace(record, error=error)

    def with_progress(self, progress: float) -> JobRecord:
        """Create a new JobRecord with clamped progress."""
        return replace(self, progress=clamp_progress(progress))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.job_id,
            "name": self.name,
            "agent_name": self.agent_name,
            "job_type": self.job_type,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "original_message": self.original_message,
            "input_data": dict(self.input_data),
            "status": self.status.value,
            "progress": self.progress,
            "priority": self.priority,
            "delay": self.delay,
            "created_at": self.created_at,
            "processed_at": self.processed_at,
            "finished_at": self.finished_at,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


def clamp_progress(progress: float) -> int:
    """Clamp a progress value to the 0-100 range."""
    return int(min(100, max(0, progress)))


@dataclass(frozen=True)
class QueueStats:
    """Point-in-time counters for one agent queue."""
    queue_name: str
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    paused: bool = False

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "queue_name": self.queue_name,
            "waiting": self.waiting,
            "active": self.active,
            "completed": self.completed,
            "failed": self.failed,
            "total": self.total,
            "paused": self.paused,
        }


__all__ = [
    "JobStatus",
    "JobRecord",
    "QueueStats",
    "VALID_TRANSITIONS",
    "new_job_id",
    "clamp_progress",
]
