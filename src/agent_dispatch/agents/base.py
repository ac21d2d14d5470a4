"""
Agent executor contract and base class.

An agent executor runs one job at a time for its queue. The queue only
relies on ``execute_job``; progress reporting and message generation are
optional capabilities discovered at runtime.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

from ..errors import DispatchError, ErrorContext, JobExecutionError
from ..jobs.inputs import JobResult
from ..jobs.types import JobRecord, clamp_progress

logger = logging.getLogger(__name__)

AgentState = Literal["idle", "processing", "error"]


@dataclass(frozen=True)
class ProgressUpdate:
    """Progress reported by an executor for one job."""
    job_id: str
    progress: int
    message: str = ""
    stage: str = ""
    agent_name: str | None = None
    estimated_time_remaining: float | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "progress": self.progress,
            "message": self.message,
            "stage": self.stage,
            "agent_name": self.agent_name,
            "estimated_time_remaining": self.estimated_time_remaining,
        }


ProgressListener = Callable[[ProgressUpdate], None]


@dataclass(frozen=True)
class AgentStatus:
    """Snapshot of an executor's activity."""
    name: str
    status: AgentState
    last_activity: float
    tasks_completed: int
    tasks_in_queue: int
    uptime: float
    version: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "last_activity": self.last_activity,
            "tasks_completed": self.tasks_completed,
            "tasks_in_queue": self.tasks_in_queue,
            "uptime": self.uptime,
            "version": self.version,
        }


@runtime_checkable
class AgentExecutor(Protocol):
    """Minimal executor contract.

    ``execute_job`` must raise on failure. It may return a ``JobResult`` or
    a mapping (see ``JobResult.coerce``).

    Optional methods picked up when present:
    - ``add_progress_listener(listener)`` / ``remove_progress_listener(listener)``
    - ``generate_acknowledgment_message(job, original_message) -> str``
    - ``generate_completion_message(job, result, original_message) -> str``
    - ``get_status() -> AgentStatus``
    """

    async def execute_job(self, job: JobRecord) -> JobResult | Mapping[str, Any]: ...


class BaseAgent(ABC):
    """Base class for agent executors.

    Subclasses implement ``process``. ``execute_job`` wraps it with status
    bookkeeping and start/finish progress updates, and turns any failure
    into a ``JobExecutionError`` so the queue records the job as failed.
    """

    version: str = "1.0.0"

    def __init__(self, name: str, version: str | None = None):
        self.name = name
        if version is not None:
            self.version = version
        self.status: AgentState = "idle"
        self.tasks_completed = 0
        self.tasks_in_queue = 0
        self.start_time = time.time()
        self.last_activity = self.start_time
        self._listeners: list[ProgressListener] = []

    @abstractmethod
    async def process(self, job: JobRecord) -> JobResult | Mapping[str, Any]:
        """Run the agent-specific work for a job."""
        ...

    def capabilities(self) -> list[str]:
        return []

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def add_progress_listener(self, listener: ProgressListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit_progress(self, job_id: str, progress: float, message: str, stage: str) -> None:
        """Report progress for a job to every listener."""
        update = ProgressUpdate(
            job_id=job_id,
            progress=clamp_progress(progress),
            message=message,
            stage=stage,
            agent_name=self.name,
            estimated_time_remaining=self.estimate_time_remaining(progress),
        )
        for listener in list(self._listeners):
            try:
                listener(update)
            except Exception:
                logger.exception("Progress listener failed for job %s", job_id)

    def estimate_time_remaining(self, progress: float) -> float:
        """Linear estimate, in seconds, from the agent's elapsed time."""
        if progress <= 0:
            return 0.0
        elapsed = time.time() - self.start_time
        total_estimated = (elapsed / progress) * 100
        return max(0.0, total_estimated - elapsed)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_job(self, job: JobRecord) -> JobResult:
        self.status = "processing"
        self.tasks_in_queue += 1
        self.last_activity = time.time()

        try:
            self.emit_progress(job.job_id, 0, f"Starting {self.name} agent...", "initialization")
            result = JobResult.coerce(await self.process(job))
            if not result.success:
                raise JobExecutionError(result.error or f"{self.name} reported an unsuccessful result")
        except Exception as exc:
            self.status = "error"
            if isinstance(exc, DispatchError):
                exc.context.job_id = exc.context.job_id or job.job_id
                exc.context.agent_name = exc.context.agent_name or self.name
                raise
            raise JobExecutionError(
                str(exc) or type(exc).__name__,
                context=ErrorContext(job_id=job.job_id, agent_name=self.name),
                cause=exc,
            ) from exc
        finally:
            self.tasks_in_queue -= 1
            self.last_activity = time.time()

        self.emit_progress(job.job_id, 100, "Task completed successfully", "completed")
        self.status = "idle"
        self.tasks_completed += 1
        return result

    def get_status(self) -> AgentStatus:
        return AgentStatus(
            name=self.name,
            status=self.status,
            last_activity=self.last_activity,
            tasks_completed=self.tasks_completed,
            tasks_in_queue=self.tasks_in_queue,
            uptime=time.time() - self.start_time,
            version=self.version,
        )

    def is_idle(self) -> bool:
        return self.status == "idle"

    def is_processing(self) -> bool:
        return self.status == "processing"


__all__ = [
    "AgentExecutor",
    "AgentStatus",
    "AgentState",
    "BaseAgent",
    "ProgressListener",
    "ProgressUpdate",
]
