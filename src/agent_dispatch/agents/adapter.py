"""
Agent runtime adapter.

Wraps a registered executor behind one uniform surface used by the queue
and the orchestrator: job execution, Stage-1 / Stage-2 message generation
and progress listener registration.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import ErrorContext, JobExecutionError
from ..jobs.inputs import JobResult
from ..jobs.types import JobRecord
from .aliases import display_name as default_display_name
from .base import AgentExecutor, AgentStatus, ProgressListener
from .messages import Generated, GenerationOutcome, LLMMessageComposer, generation_failed

logger = logging.getLogger(__name__)


class AgentAdapter:
    """Uniform wrapper around an agent executor.

    Message generation prefers the executor's own
    ``generate_acknowledgment_message`` / ``generate_completion_message`` and
    falls back to the composer. Neither method ever raises.
    """

    def __init__(
        self,
        name: str,
        executor: AgentExecutor,
        composer: LLMMessageComposer | None = None,
        display_name: str | None = None,
    ):
        self.name = name
        self.executor = executor
        self.composer = composer
        self.display_name = display_name or default_display_name(name)

    def __repr__(self) -> str:
        return f"AgentAdapter(name={self.name!r}, executor={type(self.executor).__name__})"

    async def execute(self, job: JobRecord) -> JobResult:
        """Run a job on the executor.

        Raises:
            Exception: Whatever the executor raised, or JobExecutionError for
                an unsuccessful result
        """
        result = JobResult.coerce(await self.executor.execute_job(job))
        if not result.success:
            raise JobExecutionError(
                result.error or f"{self.name} reported an unsuccessful result",
                context=ErrorContext(job_id=job.job_id, agent_name=self.name, user_id=job.user_id),
            )
        return result

    async def acknowledge(self, job: JobRecord, original_message: str | None) -> GenerationOutcome:
        """Generate the Stage-1 message for a job."""
        generate = getattr(self.executor, "generate_acknowledgment_message", None)
        if generate is not None:
            return await self._call_generator(job, generate, job, original_message or "")
        if self.composer is not None:
            return await self.composer.acknowledgment(self.name, job, original_message)
        return generation_failed(f"No message generator for agent: {self.name}", job=job)

    async def complete(
        self,
        job: JobRecord,
        result: JobResult,
        original_message: str | None,
    ) -> GenerationOutcome:
        """Generate the Stage-2 message for a finished job."""
        generate = getattr(self.executor, "generate_completion_message", None)
        if generate is not None:
            return await self._call_generator(job, generate, job, result, original_message or "")
        if self.composer is not None:
            return await self.composer.completion(self.name, job, result, original_message)
        return generation_failed(f"No message generator for agent: {self.name}", job=job)

    async def _call_generator(self, job: JobRecord, generate, *args: Any) -> GenerationOutcome:
        try:
            text = await generate(*args)
        except Exception as exc:
            logger.warning("Executor %s failed to generate a message for job %s: %s", self.name, job.job_id, exc)
            return generation_failed(f"{self.name} message generation failed: {exc}", job=job, cause=exc)
        if not isinstance(text, str) or not text.strip():
            return generation_failed(f"{self.name} generated an empty message", job=job)
        return Generated(text.strip())

    # ------------------------------------------------------------------
    # Progress and status
    # ------------------------------------------------------------------

    @property
    def reports_progress(self) -> bool:
        return hasattr(self.executor, "add_progress_listener")

    def add_progress_listener(self, listener: ProgressListener) -> bool:
        """Attach a listener if the executor reports progress."""
        if not self.reports_progress:
            return False
        self.executor.add_progress_listener(listener)
        return True

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        remove = getattr(self.executor, "remove_progress_listener", None)
        if remove is not None:
            remove(listener)

    def get_status(self) -> AgentStatus | None:
        get_status = getattr(self.executor, "get_status", None)
        if get_status is None:
            return None
        return get_status()


__all__ = ["AgentAdapter"]
