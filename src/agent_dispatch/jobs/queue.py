"""
Per-agent job queues.

This module provides the AgentJobQueue that accepts job submissions,
runs them one at a time per agent and publishes lifecycle events:

- Each agent name has its own waiting list, ordered by priority and then
  by submission order
- A single drainer task per agent executes jobs sequentially; different
  agents run concurrently
- Finished jobs move to a bounded retention store for status queries
- Executor failures become failed jobs and never escape the drainer
"""

from __future__ import annotations

import asyncio
import bisect
import itertools
import logging
import time
from functools import partial
from typing import TYPE_CHECKING, Any

from ..agents.base import AgentStatus, ProgressUpdate
from ..agents.registry import agent_key
from ..config.queue import QueueConfig
from ..errors import ErrorContext, JobExecutionError, QueueNotFoundError, error_message
from ..events.bus import EventBus
from ..events.types import JobAdded, JobCompleted, JobFailed, JobProgress
from .inputs import JobResult, validate_job_input
from .store import JobFilter, RetentionStore
from .types import JobRecord, JobStatus, QueueStats

if TYPE_CHECKING:
    from ..agents.adapter import AgentAdapter
    from ..agents.registry import AgentRegistry

logger = logging.getLogger(__name__)

# (-priority, submission sequence, job); the sequence is unique so jobs are
# never compared
_Entry = tuple[int, int, JobRecord]


class AgentJobQueue:
    """In-process job queues, one per agent.

    Queues exist for every agent registered in the registry plus any extra
    names listed in ``QueueConfig.agents``. A job submitted to a queue whose
    agent has no registered executor fails when it is drained.

    Example:
        ```python
        queue = AgentJobQueue(registry, event_bus)
        await queue.init()

        job_id = await queue.add_job(
            "falcon",
            user_id="user-1",
            job_type="lead_generation",
            input_data={"locations": ["Austin"]},
        )
        status = queue.get_job_status(job_id, "falcon")
        ```
    """

    def __init__(
        self,
        registry: AgentRegistry,
        event_bus: EventBus | None = None,
        config: QueueConfig | None = None,
    ):
        self.registry = registry
        self.event_bus = event_bus or EventBus()
        self.config = config or QueueConfig()

        self._waiting: dict[str, list[_Entry]] = {}
        self._in_flight: dict[str, JobRecord] = {}
        self._retention = RetentionStore(self.config.retention_limit)
        self._paused: set[str] = set()
        self._drainers: dict[str, asyncio.Task[None]] = {}
        self._wakeups: dict[str, asyncio.TimerHandle] = {}
        self._listeners: dict[str, Any] = {}
        self._sequence = itertools.count()
        self._initialized = False

        for name in (*self.config.agents, *registry.names()):
            self._waiting.setdefault(agent_key(name), [])

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Attach progress listeners to every executor that reports progress."""
        if self._initialized:
            return
        for name in self.registry.names():
            self._waiting.setdefault(name, [])
            adapter = self.registry.get(name)
            if adapter is None:
                continue
            listener = partial(self._on_progress, name)
            if adapter.add_progress_listener(listener):
                self._listeners[name] = listener
        self._initialized = True
        logger.info("Job queues initialized: %s", ", ".join(self.queue_names))

    async def cleanup(self) -> None:
        """Cancel drainers and timers and forget every job."""
        for handle in self._wakeups.values():
            handle.cancel()
        self._wakeups.clear()

        drainers = [task for task in self._drainers.values() if not task.done()]
        for task in drainers:
            task.cancel()
        if drainers:
            await asyncio.gather(*drainers, return_exceptions=True)
        self._drainers.clear()

        for name, listener in self._listeners.items():
            adapter = self.registry.get(name)
            if adapter is not None:
                adapter.remove_progress_listener(listener)
        self._listeners.clear()

        for entries in self._waiting.values():
            entries.clear()
        self._in_flight.clear()
        self._retention.clear()
        self._paused.clear()
        self._initialized = False
        logger.info("Job queues cleaned up")

    @property
    def queue_names(self) -> list[str]:
        return list(self._waiting)

    def has_queue(self, agent_name: str) -> bool:
        return agent_key(agent_name) in self._waiting

    def _queue_for(self, agent_name: str) -> list[_Entry]:
        agent_name = agent_key(agent_name)
        entries = self._waiting.get(agent_name)
        if entries is None:
            # Agents registered after construction get a queue on first use
            if agent_name in self.registry:
                entries = self._waiting[agent_name] = []
            else:
                raise QueueNotFoundError(agent_name)
        return entries

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def add_job(
        self,
        agent_name: str,
        *,
        user_id: str,
        job_type: str,
        input_data: dict[str, Any] | None = None,
        priority: int = 0,
        delay: float = 0.0,
        session_id: str | None = None,
        original_message: str | None = None,
    ) -> str:
        """Submit a job to an agent queue.

        Returns as soon as the job is queued; execution happens in the
        agent's drainer task.

        Raises:
            QueueNotFoundError: If no queue exists for the agent
            JobValidationError: If input_data does not match the job type schema
        """
        agent_name = agent_key(agent_name)
        entries = self._queue_for(agent_name)
        data = validate_job_input(job_type, input_data)

        job = JobRecord(
            agent_name=agent_name,
            job_type=job_type,
            user_id=user_id,
            session_id=session_id,
            original_message=original_message,
            input_data=data,
            priority=priority,
            delay=max(0.0, float(delay)),
        )
        bisect.insort(entries, (-priority, next(self._sequence), job))
        logger.info(
            "Job %s added to %s queue (type=%s, user=%s)",
            job.job_id,
            agent_name,
            job_type,
            user_id,
        )

        self.event_bus.publish(
            JobAdded(job_id=job.job_id, agent_name=agent_name, user_id=user_id, job_type=job_type)
        )
        self._schedule_drain(agent_name)
        return job.job_id

    # ------------------------------------------------------------------
    # Draining
    # ------------------------------------------------------------------

    def _schedule_drain(self, agent_name: str) -> None:
        if agent_name in self._paused:
            return
        drainer = self._drainers.get(agent_name)
        if drainer is not None and not drainer.done():
            return
        loop = asyncio.get_running_loop()
        self._drainers[agent_name] = loop.create_task(
            self._drain(agent_name), name=f"drain-{agent_name}"
        )

    async def _drain(self, agent_name: str) -> None:
        try:
            if self.config.drain_delay:
                await asyncio.sleep(self.config.drain_delay)
            while agent_name not in self._paused:
                job = self._pop_next(agent_name)
                if job is None:
                    break
                await self._process(agent_name, job)
                # Yield so other agents' drainers run between jobs
                await asyncio.sleep(0)
            else:
                logger.info("Queue %s paused; drain stopped", agent_name)
                return
            self._arm_wakeup(agent_name)
        finally:
            if self._drainers.get(agent_name) is asyncio.current_task():
                del self._drainers[agent_name]

    def _pop_next(self, agent_name: str) -> JobRecord | None:
        """Remove and return the first waiting job whose delay has elapsed."""
        entries = self._waiting.get(agent_name, [])
        now = time.time()
        for index, (_, _, job) in enumerate(entries):
            if job.available_at <= now:
                del entries[index]
                return job
        return None

    def _arm_wakeup(self, agent_name: str) -> None:
        """Schedule a drain for when the earliest delayed job becomes eligible."""
        handle = self._wakeups.pop(agent_name, None)
        if handle is not None:
            handle.cancel()

        entries = self._waiting.get(agent_name)
        if not entries:
            return
        earliest = min(job.available_at for _, _, job in entries)
        wait = max(0.0, earliest - time.time())
        loop = asyncio.get_running_loop()
        self._wakeups[agent_name] = loop.call_later(wait, self._wake, agent_name)
        logger.debug("Queue %s sleeping %.3fs until next delayed job", agent_name, wait)

    def _wake(self, agent_name: str) -> None:
        self._wakeups.pop(agent_name, None)
        self._schedule_drain(agent_name)

    async def _process(self, agent_name: str, job: JobRecord) -> None:
        job = job.start()
        self._in_flight[job.job_id] = job
        logger.info("Processing job %s on %s", job.job_id, agent_name)

        adapter = self.registry.get(agent_name)
        try:
            if adapter is None:
                raise JobExecutionError(
                    f"No executor registered for agent: {agent_name}",
                    context=ErrorContext(job_id=job.job_id, agent_name=agent_name),
                )
            result = await adapter.execute(job)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Job %s failed on %s: %s", job.job_id, agent_name, exc)
            self._finish(agent_name, job.job_id, error=error_message(exc))
        else:
            self._finish(agent_name, job.job_id, result=result)

    def _finish(
        self,
        agent_name: str,
        job_id: str,
        *,
        result: JobResult | None = None,
        error: str | None = None,
    ) -> None:
        job = self._in_flight.pop(job_id, None)
        if job is None:
            logger.info("Job %s was removed while active; outcome discarded", job_id)
            return

        if error is None:
            job = job.complete(result or JobResult())
        else:
            job = job.fail(error)
        for evicted in self._retention.add(job):
            logger.debug("Evicted finished job %s from retention", evicted.job_id)

        if job.status == JobStatus.COMPLETED:
            logger.info("Job %s completed on %s", job_id, agent_name)
            self.event_bus.publish(
                JobCompleted(
                    job_id=job_id, agent_name=agent_name, user_id=job.user_id, result=job.result, job=job
                )
            )
        else:
            self.event_bus.publish(
                JobFailed(
                    job_id=job_id, agent_name=agent_name, user_id=job.user_id, error=job.error or "", job=job
                )
            )

    def _on_progress(self, agent_name: str, update: ProgressUpdate) -> None:
        job = self._in_flight.get(update.job_id)
        if job is not None:
            self._in_flight[update.job_id] = job.with_progress(update.progress)
        self.event_bus.publish(
            JobProgress(
                job_id=update.job_id,
                agent_name=job.agent_name if job else agent_name,
                user_id=job.user_id if job else None,
                progress=update.progress,
                message=update.message,
                stage=update.stage,
                estimated_time_remaining=update.estimated_time_remaining,
            )
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_job_status(self, job_id: str, agent_name: str | None = None) -> JobRecord | None:
        """Look up a job by id.

        Searches in-flight jobs, then retained finished jobs, then the
        waiting lists (the named queue first). Returns None for unknown or
        evicted jobs.
        """
        job = self._in_flight.get(job_id) or self._retention.get(job_id)
        if job is not None:
            return job

        names = list(self._waiting)
        if agent_name in self._waiting:
            names.remove(agent_name)
            names.insert(0, agent_name)
        for name in names:
            for _, _, waiting in self._waiting[name]:
                if waiting.job_id == job_id:
                    return waiting
        return None

    def get_queue_stats(self, agent_name: str) -> QueueStats:
        """Counters for one agent queue.

        Raises:
            QueueNotFoundError: If no queue exists for the agent
        """
        agent_name = agent_key(agent_name)
        entries = self._queue_for(agent_name)
        return QueueStats(
            queue_name=agent_name,
            waiting=len(entries),
            active=sum(1 for job in self._in_flight.values() if job.agent_name == agent_name),
            completed=self._retention.count(JobFilter(agent_name=agent_name, status=JobStatus.COMPLETED)),
            failed=self._retention.count(JobFilter(agent_name=agent_name, status=JobStatus.FAILED)),
            paused=agent_name in self._paused,
        )

    def get_all_queue_stats(self) -> list[QueueStats]:
        return [self.get_queue_stats(name) for name in self._waiting]

    def list_jobs(
        self,
        *,
        agent_name: str | None = None,
        user_id: str | None = None,
        status: JobStatus | set[JobStatus] | None = None,
    ) -> list[JobRecord]:
        """List known jobs: waiting, then active, then retained finished jobs."""
        job_filter = JobFilter(agent_name=agent_name, user_id=user_id, status=status)
        jobs = [job for entries in self._waiting.values() for _, _, job in entries]
        jobs.extend(self._in_flight.values())
        jobs = [job for job in jobs if job_filter.matches(job)]
        jobs.extend(self._retention.list(job_filter))
        return jobs

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def remove_job(self, job_id: str, agent_name: str) -> bool:
        """Remove a job from an agent queue.

        A waiting job is dropped. An active job is only forgotten: its
        executor keeps running but its outcome is discarded.

        Raises:
            QueueNotFoundError: If no queue exists for the agent
        """
        agent_name = agent_key(agent_name)
        entries = self._queue_for(agent_name)
        for index, (_, _, job) in enumerate(entries):
            if job.job_id == job_id:
                del entries[index]
                logger.info("Removed waiting job %s from %s", job_id, agent_name)
                if not entries:
                    handle = self._wakeups.pop(agent_name, None)
                    if handle is not None:
                        handle.cancel()
                return True

        active = self._in_flight.get(job_id)
        if active is not None and active.agent_name == agent_name:
            del self._in_flight[job_id]
            logger.info("Removed active job %s from %s; executor not interrupted", job_id, agent_name)
            return True
        return False

    async def pause_queue(self, agent_name: str) -> None:
        """Stop starting new jobs for an agent. The active job finishes.

        Raises:
            QueueNotFoundError: If no queue exists for the agent
        """
        agent_name = agent_key(agent_name)
        self._queue_for(agent_name)
        self._paused.add(agent_name)
        handle = self._wakeups.pop(agent_name, None)
        if handle is not None:
            handle.cancel()
        logger.info("Queue %s paused", agent_name)

    async def resume_queue(self, agent_name: str) -> None:
        """Resume a paused queue and drain any waiting jobs.

        Raises:
            QueueNotFoundError: If no queue exists for the agent
        """
        agent_name = agent_key(agent_name)
        self._queue_for(agent_name)
        self._paused.discard(agent_name)
        logger.info("Queue %s resumed", agent_name)
        self._schedule_drain(agent_name)

    def is_paused(self, agent_name: str) -> bool:
        return agent_key(agent_name) in self._paused

    # ------------------------------------------------------------------
    # Agent status
    # ------------------------------------------------------------------

    def get_agent_status(self, agent_name: str) -> AgentStatus | None:
        adapter: AgentAdapter | None = self.registry.get(agent_name)
        if adapter is None:
            return None
        return adapter.get_status()

    def get_all_agent_statuses(self) -> dict[str, AgentStatus | None]:
        return {name: self.get_agent_status(name) for name in self.registry.names()}


__all__ = ["AgentJobQueue"]
