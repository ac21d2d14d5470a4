"""
Bounded retention of finished jobs.

Completed and failed jobs are kept here so their status can still be
queried after they leave the in-flight set. The store is bounded: once the
limit is exceeded the oldest finished job is evicted.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterator
from dataclasses import dataclass

from .types import JobRecord, JobStatus


@dataclass
class JobFilter:
    """Filter criteria for listing retained jobs."""
    agent_name: str | None = None
    user_id: str | None = None
    status: JobStatus | set[JobStatus] | None = None

    def matches(self, job: JobRecord) -> bool:
        """Check if a job matches this filter."""
        if self.agent_name and job.agent_name != self.agent_name:
            return False
        if self.user_id and job.user_id != self.user_id:
            return False
        if self.status:
            if isinstance(self.status, set):
                if job.status not in self.status:
                    return False
            elif job.status != self.status:
                return False
        return True


class RetentionStore:
    """Insertion-ordered store of terminal job records.

    Only touched from the event loop thread, so no locking is needed.
    """

    def __init__(self, limit: int = 100):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._limit = limit
        self._jobs: OrderedDict[str, JobRecord] = OrderedDict()
        self.evicted = 0

    @property
    def limit(self) -> int:
        return self._limit

    def add(self, job: JobRecord) -> list[JobRecord]:
        """Retain a terminal job.

        Returns:
            The records evicted to stay within the limit
        """
        if not job.status.is_terminal:
            raise ValueError(f"Only finished jobs can be retained, got {job.status.value}")

        self._jobs[job.job_id] = job
        self._jobs.move_to_end(job.job_id)

        evicted: list[JobRecord] = []
        while len(self._jobs) > self._limit:
            _, oldest = self._jobs.popitem(last=False)
            evicted.append(oldest)
        self.evicted += len(evicted)
        return evicted

    def get(self, job_id: str) -> JobRecord | None:
        return self._jobs.get(job_id)

    def list(self, filter: JobFilter | None = None) -> list[JobRecord]:
        """List retained jobs, oldest first."""
        if filter is None:
            return list(self._jobs.values())
        return [j for j in self._jobs.values() if filter.matches(j)]

    def count(self, filter: JobFilter | None = None) -> int:
        if filter is None:
            return len(self._jobs)
        return sum(1 for j in self._jobs.values() if filter.matches(j))

    def clear(self) -> None:
        self._jobs.clear()

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def __iter__(self) -> Iterator[JobRecord]:
        return iter(list(self._jobs.values()))


__all__ = [
    "RetentionStore",
    "JobFilter",
]
