"""
Job lifecycle management.

This package provides:
- JobRecord / JobStatus: immutable job records and their state machine
- JobResult and per-job-type input validation
- RetentionStore: bounded store of finished jobs
- AgentJobQueue: per-agent queues with sequential execution
"""

from .inputs import (
    GENERIC_INPUT_SCHEMA,
    JOB_INPUT_SCHEMAS,
    JobResult,
    sanitize_output,
    schema_for,
    validate_job_input,
)
from .types import (
    VALID_TRANSITIONS,
    JobRecord,
    JobStatus,
    QueueStats,
    clamp_progress,
    new_job_id,
)
from .store import JobFilter, RetentionStore
from .queue import AgentJobQueue

__all__ = [
    # Types
    "JobRecord",
    "JobStatus",
    "QueueStats",
    "VALID_TRANSITIONS",
    "new_job_id",
    "clamp_progress",
    # Inputs / results
    "JobResult",
    "JOB_INPUT_SCHEMAS",
    "GENERIC_INPUT_SCHEMA",
    "schema_for",
    "validate_job_input",
    "sanitize_output",
    # Storage
    "JobFilter",
    "RetentionStore",
    # Queue
    "AgentJobQueue",
]
