"""
Tests for job records, inputs and retention.
"""

import pytest

from agent_dispatch.errors import InvalidTransitionError, JobValidationError
from agent_dispatch.jobs import JobRecord, JobResult, JobStatus, QueueStats, RetentionStore
from agent_dispatch.jobs.inputs import sanitize_output, schema_for, validate_job_input
from agent_dispatch.jobs.store import JobFilter
from agent_dispatch.jobs.types import clamp_progress


class TestJobRecord:
    """Test the job lifecycle."""

    def test_defaults(self):
        job = JobRecord(agent_name="falcon", job_type="lead_generation", user_id="u1")

        assert job.job_id.startswith("job_")
        assert job.status == JobStatus.WAITING
        assert job.progress == 0
        assert job.name == "falcon_job"
        assert job.available_at == job.created_at

    def test_ids_are_unique(self):
        assert len({JobRecord().job_id for _ in range(100)}) == 100

    def test_complete_lifecycle(self):
        job = JobRecord(agent_name="falcon", user_id="u1")
        active = job.start()
        done = active.complete(JobResult(data={"count": 2}))

        assert job.status == JobStatus.WAITING
        assert active.status == JobStatus.ACTIVE
        assert active.processed_at is not None
        assert done.status == JobStatus.COMPLETED
        assert done.progress == 100
        assert done.finished_at >= done.processed_at
        assert done.result.data == {"count": 2}

    def test_fail(self):
        failed = JobRecord().start().fail("boom")

        assert failed.status == JobStatus.FAILED
        assert failed.error == "boom"
        assert failed.result is None

    def test_invalid_transitions(self):
        with pytest.raises(InvalidTransitionError):
            JobRecord().complete(JobResult())

        done = JobRecord().start().fail("boom")
        with pytest.raises(InvalidTransitionError):
            done.start()

    def test_progress_is_clamped(self):
        job = JobRecord().start()

        assert job.with_progress(150).progress == 100
        assert job.with_progress(-5).progress == 0
        assert clamp_progress(42.7) == 42

    def test_delay_shifts_availability(self):
        job = JobRecord(delay=2.5)
        assert job.available_at == job.created_at + 2.5

    def test_to_dict(self):
        data = JobRecord(agent_name="sage", job_type="research", user_id="u1").to_dict()

        assert data["name"] == "sage_job"
        assert data["status"] == "waiting"
        assert data["result"] is None


class TestJobInputs:
    """Test input validation by job type."""

    def test_known_schema(self):
        data = validate_job_input("lead_generation", {"locations": ["Austin"], "maxResults": 10})
        assert data == {"locations": ["Austin"], "maxResults": 10}

    def test_missing_input_becomes_empty_object(self):
        assert validate_job_input("auto_reply", None) == {}

    def test_schema_violation(self):
        with pytest.raises(JobValidationError) as exc_info:
            validate_job_input("auto_reply", {"tone": "angry"})

        assert exc_info.value.errors[0].startswith("tone:")

    def test_unknown_job_type_accepts_any_object(self):
        assert schema_for("custom_task") == {"type": "object"}
        assert validate_job_input("custom_task", {"anything": [1, 2]}) == {"anything": [1, 2]}

    def test_empty_job_type_rejected(self):
        with pytest.raises(JobValidationError):
            validate_job_input("", {})

    def test_input_is_copied(self):
        original = {"leadId": "1"}
        data = validate_job_input("auto_reply", original)
        data["leadId"] = "2"
        assert original == {"leadId": "1"}


class TestJobResult:
    """Test coercion of executor output."""

    def test_structured_mapping(self):
        result = JobResult.coerce({"success": False, "error": "No leads found"})

        assert result.success is False
        assert result.error == "No leads found"
        assert result.data == {}

    def test_plain_mapping_becomes_data(self):
        result = JobResult.coerce({"leads": ["a"], "api_key": "sk"})

        assert result.success is True
        assert result.data == {"leads": ["a"]}

    def test_scalar_and_none(self):
        assert JobResult.coerce("done").data == {"value": "done"}
        assert JobResult.coerce(None) == JobResult()

    def test_passthrough(self):
        result = JobResult(data={"x": 1})
        assert JobResult.coerce(result) is result

    def test_confirmation_flags(self):
        result = JobResult(data={"needsConfirmation": True, "confirmationType": "time_confirmation"})

        assert result.needs_confirmation
        assert result.confirmation_type == "time_confirmation"

    def test_failure_to_dict(self):
        assert JobResult.failure("boom").to_dict() == {"success": False, "data": {}, "error": "boom"}

    def test_sanitize_only_top_level(self):
        output = {"secret": 1, "nested": {"secret": 2}}
        assert sanitize_output(output) == {"nested": {"secret": 2}}


class TestRetentionStore:
    """Test bounded retention."""

    def _finished(self, agent_name="falcon", user_id="u1", error=None):
        job = JobRecord(agent_name=agent_name, user_id=user_id).start()
        return job.fail(error) if error else job.complete(JobResult())

    def test_evicts_oldest(self):
        store = RetentionStore(limit=2)
        first, second, third = (self._finished() for _ in range(3))

        assert store.add(first) == []
        assert store.add(second) == []
        assert store.add(third) == [first]
        assert first.job_id not in store
        assert store.evicted == 1
        assert store.list() == [second, third]

    def test_rejects_non_terminal(self):
        with pytest.raises(ValueError):
            RetentionStore().add(JobRecord())

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            RetentionStore(limit=0)

    def test_filters(self):
        store = RetentionStore()
        ok = self._finished("falcon", "u1")
        failed = self._finished("sage", "u2", error="boom")
        store.add(ok)
        store.add(failed)

        assert store.list(JobFilter(agent_name="sage")) == [failed]
        assert store.count(JobFilter(status=JobStatus.COMPLETED)) == 1
        assert store.count(JobFilter(status={JobStatus.COMPLETED, JobStatus.FAILED})) == 2
        assert store.list(JobFilter(user_id="u1")) == [ok]


def test_queue_stats_total():
    stats = QueueStats(queue_name="falcon", waiting=2, active=1, completed=3, failed=1)

    assert stats.total == 7
    assert stats.to_dict()["total"] == 7
