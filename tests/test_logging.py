"""
Tests for the structured logging module.
"""

import asyncio
import io
import json
import logging

import pytest

from agent_dispatch.config import LoggingConfig
from agent_dispatch.errors import ErrorContext, JobExecutionError
from agent_dispatch.logging import (
    ROOT_LOGGER_NAME,
    JSONFormatter,
    LogContext,
    StructuredLogger,
    TextFormatter,
    configure_logging,
    get_logger,
    truncate_for_log,
)


class TestLogContext:
    """Test LogContext dataclass."""

    def test_to_dict_skips_empty_fields(self):
        ctx = LogContext(job_id="job_1", agent_name="falcon", extra={"stage": "completion"})

        assert ctx.to_dict() == {"job_id": "job_1", "agent_name": "falcon", "stage": "completion"}

    def test_with_update(self):
        ctx = LogContext(job_id="job_1", extra={"a": 1})
        updated = ctx.with_update(user_id="u1", extra={"b": 2})

        assert updated.job_id == "job_1"
        assert updated.user_id == "u1"
        assert updated.extra == {"a": 1, "b": 2}
        assert ctx.user_id is None


class TestStructuredLogger:
    """Test StructuredLogger."""

    def test_fields_attached_to_records(self, caplog):
        log = StructuredLogger("agent_dispatch.tests")

        with caplog.at_level(logging.INFO, logger="agent_dispatch.tests"):
            with log.context(job_id="job_1"):
                log.info("Stage-2 message sent", stage="completion")
            log.info("Outside context")

        first, second = caplog.records
        assert first.fields == {"job_id": "job_1", "stage": "completion"}
        assert second.fields == {}

    def test_disabled_level_is_skipped(self, caplog):
        log = get_logger("agent_dispatch.tests.quiet")

        with caplog.at_level(logging.WARNING, logger="agent_dispatch.tests.quiet"):
            log.debug("not recorded")
            log.warning("recorded")

        assert [r.getMessage() for r in caplog.records] == ["recorded"]

    def test_log_error_includes_details(self, caplog):
        log = StructuredLogger("agent_dispatch.tests.errors")
        error = JobExecutionError("boom", context=ErrorContext(job_id="job_9", agent_name="sage"))

        with caplog.at_level(logging.ERROR, logger="agent_dispatch.tests.errors"):
            log.log_error(error, "Job failed", user_id="u1")

        record = caplog.records[0]
        assert record.fields["error_type"] == "JobExecutionError"
        assert record.fields["error_code"] == "ERR_2000"
        assert record.fields["error_context"] == {"job_id": "job_9", "agent_name": "sage"}
        assert record.fields["user_id"] == "u1"

    @pytest.mark.asyncio
    async def test_context_is_task_local(self, caplog):
        log = StructuredLogger("agent_dispatch.tests.tasks")

        async def handle(user_id):
            with log.context(user_id=user_id):
                await asyncio.sleep(0.01)
                log.info("handled")

        with caplog.at_level(logging.INFO, logger="agent_dispatch.tests.tasks"):
            await asyncio.gather(handle("u1"), handle("u2"))

        assert sorted(r.fields["user_id"] for r in caplog.records) == ["u1", "u2"]


class TestFormatters:
    """Test JSON and text formatters."""

    def _record(self, fields=None):
        record = logging.LogRecord("agent_dispatch", logging.INFO, __file__, 1, "Job %s added", ("job_1",), None)
        record.fields = fields or {}
        return record

    def test_json_formatter(self):
        data = json.loads(JSONFormatter().format(self._record({"agent_name": "falcon"})))

        assert data["level"] == "INFO"
        assert data["message"] == "Job job_1 added"
        assert data["agent_name"] == "falcon"

    def test_text_formatter(self):
        line = TextFormatter(colors=False).format(self._record({"agent_name": "falcon"}))

        assert "INFO" in line
        assert "Job job_1 added agent_name=falcon" in line
        assert "\033[" not in line


class TestConfigureLogging:
    def test_configure_replaces_handler(self):
        first_stream = io.StringIO()
        second_stream = io.StringIO()

        configure_logging(LoggingConfig(level="DEBUG", format="json"), stream=first_stream)
        root = configure_logging(LoggingConfig(level="INFO", format="json"), stream=second_stream)
        try:
            StructuredLogger("agent_dispatch.tests.configured").info("hello", user_id="u1")

            assert first_stream.getvalue() == ""
            data = json.loads(second_stream.getvalue().strip())
            assert data["message"] == "hello"
            assert data["user_id"] == "u1"
            assert root.level == logging.INFO
        finally:
            for handler in list(root.handlers):
                if getattr(handler, "_agent_dispatch_handler", False):
                    root.removeHandler(handler)
            root.setLevel(logging.NOTSET)
            assert root.name == ROOT_LOGGER_NAME


def test_truncate_for_log():
    assert truncate_for_log("short") == "short"
    truncated = truncate_for_log("x" * 300)
    assert truncated.startswith("x" * 200)
    assert truncated.endswith("(300 chars total)")
