"""
Shared test fixtures for agent-dispatch tests.

This module provides:
- Fake agent executors with controllable outcomes
- A fixed, advanceable clock
- Queue, registry and orchestrator fixtures wired to in-memory collaborators
- ``wait_until`` for waiting on background drainers and observers
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import pytest

from agent_dispatch.agents import AgentRegistry, BaseAgent
from agent_dispatch.config import FollowUpConfig, QueueConfig, Settings
from agent_dispatch.events import EventBus
from agent_dispatch.followup import FollowUpTracker
from agent_dispatch.jobs import AgentJobQueue, JobRecord, JobResult
from agent_dispatch.orchestration import (
    AgentOrchestrator,
    InMemoryConversationStore,
    InMemoryNotificationSink,
    KeywordIntentClassifier,
    RecordingTransport,
)

# =============================================================================
# Fake Agents
# =============================================================================


class FakeAgent(BaseAgent):
    """Agent with scripted outcomes.

    Args:
        name: Agent name
        result: Value returned from process (default: a small success payload)
        error: Exception raised from process
        gate: Event awaited before finishing each job
        ack_error / completion_error: Exceptions raised by message generation
    """

    def __init__(
        self,
        name: str,
        *,
        result: Any = None,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
        ack_error: Exception | None = None,
        completion_error: Exception | None = None,
    ):
        super().__init__(name)
        self.result = result
        self.error = error
        self.gate = gate
        self.ack_error = ack_error
        self.completion_error = completion_error
        self.started: list[str] = []
        self.finished: list[str] = []
        self.running = 0
        self.max_running = 0

    async def process(self, job: JobRecord) -> Any:
        self.started.append(job.job_id)
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            self.emit_progress(job.job_id, 50, "Halfway there", "working")
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if self.error is not None:
                raise self.error
            if self.result is not None:
                return self.result
            return {"success": True, "data": {"agent": self.name, "count": 3}}
        finally:
            self.running -= 1
            self.finished.append(job.job_id)

    async def generate_acknowledgment_message(self, job: JobRecord, original_message: str) -> str:
        if self.ack_error is not None:
            raise self.ack_error
        return f"{self.name} is on it: {job.job_type}"

    async def generate_completion_message(
        self,
        job: JobRecord,
        result: JobResult,
        original_message: str,
    ) -> str:
        if self.completion_error is not None:
            raise self.completion_error
        if result.success:
            return f"{self.name} finished {job.job_type}"
        return f"{self.name} failed: {result.error}"


class PlainExecutor:
    """Executor implementing only ``execute_job``."""

    def __init__(self, result: Any = None):
        self.result = result
        self.jobs: list[JobRecord] = []

    async def execute_job(self, job: JobRecord) -> Any:
        self.jobs.append(job)
        return self.result if self.result is not None else {"done": True}


class FixedClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until predicate() is true; fail the test on timeout."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail("Condition not met before timeout")
        await asyncio.sleep(0.005)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def agents() -> dict[str, FakeAgent]:
    return {name: FakeAgent(name) for name in ("falcon", "sage", "sentinel")}


@pytest.fixture
def registry(agents) -> AgentRegistry:
    registry = AgentRegistry()
    for name, agent in agents.items():
        registry.register(name, agent)
    return registry


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def queue(registry, event_bus) -> AgentJobQueue:
    return AgentJobQueue(registry, event_bus, QueueConfig())


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def followups(clock) -> FollowUpTracker:
    return FollowUpTracker(FollowUpConfig(), clock=clock)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def notifications() -> InMemoryNotificationSink:
    return InMemoryNotificationSink()


@pytest.fixture
def orchestrator(queue, transport, store, notifications, followups) -> AgentOrchestrator:
    return AgentOrchestrator(
        queue,
        transport,
        store=store,
        notifications=notifications,
        classifier=KeywordIntentClassifier(),
        followups=followups,
        settings=Settings(),
    )
