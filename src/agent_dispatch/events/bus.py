"""
Event bus for queue lifecycle events.

This module provides the EventBus used to decouple the job queue from the
orchestrator. Two kinds of consumers are supported:

- Observers: objects implementing some of the ``QueueObserver`` methods.
  Each event is delivered to the matching method in a tracked task, so a
  slow observer never blocks the queue that published the event.
- Subscriptions: filtered, bounded asyncio queues consumed by iterating
  ``events()`` or calling ``wait_for_event()``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from .types import JobAdded, JobCompleted, JobFailed, JobProgress, QueueEvent, QueueEventType

logger = logging.getLogger(__name__)


@runtime_checkable
class QueueObserver(Protocol):
    """Typed callbacks for queue lifecycle events.

    Observers only need to implement the methods they care about; missing
    methods are skipped.
    """

    async def on_job_added(self, event: JobAdded) -> None: ...

    async def on_job_progress(self, event: JobProgress) -> None: ...

    async def on_job_completed(self, event: JobCompleted) -> None: ...

    async def on_job_failed(self, event: JobFailed) -> None: ...


@dataclass
class EventSubscription:
    """Subscription to events from the event bus."""
    subscription_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str | None = None
    agent_name: str | None = None
    event_types: set[QueueEventType] | None = None  # None = all types

    def matches(self, event: QueueEvent) -> bool:
        """Check if an event matches this subscription."""
        if self.job_id and event.job_id != self.job_id:
            return False
        if self.agent_name and event.agent_name != self.agent_name:
            return False
        if self.event_types and event.type not in self.event_types:
            return False
        return True


class EventBus:
    """In-process event bus.

    Uses one bounded asyncio.Queue per subscription and one task per
    observer notification. Suitable for single-process deployments and
    testing.
    """

    def __init__(
        self,
        max_queue_size: int = 1000,
        drop_policy: str = "oldest",  # "oldest" or "newest"
    ):
        if drop_policy not in ("oldest", "newest"):
            raise ValueError(f"Invalid drop policy: {drop_policy}")
        self._observers: list[object] = []
        self._queues: dict[str, asyncio.Queue[QueueEvent | None]] = {}
        self._subscriptions: dict[str, EventSubscription] = {}
        self._pending: set[asyncio.Task[None]] = set()
        self._max_queue_size = max_queue_size
        self._drop_policy = drop_policy
        self._closed = False

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_observer(self, observer: object) -> None:
        """Register an observer; registering twice is a no-op."""
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: object) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observers(self) -> list[object]:
        return list(self._observers)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, event: QueueEvent) -> None:
        """Publish an event to all matching subscribers and observers.

        Never blocks and never raises because of a consumer.
        """
        if self._closed:
            return

        for sub_id, subscription in list(self._subscriptions.items()):
            if not subscription.matches(event):
                continue
            queue = self._queues.get(sub_id)
            if queue is None:
                continue
            if queue.full():
                if self._drop_policy == "oldest":
                    try:
                        queue.get_nowait()
                    except asyncio.QueueEmpty:
                        pass
                else:
                    continue
            queue.put_nowait(event)

        if not self._observers:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; %s not delivered to observers", event.type.value)
            return

        for observer in list(self._observers):
            handler = getattr(observer, event.handler_name, None)
            if handler is None:
                continue
            task = loop.create_task(self._notify(handler, event))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _notify(self, handler, event: QueueEvent) -> None:
        try:
            await handler(event)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "Observer %r failed handling %s for job %s",
                handler,
                event.type.value,
                event.job_id,
            )

    async def join(self) -> None:
        """Wait until every observer notification scheduled so far, and any
        scheduled while waiting, has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        job_id: str | None = None,
        event_types: set[QueueEventType] | None = None,
        agent_name: str | None = None,
    ) -> EventSubscription:
        """Create a subscription and return it."""
        subscription = EventSubscription(
            job_id=job_id,
            agent_name=agent_name,
            event_types=event_types,
        )
        self._subscriptions[subscription.subscription_id] = subscription
        self._queues[subscription.subscription_id] = asyncio.Queue(
            maxsize=self._max_queue_size
        )
        return subscription

    async def events(
        self,
        subscription: EventSubscription,
    ) -> AsyncIterator[QueueEvent]:
        """Iterate over events for a subscription.

        Yields events until the subscription is closed.
        """
        queue = self._queues.get(subscription.subscription_id)
        if not queue:
            return

        while True:
            event = await queue.get()
            if event is None:  # Sentinel for close
                break
            yield event

    async def wait_for_event(
        self,
        subscription: EventSubscription,
        timeout: float | None = None,
    ) -> QueueEvent | None:
        """Wait for a single event with optional timeout."""
        queue = self._queues.get(subscription.subscription_id)
        if not queue:
            return None

        try:
            if timeout:
                return await asyncio.wait_for(queue.get(), timeout=timeout)
            return await queue.get()
        except asyncio.TimeoutError:
            return None

    def unsubscribe(self, subscription: EventSubscription) -> None:
        """Remove a subscription."""
        sub_id = subscription.subscription_id
        self._subscriptions.pop(sub_id, None)
        queue = self._queues.pop(sub_id, None)
        if queue is not None:
            # Send sentinel to unblock any waiting consumers
            try:
                queue.put_nowait(None)
            except asyncio.QueueFull:
                pass

    async def close(self) -> None:
        """Close the bus, unblock consumers and cancel pending notifications."""
        self._closed = True
        for queue in self._queues.values():
            try:
                queue.put_nowait(None)
            except asyncio.QueueFull:
                pass
        self._queues.clear()
        self._subscriptions.clear()
        self._observers.clear()

        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()


__all__ = [
    "EventBus",
    "EventSubscription",
    "QueueObserver",
]
