"""
Event system for the job queues.

This module provides the typed lifecycle events and the event bus that
carries them from the queues to observers such as the orchestrator.
"""

from .types import (
    QueueEventType,
    QueueEvent,
    JobAdded,
    JobProgress,
    JobCompleted,
    JobFailed,
)
from .bus import (
    EventBus,
    EventSubscription,
    QueueObserver,
)

__all__ = [
    # Event types
    "QueueEventType",
    "QueueEvent",
    "JobAdded",
    "JobProgress",
    "JobCompleted",
    "JobFailed",
    # Bus
    "EventBus",
    "EventSubscription",
    "QueueObserver",
]
