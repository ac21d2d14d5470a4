"""
Job queue and follow-up configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .base import DEFAULT_AGENTS

# Upper bound for the decoupling delay between add_job and the drain start.
MAX_DRAIN_DELAY = 0.1


@dataclass
class QueueConfig:
    """Configuration for the per-agent job queues."""

    # Queues created up front; registered executors always get one as well
    agents: tuple[str, ...] = DEFAULT_AGENTS

    # Finished jobs kept for status queries, oldest evicted first
    retention_limit: int = 100

    # Delay before a scheduled drain starts, in seconds
    drain_delay: float = 0.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.agents = tuple(self.agents)
        if not self.agents:
            raise ValueError("agents must not be empty")
        if self.retention_limit < 1:
            raise ValueError("retention_limit must be at least 1")
        if self.drain_delay < 0 or self.drain_delay > MAX_DRAIN_DELAY:
            raise ValueError(f"drain_delay must be between 0 and {MAX_DRAIN_DELAY} seconds")


@dataclass
class FollowUpConfig:
    """Configuration for conversational follow-up tracking."""

    ttl_seconds: float = 600.0
    confirmation_types: tuple[str, ...] = field(default=("time_confirmation",))

    def __post_init__(self):
        self.confirmation_types = tuple(self.confirmation_types)
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")


__all__ = ["QueueConfig", "FollowUpConfig", "MAX_DRAIN_DELAY"]
