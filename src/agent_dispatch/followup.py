"""
Conversational follow-up tracking.

When a finished job needs more input from the user (for example a reminder
that needs a confirmed time), the orchestrator registers a follow-up
context for that user. The next chat message from the same user is checked
against it and, if it has the expected shape, routed straight back to the
agent instead of going through intent classification.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .config.queue import FollowUpConfig

logger = logging.getLogger(__name__)

TIME_CONFIRMATION = "time_confirmation"

# H[:MM] with an optional am/pm marker, e.g. "3pm", "10:30 a.m.", "1430"
TIME_PATTERN = re.compile(r"(\d{1,2}):?(\d{2})?\s*(am|pm|a\.m\.|p\.m\.)?", re.IGNORECASE)

# Shape checks per confirmation type; types without one never match
SHAPE_CHECKS: dict[str, Callable[[str], bool]] = {
    TIME_CONFIRMATION: lambda message: TIME_PATTERN.search(message) is not None,
}


@dataclass
class FollowUpContext:
    """A pending confirmation for one user."""
    user_id: str
    last_agent_interaction: str
    confirmation_type: str
    original_request: dict[str, Any] = field(default_factory=dict)
    pending_confirmation: bool = True
    timestamp: float = field(default_factory=time.time)

    def age(self, now: float) -> float:
        return now - self.timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "last_agent_interaction": self.last_agent_interaction,
            "pending_confirmation": self.pending_confirmation,
            "confirmation_type": self.confirmation_type,
            "original_request": dict(self.original_request),
            "timestamp": self.timestamp,
        }


class FollowUpTracker:
    """Per-user follow-up contexts with a time-to-live.

    At most one live context exists per user. A second ``set`` while a
    context is still live is rejected unless ``replace=True``.

    Args:
        config: TTL configuration (default 10 minutes)
        clock: Time source returning seconds; injectable for tests
    """

    def __init__(
        self,
        config: FollowUpConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or FollowUpConfig()
        self._clock = clock
        self._contexts: dict[str, FollowUpContext] = {}

    @property
    def ttl(self) -> float:
        return self.config.ttl_seconds

    def _is_expired(self, context: FollowUpContext, now: float) -> bool:
        return context.age(now) > self.ttl

    def set(
        self,
        user_id: str,
        agent_name: str,
        confirmation_type: str,
        original_request: dict[str, Any] | None = None,
        *,
        replace: bool = False,
    ) -> bool:
        """Register a pending confirmation for a user.

        Returns:
            True if stored, False if a live context already exists and
            ``replace`` is False
        """
        now = self._clock()
        existing = self._contexts.get(user_id)
        if existing is not None and not self._is_expired(existing, now) and not replace:
            logger.warning(
                "Follow-up for user %s rejected: %s confirmation from %s still pending",
                user_id,
                existing.confirmation_type,
                existing.last_agent_interaction,
            )
            return False

        self._contexts[user_id] = FollowUpContext(
            user_id=user_id,
            last_agent_interaction=agent_name,
            confirmation_type=confirmation_type,
            original_request=dict(original_request or {}),
            timestamp=now,
        )
        logger.info("Follow-up context set for user %s (%s, %s)", user_id, agent_name, confirmation_type)
        return True

    def get(self, user_id: str) -> FollowUpContext | None:
        """Return the live context for a user without a shape check."""
        context = self._contexts.get(user_id)
        if context is None:
            return None
        if self._is_expired(context, self._clock()):
            del self._contexts[user_id]
            return None
        return context

    def check(self, user_id: str, message: str) -> FollowUpContext | None:
        """Return the user's context if the message answers it.

        Expired contexts are deleted. A matching context is left in place;
        the caller consumes it once the follow-up has been routed.
        """
        context = self.get(user_id)
        if context is None or not context.pending_confirmation:
            return None
        if context.confirmation_type not in self.config.confirmation_types:
            return None

        shape_check = SHAPE_CHECKS.get(context.confirmation_type)
        if shape_check is None or not shape_check(message or ""):
            return None
        return context

    def consume(self, user_id: str) -> FollowUpContext | None:
        """Remove and return a user's context."""
        return self._contexts.pop(user_id, None)

    def clear(self) -> None:
        self._contexts.clear()

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)


__all__ = [
    "TIME_CONFIRMATION",
    "TIME_PATTERN",
    "SHAPE_CHECKS",
    "FollowUpContext",
    "FollowUpTracker",
]
