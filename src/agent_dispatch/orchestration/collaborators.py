"""
Collaborator contracts used by the orchestrator.

The orchestrator talks to the outside world only through these protocols:
- TransportBridge: pushes events and chat messages to a connected user
- ConversationStore: sessions and message history
- NotificationSink: durable job notifications
- IntentClassifier: decides whether a message needs an agent

In-memory implementations are provided for tests and single-process use.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .types import ChatMessage, ChatSession, Intent, IntentResult, MessageType

logger = logging.getLogger(__name__)


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class TransportBridge(Protocol):
    """Fire-and-forget, at-most-once delivery to a user."""

    def send_to_user(self, user_id: str, event: str, payload: dict[str, Any]) -> None: ...

    def send_chat_message(self, user_id: str, message: ChatMessage) -> None: ...

    def send_job_progress(self, user_id: str, progress: dict[str, Any]) -> None: ...


@runtime_checkable
class ConversationStore(Protocol):
    """Durable sessions and message history."""

    async def get_or_create_session(
        self,
        user_id: str,
        agent: str,
        session_id: str | None = None,
    ) -> ChatSession: ...

    async def save_message(
        self,
        session_id: str,
        user_id: str,
        agent: str,
        role: str,
        content: str,
        *,
        message_type: str = MessageType.CHAT.value,
        context_data: dict[str, Any] | None = None,
    ) -> None: ...

    async def format_context_for_agent(
        self,
        user_id: str,
        agent: str,
        session_id: str | None = None,
    ) -> str: ...


@runtime_checkable
class NotificationSink(Protocol):
    """Durable per-user notifications for finished jobs."""

    async def notify_job_completed(
        self,
        user_id: str,
        agent_name: str,
        job_id: str,
        job_type: str,
        result: Any,
    ) -> None: ...

    async def notify_job_failed(
        self,
        user_id: str,
        agent_name: str,
        job_id: str,
        job_type: str,
        error: str,
    ) -> None: ...


@runtime_checkable
class IntentClassifier(Protocol):
    """Classifies chat messages and answers those that need no agent."""

    async def process_message(self, text: str, user_id: str, session_id: str) -> IntentResult: ...

    async def generate_response(self, intent: Intent, context: dict[str, Any]) -> str: ...


# =============================================================================
# In-memory implementations
# =============================================================================


@dataclass(frozen=True)
class SentEvent:
    user_id: str
    event: str
    payload: dict[str, Any]


class RecordingTransport:
    """Transport that records everything it is asked to send."""

    def __init__(self):
        self.events: list[SentEvent] = []
        self.chat_messages: list[ChatMessage] = []
        self.progress: list[tuple[str, dict[str, Any]]] = []

    def send_to_user(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        self.events.append(SentEvent(user_id, event, dict(payload)))

    def send_chat_message(self, user_id: str, message: ChatMessage) -> None:
        self.chat_messages.append(message)

    def send_job_progress(self, user_id: str, progress: dict[str, Any]) -> None:
        self.progress.append((user_id, dict(progress)))

    def messages_for(self, user_id: str) -> list[ChatMessage]:
        return [m for m in self.chat_messages if m.user_id == user_id]

    def events_named(self, event: str) -> list[SentEvent]:
        return [e for e in self.events if e.event == event]

    def clear(self) -> None:
        self.events.clear()
        self.chat_messages.clear()
        self.progress.clear()


@dataclass
class StoredMessage:
    session_id: str
    user_id: str
    agent: str
    role: str
    content: str
    message_type: str = MessageType.CHAT.value
    context_data: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)


class InMemoryConversationStore:
    """Conversation store keeping sessions and messages in dictionaries."""

    def __init__(self, context_window: int = 10):
        self.sessions: dict[str, ChatSession] = {}
        self.messages: list[StoredMessage] = []
        self.context_window = context_window

    async def get_or_create_session(
        self,
        user_id: str,
        agent: str,
        session_id: str | None = None,
    ) -> ChatSession:
        if session_id and session_id in self.sessions:
            return self.sessions[session_id]
        session = ChatSession(user_id=user_id, id=session_id) if session_id else ChatSession(user_id=user_id)
        self.sessions[session.id] = session
        logger.debug("Created session %s for user %s (%s)", session.id, user_id, agent)
        return session

    async def save_message(
        self,
        session_id: str,
        user_id: str,
        agent: str,
        role: str,
        content: str,
        *,
        message_type: str = MessageType.CHAT.value,
        context_data: dict[str, Any] | None = None,
    ) -> None:
        self.messages.append(
            StoredMessage(
                session_id=session_id,
                user_id=user_id,
                agent=agent,
                role=role,
                content=content,
                message_type=message_type,
                context_data=dict(context_data or {}),
            )
        )
        session = self.sessions.get(session_id)
        if session is not None:
            session.updated_at = time.time()

    async def format_context_for_agent(
        self,
        user_id: str,
        agent: str,
        session_id: str | None = None,
    ) -> str:
        history = [
            m for m in self.messages
            if m.user_id == user_id and (session_id is None or m.session_id == session_id)
        ]
        return "\n".join(f"{m.role}: {m.content}" for m in history[-self.context_window:])

    def messages_for(self, session_id: str) -> list[StoredMessage]:
        return [m for m in self.messages if m.session_id == session_id]


@dataclass(frozen=True)
class Notification:
    user_id: str
    agent_name: str
    job_id: str
    job_type: str
    kind: str  # "completed" or "failed"
    detail: Any = None


class InMemoryNotificationSink:
    """Notification sink keeping notifications per user."""

    def __init__(self):
        self._notifications: dict[str, list[Notification]] = defaultdict(list)

    async def notify_job_completed(
        self,
        user_id: str,
        agent_name: str,
        job_id: str,
        job_type: str,
        result: Any,
    ) -> None:
        self._notifications[user_id].append(
            Notification(user_id, agent_name, job_id, job_type, "completed", result)
        )

    async def notify_job_failed(
        self,
        user_id: str,
        agent_name: str,
        job_id: str,
        job_type: str,
        error: str,
    ) -> None:
        self._notifications[user_id].append(
            Notification(user_id, agent_name, job_id, job_type, "failed", error)
        )

    def for_user(self, user_id: str) -> list[Notification]:
        return list(self._notifications.get(user_id, []))

    @property
    def all(self) -> list[Notification]:
        return [n for notifications in self._notifications.values() for n in notifications]


__all__ = [
    "TransportBridge",
    "ConversationStore",
    "NotificationSink",
    "IntentClassifier",
    "SentEvent",
    "RecordingTransport",
    "StoredMessage",
    "InMemoryConversationStore",
    "Notification",
    "InMemoryNotificationSink",
]
