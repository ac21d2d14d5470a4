"""
Types for chat orchestration.

This module defines the conversational data passed between the
orchestrator and its collaborators:
- InboundMessage: a raw chat message from a user
- ChatMessage / ChatSession: what is sent to the transport and persisted
- Intent / IntentResult: the classifier's decision for a message
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..agents.aliases import DIRECT_AGENT


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MessageType(str, Enum):
    """Kind of a persisted message."""
    CHAT = "chat"
    SYSTEM = "system"
    RESULT = "result"
    ERROR = "error"


@dataclass(frozen=True)
class InboundMessage:
    """A chat message received from a user."""
    user_id: str
    message: str
    session_id: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ChatMessage:
    """A message sent to a user through the transport."""
    user_id: str
    content: str
    session_id: str | None = None
    role: MessageRole = MessageRole.ASSISTANT
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)

    @property
    def stage(self) -> str | None:
        return self.metadata.get("stage")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "sessionId": self.session_id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


@dataclass
class ChatSession:
    """A conversation session."""
    user_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    title: str = ""
    status: str = "active"
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.title:
            self.title = default_session_title(self.created_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def default_session_title(created_at: float | None = None) -> str:
    when = datetime.fromtimestamp(created_at if created_at is not None else time.time())
    return f"Chat Session - {when.strftime('%m/%d/%Y')}"


@dataclass
class Intent:
    """Classified intent of a user message.

    ``required_agent`` is the dispatch key; ``"prism"`` means the
    orchestrator answers directly and no job is created.
    """
    type: str
    required_agent: str = DIRECT_AGENT
    confidence: float = 1.0
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def delegates(self) -> bool:
        return self.required_agent != DIRECT_AGENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "requiredAgent": self.required_agent,
            "confidence": self.confidence,
            "parameters": dict(self.parameters),
        }


@dataclass
class IntentResult:
    """Classifier output for one message."""
    intent: Intent
    response: str | None = None
    extracted_entities: dict[str, Any] = field(default_factory=dict)
    requires_confirmation: bool = False


__all__ = [
    "MessageRole",
    "MessageType",
    "InboundMessage",
    "ChatMessage",
    "ChatSession",
    "Intent",
    "IntentResult",
    "default_session_title",
]
