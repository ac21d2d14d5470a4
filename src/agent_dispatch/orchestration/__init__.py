"""
Chat orchestration.

This package provides:
- AgentOrchestrator: turns chat messages into agent jobs and job outcomes
  into chat messages
- Collaborator protocols (transport, conversation store, notifications,
  intent classifier) with in-memory implementations
- KeywordIntentClassifier: rule-based routing of messages to agents
"""

from .types import (
    ChatMessage,
    ChatSession,
    InboundMessage,
    Intent,
    IntentResult,
    MessageRole,
    MessageType,
    default_session_title,
)
from .collaborators import (
    ConversationStore,
    InMemoryConversationStore,
    InMemoryNotificationSink,
    IntentClassifier,
    Notification,
    NotificationSink,
    RecordingTransport,
    SentEvent,
    StoredMessage,
    TransportBridge,
)
from .intents import IntentRule, KeywordIntentClassifier, default_rules
from .orchestrator import AgentOrchestrator

__all__ = [
    # Types
    "ChatMessage",
    "ChatSession",
    "InboundMessage",
    "Intent",
    "IntentResult",
    "MessageRole",
    "MessageType",
    "default_session_title",
    # Collaborators
    "ConversationStore",
    "IntentClassifier",
    "NotificationSink",
    "TransportBridge",
    "InMemoryConversationStore",
    "InMemoryNotificationSink",
    "Notification",
    "RecordingTransport",
    "SentEvent",
    "StoredMessage",
    # Intents
    "IntentRule",
    "KeywordIntentClassifier",
    "default_rules",
    # Orchestrator
    "AgentOrchestrator",
]
