"""
Agent runtime adapter layer.

This package provides:
- AgentExecutor: the contract every agent implementation fulfils
- BaseAgent: base class with progress reporting and status tracking
- AgentAdapter / AgentRegistry: uniform access to registered executors
- LLMMessageComposer: Stage-1 / Stage-2 message generation
- Agent name aliases and display names
"""

from .aliases import (
    AGENT_ALIASES,
    CANONICAL_AGENTS,
    DIRECT_AGENT,
    DISPLAY_NAMES,
    FALLBACK_QUEUE_NAMES,
    canonical_agent_name,
    display_name,
    is_canonical_agent,
)
from .base import (
    AgentExecutor,
    AgentState,
    AgentStatus,
    BaseAgent,
    ProgressListener,
    ProgressUpdate,
)
from .messages import (
    Generated,
    GenerationFailed,
    GenerationOutcome,
    LLMMessageComposer,
    OpenAITextGenerator,
    TextGenerator,
)
from .adapter import AgentAdapter
from .registry import AgentRegistry

__all__ = [
    # Aliases
    "AGENT_ALIASES",
    "CANONICAL_AGENTS",
    "DIRECT_AGENT",
    "DISPLAY_NAMES",
    "FALLBACK_QUEUE_NAMES",
    "canonical_agent_name",
    "display_name",
    "is_canonical_agent",
    # Executors
    "AgentExecutor",
    "AgentState",
    "AgentStatus",
    "BaseAgent",
    "ProgressListener",
    "ProgressUpdate",
    # Messages
    "Generated",
    "GenerationFailed",
    "GenerationOutcome",
    "LLMMessageComposer",
    "OpenAITextGenerator",
    "TextGenerator",
    # Registry
    "AgentAdapter",
    "AgentRegistry",
]
