"""
Agent Dispatch - In-process job scheduling and chat orchestration for agents.

This package coordinates asynchronous agent tasks triggered by chat:
- Per-agent job queues with sequential execution and bounded retention
- Typed lifecycle events delivered to observers through an event bus
- Two-stage messaging: acknowledgment when a job is queued, completion or
  error message when it finishes
- Conversational follow-ups for jobs that need a confirmation

Example:
    ```python
    from agent_dispatch import (
        AgentJobQueue,
        AgentOrchestrator,
        AgentRegistry,
        InboundMessage,
        RecordingTransport,
    )

    registry = AgentRegistry()
    registry.register("falcon", FalconAgent())

    queue = AgentJobQueue(registry)
    orchestrator = AgentOrchestrator(queue, RecordingTransport())
    await orchestrator.init()

    await orchestrator.handle_chat_message(
        InboundMessage(user_id="u1", message="find leads in Austin for SaaS companies")
    )
    ```
"""

from .errors import (
    ConfigError,
    DispatchError,
    ErrorCode,
    ErrorContext,
    InvalidTransitionError,
    JobExecutionError,
    JobValidationError,
    MessageGenerationError,
    QueueError,
    QueueNotFoundError,
    RoutingResolutionError,
)
from .config import (
    FollowUpConfig,
    LoggingConfig,
    MessagingConfig,
    QueueConfig,
    Settings,
    configure,
    get_settings,
    load_env,
)
from .logging import StructuredLogger, configure_logging, get_logger
from .events import (
    EventBus,
    EventSubscription,
    JobAdded,
    JobCompleted,
    JobFailed,
    JobProgress,
    QueueEvent,
    QueueEventType,
    QueueObserver,
)
from .jobs import (
    AgentJobQueue,
    JobRecord,
    JobResult,
    JobStatus,
    QueueStats,
    RetentionStore,
)
from .agents import (
    AgentAdapter,
    AgentExecutor,
    AgentRegistry,
    AgentStatus,
    BaseAgent,
    Generated,
    GenerationFailed,
    LLMMessageComposer,
    OpenAITextGenerator,
    ProgressUpdate,
    canonical_agent_name,
    display_name,
)
from .followup import FollowUpContext, FollowUpTracker
from .orchestration import (
    AgentOrchestrator,
    ChatMessage,
    ChatSession,
    InboundMessage,
    InMemoryConversationStore,
    InMemoryNotificationSink,
    Intent,
    IntentResult,
    KeywordIntentClassifier,
    RecordingTransport,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "DispatchError",
    "ErrorCode",
    "ErrorContext",
    "QueueError",
    "QueueNotFoundError",
    "JobValidationError",
    "InvalidTransitionError",
    "JobExecutionError",
    "MessageGenerationError",
    "RoutingResolutionError",
    "ConfigError",
    # Config
    "Settings",
    "QueueConfig",
    "FollowUpConfig",
    "MessagingConfig",
    "LoggingConfig",
    "get_settings",
    "configure",
    "load_env",
    # Logging
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    # Events
    "EventBus",
    "EventSubscription",
    "QueueEvent",
    "QueueEventType",
    "QueueObserver",
    "JobAdded",
    "JobProgress",
    "JobCompleted",
    "JobFailed",
    # Jobs
    "AgentJobQueue",
    "JobRecord",
    "JobResult",
    "JobStatus",
    "QueueStats",
    "RetentionStore",
    # Agents
    "AgentAdapter",
    "AgentExecutor",
    "AgentRegistry",
    "AgentStatus",
    "BaseAgent",
    "Generated",
    "GenerationFailed",
    "LLMMessageComposer",
    "OpenAITextGenerator",
    "ProgressUpdate",
    "canonical_agent_name",
    "display_name",
    # Follow-ups
    "FollowUpContext",
    "FollowUpTracker",
    # Orchestration
    "AgentOrchestrator",
    "ChatMessage",
    "ChatSession",
    "InboundMessage",
    "InMemoryConversationStore",
    "InMemoryNotificationSink",
    "Intent",
    "IntentResult",
    "KeywordIntentClassifier",
    "RecordingTransport",
    # Version
    "__version__",
]
