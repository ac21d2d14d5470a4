"""
Chat orchestrator.

The AgentOrchestrator is the single place that turns a chat message into
either a direct reply or a delegated agent job, and that turns queue
lifecycle events back into chat messages:

- Routing message when a message is delegated to an agent
- Stage-1 acknowledgment once the job is queued
- Stage-2 completion or error message once the job finishes
- Follow-up routing when a user answers a pending confirmation

Every enqueued job yields exactly one Stage-1 and, once finished, exactly
one Stage-2 message. Collaborator failures are logged and never escape a
handler.
"""

from __future__ import annotations

import asyncio
from typing import Any

from ..agents.aliases import (
    FALLBACK_QUEUE_NAMES,
    canonical_agent_name,
    display_name,
    is_canonical_agent,
)
from ..agents.messages import (
    CHAT_ERROR_MESSAGE,
    JOB_START_ERROR_MESSAGE,
    Generated,
    GenerationOutcome,
    acknowledgment_fallback,
    completion_fallback,
    error_fallback,
    follow_up_routing_message,
    generation_failed,
    routing_message,
)
from ..agents.registry import AgentRegistry
from ..config.settings import Settings
from ..errors import ErrorContext, RoutingResolutionError, error_message
from ..events.bus import EventBus
from ..events.types import JobAdded, JobCompleted, JobFailed, JobProgress, QueueEvent
from ..followup import TIME_CONFIRMATION, FollowUpContext, FollowUpTracker
from ..jobs.inputs import JobResult
from ..jobs.queue import AgentJobQueue
from ..jobs.types import JobRecord
from ..logging import StructuredLogger, truncate_for_log
from .collaborators import (
    ConversationStore,
    InMemoryConversationStore,
    InMemoryNotificationSink,
    IntentClassifier,
    NotificationSink,
    TransportBridge,
)
from .intents import KeywordIntentClassifier
from .types import ChatMessage, ChatSession, InboundMessage, IntentResult, MessageRole, MessageType

ORCHESTRATOR_AGENT = "prism"
ORCHESTRATOR_TITLE = "Prism"

FOLLOW_UP_ERROR_MESSAGE = "Sorry, I had trouble processing your response. Please try again."
DIRECT_JOB_ERROR_MESSAGE = "Failed to start agent task."


class AgentOrchestrator:
    """Routes chat messages to agents and job outcomes back to users.

    Example:
        ```python
        registry = AgentRegistry()
        registry.register("falcon", FalconAgent())
        queue = AgentJobQueue(registry)

        orchestrator = AgentOrchestrator(queue, transport)
        await orchestrator.init()
        await orchestrator.handle_chat_message(
            InboundMessage(user_id="u1", message="find leads in Austin")
        )
        ```
    """

    def __init__(
        self,
        queue: AgentJobQueue,
        transport: TransportBridge,
        *,
        registry: AgentRegistry | None = None,
        event_bus: EventBus | None = None,
        store: ConversationStore | None = None,
        notifications: NotificationSink | None = None,
        classifier: IntentClassifier | None = None,
        followups: FollowUpTracker | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        self.queue = queue
        self.transport = transport
        self.registry = registry or queue.registry
        self.event_bus = event_bus or queue.event_bus
        self.store = store or InMemoryConversationStore()
        self.notifications = notifications or InMemoryNotificationSink()
        self.classifier = classifier or KeywordIntentClassifier()
        self.followups = followups or FollowUpTracker(self.settings.followup)

        self.lost_notifications = 0
        self._sessions: dict[str, ChatSession] = {}
        self._pending_acks: dict[str, asyncio.Event] = {}
        self._initialized = False
        self._log = StructuredLogger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        if self._initialized:
            return
        await self.queue.init()
        self.event_bus.add_observer(self)
        self._initialized = True
        self._log.info("Agent orchestrator initialized", agents=self.registry.names())

    async def cleanup(self) -> None:
        self.event_bus.remove_observer(self)
        await self.queue.cleanup()
        for event in self._pending_acks.values():
            event.set()
        self._pending_acks.clear()
        self._sessions.clear()
        self.followups.clear()
        self._initialized = False
        self._log.info("Agent orchestrator cleaned up")

    # ------------------------------------------------------------------
    # Chat handling
    # ------------------------------------------------------------------

    async def handle_chat_message(self, message: InboundMessage) -> None:
        """Handle one inbound chat message.

        Never raises; failures are reported to the user as ``chat:error``.
        """
        user_id = message.user_id
        try:
            await self._handle_chat_message(message)
        except Exception as exc:
            self._log.log_error(exc, "Error handling chat message", user_id=user_id)
            self._typing(user_id, False)
            self.transport.send_to_user(
                user_id,
                "chat:error",
                {"message": CHAT_ERROR_MESSAGE, "error": error_message(exc)},
            )

    async def _handle_chat_message(self, message: InboundMessage) -> None:
        user_id = message.user_id
        text = message.message
        self._log.info("Processing chat message", user_id=user_id, message=self._loggable(text))

        session = await self._get_or_create_session(user_id, message.session_id)
        await self._save(
            session.id,
            user_id,
            ORCHESTRATOR_AGENT,
            MessageRole.USER,
            text,
            message_type=MessageType.CHAT,
            context_data={"timestamp": message.timestamp},
        )
        self._typing(user_id, True)

        context = self.followups.check(user_id, text)
        if context is not None:
            await self._handle_follow_up(message, session, context)
            return

        intent_result = await self.classifier.process_message(text, user_id, session.id)
        intent = intent_result.intent
        self._log.info(
            "Intent classified",
            intent=intent.type,
            agent_name=intent.required_agent,
            confidence=intent.confidence,
        )

        if intent.delegates:
            routing = routing_message(display_name(canonical_agent_name(intent.required_agent)))
            metadata = {
                "agentName": ORCHESTRATOR_TITLE,
                "intent": intent.to_dict(),
                "isRouting": True,
                "stage": "routing",
            }
            await self._save(
                session.id,
                user_id,
                ORCHESTRATOR_AGENT,
                MessageRole.ASSISTANT,
                routing,
                message_type=MessageType.SYSTEM,
                context_data=metadata,
            )
            self._typing(user_id, False)
            self._send_chat(user_id, session.id, routing, metadata)
            await self.create_agent_job(intent_result, user_id, session.id, text)
            return

        response = intent_result.response
        if not response:
            history = await self._conversation_context(user_id, session.id)
            response = await self.classifier.generate_response(
                intent,
                {"userId": user_id, "sessionId": session.id, "conversationHistory": history},
            )
        metadata = {"agentName": ORCHESTRATOR_TITLE, "intent": intent.to_dict()}
        await self._save(
            session.id,
            user_id,
            ORCHESTRATOR_AGENT,
            MessageRole.ASSISTANT,
            response,
            message_type=MessageType.CHAT,
            context_data=metadata,
        )
        self._typing(user_id, False)
        self._send_chat(user_id, session.id, response, metadata)

    async def create_agent_job(
        self,
        intent_result: IntentResult,
        user_id: str,
        session_id: str | None,
        original_message: str | None,
    ) -> str | None:
        """Queue a job for a delegated intent and send its Stage-1 message.

        Returns:
            The job id, or None if the job could not be queued (the user
            receives ``job:error``)
        """
        intent = intent_result.intent
        agent_name = intent.required_agent
        input_data = {
            **intent.parameters,
            "sessionId": session_id,
            "originalIntent": intent.to_dict(),
        }

        try:
            job_id = await self.queue.add_job(
                agent_name,
                user_id=user_id,
                job_type=intent.type,
                input_data=input_data,
                session_id=session_id,
                original_message=original_message,
            )
        except Exception as exc:
            self._log.log_error(exc, "Error creating agent job", agent_name=agent_name, user_id=user_id)
            self.transport.send_to_user(
                user_id,
                "job:error",
                {"message": JOB_START_ERROR_MESSAGE, "error": error_message(exc)},
            )
            return None

        async with self._acknowledging(job_id):
            await self._send_acknowledgment(job_id, agent_name, user_id, session_id, original_message)
        return job_id

    async def _send_acknowledgment(
        self,
        job_id: str,
        queue_name: str,
        user_id: str,
        session_id: str | None,
        original_message: str | None,
    ) -> None:
        agent = canonical_agent_name(queue_name)
        job = self.queue.get_job_status(job_id, queue_name)
        adapter = self.registry.get(queue_name) or self.registry.get(agent)

        if job is None or adapter is None:
            outcome = generation_failed(f"No adapter available for agent: {queue_name}")
        else:
            outcome = await adapter.acknowledge(job, original_message)

        if isinstance(outcome, Generated):
            text, stage = outcome.text, "acknowledgment"
        else:
            self._log.warning(
                "Acknowledgment generation failed, using fallback",
                job_id=job_id,
                agent_name=agent,
                error=outcome.error.message,
            )
            text, stage = acknowledgment_fallback(display_name(agent)), "acknowledgment_fallback"

        metadata = {"agentName": agent, "jobId": job_id, "stage": stage}
        self._send_chat(user_id, session_id, text, metadata)
        if session_id:
            await self._save(
                session_id,
                user_id,
                agent,
                MessageRole.ASSISTANT,
                text,
                message_type=MessageType.SYSTEM,
                context_data=metadata,
            )

    async def _handle_follow_up(
        self,
        message: InboundMessage,
        session: ChatSession,
        context: FollowUpContext,
    ) -> None:
        user_id = message.user_id
        agent = context.last_agent_interaction
        original_request = dict(context.original_request)
        self._log.info("Routing follow-up message", agent_name=agent)

        try:
            job_id = await self.queue.add_job(
                agent,
                user_id=user_id,
                job_type="reminder",
                input_data={
                    **original_request,
                    "isFollowUp": True,
                    "confirmationResponse": message.message,
                    "originalReminderDetails": original_request,
                    "sessionId": session.id,
                    "originalMessage": message.message,
                },
                session_id=session.id,
                original_message=message.message,
            )
        except Exception as exc:
            self._log.log_error(exc, "Error handling follow-up message", agent_name=agent)
            self._typing(user_id, False)
            self.transport.send_to_user(
                user_id,
                "chat:error",
                {"message": FOLLOW_UP_ERROR_MESSAGE, "error": error_message(exc)},
            )
            return

        self.followups.consume(user_id)

        # The follow-up routing message is the job's Stage-1 message
        async with self._acknowledging(job_id):
            routing = follow_up_routing_message(display_name(agent))
            metadata = {
                "agentName": ORCHESTRATOR_TITLE,
                "isFollowUpRouting": True,
                "jobId": job_id,
                "stage": "acknowledgment",
            }
            await self._save(
                session.id,
                user_id,
                ORCHESTRATOR_AGENT,
                MessageRole.ASSISTANT,
                routing,
                message_type=MessageType.SYSTEM,
                context_data=metadata,
            )
            self._typing(user_id, False)
            self._send_chat(user_id, session.id, routing, metadata)

    # ------------------------------------------------------------------
    # Direct requests
    # ------------------------------------------------------------------

    async def handle_direct_agent_request(
        self,
        user_id: str,
        agent_name: str,
        job_type: str,
        input_data: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> str | None:
        """Queue a job without going through chat classification."""
        try:
            job_id = await self.queue.add_job(
                agent_name,
                user_id=user_id,
                job_type=job_type,
                input_data=input_data,
                session_id=session_id,
            )
        except Exception as exc:
            self._log.log_error(exc, "Error handling direct agent request", agent_name=agent_name, user_id=user_id)
            self.transport.send_to_user(
                user_id,
                "job:error",
                {"message": DIRECT_JOB_ERROR_MESSAGE, "error": error_message(exc)},
            )
            return None

        self.transport.send_to_user(
            user_id,
            "job:started",
            {
                "jobId": job_id,
                "agentName": agent_name,
                "jobType": job_type,
                "message": f"{display_name(canonical_agent_name(agent_name))} is processing your request...",
            },
        )
        return job_id

    async def handle_agent_status_request(self, user_id: str) -> None:
        try:
            agents = {
                name: status.to_dict() if status is not None else None
                for name, status in self.queue.get_all_agent_statuses().items()
            }
            queues = [stats.to_dict() for stats in self.queue.get_all_queue_stats()]
        except Exception as exc:
            self._log.log_error(exc, "Error getting agent status", user_id=user_id)
            return
        self.transport.send_to_user(user_id, "agent:status", {"agents": agents, "queues": queues})

    async def handle_job_status_request(self, user_id: str, job_id: str, queue_name: str | None = None) -> None:
        job = self.queue.get_job_status(job_id, queue_name)
        self.transport.send_to_user(
            user_id,
            "job:status",
            {"jobId": job_id, "status": job.to_dict() if job is not None else None},
        )

    # ------------------------------------------------------------------
    # Queue observer
    # ------------------------------------------------------------------

    async def on_job_added(self, event: JobAdded) -> None:
        self._log.info(
            "Job added",
            job_id=event.job_id,
            agent_name=event.agent_name,
            user_id=event.user_id,
            job_type=event.job_type,
        )

    async def on_job_progress(self, event: JobProgress) -> None:
        if not event.user_id:
            self._log.debug("Dropping progress without owner", job_id=event.job_id)
            return
        self.transport.send_job_progress(
            event.user_id,
            {
                "jobId": event.job_id,
                "progress": event.progress,
                "stage": event.stage,
                "message": event.message,
                "agentName": canonical_agent_name(event.agent_name),
                "userId": event.user_id,
                "estimatedTimeRemaining": event.estimated_time_remaining,
            },
        )

    async def on_job_completed(self, event: JobCompleted) -> None:
        await self._resolve_finished_job(event)

    async def on_job_failed(self, event: JobFailed) -> None:
        await self._resolve_finished_job(event)

    async def _resolve_finished_job(self, event: QueueEvent) -> None:
        with self._log.context(job_id=event.job_id, operation=event.type.value):
            try:
                job = self._find_job(event)
                if job is None or not job.user_id:
                    raise RoutingResolutionError(
                        "Could not resolve owner of finished job",
                        context=ErrorContext(job_id=event.job_id, agent_name=event.agent_name),
                    )
            except RoutingResolutionError as exc:
                self.lost_notifications += 1
                self._log.warning(
                    "Lost job notification",
                    queue_name=event.agent_name,
                    error=str(exc),
                    lost_notifications=self.lost_notifications,
                )
                return

            try:
                await self._finish_job(job, event)
            except Exception as exc:
                self._log.log_error(exc, "Error handling finished job", user_id=job.user_id)

    def _find_job(self, event: QueueEvent) -> JobRecord | None:
        carried = getattr(event, "job", None)
        if carried is not None:
            return carried
        names =[event.agent_name] if event.agent_name else []
        names.extend(name for name in FALLBACK_QUEUE_NAMES if name not in names)
        for name in names:
            job = self.queue.get_job_status(event.job_id, name)
            if job is not None:
                return job
        return None

    async def _finish_job(self, job: JobRecord, event: QueueEvent) -> None:
        user_id = job.user_id
        agent = canonical_agent_name(job.agent_name or event.agent_name)
        display = display_name(agent)
        job_type = job.job_type or "unknown"

        if isinstance(event, JobCompleted):
            result = event.result or job.result or JobResult()
            success = True
        else:
            error = getattr(event, "error", None) or job.error or "Unknown error"
            result = JobResult.failure(error)
            success = False

        if is_canonical_agent(agent):
            try:
                if success:
                    await self.notifications.notify_job_completed(user_id, agent, job.job_id, job_type, result.to_dict())
                else:
                    await self.notifications.notify_job_failed(user_id, agent, job.job_id, job_type, result.error or "")
            except Exception as exc:
                self._log.log_error(exc, "Error recording job notification", agent_name=agent)

        # Stage-2 never overtakes the job's Stage-1 message
        pending = self._pending_acks.get(job.job_id)
        if pending is not None:
            await pending.wait()

        adapter = self.registry.get(job.agent_name) or self.registry.get(agent)
        if adapter is None:
            outcome: GenerationOutcome = generation_failed(f"No adapter available for agent: {agent}", job=job)
        else:
            outcome = await adapter.complete(job, result, job.original_message)

        if isinstance(outcome, Generated):
            text = outcome.text
            stage = "completion" if success else "error"
        else:
            self._log.warning(
                "Stage-2 generation failed, using fallback",
                agent_name=agent,
                error=outcome.error.message,
            )
            text = completion_fallback(display) if success else error_fallback(display, result.error)
            stage = "completion_fallback" if success else "error_fallback"

        metadata: dict[str, Any] = {"agentName": agent, "jobId": job.job_id, "stage": stage}
        if success:
            metadata["result"] = result.to_dict()
        else:
            metadata["error"] = result.error
        self._send_chat(user_id, job.session_id, text, metadata)
        if job.session_id:
            await self._save(
                job.session_id,
                user_id,
                agent,
                MessageRole.ASSISTANT,
                text,
                message_type=MessageType.RESULT if success else MessageType.ERROR,
                context_data=metadata,
            )
        self._log.info("Stage-2 message sent", agent_name=agent, stage=stage)

        if success and result.needs_confirmation and result.confirmation_type == TIME_CONFIRMATION:
            original_request = result.data.get("reminderDetails") or job.input_data
            self.followups.set(user_id, agent, TIME_CONFIRMATION, original_request)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _acknowledging(self, job_id: str) -> _PendingAcknowledgment:
        return _PendingAcknowledgment(self._pending_acks, job_id)

    async def _get_or_create_session(self, user_id: str, session_id: str | None) -> ChatSession:
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]
        try:
            session = await self.store.get_or_create_session(user_id, ORCHESTRATOR_AGENT, session_id)
        except Exception as exc:
            self._log.log_error(exc, "Error loading chat session", session_id=session_id)
            session = ChatSession(user_id=user_id, id=session_id) if session_id else ChatSession(user_id=user_id)
        self._sessions[session.id] = session
        return session

    async def _conversation_context(self, user_id: str, session_id: str) -> str:
        try:
            return await self.store.format_context_for_agent(user_id, ORCHESTRATOR_AGENT, session_id)
        except Exception as exc:
            self._log.log_error(exc, "Error loading conversation context", session_id=session_id)
            return ""

    async def _save(
        self,
        session_id: str,
        user_id: str,
        agent: str,
        role: MessageRole,
        content: str,
        *,
        message_type: MessageType,
        context_data: dict[str, Any] | None = None,
    ) -> None:
        try:
            await self.store.save_message(
                session_id,
                user_id,
                agent,
                role.value,
                content,
                message_type=message_type.value,
                context_data=context_data,
            )
        except Exception as exc:
            self._log.log_error(exc, "Error saving message", session_id=session_id)

    def _send_chat(
        self,
        user_id: str,
        session_id: str | None,
        content: str,
        metadata: dict[str, Any],
    ) -> None:
        self.transport.send_chat_message(
            user_id,
            ChatMessage(user_id=user_id, session_id=session_id, content=content, metadata=metadata),
        )

    def _typing(self, user_id: str, is_typing: bool) -> None:
        self.transport.send_to_user(
            user_id,
            "chat:typing",
            {"isTyping": is_typing, "agent": ORCHESTRATOR_TITLE},
        )

    def _loggable(self, text: str) -> str:
        if not self.settings.logging.log_message_content:
            return f"<{len(text)} chars>"
        return truncate_for_log(text)


class _PendingAcknowledgment:
    """Marks a job's Stage-1 message as in progress for the ``async with`` body."""

    def __init__(self, pending: dict[str, asyncio.Event], job_id: str):
        self._pending = pending
        self._job_id = job_id

    async def __aenter__(self) -> None:
        self._pending[self._job_id] = asyncio.Event()

    async def __aexit__(self, *exc_info) -> None:
        event = self._pending.pop(self._job_id, None)
        if event is not None:
            event.set()


__all__ = [
    "AgentOrchestrator",
    "ORCHESTRATOR_AGENT",
    "FOLLOW_UP_ERROR_MESSAGE",
    "DIRECT_JOB_ERROR_MESSAGE",
]
