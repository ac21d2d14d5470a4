"""
Two-stage message generation.

Stage-1 (acknowledgment) and Stage-2 (completion) messages are generated
per job. Generation never raises to the caller: it returns a
``GenerationOutcome`` that is either ``Generated`` or ``GenerationFailed``,
and the orchestrator substitutes the fixed templates below for failures.

The ``LLMMessageComposer`` builds the prompts and delegates the text
generation to a ``TextGenerator``. ``OpenAITextGenerator`` implements it on
top of the OpenAI chat completions API.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union, runtime_checkable

from openai import AsyncOpenAI

from ..config.messaging import MessagingConfig
from ..errors import ErrorContext, MessageGenerationError
from ..jobs.inputs import JobResult
from ..jobs.types import JobRecord

logger = logging.getLogger(__name__)


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class Generated:
    """A generated message."""
    text: str

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class GenerationFailed:
    """Generation failed; the caller decides on a fallback."""
    error: MessageGenerationError

    @property
    def ok(self) -> bool:
        return False


GenerationOutcome = Union[Generated, GenerationFailed]


def generation_failed(message: str, *, job: JobRecord | None = None, cause: Exception | None = None) -> GenerationFailed:
    context = ErrorContext(
        job_id=job.job_id if job else None,
        agent_name=job.agent_name if job else None,
        user_id=job.user_id if job else None,
    )
    return GenerationFailed(MessageGenerationError(message, context=context, cause=cause))


# =============================================================================
# Templates
# =============================================================================

CHAT_ERROR_MESSAGE = "Sorry, I encountered an error processing your message. Please try again."
JOB_START_ERROR_MESSAGE = "Failed to start agent task. Please try again."


def routing_message(display: str) -> str:
    return f"I'm contacting {display} to handle your request, please wait..."


def follow_up_routing_message(display: str) -> str:
    return f"Processing your confirmation with {display}..."


def acknowledgment_fallback(display: str) -> str:
    return f"{display} is working on your request..."


def completion_fallback(display: str) -> str:
    return f"✅ {display} has completed your request successfully."


def error_fallback(display: str, error: str | None) -> str:
    return f"❌ {display} encountered an error: {error or 'Unknown error'}"


# Static texts used by the composer when no text generator is configured
AGENT_ACKNOWLEDGMENTS: dict[str, str] = {
    "falcon": "I'm starting your lead generation search now...",
    "sage": "I'm beginning the research analysis for your LinkedIn profile...",
    "sentinel": "I'm processing your email automation request...",
}

AGENT_COMPLETIONS: dict[str, str] = {
    "falcon": "Lead generation completed successfully!",
    "sage": "Research analysis completed successfully!",
    "sentinel": "Email automation task completed successfully!",
}


def agent_title(agent_name: str) -> str:
    """Short agent name used in prompts, e.g. ``Falcon``."""
    return agent_name.capitalize()


# =============================================================================
# Text generation
# =============================================================================


@runtime_checkable
class TextGenerator(Protocol):
    """Minimal text completion interface used by the composer."""

    async def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int) -> str: ...


class OpenAITextGenerator:
    """TextGenerator backed by the OpenAI chat completions API.

    Example:
        ```python
        generator = OpenAITextGenerator(model="gpt-4o-mini")
        text = await generator.complete(system, user, max_tokens=100)
        ```
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        *,
        temperature: float = 0.7,
        api_key: str | None = None,
        base_url: str | None = None,
        organization: str | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model
        self.temperature = temperature

        if client is None:
            client_kwargs: dict[str, Any] = {}
            if api_key:
                client_kwargs["api_key"] = api_key
            if base_url:
                client_kwargs["base_url"] = base_url
            if organization:
                client_kwargs["organization"] = organization
            client = AsyncOpenAI(**client_kwargs)
        self.client = client

    @classmethod
    def from_config(cls, config: MessagingConfig, **kwargs) -> OpenAITextGenerator:
        return cls(model=config.model, temperature=config.temperature, **kwargs)

    async def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: int) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            return ""
        content = response.choices[0].message.content
        return (content or "").strip()


ContextProvider = Callable[[str, Optional[str]], Awaitable[Optional[str]]]


class LLMMessageComposer:
    """Builds Stage-1 / Stage-2 prompts and generates the messages.

    Args:
        generator: Text generator; when None the static per-agent texts are used
        config: Messaging configuration (token limits, platform name)
        context_provider: Optional ``async (user_id, session_id) -> str | None``
            returning recent conversation context for the prompt
    """

    def __init__(
        self,
        generator: TextGenerator | None = None,
        config: MessagingConfig | None = None,
        context_provider: ContextProvider | None = None,
    ):
        self.generator = generator
        self.config = config or MessagingConfig()
        self.context_provider = context_provider

    @property
    def uses_generator(self) -> bool:
        return self.generator is not None and self.config.enabled

    async def acknowledgment(
        self,
        agent_name: str,
        job: JobRecord,
        original_message: str | None,
    ) -> GenerationOutcome:
        if not self.uses_generator:
            return Generated(
                AGENT_ACKNOWLEDGMENTS.get(agent_name, f"{agent_title(agent_name)} is processing your request...")
            )

        title = agent_title(agent_name)
        system_prompt = (
            f"You are {title}, an AI agent in the {self.config.platform_name} platform. "
            "Generate a brief, contextual acknowledgment message that indicates you are "
            "starting to process the user's request. The message should:\n"
            "- Be conversational and professional\n"
            "- Reference the specific task being performed\n"
            "- Be encouraging and set expectations\n"
            "- Be 1-2 sentences maximum\n"
            "- Use \"I'm\" or \"I'll\" to make it personal\n"
            "- Don't use generic phrases like \"working on your request\"\n"
            "- Consider previous conversation context if available"
        )
        user_prompt = (
            f"Agent: {title}\n"
            f"Job Type: {job.job_type}\n"
            f"User's Original Message: \"{original_message or ''}\"\n"
            f"Job Parameters: {json.dumps(job.input_data, default=str)}"
        )
        user_prompt += await self._context_section(job)
        user_prompt += (
            "\n\nGenerate a contextual acknowledgment message that shows you understand "
            "the specific request and are starting to process it."
        )
        return await self._generate(job, system_prompt, user_prompt, self.config.ack_max_tokens)

    async def completion(
        self,
        agent_name: str,
        job: JobRecord,
        result: JobResult,
        original_message: str | None,
    ) -> GenerationOutcome:
        if not self.uses_generator:
            if result.success:
                return Generated(
                    AGENT_COMPLETIONS.get(agent_name, f"{agent_title(agent_name)} completed your request successfully!")
                )
            return Generated(f"{agent_title(agent_name)} encountered an issue while processing your request.")

        title = agent_title(agent_name)
        system_prompt = (
            f"You are {title}, an AI agent in the {self.config.platform_name} platform. "
            "Generate a contextual completion message based on the job result. "
            "The message should:\n"
            "- Be conversational and professional\n"
            "- Reference specific results or outcomes\n"
            "- Be encouraging if successful, helpful if failed\n"
            "- Be 1-2 sentences maximum\n"
            "- Include specific numbers/details when available\n"
            "- Use \"I've\" or \"I\" to make it personal\n"
            "- Consider previous conversation context if available"
        )
        outcome = result.data if result.success else result.error
        user_prompt = (
            f"Agent: {title}\n"
            f"Job Type: {job.job_type}\n"
            f"User's Original Message: \"{original_message or ''}\"\n"
            f"Job Success: {str(result.success).lower()}\n"
            f"Job Result: {json.dumps(outcome, default=str)}"
        )
        if result.error:
            user_prompt += f"\nError: {result.error}"
        user_prompt += await self._context_section(job)
        user_prompt += (
            "\n\nGenerate a contextual completion message that reflects the specific "
            "outcome of this task."
        )
        return await self._generate(job, system_prompt, user_prompt, self.config.completion_max_tokens)

    async def _context_section(self, job: JobRecord) -> str:
        if self.context_provider is None:
            return ""
        try:
            context = await self.context_provider(job.user_id, job.session_id)
        except Exception:
            logger.exception("Conversation context lookup failed for job %s", job.job_id)
            return ""
        if not context:
            return ""
        return f"\n\nPrevious conversation context:\n{context}"

    async def _generate(
        self,
        job: JobRecord,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> GenerationOutcome:
        assert self.generator is not None
        try:
            text = await self.generator.complete(system_prompt, user_prompt, max_tokens=max_tokens)
        except Exception as exc:
            logger.warning("Message generation failed for job %s: %s", job.job_id, exc)
            return generation_failed(f"Text generation failed: {exc}", job=job, cause=exc)

        text = (text or "").strip()
        if not text:
            return generation_failed("Text generation returned an empty message", job=job)
        return Generated(text)


__all__ = [
    "Generated",
    "GenerationFailed",
    "GenerationOutcome",
    "generation_failed",
    "CHAT_ERROR_MESSAGE",
    "JOB_START_ERROR_MESSAGE",
    "routing_message",
    "follow_up_routing_message",
    "acknowledgment_fallback",
    "completion_fallback",
    "error_fallback",
    "AGENT_ACKNOWLEDGMENTS",
    "AGENT_COMPLETIONS",
    "agent_title",
    "TextGenerator",
    "OpenAITextGenerator",
    "LLMMessageComposer",
]
