"""
Tests for Stage-1 / Stage-2 message generation.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_dispatch.agents.messages import (
    GenerationFailed,
    LLMMessageComposer,
    OpenAITextGenerator,
    TextGenerator,
    acknowledgment_fallback,
    completion_fallback,
    error_fallback,
    follow_up_routing_message,
    routing_message,
)
from agent_dispatch.config import MessagingConfig
from agent_dispatch.jobs import JobRecord, JobResult


def _job(agent_name="falcon", job_type="lead_generation"):
    return JobRecord(
        agent_name=agent_name,
        job_type=job_type,
        user_id="u1",
        session_id="s1",
        input_data={"locations": ["Austin"]},
    )


def _generator(text="I'm on it!"):
    generator = MagicMock()
    generator.complete = AsyncMock(return_value=text)
    return generator


class TestTemplates:
    def test_templates(self):
        display = "Falcon (Lead Generation)"

        assert routing_message(display) == "I'm contacting Falcon (Lead Generation) to handle your request, please wait..."
        assert follow_up_routing_message(display) == "Processing your confirmation with Falcon (Lead Generation)..."
        assert acknowledgment_fallback(display) == "Falcon (Lead Generation) is working on your request..."
        assert completion_fallback(display) == "✅ Falcon (Lead Generation) has completed your request successfully."
        assert error_fallback(display, None) == "❌ Falcon (Lead Generation) encountered an error: Unknown error"


class TestStaticComposer:
    """Composer without a text generator."""

    @pytest.mark.asyncio
    async def test_static_acknowledgment(self):
        composer = LLMMessageComposer()

        outcome = await composer.acknowledgment("falcon", _job(), "find leads")
        assert outcome.text == "I'm starting your lead generation search now..."

        outcome = await composer.acknowledgment("oracle", _job("oracle"), None)
        assert outcome.text == "Oracle is processing your request..."

    @pytest.mark.asyncio
    async def test_static_completion(self):
        composer = LLMMessageComposer()

        success = await composer.completion("sage", _job("sage"), JobResult(), None)
        failure = await composer.completion("sage", _job("sage"), JobResult.failure("boom"), None)

        assert success.text == "Research analysis completed successfully!"
        assert failure.text == "Sage encountered an issue while processing your request."

    @pytest.mark.asyncio
    async def test_disabled_config_skips_generator(self):
        generator = _generator()
        composer = LLMMessageComposer(generator, MessagingConfig(enabled=False))

        assert composer.uses_generator is False
        await composer.acknowledgment("falcon", _job(), "find leads")
        generator.complete.assert_not_called()


class TestGeneratedMessages:
    """Composer backed by a text generator."""

    @pytest.mark.asyncio
    async def test_acknowledgment_prompt(self):
        generator = _generator("  I'll start searching Austin now.  ")
        composer = LLMMessageComposer(generator, MessagingConfig(platform_name="Acme"))

        outcome = await composer.acknowledgment("falcon", _job(), "find leads in Austin")

        assert outcome.ok
        assert outcome.text == "I'll start searching Austin now."
        system_prompt, user_prompt = generator.complete.call_args.args
        assert "You are Falcon, an AI agent in the Acme platform" in system_prompt
        assert 'User\'s Original Message: "find leads in Austin"' in user_prompt
        assert '"locations": ["Austin"]' in user_prompt
        assert generator.complete.call_args.kwargs["max_tokens"] == 100

    @pytest.mark.asyncio
    async def test_completion_prompt_for_failure(self):
        generator = _generator("I couldn't finish the research.")
        composer = LLMMessageComposer(generator)

        await composer.completion("sage", _job("sage"), JobResult.failure("rate limited"), "research jane")

        _, user_prompt = generator.complete.call_args.args
        assert "Job Success: false" in user_prompt
        assert "Error: rate limited" in user_prompt
        assert generator.complete.call_args.kwargs["max_tokens"] == 150

    @pytest.mark.asyncio
    async def test_context_included(self):
        generator = _generator()
        context_provider = AsyncMock(return_value="user: find leads")
        composer = LLMMessageComposer(generator, context_provider=context_provider)

        await composer.acknowledgment("falcon", _job(), "find leads")

        context_provider.assert_awaited_once_with("u1", "s1")
        _, user_prompt = generator.complete.call_args.args
        assert "Previous conversation context:\nuser: find leads" in user_prompt

    @pytest.mark.asyncio
    async def test_context_failure_ignored(self):
        generator = _generator()
        composer = LLMMessageComposer(generator, context_provider=AsyncMock(side_effect=RuntimeError("db down")))

        outcome = await composer.acknowledgment("falcon", _job(), "find leads")
        assert outcome.ok

    @pytest.mark.asyncio
    async def test_generator_error_becomes_failure(self):
        generator = MagicMock()
        generator.complete = AsyncMock(side_effect=RuntimeError("timeout"))
        composer = LLMMessageComposer(generator)

        outcome = await composer.completion("falcon", _job(), JobResult(), None)

        assert isinstance(outcome, GenerationFailed)
        assert "timeout" in outcome.error.message
        assert isinstance(outcome.error.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_empty_generation_becomes_failure(self):
        composer = LLMMessageComposer(_generator(""))
        outcome = await composer.acknowledgment("falcon", _job(), None)
        assert isinstance(outcome, GenerationFailed)


class TestOpenAITextGenerator:
    """Test the OpenAI-backed generator with a mocked client."""

    def _client(self, content):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = content
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=response)
        return client

    @pytest.mark.asyncio
    async def test_complete(self):
        client = self._client("  Hello there.  ")
        generator = OpenAITextGenerator(model="gpt-4o-mini", temperature=0.2, client=client)

        text = await generator.complete("system", "user", max_tokens=50)

        assert text == "Hello there."
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        client = self._client(None)
        client.chat.completions.create.return_value.choices = []
        generator = OpenAITextGenerator(client=client)

        assert await generator.complete("system", "user", max_tokens=10) == ""

    def test_from_config(self):
        generator = OpenAITextGenerator.from_config(
            MessagingConfig(model="gpt-4o", temperature=0.1),
            client=self._client("x"),
        )

        assert generator.model == "gpt-4o"
        assert generator.temperature == 0.1
        assert isinstance(generator, TextGenerator)

    def test_builds_client_from_api_key(self):
        generator = OpenAITextGenerator(api_key="sk-test", base_url="http://localhost:8080/v1")

        assert generator.client.api_key == "sk-test"
        assert str(generator.client.base_url).startswith("http://localhost:8080/v1")
