"""Testes do assistente de IA (cliente OpenAI mockado)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APITimeoutError

from zapdesk.ai.assistant import (
    DISABLED_TEXT,
    HANDOFF_ACK_TEXT,
    UNAVAILABLE_TEXT,
    ConversationHistory,
    FallbackAssistant,
    OpenAIAssistant,
    compile_keywords,
)
from zapdesk.ai.prompts import HANDOFF_TAG, build_system_prompt
from zapdesk.commerce.seed import create_commerce_service
from zapdesk.config.settings import Settings
from zapdesk.domain.errors import AIAssistantError


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def _assistant(client: MagicMock, keywords: list[str] | None = None) -> OpenAIAssistant:
    return OpenAIAssistant(
        prompt_builder=lambda language, extra: f"system:{language}",
        client=client,
        handoff_keywords=keywords if keywords is not None else ["human", "talk to someone"],
    )


@pytest.fixture()
def openai_client() -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("Sure!"))
    return client


class TestOpenAIAssistant:
    @pytest.mark.asyncio
    async def test_reply_from_model(self, openai_client):
        reply = await _assistant(openai_client).ask("cust-1", "do you ship?")

        assert reply.text == "Sure!"
        assert reply.requests_handoff is False
        messages = openai_client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "system:en"}
        assert messages[-1] == {"role": "user", "content": "do you ship?"}

    @pytest.mark.asyncio
    async def test_keyword_skips_model(self, openai_client):
        reply = await _assistant(openai_client).ask("cust-1", "I want a HUMAN now")

        assert reply.text == HANDOFF_ACK_TEXT
        assert reply.requests_handoff is True
        openai_client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_keyword_matches_whole_words_only(self, openai_client):
        reply = await _assistant(openai_client).ask("cust-1", "humane treatment?")

        assert reply.requests_handoff is False
        openai_client.chat.completions.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_handoff_tag_stripped(self, openai_client):
        openai_client.chat.completions.create.return_value = _completion(
            f"Connecting you now. {HANDOFF_TAG}"
        )

        reply = await _assistant(openai_client).ask("cust-1", "this is broken")

        assert reply.requests_handoff is True
        assert HANDOFF_TAG not in reply.text
        assert reply.text == "Connecting you now."

    @pytest.mark.asyncio
    async def test_api_error_returns_fallback(self, openai_client):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        openai_client.chat.completions.create.side_effect = APITimeoutError(request=request)

        reply = await _assistant(openai_client).ask("cust-1", "hello?")

        assert reply.text == UNAVAILABLE_TEXT
        assert reply.requests_handoff is False

    @pytest.mark.asyncio
    async def test_empty_choices_raises(self, openai_client):
        openai_client.chat.completions.create.return_value = MagicMock(choices=[])

        with pytest.raises(AIAssistantError):
            await _assistant(openai_client).ask("cust-1", "hello?")

    @pytest.mark.asyncio
    async def test_history_carried_between_turns(self, openai_client):
        assistant = _assistant(openai_client)
        await assistant.ask("cust-1", "first")

        await assistant.ask("cust-1", "second")

        messages = openai_client.chat.completions.create.call_args.kwargs["messages"]
        assert [m["content"] for m in messages[1:]] == ["first", "Sure!", "second"]

    @pytest.mark.asyncio
    async def test_forget_clears_history(self, openai_client):
        assistant = _assistant(openai_client)
        await assistant.ask("cust-1", "first")
        assistant.forget("cust-1")

        await assistant.ask("cust-1", "again")

        messages = openai_client.chat.completions.create.call_args.kwargs["messages"]
        assert len(messages) == 2


class TestFallbackAssistant:
    @pytest.mark.asyncio
    async def test_disabled_text(self):
        reply = await FallbackAssistant(["agent"]).ask("cust-1", "what's new?")

        assert reply.text == DISABLED_TEXT
        assert reply.requests_handoff is False

    @pytest.mark.asyncio
    async def test_keywords_still_escalate(self):
        reply = await FallbackAssistant(["agent"]).ask("cust-1", "get me an agent")
        assert reply.requests_handoff is True


class TestHelpers:
    def test_compile_keywords_empty(self):
        assert compile_keywords(["", "  "]) is None

    def test_history_is_bounded(self):
        history = ConversationHistory(max_messages=2)
        for text in ("a", "b", "c"):
            history.append("cust-1", "user", text)

        assert [m["content"] for m in history.get("cust-1")] == ["b", "c"]

    def test_least_recent_customer_evicted(self):
        history = ConversationHistory(max_messages=5, max_customers=2)
        history.append("cust-1", "user", "a")
        history.append("cust-2", "user", "b")
        history.append("cust-1", "user", "c")

        history.append("cust-3", "user", "d")

        assert len(history) == 2
        assert history.get("cust-2") == []
        assert [m["content"] for m in history.get("cust-1")] == ["a", "c"]

    def test_system_prompt_lists_catalog(self):
        settings = Settings(business_name="Acme Store")

        prompt = build_system_prompt(settings, create_commerce_service(), "en", "Cart: 2 items")

        assert '"Acme Store"' in prompt
        assert "Wireless Earbuds Pro" in prompt
        assert HANDOFF_TAG in prompt
        assert "Cart: 2 items" in prompt
