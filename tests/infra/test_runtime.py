"""Testes da montagem de componentes a partir das settings."""

from __future__ import annotations

import pytest

from zapdesk.adapters.whatsapp.outbound import WhatsAppTransport
from zapdesk.ai.assistant import FallbackAssistant, OpenAIAssistant
from zapdesk.config.settings import AgentSeed, Settings
from zapdesk.infra.runtime import create_assistant, create_runtime, create_transport
from zapdesk.infra.transport_memory import InMemoryTransport


class TestCreateTransport:
    def test_memory_backend(self) -> None:
        assert isinstance(create_transport(Settings(transport_backend="memory")), InMemoryTransport)

    def test_missing_credentials_fall_back_in_development(self) -> None:
        transport = create_transport(Settings(transport_backend="whatsapp"))
        assert isinstance(transport, InMemoryTransport)

    def test_missing_credentials_fatal_outside_development(self) -> None:
        settings = Settings(environment="production", transport_backend="whatsapp")
        with pytest.raises(ValueError):
            create_transport(settings)

    def test_whatsapp_with_credentials(self) -> None:
        settings = Settings(
            transport_backend="whatsapp",
            whatsapp_access_token="token",
            whatsapp_phone_number_id="pnid-1",
        )
        assert isinstance(create_transport(settings), WhatsAppTransport)


class TestCreateAssistant:
    def test_disabled_uses_fallback(self) -> None:
        runtime = create_runtime(Settings(transport_backend="memory"))
        assert isinstance(runtime.ai, FallbackAssistant)

    def test_enabled_uses_openai(self) -> None:
        settings = Settings(openai_enabled=True, openai_api_key="sk-test")
        runtime = create_runtime(Settings(transport_backend="memory"))

        assistant = create_assistant(settings, runtime.commerce)

        assert isinstance(assistant, OpenAIAssistant)


class TestSeedAgents:
    def test_agents_registered_with_normalized_address(self) -> None:
        settings = Settings(
            transport_backend="memory",
            agents=[
                AgentSeed(name="Bob", address="+1 555 999 0001"),
                AgentSeed(name="Bob again", address="15559990001"),
            ],
        )

        runtime = create_runtime(settings)

        agents = runtime.router.list_agents()
        assert [(a.name, a.address) for a in agents] == [("Bob", "15559990001")]
