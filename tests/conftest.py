from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from zapdesk.api.app import create_app
from zapdesk.config.settings import Settings, get_settings
from zapdesk.domain.models import InboundEnvelope
from zapdesk.domain.protocols.ai import AIReply
from zapdesk.infra.runtime import Runtime, create_runtime
from zapdesk.infra.transport_memory import InMemoryTransport


class FakeClock:
    """Relógio controlável para timestamps de domínio."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubAssistant:
    """Assistente de IA determinístico para testes."""

    def __init__(self, text: str = "Happy to help!", requests_handoff: bool = False) -> None:
        self.text = text
        self.requests_handoff = requests_handoff
        self.error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    async def ask(
        self,
        customer_id: str,
        text: str,
        language: str = "en",
        extra_context: str | None = None,
    ) -> AIReply:
        self.calls.append((customer_id, text))
        if self.error is not None:
            raise self.error
        return AIReply(text=self.text, requests_handoff=self.requests_handoff)

    def forget(self, customer_id: str) -> None:
        return None


def build_envelope(
    address: str,
    text: str | None,
    message_id: str | None = None,
    is_group: bool = False,
    is_from_self: bool = False,
) -> InboundEnvelope:
    """Envelope de texto; `text=None` simula mensagem sem texto (sticker)."""
    raw: dict = {"from": address, "type": "sticker", "sticker": {"id": "st-1"}}
    if text is not None:
        raw = {"from": address, "type": "text", "text": {"body": text}}
    return InboundEnvelope(
        sender_address=address,
        raw_payload=raw,
        message_id=message_id,
        is_group=is_group,
        is_from_self=is_from_self,
    )


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        environment="test",
        business_name="Acme Store",
        transport_backend="memory",
        whatsapp_verify_token="test-token",
        rate_limit_max_messages=50,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def stub_ai() -> StubAssistant:
    return StubAssistant()


@pytest.fixture()
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture()
def runtime(settings, transport, stub_ai, clock) -> Runtime:
    return create_runtime(settings, transport=transport, ai=stub_ai, clock=clock)


@pytest.fixture()
def envelope():
    """Factory de envelopes de texto."""
    return build_envelope


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("WHATSAPP_VERIFY_TOKEN", "test-token")
    monkeypatch.setenv("TRANSPORT_BACKEND", "memory")
    monkeypatch.setenv("ENVIRONMENT", "test")
    get_settings.cache_clear()
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    get_settings.cache_clear()
