"""Testes do transporte de saída via Cloud API (httpx.MockTransport)."""

from __future__ import annotations

import json

import httpx
import pytest

from zapdesk.adapters.whatsapp.outbound import MAX_TEXT_LENGTH, WhatsAppTransport
from zapdesk.domain.errors import TransportError


def _transport(handler) -> WhatsAppTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WhatsAppTransport(
        api_endpoint="https://graph.facebook.com/v20.0/",
        access_token="token-123",
        phone_number_id="pnid-1",
        client=client,
    )


class TestWhatsAppTransport:
    @pytest.mark.asyncio
    async def test_posts_text_payload(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

        transport = _transport(handler)
        await transport.send("15550001111@s.whatsapp.net", "hello")
        await transport.aclose()

        request = captured[0]
        assert str(request.url) == "https://graph.facebook.com/v20.0/pnid-1/messages"
        assert request.headers["Authorization"] == "Bearer token-123"
        body = json.loads(request.content)
        assert body["to"] == "15550001111"
        assert body["text"]["body"] == "hello"

    @pytest.mark.asyncio
    async def test_long_text_truncated(self):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        await _transport(handler).send("15550001111", "x" * (MAX_TEXT_LENGTH + 10))

        assert len(bodies[0]["text"]["body"]) == MAX_TEXT_LENGTH

    @pytest.mark.asyncio
    async def test_meta_error_raises_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400, json={"error": {"type": "OAuthException", "code": 190}}
            )

        with pytest.raises(TransportError, match="OAuthException:190"):
            await _transport(handler).send("15550001111", "hello")

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            await _transport(handler).send("15550001111", "hello")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
