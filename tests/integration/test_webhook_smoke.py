from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from zapdesk.adapters.whatsapp.signature import SIGNATURE_HEADER, sign_body
from zapdesk.api.app import create_app
from zapdesk.application import replies
from zapdesk.config.settings import Settings
from zapdesk.domain.enums import ConversationState

FIXTURE = Path(__file__).resolve().parents[1] / "fixtures" / "whatsapp_inbound.json"
CUSTOMER = "15550001111"


def _payload(text: str | None = None, message_id: str | None = None) -> dict:
    payload = json.loads(FIXTURE.read_text(encoding="utf-8"))
    message = payload["entry"][0]["changes"][0]["value"]["messages"][0]
    if text is not None:
        message["text"]["body"] = text
    if message_id is not None:
        message["id"] = message_id
    return payload


def _drain(client: TestClient) -> None:
    client.portal.call(client.app.state.runtime.queue.drain)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["handoff_index_restored"] is True


def test_webhook_verification(client):
    response = client.get(
        "/webhooks/whatsapp",
        params={
            "hub.mode": "subscribe",
            "hub.verify_token": "test-token",
            "hub.challenge": "challenge-123",
        },
    )
    assert response.status_code == 200
    assert response.text == "challenge-123"


def test_webhook_verification_wrong_token(client):
    response = client.get(
        "/webhooks/whatsapp",
        params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "x"},
    )
    assert response.status_code == 403


def test_webhook_post_smoke(client):
    response = client.post("/webhooks/whatsapp", json=_payload())
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["result"] == "enqueued"
    assert body["signature_skipped"] is True

    _drain(client)

    runtime = client.app.state.runtime
    assert runtime.transport.messages_to(CUSTOMER) == [
        replies.welcome_prompt(runtime.settings.business_name)
    ]
    customer = runtime.conversations.find_by_address(CUSTOMER)
    assert runtime.conversations.get_state(customer.customer_id)[0] == ConversationState.REGISTERING


def test_redelivery_is_dispatched_once(client):
    first = client.post("/webhooks/whatsapp", json=_payload(message_id="wamid.dup"))
    second = client.post("/webhooks/whatsapp", json=_payload(message_id="wamid.dup"))
    _drain(client)

    assert first.json()["enqueued"] == 1
    assert second.json()["result"] == "ignored"
    assert second.json()["duplicates"] == 1
    assert len(client.app.state.runtime.transport.messages_to(CUSTOMER)) == 1


def test_registration_over_http(client):
    client.post("/webhooks/whatsapp", json=_payload("hi", "wamid.1"))
    client.post("/webhooks/whatsapp", json=_payload("Alice", "wamid.2"))
    _drain(client)

    runtime = client.app.state.runtime
    customer = runtime.conversations.find_by_address(CUSTOMER)
    assert customer.display_name == "Alice"
    assert runtime.conversations.get_state(customer.customer_id)[0] == ConversationState.MENU


def test_status_only_payload_ignored(client):
    payload = _payload()
    value = payload["entry"][0]["changes"][0]["value"]
    value.pop("messages")
    value["statuses"] = [{"id": "wamid.x", "status": "delivered"}]

    response = client.post("/webhooks/whatsapp", json=payload)

    assert response.json()["result"] == "ignored"


def test_invalid_json(client):
    response = client.post(
        "/webhooks/whatsapp",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400


@pytest.mark.parametrize(
    "body",
    [
        b'{"entry": ["x"]}',
        b"[1, 2]",
        b'{"entry": [{"changes": [{"value": 3}]}]}',
    ],
)
def test_malformed_structure_is_bad_request(client, body):
    response = client.post(
        "/webhooks/whatsapp",
        content=body,
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "invalid_json"


class TestWebhookSignature:
    """Com secret configurado, toda entrega precisa de assinatura válida."""

    @staticmethod
    def _signed_client() -> TestClient:
        settings = Settings(
            environment="test",
            transport_backend="memory",
            whatsapp_verify_token="test-token",
            whatsapp_webhook_secret="app-secret",
        )
        return TestClient(create_app(settings=settings))

    def test_missing_signature_rejected(self):
        with self._signed_client() as client:
            response = client.post("/webhooks/whatsapp", json=_payload())
        assert response.status_code == 403

    def test_valid_signature_accepted(self):
        raw = json.dumps(_payload()).encode("utf-8")
        headers = {
            SIGNATURE_HEADER: sign_body(raw, "app-secret"),
            "content-type": "application/json",
        }
        with self._signed_client() as client:
            response = client.post("/webhooks/whatsapp", content=raw, headers=headers)

        assert response.status_code == 200
        assert response.json()["signature_validated"] is True
