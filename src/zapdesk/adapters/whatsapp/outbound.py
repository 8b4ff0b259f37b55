"""Transporte de saída via WhatsApp Cloud API (mensagens de texto)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from zapdesk.domain.errors import TransportError
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)

MAX_TEXT_LENGTH = 4096


def _meta_error(response: httpx.Response) -> str:
    """Resumo do erro Meta (`error.type`/`error.code`) sem expor o corpo inteiro."""
    try:
        data: dict[str, Any] = response.json()
    except ValueError:
        return f"http_{response.status_code}"
    error = data.get("error")
    if not isinstance(error, dict):
        return f"http_{response.status_code}"
    return f"{error.get('type', 'unknown')}:{error.get('code', response.status_code)}"


class WhatsAppTransport:
    """Envia texto pelo endpoint /{phone_number_id}/messages."""

    def __init__(
        self,
        api_endpoint: str,
        access_token: str,
        phone_number_id: str,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = f"{api_endpoint.rstrip('/')}/{phone_number_id}/messages"
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def send(self, address: str, text: str) -> None:
        to = address.split("@", 1)[0]
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": text[:MAX_TEXT_LENGTH]},
        }
        try:
            response = await self._client.post(self._url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            logger.warning(
                "whatsapp_send_transport_error",
                extra={"to": mask(to), "error_type": type(e).__name__},
            )
            raise TransportError(f"whatsapp send failed: {type(e).__name__}") from e

        if response.status_code >= 400:
            error = _meta_error(response)
            logger.warning(
                "whatsapp_send_rejected",
                extra={"to": mask(to), "status_code": response.status_code, "error": error},
            )
            raise TransportError(f"whatsapp send rejected: {error}")

        logger.debug("whatsapp_message_sent", extra={"to": mask(to)})

    async def aclose(self) -> None:
        await self._client.aclose()
