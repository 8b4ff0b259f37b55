"""Extração de mensagens e texto do webhook da WhatsApp Cloud API."""

from __future__ import annotations

from typing import Any

from zapdesk.domain.addresses import is_conversational, normalize_address
from zapdesk.domain.models import InboundEnvelope
from zapdesk.observability.logging import get_logger

logger = get_logger(__name__)

_CAPTION_TYPES = ("image", "video", "document")


class MalformedPayloadError(ValueError):
    """Corpo JSON válido mas fora da estrutura entry → changes → value → messages."""


def _objects(items: Any, path: str) -> list[dict[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise MalformedPayloadError(f"{path} deve ser uma lista de objetos")
    return items


def _extract_text_message(msg: dict[str, Any]) -> str | None:
    text_block = msg.get("text")
    if isinstance(text_block, dict):
        return text_block.get("body")
    return None


def _extract_caption(msg: dict[str, Any], media_type: str) -> str | None:
    media_block = msg.get(media_type)
    if isinstance(media_block, dict):
        return media_block.get("caption")
    return None


def _extract_interactive_reply(msg: dict[str, Any]) -> str | None:
    interactive = msg.get("interactive")
    if not isinstance(interactive, dict):
        return None
    for reply_key in ("button_reply", "list_reply"):
        reply = interactive.get(reply_key)
        if isinstance(reply, dict):
            return reply.get("id") or reply.get("title")
    return None


def _extract_button(msg: dict[str, Any]) -> str | None:
    button = msg.get("button")
    if isinstance(button, dict):
        return button.get("payload") or button.get("text")
    return None


def extract_text(msg: dict[str, Any]) -> str | None:
    """Texto utilizável de uma mensagem, conforme o subtipo.

    Cada subtipo tem no máximo um campo de texto. Retorna None (ou vazio)
    quando não há texto, e a mensagem deve ser descartada.
    """
    message_type = msg.get("type")
    text: str | None = None

    if message_type == "text":
        text = _extract_text_message(msg)
    elif message_type in _CAPTION_TYPES:
        text = _extract_caption(msg, message_type)
    elif message_type == "interactive":
        text = _extract_interactive_reply(msg)
    elif message_type == "button":
        text = _extract_button(msg)

    if not text:
        return None
    return text.strip() or None


def _own_numbers(value: dict[str, Any]) -> set[str]:
    metadata = value.get("metadata")
    if not isinstance(metadata, dict):
        return set()
    numbers = {metadata.get("display_phone_number"), metadata.get("phone_number_id")}
    return {normalize_address(n) for n in numbers if isinstance(n, str) and n}


def extract_envelopes(payload: Any) -> list[InboundEnvelope]:
    """Converte o payload do webhook (entry → changes → value → messages) em envelopes.

    Raises:
        MalformedPayloadError: algum nível não é objeto/lista de objetos.
    """
    if not isinstance(payload, dict):
        raise MalformedPayloadError("payload deve ser um objeto JSON")
    envelopes: list[InboundEnvelope] = []
    for entry in _objects(payload.get("entry"), "entry"):
        for change in _objects(entry.get("changes"), "entry.changes"):
            value = change.get("value") or {}
            if not isinstance(value, dict):
                raise MalformedPayloadError("entry.changes.value deve ser um objeto")
            own = _own_numbers(value)
            for msg in _objects(value.get("messages"), "value.messages"):
                sender = msg.get("from")
                if not isinstance(sender, str) or not sender:
                    continue
                address = normalize_address(sender)
                envelopes.append(
                    InboundEnvelope(
                        sender_address=address,
                        raw_payload=msg,
                        is_from_self=address in own,
                        is_group=bool(msg.get("group_id")) or not is_conversational(address),
                        message_id=msg.get("id"),
                    )
                )
    if envelopes:
        logger.debug("inbound_envelopes_extracted", extra={"count": len(envelopes)})
    return envelopes
