"""Transporte em memória: registra envios (dev/testes)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from zapdesk.domain.errors import TransportError
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SentMessage:
    address: str
    text: str


class InMemoryTransport:
    """Guarda mensagens enviadas em ordem; `fail_for` simula falhas de envio."""

    def __init__(self) -> None:
        self.sent: list[SentMessage] = []
        self.fail_for: set[str] = set()

    async def send(self, address: str, text: str) -> None:
        if address in self.fail_for:
            raise TransportError(f"simulated failure for {mask(address)}")
        self.sent.append(SentMessage(address=address, text=text))
        logger.debug("message_recorded", extra={"to": mask(address)})

    def messages_to(self, address: str) -> list[str]:
        return [m.text for m in self.sent if m.address == address]

    def clear(self) -> None:
        self.sent.clear()
