"""Contrato do colaborador de IA."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel


class AIReply(BaseModel):
    """Resposta da IA; `requests_handoff` sinaliza pedido de atendente."""

    text: str
    requests_handoff: bool = False


class AIAssistant(Protocol):
    async def ask(
        self,
        customer_id: str,
        text: str,
        language: str = "en",
        extra_context: str | None = None,
    ) -> AIReply: ...

    def forget(self, customer_id: str) -> None: ...
