"""Contrato do transporte de saída."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    """Envia texto para um endereço.

    Implementações levantam `TransportError` em falha; quem chama decide
    se loga ou propaga.
    """

    async def send(self, address: str, text: str) -> None: ...
