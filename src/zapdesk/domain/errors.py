"""Exceções de domínio compartilhadas entre camadas."""

from __future__ import annotations


class StoreError(Exception):
    """Falha de persistência (backend indisponível ou escrita rejeitada)."""


class HandoffAssignmentError(StoreError):
    """A escrita durável da atribuição de handoff falhou; nada foi indexado."""


class TransportError(Exception):
    """Falha ao enviar mensagem pelo transporte."""


class AIAssistantError(Exception):
    """Falha do colaborador de IA."""
