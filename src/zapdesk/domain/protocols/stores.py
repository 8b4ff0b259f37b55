"""Contratos de persistência de clientes, conversas, handoffs e atendentes.

Interfaces leves (ABCs) dependidas por Application. Falhas de backend
levantam `StoreError`; violações de pré-condição retornam None.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from zapdesk.domain.enums import HandoffStatus
from zapdesk.domain.models import Agent, Conversation, Customer, Handoff, LiveSession


class CustomerStore(ABC):
    """Clientes e conversas (1:1)."""

    @abstractmethod
    def get(self, customer_id: str) -> Customer | None: ...

    @abstractmethod
    def get_by_address(self, address: str) -> Customer | None: ...

    @abstractmethod
    def create(self, customer: Customer, conversation: Conversation) -> tuple[Customer, bool]:
        """Cria cliente + conversa atomicamente.

        Se já existir cliente para o endereço, retorna (existente, False).
        """
        ...

    @abstractmethod
    def save_customer(self, customer: Customer) -> None: ...

    @abstractmethod
    def get_conversation(self, customer_id: str) -> Conversation | None: ...

    @abstractmethod
    def save_conversation(self, conversation: Conversation) -> None: ...

    @abstractmethod
    def adjust_lead_score(self, customer_id: str, delta: int) -> int:
        """Ajusta o score com piso em 0; retorna o novo valor."""
        ...


class HandoffStore(ABC):
    """Handoffs e atendentes.

    Transições que tocam mais de um registro (handoff + atendente) são
    atômicas no backend.
    """

    @abstractmethod
    def open_handoff(self, handoff: Handoff, now: datetime) -> list[Handoff]:
        """Resolve handoffs abertos do cliente e insere o novo como pending.

        Retorna os handoffs que foram resolvidos por esta chamada.
        """
        ...

    @abstractmethod
    def get_handoff(self, handoff_id: str) -> Handoff | None: ...

    @abstractmethod
    def list_handoffs(self, status: HandoffStatus | None = None) -> list[Handoff]: ...

    @abstractmethod
    def activate(self, handoff_id: str, agent_id: str, now: datetime) -> Handoff | None:
        """pending → active e vincula o atendente.

        Retorna None se o handoff não está pending ou o atendente está ocupado.
        """
        ...

    @abstractmethod
    def resolve_for_agent(self, agent_id: str, now: datetime) -> Handoff | None:
        """active → resolved para o handoff do atendente e libera o atendente."""
        ...

    @abstractmethod
    def resolve_pending(self, handoff_id: str, now: datetime) -> Handoff | None:
        """pending → resolved (sem atendente)."""
        ...

    @abstractmethod
    def list_active_sessions(self) -> list[LiveSession]:
        """Handoffs ativos com endereços de atendente e cliente."""
        ...

    @abstractmethod
    def get_agent(self, agent_id: str) -> Agent | None: ...

    @abstractmethod
    def get_agent_by_address(self, address: str) -> Agent | None: ...

    @abstractmethod
    def list_agents(self) -> list[Agent]: ...

    @abstractmethod
    def save_agent(self, agent: Agent) -> None: ...

    @abstractmethod
    def update_agent_fields(self, agent_id: str, fields: dict[str, Any]) -> Agent | None:
        """Atualiza só os campos informados; None se o atendente não existe.

        Nunca regrava `current_customer_id` a partir de um snapshot antigo.
        """
        ...
