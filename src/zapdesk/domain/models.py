"""Modelos de domínio: cliente, conversa, handoff e atendente."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from zapdesk.domain.context import EmptyContext, StateContext
from zapdesk.domain.enums import AudienceTier, ConversationState, HandoffStatus


def utcnow() -> datetime:
    """Timestamp timezone-aware em UTC."""
    return datetime.now(tz=UTC)


def new_id() -> str:
    """Gera identificador opaco para registros persistidos."""
    return uuid.uuid4().hex


class Customer(BaseModel):
    """Cliente identificado pelo endereço estável do remetente.

    Nunca é removido fisicamente; bloqueio é lógico (`is_blocked`).
    """

    customer_id: str = Field(default_factory=new_id)
    address: str
    display_name: str | None = None
    language: str = "en"
    lead_score: int = Field(default=0, ge=0)
    is_blocked: bool = False
    tags: list[str] = Field(default_factory=list)
    total_orders: int = 0
    total_spent: float = 0.0
    first_seen_at: datetime = Field(default_factory=utcnow)
    last_seen_at: datetime = Field(default_factory=utcnow)

    @property
    def label(self) -> str:
        """Nome para exibição (endereço quando ainda sem nome)."""
        return self.display_name or self.address

    def with_tier(self, tier: AudienceTier) -> list[str]:
        """Tags com exatamente um tier de audiência; demais tags preservadas."""
        tier_values = {t.value for t in AudienceTier}
        others = [tag for tag in self.tags if tag not in tier_values]
        return [*others, tier.value]


class Conversation(BaseModel):
    """Conversa 1:1 com o cliente; contexto é escopo do estado atual."""

    customer_id: str
    state: ConversationState = ConversationState.MENU
    context: StateContext = Field(default_factory=EmptyContext)
    last_activity_at: datetime = Field(default_factory=utcnow)


class Handoff(BaseModel):
    """Episódio de atendimento humano para um cliente."""

    handoff_id: str = Field(default_factory=new_id)
    customer_id: str
    customer_address: str
    agent_id: str | None = None
    reason: str = ""
    status: HandoffStatus = HandoffStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    resolved_at: datetime | None = None


class Agent(BaseModel):
    """Atendente humano; `current_customer_id` espelha o handoff ativo."""

    agent_id: str = Field(default_factory=new_id)
    name: str
    address: str
    active: bool = True
    current_customer_id: str | None = None
    last_active_at: datetime | None = None


class LiveSession(BaseModel):
    """Par atendente↔cliente derivado de um handoff ativo."""

    handoff_id: str
    agent_id: str
    agent_address: str
    customer_id: str
    customer_address: str


class InboundEnvelope(BaseModel):
    """Mensagem entregue pelo transporte, ainda sem interpretação."""

    sender_address: str
    raw_payload: dict = Field(default_factory=dict)
    is_from_self: bool = False
    is_group: bool = False
    message_id: str | None = None
