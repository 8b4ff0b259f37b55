"""Enums de domínio: estados de conversa, handoff e tiers de audiência."""

from __future__ import annotations

from enum import StrEnum


class ConversationState(StrEnum):
    """Estados da máquina de conversa por cliente."""

    REGISTERING = "REGISTERING"
    MENU = "MENU"
    BROWSING_CATALOG = "BROWSING_CATALOG"
    BROWSING_CATEGORY = "BROWSING_CATEGORY"
    ORDERING = "ORDERING"
    CHECKOUT = "CHECKOUT"
    AI_CHAT = "AI_CHAT"
    HUMAN_HANDOFF = "HUMAN_HANDOFF"


class HandoffStatus(StrEnum):
    """Ciclo de vida de um handoff: pending → active → resolved (terminal)."""

    PENDING = "pending"
    ACTIVE = "active"
    RESOLVED = "resolved"

    @property
    def is_open(self) -> bool:
        return self in (HandoffStatus.PENDING, HandoffStatus.ACTIVE)


class AudienceTier(StrEnum):
    """Tier de audiência derivado do lead score."""

    NEW = "New"
    SUBSCRIBER = "Subscriber"
    FREQUENT = "Frequent"
    VIP = "VIP"


# Limites inferiores em ordem decrescente; o maior limite atingido vence.
AUDIENCE_THRESHOLDS: tuple[tuple[int, AudienceTier], ...] = (
    (60, AudienceTier.VIP),
    (30, AudienceTier.FREQUENT),
    (10, AudienceTier.SUBSCRIBER),
    (0, AudienceTier.NEW),
)


def tier_for_score(score: int) -> AudienceTier:
    """Retorna o tier correspondente ao lead score."""
    for threshold, tier in AUDIENCE_THRESHOLDS:
        if score >= threshold:
            return tier
    return AudienceTier.NEW


class AddToCartResult(StrEnum):
    """Resultado de uma tentativa de adicionar item ao carrinho."""

    ADDED = "added"
    UPDATED = "updated"
    OUT_OF_STOCK = "out_of_stock"
    NOT_FOUND = "not_found"


class DispatchOutcome(StrEnum):
    """Desfecho do processamento de uma mensagem inbound (para logs e testes)."""

    DROPPED_NOT_CONVERSATIONAL = "DROPPED_NOT_CONVERSATIONAL"
    DROPPED_EMPTY = "DROPPED_EMPTY"
    DROPPED_RATE_LIMITED = "DROPPED_RATE_LIMITED"
    DROPPED_BLOCKED = "DROPPED_BLOCKED"
    AGENT_COMMAND = "AGENT_COMMAND"
    AGENT_FORWARDED = "AGENT_FORWARDED"
    CUSTOMER_FORWARDED = "CUSTOMER_FORWARDED"
    SESSION_RELEASED = "SESSION_RELEASED"
    REGISTRATION = "REGISTRATION"
    GLOBAL_COMMAND = "GLOBAL_COMMAND"
    STATE_HANDLER = "STATE_HANDLER"
