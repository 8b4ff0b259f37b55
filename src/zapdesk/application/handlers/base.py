"""Tipos compartilhados pelos handlers de estado.

Um handler recebe o turno corrente e devolve uma `Transition`; quem
persiste o estado e envia as respostas é o dispatcher. Efeitos em
colaboradores (carrinho, pedidos, lead score) acontecem no handler.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from zapdesk.application.conversation_store import ConversationStore
from zapdesk.config.settings import Settings
from zapdesk.domain.context import StateContext
from zapdesk.domain.enums import ConversationState
from zapdesk.domain.models import Customer
from zapdesk.domain.protocols.ai import AIAssistant
from zapdesk.domain.protocols.catalog import CommerceService

REGISTRATION_BONUS = 5
ADD_TO_CART_BONUS = 5
ORDER_COMPLETION_BONUS = 20


@dataclass(slots=True)
class Turn:
    """Mensagem de cliente a ser tratada no estado atual."""

    customer: Customer
    text: str
    state: ConversationState
    context: StateContext


@dataclass(slots=True)
class Transition:
    """Resultado de um handler.

    `next_state=None` mantém o estado; `context=None` mantém o contexto.
    `handoff_reason` pede a abertura de um handoff após as respostas.
    """

    next_state: ConversationState | None = None
    context: StateContext | None = None
    replies: list[str] = field(default_factory=list)
    handoff_reason: str | None = None

    @property
    def changes_conversation(self) -> bool:
        return self.next_state is not None or self.context is not None


@dataclass(slots=True)
class HandlerDeps:
    conversations: ConversationStore
    commerce: CommerceService
    ai: AIAssistant
    settings: Settings


StateHandler = Callable[[Turn, HandlerDeps], Awaitable[Transition]]
