"""Contextos tipados por estado de conversa.

Cada estado enxerga apenas os campos relevantes a ele. A tradução entre
estados acontece em `coerce_context`, chamada na fronteira de transição:
um contexto incompatível com o estado é substituído pelo padrão do estado.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter

from zapdesk.domain.enums import ConversationState


class EmptyContext(BaseModel):
    """Estados sem dados transitórios (MENU, AI_CHAT, ...)."""

    kind: Literal["empty"] = "empty"


class CategoryContext(BaseModel):
    """Navegação em uma categoria ou em resultados de busca.

    Quando `search_result_ids` está presente, ele tem precedência sobre a
    listagem completa da categoria ao resolver o índice digitado.
    """

    kind: Literal["category"] = "category"
    category_id: int | None = None
    search_result_ids: list[int] | None = None
    search_query: str | None = None


class CheckoutContext(BaseModel):
    """Checkout em andamento com observação opcional do pedido."""

    kind: Literal["checkout"] = "checkout"
    note: str | None = None


StateContext = Annotated[
    EmptyContext | CategoryContext | CheckoutContext,
    Field(discriminator="kind"),
]

_context_adapter: TypeAdapter[StateContext] = TypeAdapter(StateContext)

_CONTEXT_BY_STATE: dict[ConversationState, type[BaseModel]] = {
    ConversationState.BROWSING_CATEGORY: CategoryContext,
    ConversationState.CHECKOUT: CheckoutContext,
    ConversationState.ORDERING: CheckoutContext,
}


def default_context(state: ConversationState) -> StateContext:
    """Contexto inicial de um estado."""
    return _CONTEXT_BY_STATE.get(state, EmptyContext)()


def coerce_context(state: ConversationState, context: StateContext | None) -> StateContext:
    """Garante que o contexto pertence ao estado informado."""
    expected = _CONTEXT_BY_STATE.get(state, EmptyContext)
    if isinstance(context, expected):
        return context
    return expected()


def context_from_dict(state: ConversationState, data: dict | None) -> StateContext:
    """Reconstrói contexto persistido; dados inválidos viram o padrão do estado."""
    if not data:
        return default_context(state)
    try:
        parsed = _context_adapter.validate_python(data)
    except ValueError:
        return default_context(state)
    return coerce_context(state, parsed)
