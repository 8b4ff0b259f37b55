"""MENU: opções numéricas; texto livre promove a conversa para AI_CHAT."""

from __future__ import annotations

from zapdesk.application import replies
from zapdesk.application.handlers.ai_chat import handle_ai_chat
from zapdesk.application.handlers.base import HandlerDeps, Transition, Turn
from zapdesk.commerce.formatting import format_catalog_menu, format_customer_orders
from zapdesk.domain.context import EmptyContext
from zapdesk.domain.enums import ConversationState


async def handle_menu(turn: Turn, deps: HandlerDeps) -> Transition:
    choice = turn.text.strip()

    if choice == "1":
        return Transition(
            next_state=ConversationState.BROWSING_CATALOG,
            context=EmptyContext(),
            replies=[format_catalog_menu(deps.commerce.list_categories())],
        )
    if choice == "2":
        orders = deps.commerce.list_orders(turn.customer.customer_id)
        return Transition(replies=[format_customer_orders(orders)])
    if choice == "3":
        return Transition(
            next_state=ConversationState.AI_CHAT,
            context=EmptyContext(),
            replies=[replies.AI_CHAT_INTRO],
        )
    if choice == "4":
        return Transition(handoff_reason=replies.MENU_REQUESTED_AGENT)

    transition = await handle_ai_chat(turn, deps)
    transition.next_state = ConversationState.AI_CHAT
    transition.context = EmptyContext()
    return transition


async def handle_stale_handoff(turn: Turn, deps: HandlerDeps) -> Transition:
    """HUMAN_HANDOFF sem sessão ao vivo: volta ao menu e trata a mensagem lá."""
    transition = await handle_menu(turn, deps)
    if transition.next_state is None:
        transition.next_state = ConversationState.MENU
        transition.context = EmptyContext()
    return transition
