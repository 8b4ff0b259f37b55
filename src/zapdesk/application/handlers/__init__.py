"""Handlers por estado de conversa (tabela de transição local)."""

from __future__ import annotations

from zapdesk.application.handlers.ai_chat import handle_ai_chat
from zapdesk.application.handlers.base import (
    HandlerDeps,
    StateHandler,
    Transition,
    Turn,
)
from zapdesk.application.handlers.catalog import (
    handle_browsing_catalog,
    handle_browsing_category,
)
from zapdesk.application.handlers.checkout import handle_checkout
from zapdesk.application.handlers.menu import handle_menu, handle_stale_handoff
from zapdesk.application.handlers.registering import handle_registering
from zapdesk.domain.enums import ConversationState

STATE_HANDLERS: dict[ConversationState, StateHandler] = {
    ConversationState.REGISTERING: handle_registering,
    ConversationState.MENU: handle_menu,
    ConversationState.BROWSING_CATALOG: handle_browsing_catalog,
    ConversationState.BROWSING_CATEGORY: handle_browsing_category,
    ConversationState.CHECKOUT: handle_checkout,
    ConversationState.ORDERING: handle_checkout,
    ConversationState.AI_CHAT: handle_ai_chat,
    ConversationState.HUMAN_HANDOFF: handle_stale_handoff,
}

__all__ = [
    "STATE_HANDLERS",
    "HandlerDeps",
    "StateHandler",
    "Transition",
    "Turn",
]
