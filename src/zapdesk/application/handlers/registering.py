"""REGISTERING: coleta do nome do cliente."""

from __future__ import annotations

from zapdesk.application import replies
from zapdesk.application.commands import parse_global_command
from zapdesk.application.handlers.base import REGISTRATION_BONUS, HandlerDeps, Transition, Turn
from zapdesk.domain.context import EmptyContext
from zapdesk.domain.enums import AudienceTier, ConversationState

MAX_NAME_WORDS = 4
MIN_NAME_LENGTH = 2


def clean_name(text: str) -> str:
    return " ".join(text.split()[:MAX_NAME_WORDS])


async def handle_registering(turn: Turn, deps: HandlerDeps) -> Transition:
    if parse_global_command(turn.text) is not None:
        # Palavras de comando não viram nome; repete o pedido de nome.
        return Transition(replies=[replies.welcome_prompt(deps.settings.business_name)])

    name = clean_name(turn.text)
    if len(name) < MIN_NAME_LENGTH:
        return Transition(replies=[replies.NAME_TOO_SHORT])

    customer_id = turn.customer.customer_id
    deps.conversations.set_display_name(customer_id, name)
    deps.conversations.adjust_lead_score(customer_id, REGISTRATION_BONUS)
    deps.conversations.set_tier(customer_id, AudienceTier.NEW)
    return Transition(
        next_state=ConversationState.MENU,
        context=EmptyContext(),
        replies=[
            replies.welcome_offer(name),
            replies.main_menu(deps.settings.business_name),
        ],
    )
