"""CHECKOUT / ORDERING: confirmação, cancelamento e observação do pedido."""

from __future__ import annotations

import logging

from zapdesk.application import replies
from zapdesk.application.commands import CANCEL_WORDS, CONFIRM_WORDS, normalize
from zapdesk.application.handlers.base import (
    ORDER_COMPLETION_BONUS,
    HandlerDeps,
    Transition,
    Turn,
)
from zapdesk.commerce.formatting import format_order_confirmation
from zapdesk.domain.context import CheckoutContext, EmptyContext
from zapdesk.domain.enums import ConversationState
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


async def handle_checkout(turn: Turn, deps: HandlerDeps) -> Transition:
    context = turn.context if isinstance(turn.context, CheckoutContext) else CheckoutContext()
    normalized = normalize(turn.text)
    customer_id = turn.customer.customer_id

    if normalized in CONFIRM_WORDS:
        order = deps.commerce.place_order(customer_id, note=context.note)
        if order is None:
            # Carrinho esvaziado entre o CHECKOUT e o CONFIRM.
            logger.info("checkout_empty_cart", extra={"customer_id": mask(customer_id)})
            return Transition(replies=[replies.ORDER_FAILED])

        deps.conversations.adjust_lead_score(customer_id, ORDER_COMPLETION_BONUS)
        deps.conversations.record_order(customer_id, order.total)
        return Transition(
            next_state=ConversationState.MENU,
            context=EmptyContext(),
            replies=[format_order_confirmation(order)],
        )

    if normalized in CANCEL_WORDS:
        return Transition(
            next_state=ConversationState.MENU,
            context=EmptyContext(),
            replies=[
                replies.CHECKOUT_CANCELLED,
                replies.main_menu(deps.settings.business_name),
            ],
        )

    note = turn.text.strip()
    return Transition(
        context=CheckoutContext(note=note),
        replies=[replies.note_added(note)],
    )
