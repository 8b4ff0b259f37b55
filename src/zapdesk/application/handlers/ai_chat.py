"""AI_CHAT: conversa livre delegada ao colaborador de IA."""

from __future__ import annotations

import logging

from zapdesk.application import replies
from zapdesk.application.handlers.base import HandlerDeps, Transition, Turn
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


def _cart_context(deps: HandlerDeps, customer_id: str) -> str | None:
    lines = deps.commerce.get_cart(customer_id)
    if not lines:
        return None
    items = ", ".join(f"{line.name} x{line.quantity}" for line in lines)
    return f"Customer's cart: {items}"


async def handle_ai_chat(turn: Turn, deps: HandlerDeps) -> Transition:
    customer = turn.customer
    try:
        reply = await deps.ai.ask(
            customer.customer_id,
            turn.text,
            customer.language,
            _cart_context(deps, customer.customer_id),
        )
    except Exception as e:
        logger.error(
            "ai_collaborator_failed",
            extra={"customer_id": mask(customer.customer_id), "error_type": type(e).__name__},
        )
        return Transition(replies=[replies.AI_APOLOGY])

    transition = Transition(replies=[reply.text])
    if reply.requests_handoff:
        transition.handoff_reason = replies.ai_escalation_reason(turn.text)
    return transition
