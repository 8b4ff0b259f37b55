"""Dispatcher: ponto de entrada de cada mensagem inbound.

Ordem por mensagem:
1. descarta grupos, broadcasts e ecos do próprio número;
2. extrai o texto (sem texto = descarte);
3. rate limiting por remetente;
4. atendente registrado → caminho do atendente;
5. caso contrário → caminho do cliente (registro, sessão humana,
   comandos globais e, por fim, o handler do estado).

Falhas de envio são logadas e não desfazem a transição já persistida.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from zapdesk.application import replies
from zapdesk.application.commands import (
    AgentCommand,
    GlobalCommand,
    ParsedCommand,
    normalize,
    parse_agent_command,
    parse_global_command,
)
from zapdesk.application.conversation_store import ConversationStore
from zapdesk.application.handlers import STATE_HANDLERS, HandlerDeps, Transition, Turn
from zapdesk.application.handoff_router import HandoffRouter
from zapdesk.commerce.formatting import (
    format_cart,
    format_catalog_menu,
    format_customer_orders,
    format_order,
)
from zapdesk.config.settings import Settings
from zapdesk.domain.addresses import is_conversational, normalize_address
from zapdesk.domain.context import CheckoutContext, EmptyContext, StateContext
from zapdesk.domain.enums import ConversationState, DispatchOutcome
from zapdesk.domain.errors import StoreError, TransportError
from zapdesk.domain.models import Agent, Customer, InboundEnvelope
from zapdesk.domain.protocols.ai import AIAssistant
from zapdesk.domain.protocols.broadcast import BroadcastPreferences
from zapdesk.domain.protocols.catalog import CommerceService
from zapdesk.domain.protocols.transport import Transport
from zapdesk.domain.rate_limiter import RateLimiter
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)

TextExtractor = Callable[[dict[str, Any]], str | None]
Interrupt = Callable[[Customer, ParsedCommand], Awaitable[Transition]]


class Dispatcher:
    """Máquina de roteamento em dois níveis: interrupções globais + estados."""

    def __init__(
        self,
        conversations: ConversationStore,
        router: HandoffRouter,
        rate_limiter: RateLimiter,
        transport: Transport,
        commerce: CommerceService,
        ai: AIAssistant,
        broadcast: BroadcastPreferences,
        settings: Settings,
        text_extractor: TextExtractor,
    ) -> None:
        self._conversations = conversations
        self._router = router
        self._rate_limiter = rate_limiter
        self._transport = transport
        self._commerce = commerce
        self._broadcast = broadcast
        self._settings = settings
        self._extract_text = text_extractor
        self._deps = HandlerDeps(
            conversations=conversations,
            commerce=commerce,
            ai=ai,
            settings=settings,
        )
        self._interrupts: dict[GlobalCommand, Interrupt] = {
            GlobalCommand.GREETING: self._cmd_greeting,
            GlobalCommand.CATALOG: self._cmd_catalog,
            GlobalCommand.CART: self._cmd_cart,
            GlobalCommand.ORDERS: self._cmd_orders,
            GlobalCommand.AGENT: self._cmd_agent,
            GlobalCommand.CLEAR: self._cmd_clear,
            GlobalCommand.OPT_OUT: self._cmd_opt_out,
            GlobalCommand.OPT_IN: self._cmd_opt_in,
            GlobalCommand.CHECKOUT: self._cmd_checkout,
            GlobalCommand.ORDER_DETAIL: self._cmd_order_detail,
        }

    @property
    def _business_name(self) -> str:
        return self._settings.business_name

    # -- entrada ---------------------------------------------------------

    def shard_key(self, envelope: InboundEnvelope) -> str:
        """Chave de ordenação: mensagens de atendente usam o cliente par."""
        sender = normalize_address(envelope.sender_address)
        return self._router.customer_of_agent(sender) or sender

    async def handle(self, envelope: InboundEnvelope) -> DispatchOutcome:
        sender = normalize_address(envelope.sender_address)

        if envelope.is_group or envelope.is_from_self or not is_conversational(sender):
            logger.debug("inbound_dropped_not_conversational", extra={"sender": mask(sender)})
            return DispatchOutcome.DROPPED_NOT_CONVERSATIONAL

        text = self._extract_text(envelope.raw_payload)
        if not text:
            logger.debug("inbound_dropped_empty", extra={"sender": mask(sender)})
            return DispatchOutcome.DROPPED_EMPTY

        if not self._rate_limiter.admit(sender):
            return DispatchOutcome.DROPPED_RATE_LIMITED

        agent = self._router.get_agent_by_address(sender)
        if agent is not None:
            return await self._handle_agent(agent, text)
        return await self._handle_customer(sender, text)

    async def send_test_message(self, address: str, text: str) -> bool:
        """Envio direto, sem passar pela máquina de estados."""
        return await self._send(normalize_address(address), text)

    # -- caminho do atendente ---------------------------------------------

    async def _handle_agent(self, agent: Agent, text: str) -> DispatchOutcome:
        command = parse_agent_command(text)

        if command == AgentCommand.END:
            await self._agent_end(agent)
            return DispatchOutcome.AGENT_COMMAND

        if command == AgentCommand.STATUS:
            peer = self._router.peer_of(agent.address)
            if peer is None:
                await self._send(agent.address, replies.AGENT_STATUS_IDLE)
            else:
                await self._send(
                    agent.address, replies.agent_status_busy(self._label_for(peer), peer)
                )
            return DispatchOutcome.AGENT_COMMAND

        peer = self._router.peer_of(agent.address)
        if peer is None:
            await self._send(agent.address, replies.AGENT_USAGE_HINT)
            return DispatchOutcome.AGENT_COMMAND

        await self._send(peer, text)
        return DispatchOutcome.AGENT_FORWARDED

    async def _agent_end(self, agent: Agent) -> None:
        try:
            customer_address = self._router.resolve(agent.address)
        except StoreError as e:
            logger.error(
                "agent_end_failed",
                extra={"agent_id": mask(agent.agent_id), "error_type": type(e).__name__},
            )
            await self._send(agent.address, replies.AGENT_END_FAILED)
            return

        if customer_address is None:
            await self._send(agent.address, replies.AGENT_NO_SESSION)
            return

        customer = self._conversations.find_by_address(customer_address)
        if customer is not None:
            self._conversations.set_state(
                customer.customer_id, ConversationState.MENU, EmptyContext()
            )
        label = customer.label if customer is not None else customer_address
        await self._send(
            customer_address, replies.chat_ended_for_customer(agent.name, self._business_name)
        )
        await self._send(agent.address, replies.chat_ended_for_agent(label))

    # -- caminho do cliente -----------------------------------------------

    async def _handle_customer(self, address: str, text: str) -> DispatchOutcome:
        upsert = self._conversations.get_or_create(address)
        customer = upsert.customer

        if customer.is_blocked:
            logger.debug("inbound_dropped_blocked", extra={"customer_id": mask(customer.customer_id)})
            return DispatchOutcome.DROPPED_BLOCKED

        state, context = self._conversations.get_state(customer.customer_id)

        if upsert.created or not customer.display_name:
            if state != ConversationState.REGISTERING:
                self._conversations.set_state(
                    customer.customer_id, ConversationState.REGISTERING, EmptyContext()
                )
            await self._run_state_handler(
                customer, text, ConversationState.REGISTERING, EmptyContext()
            )
            self._retag(customer)
            return DispatchOutcome.REGISTRATION

        if self._router.is_customer_in_session(address):
            outcome = await self._handle_live_session(customer, text)
            self._retag(customer)
            return outcome

        parsed = parse_global_command(text)
        if parsed is not None:
            transition = await self._interrupts[parsed.command](customer, parsed)
            await self._apply(customer, state, transition)
            self._retag(customer)
            logger.info(
                "global_command",
                extra={"customer_id": mask(customer.customer_id), "command": parsed.command.value},
            )
            return DispatchOutcome.GLOBAL_COMMAND

        outcome = await self._run_state_handler(customer, text, state, context)
        self._retag(customer)
        return outcome

    async def _run_state_handler(
        self,
        customer: Customer,
        text: str,
        state: ConversationState,
        context: StateContext,
    ) -> DispatchOutcome:
        handler = STATE_HANDLERS[state]
        turn = Turn(customer=customer, text=text, state=state, context=context)
        transition = await handler(turn, self._deps)
        await self._apply(customer, state, transition)
        return DispatchOutcome.STATE_HANDLER

    async def _handle_live_session(self, customer: Customer, text: str) -> DispatchOutcome:
        agent_address = self._router.peer_of(customer.address)

        if normalize(text) == "MENU" and agent_address is not None:
            try:
                self._router.resolve(agent_address)
            except StoreError as e:
                logger.error(
                    "session_release_failed",
                    extra={"customer_id": mask(customer.customer_id), "error_type": type(e).__name__},
                )
                await self._send(customer.address, replies.SESSION_RELEASE_FAILED)
                return DispatchOutcome.CUSTOMER_FORWARDED

            self._conversations.set_state(
                customer.customer_id, ConversationState.MENU, EmptyContext()
            )
            await self._send(agent_address, replies.customer_left_for_agent(customer.label))
            await self._send(customer.address, replies.main_menu(self._business_name))
            return DispatchOutcome.SESSION_RELEASED

        if agent_address is not None:
            await self._send(agent_address, replies.forwarded_to_agent(customer.label, text))
        return DispatchOutcome.CUSTOMER_FORWARDED

    async def _apply(
        self,
        customer: Customer,
        current_state: ConversationState,
        transition: Transition,
    ) -> None:
        if transition.changes_conversation:
            self._conversations.set_state(
                customer.customer_id,
                transition.next_state or current_state,
                transition.context,
            )
        for reply in transition.replies:
            await self._send(customer.address, reply)
        if transition.handoff_reason:
            await self._initiate_handoff(customer, transition.handoff_reason)

    async def _initiate_handoff(self, customer: Customer, reason: str) -> None:
        handoff = self._router.initiate(customer.customer_id, customer.address, reason)
        agent = self._router.find_available_agent()

        if agent is None or not self._router.assign(
            handoff.handoff_id, agent.agent_id, customer.address
        ):
            logger.info(
                "handoff_no_agent_available",
                extra={"handoff_id": mask(handoff.handoff_id), "customer_id": mask(customer.customer_id)},
            )
            self._conversations.set_state(
                customer.customer_id, ConversationState.MENU, EmptyContext()
            )
            await self._send(customer.address, self._settings.handoff_no_agents_message)
            return

        self._conversations.set_state(
            customer.customer_id, ConversationState.HUMAN_HANDOFF, EmptyContext()
        )
        await self._send(customer.address, replies.connecting_to_agent(agent.name))
        await self._send(
            agent.address,
            replies.new_chat_for_agent(customer.label, customer.address, reason),
        )

    def _retag(self, customer: Customer) -> None:
        """Recalcula o tier após o dispatch bem-sucedido do turno."""
        self._conversations.retag(customer.customer_id)

    # -- interrupções globais ---------------------------------------------

    async def _cmd_greeting(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        if parsed.keyword == "START" and self._broadcast.is_opted_out(customer.customer_id):
            self._broadcast.opt_in(customer.customer_id)
        return Transition(
            next_state=ConversationState.MENU,
            context=EmptyContext(),
            replies=[replies.main_menu(self._business_name)],
        )

    async def _cmd_catalog(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        return Transition(
            next_state=ConversationState.BROWSING_CATALOG,
            context=EmptyContext(),
            replies=[format_catalog_menu(self._commerce.list_categories())],
        )

    async def _cmd_cart(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        lines = self._commerce.get_cart(customer.customer_id)
        return Transition(replies=[format_cart(lines, self._commerce.currency)])

    async def _cmd_orders(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        orders = self._commerce.list_orders(customer.customer_id)
        return Transition(replies=[format_customer_orders(orders)])

    async def _cmd_agent(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        return Transition(handoff_reason=replies.CUSTOMER_REQUESTED_AGENT)

    async def _cmd_clear(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        self._commerce.clear_cart(customer.customer_id)
        return Transition(replies=[replies.CART_CLEARED])

    async def _cmd_opt_out(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        self._broadcast.opt_out(customer.customer_id)
        return Transition(replies=[replies.OPTED_OUT])

    async def _cmd_opt_in(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        self._broadcast.opt_in(customer.customer_id)
        return Transition(replies=[replies.OPTED_IN])

    async def _cmd_checkout(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        lines = self._commerce.get_cart(customer.customer_id)
        if not lines:
            return Transition(replies=[replies.CART_EMPTY_AT_CHECKOUT])
        cart = format_cart(lines, self._commerce.currency)
        return Transition(
            next_state=ConversationState.CHECKOUT,
            context=CheckoutContext(),
            replies=[f"{cart}\n\n{replies.CHECKOUT_INSTRUCTIONS}"],
        )

    async def _cmd_order_detail(self, customer: Customer, parsed: ParsedCommand) -> Transition:
        order_id = parsed.argument or 0
        order = self._commerce.get_order(order_id)
        if order is None or order.customer_id != customer.customer_id:
            return Transition(replies=[replies.order_not_found(order_id)])
        return Transition(replies=[format_order(order)])

    # -- envio -----------------------------------------------------------

    async def _send(self, address: str, text: str) -> bool:
        try:
            await self._transport.send(address, text)
        except TransportError as e:
            logger.error(
                "outbound_send_failed",
                extra={"to": mask(address), "error_type": type(e).__name__},
            )
            return False
        return True

    def _label_for(self, address: str) -> str:
        customer = self._conversations.find_by_address(address)
        return customer.label if customer is not None else address
