"""Estado durável de conversa por cliente com cache no processo.

Toda mudança visível de estado passa por aqui. O cache é write-through:
a escrita durável acontece primeiro e só depois o cache é atualizado,
de modo que uma falha de persistência nunca deixa o cache adiantado.
O cache é LRU com até `max_cached` clientes; um miss relê do store.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from zapdesk.domain.context import StateContext, coerce_context
from zapdesk.domain.enums import AudienceTier, ConversationState, tier_for_score
from zapdesk.domain.errors import StoreError
from zapdesk.domain.models import Conversation, Customer, utcnow
from zapdesk.domain.protocols.stores import CustomerStore
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


@dataclass(slots=True)
class UpsertResult:
    """Cliente carregado/criado e se ele é novo."""

    customer: Customer
    created: bool


class ConversationStore:
    """Fachada de clientes e conversas usada pelo dispatcher e handlers."""

    def __init__(
        self,
        store: CustomerStore,
        clock: Callable[[], datetime] = utcnow,
        max_cached: int = 10000,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_cached = max_cached
        self._customers: OrderedDict[str, Customer] = OrderedDict()
        self._ids_by_address: dict[str, str] = {}
        self._conversations: OrderedDict[str, Conversation] = OrderedDict()
        self._lock = threading.RLock()

    # -- clientes --------------------------------------------------------

    def get_or_create(self, address: str, name_hint: str | None = None) -> UpsertResult:
        """Upsert idempotente por endereço.

        Na primeira vez cria cliente + conversa (MENU) atomicamente. Nas
        seguintes atualiza last_seen e preenche o nome se ainda vazio.
        """
        now = self._clock()
        existing = self.find_by_address(address)

        if existing is None:
            candidate = Customer(address=address, first_seen_at=now, last_seen_at=now)
            conversation = Conversation(
                customer_id=candidate.customer_id,
                state=ConversationState.MENU,
                last_activity_at=now,
            )
            customer, created = self._store.create(candidate, conversation)
            if created:
                with self._lock:
                    self._cache_customer(customer)
                    self._cache_conversation(conversation)
                logger.info("customer_created", extra={"customer_id": mask(customer.customer_id)})
                return UpsertResult(customer=customer.model_copy(deep=True), created=True)
            existing = customer

        updates: dict[str, object] = {"last_seen_at": now}
        if name_hint and not existing.display_name:
            updates["display_name"] = name_hint.strip()
        touched = existing.model_copy(update=updates)
        self._save_customer(touched)
        return UpsertResult(customer=touched.model_copy(deep=True), created=False)

    def get_customer(self, customer_id: str) -> Customer | None:
        with self._lock:
            cached = self._customers.get(customer_id)
            if cached is not None:
                self._customers.move_to_end(customer_id)
                return cached.model_copy(deep=True)
        customer = self._store.get(customer_id)
        if customer is not None:
            with self._lock:
                self._cache_customer(customer)
        return customer

    def find_by_address(self, address: str) -> Customer | None:
        with self._lock:
            customer_id = self._ids_by_address.get(address)
            if customer_id is not None and customer_id in self._customers:
                self._customers.move_to_end(customer_id)
                return self._customers[customer_id].model_copy(deep=True)
        customer = self._store.get_by_address(address)
        if customer is not None:
            with self._lock:
                self._cache_customer(customer)
        return customer

    def set_display_name(self, customer_id: str, name: str) -> Customer:
        customer = self._require_customer(customer_id)
        updated = customer.model_copy(update={"display_name": name})
        self._save_customer(updated)
        return updated

    def set_blocked(self, customer_id: str, blocked: bool) -> Customer:
        customer = self._require_customer(customer_id)
        updated = customer.model_copy(update={"is_blocked": blocked})
        self._save_customer(updated)
        logger.info(
            "customer_block_changed",
            extra={"customer_id": mask(customer_id), "blocked": blocked},
        )
        return updated

    def adjust_lead_score(self, customer_id: str, delta: int) -> int:
        """Ajusta o lead score (piso 0); nunca falha por resultado negativo."""
        new_score = self._store.adjust_lead_score(customer_id, delta)
        with self._lock:
            cached = self._customers.get(customer_id)
            if cached is not None:
                cached.lead_score = new_score
        logger.debug(
            "lead_score_adjusted",
            extra={"customer_id": mask(customer_id), "delta": delta, "score": new_score},
        )
        return new_score

    def set_tier(self, customer_id: str, tier: AudienceTier) -> Customer:
        customer = self._require_customer(customer_id)
        tags = customer.with_tier(tier)
        if tags == customer.tags:
            return customer
        updated = customer.model_copy(update={"tags": tags})
        self._save_customer(updated)
        return updated

    def retag(self, customer_id: str) -> AudienceTier:
        """Recalcula o tier de audiência a partir do lead score atual."""
        customer = self._require_customer(customer_id)
        tier = tier_for_score(customer.lead_score)
        self.set_tier(customer_id, tier)
        return tier

    def record_order(self, customer_id: str, total: float) -> Customer:
        customer = self._require_customer(customer_id)
        updated = customer.model_copy(
            update={
                "total_orders": customer.total_orders + 1,
                "total_spent": round(customer.total_spent + total, 2),
            }
        )
        self._save_customer(updated)
        return updated

    # -- conversa --------------------------------------------------------

    def get_state(self, customer_id: str) -> tuple[ConversationState, StateContext]:
        conversation = self._load_conversation(customer_id)
        return conversation.state, conversation.context.model_copy(deep=True)

    def set_state(
        self,
        customer_id: str,
        state: ConversationState,
        context: StateContext | None = None,
    ) -> None:
        """Troca o estado; `context` substitui o anterior por inteiro.

        Sem `context`, o contexto atual é mantido (convertido para o padrão
        do novo estado se não pertencer a ele).
        """
        current = self._load_conversation(customer_id)
        next_context = current.context if context is None else context
        updated = current.model_copy(
            update={
                "state": state,
                "context": coerce_context(state, next_context),
                "last_activity_at": self._clock(),
            }
        )
        self._store.save_conversation(updated)
        with self._lock:
            self._cache_conversation(updated)
        if current.state != state:
            logger.info(
                "conversation_state_changed",
                extra={
                    "customer_id": mask(customer_id),
                    "from_state": current.state.value,
                    "to_state": state.value,
                },
            )

    # -- internos --------------------------------------------------------

    def _load_conversation(self, customer_id: str) -> Conversation:
        with self._lock:
            cached = self._conversations.get(customer_id)
            if cached is not None:
                self._conversations.move_to_end(customer_id)
                return cached.model_copy(deep=True)
        conversation = self._store.get_conversation(customer_id)
        if conversation is None:
            raise StoreError(f"conversation not found for customer {customer_id}")
        with self._lock:
            self._cache_conversation(conversation)
        return conversation.model_copy(deep=True)

    def _require_customer(self, customer_id: str) -> Customer:
        customer = self.get_customer(customer_id)
        if customer is None:
            raise StoreError(f"customer not found: {customer_id}")
        return customer

    def _save_customer(self, customer: Customer) -> None:
        self._store.save_customer(customer)
        with self._lock:
            self._cache_customer(customer)

    def _cache_customer(self, customer: Customer) -> None:
        self._customers[customer.customer_id] = customer.model_copy(deep=True)
        self._customers.move_to_end(customer.customer_id)
        self._ids_by_address[customer.address] = customer.customer_id
        while len(self._customers) > self._max_cached:
            evicted_id, evicted = self._customers.popitem(last=False)
            if self._ids_by_address.get(evicted.address) == evicted_id:
                del self._ids_by_address[evicted.address]
            self._conversations.pop(evicted_id, None)

    def _cache_conversation(self, conversation: Conversation) -> None:
        self._conversations[conversation.customer_id] = conversation
        self._conversations.move_to_end(conversation.customer_id)
        while len(self._conversations) > self._max_cached:
            self._conversations.popitem(last=False)

    def cached_customers(self) -> int:
        with self._lock:
            return len(self._customers)
