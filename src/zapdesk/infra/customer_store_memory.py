"""CustomerStore em memória (apenas dev/testes)."""

from __future__ import annotations

import logging
import threading

from zapdesk.domain.errors import StoreError
from zapdesk.domain.models import Conversation, Customer
from zapdesk.domain.protocols.stores import CustomerStore
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


class InMemoryCustomerStore(CustomerStore):
    """Armazenamento em memória (não usar em produção).

    Retorna cópias dos registros, como um banco real faria.
    """

    def __init__(self) -> None:
        self._customers: dict[str, Customer] = {}
        self._by_address: dict[str, str] = {}
        self._conversations: dict[str, Conversation] = {}
        self._lock = threading.RLock()

    def get(self, customer_id: str) -> Customer | None:
        with self._lock:
            customer = self._customers.get(customer_id)
            return customer.model_copy(deep=True) if customer else None

    def get_by_address(self, address: str) -> Customer | None:
        with self._lock:
            customer_id = self._by_address.get(address)
            return self.get(customer_id) if customer_id else None

    def create(self, customer: Customer, conversation: Conversation) -> tuple[Customer, bool]:
        with self._lock:
            existing = self.get_by_address(customer.address)
            if existing is not None:
                return existing, False
            self._customers[customer.customer_id] = customer.model_copy(deep=True)
            self._by_address[customer.address] = customer.customer_id
            self._conversations[customer.customer_id] = conversation.model_copy(deep=True)
            logger.debug(
                "Customer created (in-memory)",
                extra={"customer_id": mask(customer.customer_id)},
            )
            return customer.model_copy(deep=True), True

    def save_customer(self, customer: Customer) -> None:
        with self._lock:
            if customer.customer_id not in self._customers:
                raise StoreError(f"customer not found: {customer.customer_id}")
            self._customers[customer.customer_id] = customer.model_copy(deep=True)

    def get_conversation(self, customer_id: str) -> Conversation | None:
        with self._lock:
            conversation = self._conversations.get(customer_id)
            return conversation.model_copy(deep=True) if conversation else None

    def save_conversation(self, conversation: Conversation) -> None:
        with self._lock:
            if conversation.customer_id not in self._customers:
                raise StoreError(f"customer not found: {conversation.customer_id}")
            self._conversations[conversation.customer_id] = conversation.model_copy(deep=True)

    def adjust_lead_score(self, customer_id: str, delta: int) -> int:
        with self._lock:
            customer = self._customers.get(customer_id)
            if customer is None:
                raise StoreError(f"customer not found: {customer_id}")
            customer.lead_score = max(0, customer.lead_score + delta)
            return customer.lead_score
