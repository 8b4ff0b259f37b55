"""CustomerStore usando Firestore (produção).

Coleções: customers/{customer_id} e conversations/{customer_id}.
"""

from __future__ import annotations

import logging
from typing import Any

from zapdesk.domain.errors import StoreError
from zapdesk.domain.models import Conversation, Customer
from zapdesk.domain.protocols.stores import CustomerStore
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


class FirestoreCustomerStore(CustomerStore):
    """Clientes e conversas em Firestore.

    A criação usa um write batch (cliente + conversa). Unicidade por
    endereço depende do dispatcher: mensagens de um mesmo endereço são
    processadas sempre pelo mesmo worker.
    """

    def __init__(
        self,
        firestore_client: Any,
        customers_collection: str = "customers",
        conversations_collection: str = "conversations",
    ) -> None:
        self._client = firestore_client
        self._customers = customers_collection
        self._conversations = conversations_collection

    def _customer_ref(self, customer_id: str):
        return self._client.collection(self._customers).document(customer_id)

    def _conversation_ref(self, customer_id: str):
        return self._client.collection(self._conversations).document(customer_id)

    def get(self, customer_id: str) -> Customer | None:
        try:
            doc = self._customer_ref(customer_id).get()
        except Exception as e:
            logger.error(
                "Failed to load customer from Firestore",
                extra={"customer_id": mask(customer_id), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore get failed: {e}") from e
        if not doc.exists:
            return None
        return Customer.model_validate(doc.to_dict() or {})

    def get_by_address(self, address: str) -> Customer | None:
        try:
            query = (
                self._client.collection(self._customers)
                .where("address", "==", address)
                .limit(1)
            )
            docs = list(query.stream())
        except Exception as e:
            logger.error(
                "Failed to query customer by address",
                extra={"address": mask(address), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore query failed: {e}") from e
        if not docs:
            return None
        return Customer.model_validate(docs[0].to_dict() or {})

    def create(self, customer: Customer, conversation: Conversation) -> tuple[Customer, bool]:
        existing = self.get_by_address(customer.address)
        if existing is not None:
            return existing, False

        try:
            batch = self._client.batch()
            batch.set(self._customer_ref(customer.customer_id), customer.model_dump(mode="json"))
            batch.set(
                self._conversation_ref(customer.customer_id),
                conversation.model_dump(mode="json"),
            )
            batch.commit()
        except Exception as e:
            logger.error(
                "Failed to create customer in Firestore",
                extra={"customer_id": mask(customer.customer_id), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore create failed: {e}") from e

        logger.debug(
            "Customer created (Firestore)", extra={"customer_id": mask(customer.customer_id)}
        )
        return customer, True

    def save_customer(self, customer: Customer) -> None:
        try:
            self._customer_ref(customer.customer_id).set(customer.model_dump(mode="json"))
        except Exception as e:
            logger.error(
                "Failed to save customer to Firestore",
                extra={"customer_id": mask(customer.customer_id), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore save failed: {e}") from e

    def get_conversation(self, customer_id: str) -> Conversation | None:
        try:
            doc = self._conversation_ref(customer_id).get()
        except Exception as e:
            logger.error(
                "Failed to load conversation from Firestore",
                extra={"customer_id": mask(customer_id), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore get failed: {e}") from e
        if not doc.exists:
            return None
        return Conversation.model_validate(doc.to_dict() or {})

    def save_conversation(self, conversation: Conversation) -> None:
        try:
            self._conversation_ref(conversation.customer_id).set(
                conversation.model_dump(mode="json")
            )
        except Exception as e:
            logger.error(
                "Failed to save conversation to Firestore",
                extra={
                    "customer_id": mask(conversation.customer_id),
                    "error_type": type(e).__name__,
                },
            )
            raise StoreError(f"Firestore save failed: {e}") from e

    def adjust_lead_score(self, customer_id: str, delta: int) -> int:
        customer = self.get(customer_id)
        if customer is None:
            raise StoreError(f"customer not found: {customer_id}")
        new_score = max(0, customer.lead_score + delta)
        try:
            self._customer_ref(customer_id).update({"lead_score": new_score})
        except Exception as e:
            logger.error(
                "Failed to update lead score",
                extra={"customer_id": mask(customer_id), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore update failed: {e}") from e
        return new_score
