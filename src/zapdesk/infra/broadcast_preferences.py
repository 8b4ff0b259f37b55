"""Registro de opt-out de broadcasts (memória e Firestore)."""

from __future__ import annotations

import logging
import threading
from typing import Any

from zapdesk.domain.errors import StoreError
from zapdesk.domain.models import utcnow
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


class InMemoryBroadcastPreferences:
    """Opt-outs em memória (não usar em produção)."""

    def __init__(self) -> None:
        self._opted_out: set[str] = set()
        self._lock = threading.Lock()

    def opt_out(self, customer_id: str) -> None:
        with self._lock:
            self._opted_out.add(customer_id)
        logger.info("broadcast_opt_out", extra={"customer_id": mask(customer_id)})

    def opt_in(self, customer_id: str) -> None:
        with self._lock:
            self._opted_out.discard(customer_id)
        logger.info("broadcast_opt_in", extra={"customer_id": mask(customer_id)})

    def is_opted_out(self, customer_id: str) -> bool:
        with self._lock:
            return customer_id in self._opted_out


class FirestoreBroadcastPreferences:
    """Opt-outs em Firestore: broadcast_optouts/{customer_id}."""

    def __init__(self, firestore_client: Any, collection: str = "broadcast_optouts") -> None:
        self._client = firestore_client
        self._collection = collection

    def _ref(self, customer_id: str):
        return self._client.collection(self._collection).document(customer_id)

    def opt_out(self, customer_id: str) -> None:
        try:
            self._ref(customer_id).set({"customer_id": customer_id, "at": utcnow().isoformat()})
        except Exception as e:
            raise StoreError(f"Firestore opt_out failed: {e}") from e
        logger.info("broadcast_opt_out", extra={"customer_id": mask(customer_id)})

    def opt_in(self, customer_id: str) -> None:
        try:
            self._ref(customer_id).delete()
        except Exception as e:
            raise StoreError(f"Firestore opt_in failed: {e}") from e
        logger.info("broadcast_opt_in", extra={"customer_id": mask(customer_id)})

    def is_opted_out(self, customer_id: str) -> bool:
        try:
            return bool(self._ref(customer_id).get().exists)
        except Exception as e:
            raise StoreError(f"Firestore get failed: {e}") from e
