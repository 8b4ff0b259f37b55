"""HandoffStore usando Firestore (produção).

Coleções: handoffs/{handoff_id} e agents/{agent_id}. Transições que
tocam handoff e atendente são gravadas em um único write batch.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from zapdesk.domain.enums import HandoffStatus
from zapdesk.domain.errors import HandoffAssignmentError, StoreError
from zapdesk.domain.models import Agent, Handoff, LiveSession
from zapdesk.domain.protocols.stores import HandoffStore
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


class FirestoreHandoffStore(HandoffStore):
    """Handoffs e atendentes em Firestore."""

    def __init__(
        self,
        firestore_client: Any,
        handoffs_collection: str = "handoffs",
        agents_collection: str = "agents",
    ) -> None:
        self._client = firestore_client
        self._handoffs = handoffs_collection
        self._agents = agents_collection

    def _handoff_ref(self, handoff_id: str):
        return self._client.collection(self._handoffs).document(handoff_id)

    def _agent_ref(self, agent_id: str):
        return self._client.collection(self._agents).document(agent_id)

    def _query_handoffs(self, field: str, value: str) -> list[Handoff]:
        try:
            docs = self._client.collection(self._handoffs).where(field, "==", value).stream()
            return [Handoff.model_validate(doc.to_dict() or {}) for doc in docs]
        except Exception as e:
            logger.error(
                "Failed to query handoffs",
                extra={"field": field, "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore query failed: {e}") from e

    def _commit(self, batch, operation: str, error_cls: type[StoreError] = StoreError) -> None:
        try:
            batch.commit()
        except Exception as e:
            logger.error(
                "Firestore batch commit failed",
                extra={"operation": operation, "error_type": type(e).__name__},
            )
            raise error_cls(f"Firestore {operation} failed: {e}") from e

    # -- handoffs --------------------------------------------------------

    def open_handoff(self, handoff: Handoff, now: datetime) -> list[Handoff]:
        existing = self._query_handoffs("customer_id", handoff.customer_id)
        batch = self._client.batch()
        superseded: list[Handoff] = []
        for item in existing:
            if not item.status.is_open:
                continue
            if item.status == HandoffStatus.ACTIVE and item.agent_id:
                batch.update(
                    self._agent_ref(item.agent_id),
                    {"current_customer_id": None, "last_active_at": now.isoformat()},
                )
            resolved = item.model_copy(
                update={"status": HandoffStatus.RESOLVED, "resolved_at": now}
            )
            batch.update(
                self._handoff_ref(item.handoff_id),
                {"status": HandoffStatus.RESOLVED.value, "resolved_at": now.isoformat()},
            )
            superseded.append(resolved)

        pending = handoff.model_copy(update={"status": HandoffStatus.PENDING, "agent_id": None})
        batch.set(self._handoff_ref(pending.handoff_id), pending.model_dump(mode="json"))
        self._commit(batch, "open_handoff")
        return superseded

    def get_handoff(self, handoff_id: str) -> Handoff | None:
        try:
            doc = self._handoff_ref(handoff_id).get()
        except Exception as e:
            raise StoreError(f"Firestore get failed: {e}") from e
        if not doc.exists:
            return None
        return Handoff.model_validate(doc.to_dict() or {})

    def list_handoffs(self, status: HandoffStatus | None = None) -> list[Handoff]:
        if status is not None:
            items = self._query_handoffs("status", status.value)
        else:
            try:
                docs = self._client.collection(self._handoffs).stream()
                items = [Handoff.model_validate(doc.to_dict() or {}) for doc in docs]
            except Exception as e:
                raise StoreError(f"Firestore list failed: {e}") from e
        return sorted(items, key=lambda h: h.created_at, reverse=True)

    def activate(self, handoff_id: str, agent_id: str, now: datetime) -> Handoff | None:
        handoff = self.get_handoff(handoff_id)
        agent = self.get_agent(agent_id)
        if handoff is None or agent is None:
            return None
        if handoff.status != HandoffStatus.PENDING:
            return None
        if not agent.active or agent.current_customer_id is not None:
            return None

        batch = self._client.batch()
        batch.update(
            self._handoff_ref(handoff_id),
            {"status": HandoffStatus.ACTIVE.value, "agent_id": agent_id},
        )
        batch.update(
            self._agent_ref(agent_id),
            {"current_customer_id": handoff.customer_id, "last_active_at": now.isoformat()},
        )
        self._commit(batch, "activate", HandoffAssignmentError)
        return handoff.model_copy(update={"status": HandoffStatus.ACTIVE, "agent_id": agent_id})

    def resolve_for_agent(self, agent_id: str, now: datetime) -> Handoff | None:
        active = [
            h for h in self._query_handoffs("agent_id", agent_id)
            if h.status == HandoffStatus.ACTIVE
        ]
        batch = self._client.batch()
        resolved: Handoff | None = None
        for handoff in active:
            batch.update(
                self._handoff_ref(handoff.handoff_id),
                {"status": HandoffStatus.RESOLVED.value, "resolved_at": now.isoformat()},
            )
            resolved = handoff.model_copy(
                update={"status": HandoffStatus.RESOLVED, "resolved_at": now}
            )
        batch.update(
            self._agent_ref(agent_id),
            {"current_customer_id": None, "last_active_at": now.isoformat()},
        )
        self._commit(batch, "resolve_for_agent")
        return resolved

    def resolve_pending(self, handoff_id: str, now: datetime) -> Handoff | None:
        handoff = self.get_handoff(handoff_id)
        if handoff is None or handoff.status != HandoffStatus.PENDING:
            return None
        try:
            self._handoff_ref(handoff_id).update(
                {"status": HandoffStatus.RESOLVED.value, "resolved_at": now.isoformat()}
            )
        except Exception as e:
            raise StoreError(f"Firestore update failed: {e}") from e
        return handoff.model_copy(update={"status": HandoffStatus.RESOLVED, "resolved_at": now})

    def list_active_sessions(self) -> list[LiveSession]:
        agents = {agent.agent_id: agent for agent in self.list_agents()}
        sessions: list[LiveSession] = []
        for handoff in self._query_handoffs("status", HandoffStatus.ACTIVE.value):
            agent = agents.get(handoff.agent_id or "")
            if agent is None:
                logger.warning(
                    "active_handoff_without_agent",
                    extra={"handoff_id": mask(handoff.handoff_id)},
                )
                continue
            sessions.append(
                LiveSession(
                    handoff_id=handoff.handoff_id,
                    agent_id=agent.agent_id,
                    agent_address=agent.address,
                    customer_id=handoff.customer_id,
                    customer_address=handoff.customer_address,
                )
            )
        return sessions

    # -- agents ----------------------------------------------------------

    def get_agent(self, agent_id: str) -> Agent | None:
        try:
            doc = self._agent_ref(agent_id).get()
        except Exception as e:
            raise StoreError(f"Firestore get failed: {e}") from e
        if not doc.exists:
            return None
        return Agent.model_validate(doc.to_dict() or {})

    def get_agent_by_address(self, address: str) -> Agent | None:
        try:
            query = self._client.collection(self._agents).where("address", "==", address).limit(1)
            docs = list(query.stream())
        except Exception as e:
            raise StoreError(f"Firestore query failed: {e}") from e
        if not docs:
            return None
        return Agent.model_validate(docs[0].to_dict() or {})

    def list_agents(self) -> list[Agent]:
        try:
            docs = self._client.collection(self._agents).stream()
            return [Agent.model_validate(doc.to_dict() or {}) for doc in docs]
        except Exception as e:
            raise StoreError(f"Firestore list failed: {e}") from e

    def save_agent(self, agent: Agent) -> None:
        try:
            self._agent_ref(agent.agent_id).set(agent.model_dump(mode="json"))
        except Exception as e:
            logger.error(
                "Failed to save agent to Firestore",
                extra={"agent_id": mask(agent.agent_id), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore save failed: {e}") from e

    def update_agent_fields(self, agent_id: str, fields: dict[str, Any]) -> Agent | None:
        ref = self._agent_ref(agent_id)
        try:
            doc = ref.get()
            if not doc.exists:
                return None
            ref.update(fields)
        except Exception as e:
            logger.error(
                "Failed to update agent in Firestore",
                extra={"agent_id": mask(agent_id), "error_type": type(e).__name__},
            )
            raise StoreError(f"Firestore update failed: {e}") from e
        return Agent.model_validate({**(doc.to_dict() or {}), **fields})
