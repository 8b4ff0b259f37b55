"""HandoffStore em memória (apenas dev/testes)."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any

from zapdesk.domain.enums import HandoffStatus
from zapdesk.domain.models import Agent, Handoff, LiveSession
from zapdesk.domain.protocols.stores import HandoffStore
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


class InMemoryHandoffStore(HandoffStore):
    """Handoffs e atendentes em memória (não usar em produção).

    Transições multi-registro acontecem sob um único lock, o que as
    torna atômicas para leitores deste processo.
    """

    def __init__(self) -> None:
        self._handoffs: dict[str, Handoff] = {}
        self._agents: dict[str, Agent] = {}
        self._lock = threading.RLock()

    # -- handoffs --------------------------------------------------------

    def open_handoff(self, handoff: Handoff, now: datetime) -> list[Handoff]:
        with self._lock:
            superseded: list[Handoff] = []
            for existing in self._handoffs.values():
                if existing.customer_id != handoff.customer_id or not existing.status.is_open:
                    continue
                if existing.status == HandoffStatus.ACTIVE and existing.agent_id:
                    self._release_agent(existing.agent_id, now)
                existing.status = HandoffStatus.RESOLVED
                existing.resolved_at = now
                superseded.append(existing.model_copy(deep=True))

            stored = handoff.model_copy(
                update={"status": HandoffStatus.PENDING, "agent_id": None}, deep=True
            )
            self._handoffs[stored.handoff_id] = stored
            logger.debug(
                "Handoff opened (in-memory)",
                extra={"handoff_id": mask(stored.handoff_id), "superseded": len(superseded)},
            )
            return superseded

    def get_handoff(self, handoff_id: str) -> Handoff | None:
        with self._lock:
            handoff = self._handoffs.get(handoff_id)
            return handoff.model_copy(deep=True) if handoff else None

    def list_handoffs(self, status: HandoffStatus | None = None) -> list[Handoff]:
        with self._lock:
            items = [
                h.model_copy(deep=True)
                for h in self._handoffs.values()
                if status is None or h.status == status
            ]
        return sorted(items, key=lambda h: h.created_at, reverse=True)

    def activate(self, handoff_id: str, agent_id: str, now: datetime) -> Handoff | None:
        with self._lock:
            handoff = self._handoffs.get(handoff_id)
            agent = self._agents.get(agent_id)
            if handoff is None or agent is None:
                return None
            if handoff.status != HandoffStatus.PENDING:
                return None
            if not agent.active or agent.current_customer_id is not None:
                return None

            handoff.status = HandoffStatus.ACTIVE
            handoff.agent_id = agent_id
            agent.current_customer_id = handoff.customer_id
            agent.last_active_at = now
            return handoff.model_copy(deep=True)

    def resolve_for_agent(self, agent_id: str, now: datetime) -> Handoff | None:
        with self._lock:
            resolved: Handoff | None = None
            for handoff in self._handoffs.values():
                if handoff.agent_id == agent_id and handoff.status == HandoffStatus.ACTIVE:
                    handoff.status = HandoffStatus.RESOLVED
                    handoff.resolved_at = now
                    resolved = handoff.model_copy(deep=True)
            self._release_agent(agent_id, now)
            return resolved

    def resolve_pending(self, handoff_id: str, now: datetime) -> Handoff | None:
        with self._lock:
            handoff = self._handoffs.get(handoff_id)
            if handoff is None or handoff.status != HandoffStatus.PENDING:
                return None
            handoff.status = HandoffStatus.RESOLVED
            handoff.resolved_at = now
            return handoff.model_copy(deep=True)

    def list_active_sessions(self) -> list[LiveSession]:
        sessions: list[LiveSession] = []
        with self._lock:
            for handoff in self._handoffs.values():
                if handoff.status != HandoffStatus.ACTIVE or handoff.agent_id is None:
                    continue
                agent = self._agents.get(handoff.agent_id)
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
        with self._lock:
            agent = self._agents.get(agent_id)
            return agent.model_copy(deep=True) if agent else None

    def get_agent_by_address(self, address: str) -> Agent | None:
        with self._lock:
            for agent in self._agents.values():
                if agent.address == address:
                    return agent.model_copy(deep=True)
        return None

    def list_agents(self) -> list[Agent]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self._agents.values()]

    def save_agent(self, agent: Agent) -> None:
        with self._lock:
            self._agents[agent.agent_id] = agent.model_copy(deep=True)

    def update_agent_fields(self, agent_id: str, fields: dict[str, Any]) -> Agent | None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return None
            for key, value in fields.items():
                setattr(agent, key, value)
            return agent.model_copy(deep=True)

    def _release_agent(self, agent_id: str, now: datetime) -> None:
        agent = self._agents.get(agent_id)
        if agent is not None:
            agent.current_customer_id = None
            agent.last_active_at = now
