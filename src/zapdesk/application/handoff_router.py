"""Roteador de handoff: índice bidirecional atendente↔cliente.

O índice em memória espelha exatamente os handoffs `active` persistidos.
Ele é reconstruído por `restore()` no boot e toda mutação é pareada com
uma escrita durável na mesma operação: a escrita durável vem primeiro e o
índice só muda se ela tiver sucesso.

Nenhum outro componente acessa os mapas diretamente.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from zapdesk.domain.enums import HandoffStatus
from zapdesk.domain.errors import StoreError
from zapdesk.domain.models import Agent, Handoff, utcnow
from zapdesk.domain.protocols.stores import HandoffStore
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


def _idle_order_key(agent: Agent) -> tuple[bool, float, str]:
    """Ordem total: nunca ativos primeiro, depois last_active mais antigo, depois id."""
    if agent.last_active_at is None:
        return (False, 0.0, agent.agent_id)
    return (True, agent.last_active_at.timestamp(), agent.agent_id)


class HandoffRouter:
    """Dono do índice de sessões ao vivo e das transições de handoff."""

    def __init__(
        self,
        store: HandoffStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock
        self._customer_by_agent: dict[str, str] = {}
        self._agent_by_customer: dict[str, str] = {}
        self._lock = threading.RLock()
        self._restored = False

    @property
    def restored(self) -> bool:
        return self._restored

    # -- transições ------------------------------------------------------

    def initiate(self, customer_id: str, customer_address: str, reason: str) -> Handoff:
        """Abre um handoff pending, resolvendo qualquer aberto (último pedido vence).

        Se o cliente estiver em sessão ao vivo, a sessão é encerrada antes.
        """
        peer = self.peer_of(customer_address)
        if peer is not None:
            self.resolve(peer)

        handoff = Handoff(
            customer_id=customer_id,
            customer_address=customer_address,
            reason=reason,
            status=HandoffStatus.PENDING,
            created_at=self._clock(),
        )
        superseded = self._store.open_handoff(handoff, self._clock())
        for old in superseded:
            logger.info(
                "handoff_superseded",
                extra={
                    "handoff_id": mask(old.handoff_id),
                    "customer_id": mask(customer_id),
                    "previous_status": "open",
                },
            )
        logger.info(
            "handoff_initiated",
            extra={"handoff_id": mask(handoff.handoff_id), "customer_id": mask(customer_id)},
        )
        return handoff

    def find_available_agent(self) -> Agent | None:
        """Atendente ativo e livre há mais tempo (idle-longest-first).

        Falha de storage conta como nenhum atendente disponível.
        """
        try:
            agents = self._store.list_agents()
        except StoreError as e:
            logger.error("agent_lookup_failed", extra={"error_type": type(e).__name__})
            return None
        idle = [
            agent for agent in agents if agent.active and agent.current_customer_id is None
        ]
        if not idle:
            return None
        return min(idle, key=_idle_order_key)

    def assign(self, handoff_id: str, agent_id: str, customer_address: str) -> bool:
        """pending → active; grava no store e só então indexa os dois sentidos.

        Retorna False quando o handoff não foi atribuído (pré-condição
        violada ou falha de persistência); nesse caso o índice não muda.
        """
        try:
            agent = self._store.get_agent(agent_id)
        except StoreError as e:
            logger.error(
                "handoff_assign_failed",
                extra={"handoff_id": mask(handoff_id), "error_type": type(e).__name__},
            )
            return False
        if agent is None:
            logger.warning("assign_unknown_agent", extra={"agent_id": mask(agent_id)})
            return False

        with self._lock:
            if (
                agent.address in self._customer_by_agent
                or customer_address in self._agent_by_customer
            ):
                logger.warning(
                    "assign_index_conflict",
                    extra={"agent_id": mask(agent_id), "customer": mask(customer_address)},
                )
                return False

            try:
                activated = self._store.activate(handoff_id, agent_id, self._clock())
            except StoreError as e:
                logger.error(
                    "handoff_assign_failed",
                    extra={"handoff_id": mask(handoff_id), "error_type": type(e).__name__},
                )
                return False

            if activated is None:
                logger.warning(
                    "handoff_assign_rejected",
                    extra={"handoff_id": mask(handoff_id), "agent_id": mask(agent_id)},
                )
                return False

            self._customer_by_agent[agent.address] = customer_address
            self._agent_by_customer[customer_address] = agent.address

        logger.info(
            "handoff_assigned",
            extra={"handoff_id": mask(handoff_id), "agent_id": mask(agent_id)},
        )
        return True

    def resolve(self, agent_address: str) -> str | None:
        """active → resolved para a sessão do atendente.

        Retorna o endereço do cliente liberado, ou None se o atendente não
        tinha sessão ao vivo. Falha de persistência propaga `StoreError`
        e mantém o índice intacto.
        """
        with self._lock:
            customer_address = self._customer_by_agent.get(agent_address)
            if customer_address is None:
                return None

            agent = self._store.get_agent_by_address(agent_address)
            if agent is None:
                raise StoreError(f"agent record missing for {mask(agent_address)}")

            resolved = self._store.resolve_for_agent(agent.agent_id, self._clock())
            del self._customer_by_agent[agent_address]
            self._agent_by_customer.pop(customer_address, None)

        logger.info(
            "handoff_resolved",
            extra={
                "agent_id": mask(agent.agent_id),
                "handoff_id": mask(resolved.handoff_id) if resolved else "",
            },
        )
        return customer_address

    def expire_pending(self, max_age: timedelta) -> list[Handoff]:
        """pending → resolved para pedidos que nunca conseguiram atendente."""
        cutoff = self._clock() - max_age
        expired: list[Handoff] = []
        for handoff in self._store.list_handoffs(HandoffStatus.PENDING):
            if handoff.created_at > cutoff:
                continue
            resolved = self._store.resolve_pending(handoff.handoff_id, self._clock())
            if resolved is None:
                continue
            expired.append(resolved)
            logger.warning(
                "handoff_pending_expired",
                extra={
                    "handoff_id": mask(handoff.handoff_id),
                    "customer_id": mask(handoff.customer_id),
                },
            )
        return expired

    # -- consultas (somente índice) --------------------------------------

    def is_customer_in_session(self, customer_address: str) -> bool:
        with self._lock:
            return customer_address in self._agent_by_customer

    def peer_of(self, address: str) -> str | None:
        """Par ao vivo de um atendente ou de um cliente."""
        with self._lock:
            return self._customer_by_agent.get(address) or self._agent_by_customer.get(address)

    def customer_of_agent(self, agent_address: str) -> str | None:
        with self._lock:
            return self._customer_by_agent.get(agent_address)

    def live_sessions(self) -> dict[str, str]:
        """Cópia do índice atendente → cliente."""
        with self._lock:
            return dict(self._customer_by_agent)

    # -- boot ------------------------------------------------------------

    def restore(self) -> int:
        """Reconstrói o índice a partir dos handoffs ativos persistidos.

        Deve concluir antes de o dispatcher aceitar mensagens. Falhas de
        storage propagam (erro fatal de boot).
        """
        sessions = self._store.list_active_sessions()
        with self._lock:
            self._customer_by_agent.clear()
            self._agent_by_customer.clear()
            for session in sessions:
                if (
                    session.agent_address in self._customer_by_agent
                    or session.customer_address in self._agent_by_customer
                ):
                    logger.error(
                        "restore_duplicate_session",
                        extra={"handoff_id": mask(session.handoff_id)},
                    )
                    continue
                self._customer_by_agent[session.agent_address] = session.customer_address
                self._agent_by_customer[session.customer_address] = session.agent_address
            self._restored = True
        logger.info("handoff_index_restored", extra={"sessions": len(self._customer_by_agent)})
        return len(self._customer_by_agent)

    # -- leitura para dashboard -------------------------------------------

    def list_handoffs(self, status: HandoffStatus | None = None) -> list[Handoff]:
        return self._store.list_handoffs(status)

    def list_agents(self) -> list[Agent]:
        return sorted(self._store.list_agents(), key=lambda a: a.name.lower())

    def get_agent_by_address(self, address: str) -> Agent | None:
        return self._store.get_agent_by_address(address)

    def register_agent(self, name: str, address: str) -> Agent:
        """Cria atendente; endereço duplicado levanta ValueError."""
        if self._store.get_agent_by_address(address) is not None:
            raise ValueError(f"agent address already registered: {mask(address)}")
        agent = Agent(name=name, address=address)
        self._store.save_agent(agent)
        logger.info("agent_registered", extra={"agent_id": mask(agent.agent_id)})
        return agent

    def update_agent(
        self,
        agent_id: str,
        name: str | None = None,
        active: bool | None = None,
    ) -> Agent | None:
        """Altera nome e/ou flag `active` sem tocar na atribuição corrente."""
        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if active is not None:
            updates["active"] = active
        if not updates:
            return self._store.get_agent(agent_id)
        return self._store.update_agent_fields(agent_id, updates)
