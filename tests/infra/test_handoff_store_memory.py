"""Testes do HandoffStore em memória."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from zapdesk.domain.enums import HandoffStatus
from zapdesk.domain.models import Agent, Handoff
from zapdesk.infra.handoff_store_memory import InMemoryHandoffStore

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture()
def store() -> InMemoryHandoffStore:
    return InMemoryHandoffStore()


@pytest.fixture()
def agent(store) -> Agent:
    agent = Agent(name="Bob", address="15559990001")
    store.save_agent(agent)
    return agent


def _handoff(customer_id: str = "cust-1", created_at: datetime = NOW) -> Handoff:
    return Handoff(
        customer_id=customer_id,
        customer_address="15550001111",
        reason="help",
        created_at=created_at,
    )


class TestOpenHandoff:
    def test_new_handoff_is_pending(self, store):
        handoff = _handoff()

        superseded = store.open_handoff(handoff, NOW)

        assert superseded == []
        assert store.get_handoff(handoff.handoff_id).status == HandoffStatus.PENDING

    def test_supersedes_open_handoff_and_frees_agent(self, store, agent):
        first = _handoff()
        store.open_handoff(first, NOW)
        store.activate(first.handoff_id, agent.agent_id, NOW)

        later = NOW + timedelta(minutes=1)
        superseded = store.open_handoff(_handoff(created_at=later), later)

        assert [h.handoff_id for h in superseded] == [first.handoff_id]
        assert store.get_handoff(first.handoff_id).resolved_at == later
        assert store.get_agent(agent.agent_id).current_customer_id is None

    def test_other_customers_untouched(self, store):
        other = _handoff("cust-2")
        store.open_handoff(other, NOW)

        store.open_handoff(_handoff("cust-1"), NOW)

        assert store.get_handoff(other.handoff_id).status == HandoffStatus.PENDING


class TestActivate:
    def test_links_agent(self, store, agent):
        handoff = _handoff()
        store.open_handoff(handoff, NOW)

        activated = store.activate(handoff.handoff_id, agent.agent_id, NOW)

        assert activated.status == HandoffStatus.ACTIVE
        assert activated.agent_id == agent.agent_id
        stored_agent = store.get_agent(agent.agent_id)
        assert stored_agent.current_customer_id == "cust-1"
        assert stored_agent.last_active_at == NOW

    def test_inactive_agent_refused(self, store, agent):
        store.save_agent(agent.model_copy(update={"active": False}))
        handoff = _handoff()
        store.open_handoff(handoff, NOW)

        assert store.activate(handoff.handoff_id, agent.agent_id, NOW) is None

    def test_unknown_ids(self, store, agent):
        assert store.activate("missing", agent.agent_id, NOW) is None


class TestSessions:
    def test_active_sessions_carry_addresses(self, store, agent):
        handoff = _handoff()
        store.open_handoff(handoff, NOW)
        store.activate(handoff.handoff_id, agent.agent_id, NOW)

        sessions = store.list_active_sessions()

        assert len(sessions) == 1
        assert sessions[0].agent_address == "15559990001"
        assert sessions[0].customer_address == "15550001111"

    def test_resolve_for_agent(self, store, agent):
        handoff = _handoff()
        store.open_handoff(handoff, NOW)
        store.activate(handoff.handoff_id, agent.agent_id, NOW)

        resolved = store.resolve_for_agent(agent.agent_id, NOW)

        assert resolved.status == HandoffStatus.RESOLVED
        assert store.list_active_sessions() == []

    def test_resolve_pending_ignores_active(self, store, agent):
        handoff = _handoff()
        store.open_handoff(handoff, NOW)
        store.activate(handoff.handoff_id, agent.agent_id, NOW)

        assert store.resolve_pending(handoff.handoff_id, NOW) is None

    def test_list_newest_first(self, store):
        old = _handoff("cust-1", NOW)
        new = _handoff("cust-2", NOW + timedelta(minutes=5))
        store.open_handoff(old, NOW)
        store.open_handoff(new, NOW)

        assert [h.handoff_id for h in store.list_handoffs()] == [new.handoff_id, old.handoff_id]


class TestUpdateAgentFields:
    def test_only_given_fields_change(self, store, agent):
        handoff = _handoff()
        store.open_handoff(handoff, NOW)
        store.activate(handoff.handoff_id, agent.agent_id, NOW)

        updated = store.update_agent_fields(agent.agent_id, {"name": "Robert"})

        assert updated.name == "Robert"
        assert updated.current_customer_id == "cust-1"
        assert store.get_agent(agent.agent_id).current_customer_id == "cust-1"

    def test_unknown_agent(self, store):
        assert store.update_agent_fields("missing", {"active": False}) is None
