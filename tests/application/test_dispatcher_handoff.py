"""Testes de handoff no Dispatcher: atendente, sessão ao vivo e encerramento."""

from __future__ import annotations

import pytest
import pytest_asyncio

from zapdesk.application import replies
from zapdesk.domain.enums import ConversationState, DispatchOutcome, HandoffStatus
from zapdesk.domain.errors import StoreError

CUSTOMER = "15550001111"
OTHER = "15550002222"
AGENT = "15559990001"


async def _say(runtime, envelope, text: str, address: str = CUSTOMER) -> DispatchOutcome:
    return await runtime.dispatcher.handle(envelope(address, text))


def _state(runtime, address: str = CUSTOMER) -> ConversationState:
    customer = runtime.conversations.find_by_address(address)
    return runtime.conversations.get_state(customer.customer_id)[0]


@pytest.fixture()
def agent(runtime):
    return runtime.router.register_agent("Bob", AGENT)


@pytest_asyncio.fixture
async def live_session(runtime, envelope, transport, agent):
    """Cliente Alice conectada ao atendente Bob."""
    await _say(runtime, envelope, "Alice")
    await _say(runtime, envelope, "AGENT")
    transport.clear()
    return agent


class TestHandoffInitiation:
    @pytest.mark.asyncio
    async def test_agent_command_connects_available_agent(
        self, runtime, envelope, transport, agent
    ):
        await _say(runtime, envelope, "Alice")
        transport.clear()

        await _say(runtime, envelope, "AGENT")

        assert _state(runtime) == ConversationState.HUMAN_HANDOFF
        assert runtime.router.peer_of(CUSTOMER) == AGENT
        assert runtime.router.peer_of(AGENT) == CUSTOMER
        assert transport.messages_to(CUSTOMER) == [replies.connecting_to_agent("Bob")]
        assert transport.messages_to(AGENT) == [
            replies.new_chat_for_agent("Alice", CUSTOMER, replies.CUSTOMER_REQUESTED_AGENT)
        ]
        stored = runtime.router.get_agent_by_address(AGENT)
        assert stored.current_customer_id is not None

    @pytest.mark.asyncio
    async def test_no_agents_keeps_pending_and_returns_to_menu(
        self, runtime, envelope, transport, settings
    ):
        await _say(runtime, envelope, "Alice")
        transport.clear()

        await _say(runtime, envelope, "4")

        pending = runtime.router.list_handoffs(HandoffStatus.PENDING)
        assert len(pending) == 1
        assert pending[0].reason == replies.MENU_REQUESTED_AGENT
        assert _state(runtime) == ConversationState.MENU
        assert transport.messages_to(CUSTOMER) == [settings.handoff_no_agents_message]
        assert runtime.router.is_customer_in_session(CUSTOMER) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing_call", ["get_agent", "list_agents"])
    async def test_agent_store_failure_sends_busy_message(
        self, runtime, envelope, transport, settings, agent, monkeypatch, failing_call
    ):
        await _say(runtime, envelope, "Alice")
        transport.clear()

        def _unavailable(*args, **kwargs):
            raise StoreError("unavailable")

        monkeypatch.setattr(runtime.router._store, failing_call, _unavailable)

        outcome = await _say(runtime, envelope, "AGENT")

        assert outcome == DispatchOutcome.GLOBAL_COMMAND
        assert _state(runtime) == ConversationState.MENU
        assert transport.messages_to(CUSTOMER) == [settings.handoff_no_agents_message]
        assert len(runtime.router.list_handoffs(HandoffStatus.PENDING)) == 1
        assert runtime.router.live_sessions() == {}

    @pytest.mark.asyncio
    async def test_busy_agent_not_reassigned(self, runtime, envelope, transport, live_session):
        await _say(runtime, envelope, "Carol", OTHER)
        transport.clear()

        await _say(runtime, envelope, "HUMAN", OTHER)

        assert runtime.router.peer_of(AGENT) == CUSTOMER
        assert runtime.router.is_customer_in_session(OTHER) is False
        assert _state(runtime, OTHER) == ConversationState.MENU

    @pytest.mark.asyncio
    async def test_idle_longest_agent_chosen(self, runtime, envelope, clock, agent):
        """Após encerrar, Bob fica com last_active recente; Dave (nunca ativo) vem antes."""
        await _say(runtime, envelope, "Alice")
        await _say(runtime, envelope, "AGENT")
        clock.advance(minutes=5)
        await _say(runtime, envelope, "END", AGENT)
        runtime.router.register_agent("Dave", "15559990002")

        await _say(runtime, envelope, "AGENT")

        assert runtime.router.peer_of(CUSTOMER) == "15559990002"

    @pytest.mark.asyncio
    async def test_single_open_handoff_per_customer(self, runtime, envelope):
        """Novo pedido resolve o pending anterior (último pedido vence)."""
        await _say(runtime, envelope, "Alice")
        await _say(runtime, envelope, "AGENT")
        await _say(runtime, envelope, "AGENT")

        handoffs = runtime.router.list_handoffs()
        open_handoffs = [h for h in handoffs if h.status.is_open]
        assert len(handoffs) == 2
        assert len(open_handoffs) == 1


class TestLiveSession:
    @pytest.mark.asyncio
    async def test_customer_text_forwarded_with_label(
        self, runtime, envelope, transport, live_session
    ):
        outcome = await _say(runtime, envelope, "where is my order?")

        assert outcome == DispatchOutcome.CUSTOMER_FORWARDED
        assert transport.messages_to(AGENT) == ["[Alice]: where is my order?"]
        assert transport.messages_to(CUSTOMER) == []

    @pytest.mark.asyncio
    async def test_global_commands_forwarded_during_session(
        self, runtime, envelope, transport, live_session
    ):
        """Durante a sessão, CATALOG não é consumido como comando."""
        await _say(runtime, envelope, "CATALOG")

        assert _state(runtime) == ConversationState.HUMAN_HANDOFF
        assert transport.messages_to(AGENT) == ["[Alice]: CATALOG"]

    @pytest.mark.asyncio
    async def test_agent_text_forwarded_verbatim(
        self, runtime, envelope, transport, live_session
    ):
        outcome = await _say(runtime, envelope, "Hi Alice, checking now", AGENT)

        assert outcome == DispatchOutcome.AGENT_FORWARDED
        assert transport.messages_to(CUSTOMER) == ["Hi Alice, checking now"]

    @pytest.mark.asyncio
    async def test_customer_menu_releases_session(
        self, runtime, envelope, transport, live_session
    ):
        outcome = await _say(runtime, envelope, "menu")

        assert outcome == DispatchOutcome.SESSION_RELEASED
        assert _state(runtime) == ConversationState.MENU
        assert runtime.router.peer_of(AGENT) is None
        assert runtime.router.get_agent_by_address(AGENT).current_customer_id is None
        assert runtime.router.list_handoffs(HandoffStatus.ACTIVE) == []
        assert transport.messages_to(AGENT) == [replies.customer_left_for_agent("Alice")]
        assert transport.messages_to(CUSTOMER) == [replies.main_menu("Acme Store")]

    @pytest.mark.asyncio
    async def test_agent_message_shard_key_is_customer(self, runtime, envelope, live_session):
        assert runtime.dispatcher.shard_key(envelope(AGENT, "hi")) == CUSTOMER
        assert runtime.dispatcher.shard_key(envelope(OTHER, "hi")) == OTHER


class TestAgentCommands:
    @pytest.mark.asyncio
    async def test_end_resolves_and_notifies_both(
        self, runtime, envelope, transport, live_session
    ):
        outcome = await _say(runtime, envelope, "done", AGENT)

        assert outcome == DispatchOutcome.AGENT_COMMAND
        assert _state(runtime) == ConversationState.MENU
        assert runtime.router.is_customer_in_session(CUSTOMER) is False
        assert runtime.router.get_agent_by_address(AGENT).current_customer_id is None
        resolved = runtime.router.list_handoffs(HandoffStatus.RESOLVED)
        assert len(resolved) == 1
        assert resolved[0].resolved_at is not None
        assert transport.messages_to(CUSTOMER) == [
            replies.chat_ended_for_customer("Bob", "Acme Store")
        ]
        assert transport.messages_to(AGENT) == [replies.chat_ended_for_agent("Alice")]

    @pytest.mark.asyncio
    async def test_end_without_session(self, runtime, envelope, transport, agent):
        await _say(runtime, envelope, "/end", AGENT)

        assert transport.messages_to(AGENT) == [replies.AGENT_NO_SESSION]

    @pytest.mark.asyncio
    async def test_status_idle_and_busy(self, runtime, envelope, transport, agent):
        await _say(runtime, envelope, "STATUS", AGENT)
        assert transport.messages_to(AGENT) == [replies.AGENT_STATUS_IDLE]

        await _say(runtime, envelope, "Alice")
        await _say(runtime, envelope, "AGENT")
        transport.clear()

        await _say(runtime, envelope, "status", AGENT)
        assert transport.messages_to(AGENT) == [replies.agent_status_busy("Alice", CUSTOMER)]

    @pytest.mark.asyncio
    async def test_idle_agent_free_text_gets_usage_hint(
        self, runtime, envelope, transport, agent
    ):
        await _say(runtime, envelope, "hello?", AGENT)

        assert transport.messages_to(AGENT) == [replies.AGENT_USAGE_HINT]
        assert runtime.conversations.find_by_address(AGENT) is None


class TestSendTestMessage:
    @pytest.mark.asyncio
    async def test_bypasses_state_machine(self, runtime, transport):
        sent = await runtime.dispatcher.send_test_message("+1 555 000 1111", "ping")

        assert sent is True
        assert transport.messages_to(CUSTOMER) == ["ping"]
        assert runtime.conversations.find_by_address(CUSTOMER) is None

    @pytest.mark.asyncio
    async def test_reports_transport_failure(self, runtime, transport):
        transport.fail_for.add(CUSTOMER)
        assert await runtime.dispatcher.send_test_message(CUSTOMER, "ping") is False
