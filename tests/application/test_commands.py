"""Testes de classificação de comandos globais e de atendente."""

from __future__ import annotations

import pytest

from zapdesk.application.commands import (
    AgentCommand,
    GlobalCommand,
    parse_agent_command,
    parse_global_command,
    parse_index,
)


class TestParseGlobalCommand:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("menu", GlobalCommand.GREETING),
            ("  Hello ", GlobalCommand.GREETING),
            ("shop", GlobalCommand.CATALOG),
            ("my   orders", GlobalCommand.ORDERS),
            ("Support", GlobalCommand.AGENT),
            ("opt out", GlobalCommand.OPT_OUT),
            ("SUBSCRIBE", GlobalCommand.OPT_IN),
            ("checkout", GlobalCommand.CHECKOUT),
        ],
    )
    def test_keywords_case_insensitive(self, text, expected):
        parsed = parse_global_command(text)
        assert parsed is not None
        assert parsed.command == expected

    def test_order_detail_carries_number(self):
        parsed = parse_global_command("order #42")

        assert parsed.command == GlobalCommand.ORDER_DETAIL
        assert parsed.argument == 42

    def test_order_detail_without_hash(self):
        assert parse_global_command("ORDER 7").argument == 7

    @pytest.mark.parametrize("text", ["1", "show me the menu", "orders please", "ORDER"])
    def test_local_input_is_not_a_command(self, text):
        """Só o texto inteiro conta como comando; palavras soltas não."""
        assert parse_global_command(text) is None


class TestParseAgentCommand:
    @pytest.mark.parametrize("text", ["END", "done", "/end"])
    def test_end_aliases(self, text):
        assert parse_agent_command(text) == AgentCommand.END

    def test_status(self):
        assert parse_agent_command(" /Status ") == AgentCommand.STATUS

    def test_free_text(self):
        assert parse_agent_command("the end is near") is None


class TestParseIndex:
    def test_positive_digits(self):
        assert parse_index(" 3 ") == 3

    @pytest.mark.parametrize("text", ["-1", "1.5", "three", "", "３"])
    def test_non_index(self, text):
        assert parse_index(text) is None
