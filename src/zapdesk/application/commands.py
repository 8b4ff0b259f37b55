"""Classificação de texto inbound em comandos globais vs. entrada local.

Comandos globais são reconhecidos independentemente do estado da conversa
(case-insensitive) e têm precedência sobre os handlers de estado, exceto
durante uma sessão humana ao vivo.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class GlobalCommand(StrEnum):
    GREETING = "GREETING"
    CATALOG = "CATALOG"
    CART = "CART"
    ORDERS = "ORDERS"
    AGENT = "AGENT"
    CLEAR = "CLEAR"
    OPT_OUT = "OPT_OUT"
    OPT_IN = "OPT_IN"
    CHECKOUT = "CHECKOUT"
    ORDER_DETAIL = "ORDER_DETAIL"


class AgentCommand(StrEnum):
    END = "END"
    STATUS = "STATUS"


@dataclass(frozen=True, slots=True)
class ParsedCommand:
    """Comando reconhecido e argumento opcional (ex.: número do pedido)."""

    command: GlobalCommand
    argument: int | None = None
    keyword: str = ""


_KEYWORDS: dict[str, GlobalCommand] = {
    "MENU": GlobalCommand.GREETING,
    "HI": GlobalCommand.GREETING,
    "HELLO": GlobalCommand.GREETING,
    "START": GlobalCommand.GREETING,
    "CATALOG": GlobalCommand.CATALOG,
    "PRODUCTS": GlobalCommand.CATALOG,
    "SHOP": GlobalCommand.CATALOG,
    "CART": GlobalCommand.CART,
    "ORDERS": GlobalCommand.ORDERS,
    "MY ORDERS": GlobalCommand.ORDERS,
    "AGENT": GlobalCommand.AGENT,
    "HUMAN": GlobalCommand.AGENT,
    "SUPPORT": GlobalCommand.AGENT,
    "CLEAR": GlobalCommand.CLEAR,
    "STOP": GlobalCommand.OPT_OUT,
    "UNSUBSCRIBE": GlobalCommand.OPT_OUT,
    "OPT OUT": GlobalCommand.OPT_OUT,
    "SUBSCRIBE": GlobalCommand.OPT_IN,
    "CHECKOUT": GlobalCommand.CHECKOUT,
}

_AGENT_KEYWORDS: dict[str, AgentCommand] = {
    "END": AgentCommand.END,
    "DONE": AgentCommand.END,
    "/END": AgentCommand.END,
    "STATUS": AgentCommand.STATUS,
    "/STATUS": AgentCommand.STATUS,
}

_ORDER_DETAIL = re.compile(r"^ORDER\s+#?(\d+)$")
_WHITESPACE = re.compile(r"\s+")

CONFIRM_WORDS = frozenset({"CONFIRM", "YES", "OK"})
CANCEL_WORDS = frozenset({"CANCEL"})
BACK_WORDS = frozenset({"BACK", "0"})
MORE_WORDS = frozenset({"MORE"})


def normalize(text: str) -> str:
    """Maiúsculas com espaços colapsados."""
    return _WHITESPACE.sub(" ", text.strip()).upper()


def parse_global_command(text: str) -> ParsedCommand | None:
    """Retorna o comando global contido no texto, ou None para entrada local."""
    normalized = normalize(text)
    command = _KEYWORDS.get(normalized)
    if command is not None:
        return ParsedCommand(command=command, keyword=normalized)

    match = _ORDER_DETAIL.match(normalized)
    if match:
        return ParsedCommand(
            command=GlobalCommand.ORDER_DETAIL,
            argument=int(match.group(1)),
            keyword="ORDER",
        )
    return None


def parse_agent_command(text: str) -> AgentCommand | None:
    return _AGENT_KEYWORDS.get(normalize(text))


def parse_index(text: str) -> int | None:
    """Número inteiro positivo digitado pelo cliente, ou None."""
    stripped = text.strip()
    if not (stripped.isascii() and stripped.isdigit()):
        return None
    return int(stripped)
