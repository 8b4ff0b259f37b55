"""Assistente de IA (OpenAI) com fast path de handoff e fallback determinístico.

- Palavras-chave de handoff respondem sem chamar o modelo.
- A tag [HANDOFF_REQUESTED] na resposta vira `requests_handoff` e é removida.
- Histórico por cliente é limitado e mantido apenas em memória.
- Erros da API viram texto de fallback; resposta vazia levanta AIAssistantError.
"""

from __future__ import annotations

import logging
import re
import threading
from collections import OrderedDict, deque
from collections.abc import Callable

from openai import APIError, APITimeoutError, AsyncOpenAI

from zapdesk.ai.prompts import HANDOFF_TAG
from zapdesk.domain.errors import AIAssistantError
from zapdesk.domain.protocols.ai import AIReply
from zapdesk.observability.logging import get_logger, log_fallback, mask

logger: logging.Logger = get_logger(__name__)

HANDOFF_ACK_TEXT = (
    "Of course! Let me connect you with one of our team members right away. "
    "Please hold on for a moment."
)
UNAVAILABLE_TEXT = (
    "I'm having trouble connecting to my AI brain right now. "
    "Type *MENU* to browse options or *AGENT* to speak with a human. 🙏"
)
DISABLED_TEXT = (
    "I'm not able to chat freely right now. Type *MENU* to browse options "
    "or *AGENT* to speak with a human."
)

PromptBuilder = Callable[[str, str | None], str]


def compile_keywords(keywords: list[str]) -> re.Pattern[str] | None:
    """Regex por palavra inteira para as palavras-chave de handoff."""
    cleaned = [re.escape(k.strip().lower()) for k in keywords if k.strip()]
    if not cleaned:
        return None
    return re.compile(r"\b(" + "|".join(cleaned) + r")\b", re.IGNORECASE)


class ConversationHistory:
    """Histórico recente por cliente (limitado, em memória).

    Guarda até `max_messages` por cliente e até `max_customers` clientes;
    o cliente sem atividade há mais tempo é descartado primeiro.
    """

    def __init__(self, max_messages: int = 20, max_customers: int = 1000) -> None:
        self._max = max_messages
        self._max_customers = max_customers
        self._items: OrderedDict[str, deque[dict[str, str]]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def append(self, customer_id: str, role: str, content: str) -> None:
        with self._lock:
            history = self._items.setdefault(customer_id, deque(maxlen=self._max))
            history.append({"role": role, "content": content})
            self._items.move_to_end(customer_id)
            while len(self._items) > self._max_customers:
                self._items.popitem(last=False)

    def get(self, customer_id: str) -> list[dict[str, str]]:
        with self._lock:
            return list(self._items.get(customer_id, ()))

    def clear(self, customer_id: str) -> None:
        with self._lock:
            self._items.pop(customer_id, None)


class _KeywordHandoffMixin:
    _keywords: re.Pattern[str] | None
    _history: ConversationHistory

    def _keyword_handoff(self, customer_id: str, text: str) -> AIReply | None:
        if self._keywords is None or not self._keywords.search(text):
            return None
        self._history.append(customer_id, "user", text)
        self._history.append(customer_id, "assistant", HANDOFF_ACK_TEXT)
        logger.info("ai_keyword_handoff", extra={"customer_id": mask(customer_id)})
        return AIReply(text=HANDOFF_ACK_TEXT, requests_handoff=True)

    def forget(self, customer_id: str) -> None:
        self._history.clear(customer_id)


class OpenAIAssistant(_KeywordHandoffMixin):
    """Assistente baseado em chat completions da OpenAI."""

    def __init__(
        self,
        prompt_builder: PromptBuilder,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 10.0,
        max_history: int = 20,
        max_customers: int = 1000,
        handoff_keywords: list[str] | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model
        self._timeout = timeout_seconds
        self._prompt_builder = prompt_builder
        self._history = ConversationHistory(max_history, max_customers)
        self._keywords = compile_keywords(handoff_keywords or [])

    async def ask(
        self,
        customer_id: str,
        text: str,
        language: str = "en",
        extra_context: str | None = None,
    ) -> AIReply:
        fast = self._keyword_handoff(customer_id, text)
        if fast is not None:
            return fast

        history = self._history.get(customer_id)
        messages = [
            {"role": "system", "content": self._prompt_builder(language, extra_context)},
            *history,
            {"role": "user", "content": text},
        ]
        self._history.append(customer_id, "user", text)

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=0.5,
                max_tokens=500,
                timeout=self._timeout,
            )
        except (APIError, APITimeoutError) as e:
            logger.warning(
                "ai_reply_error",
                extra={"error_type": type(e).__name__, "customer_id": mask(customer_id)},
            )
            log_fallback(logger, "ai_reply", reason=type(e).__name__)
            self._history.append(customer_id, "assistant", UNAVAILABLE_TEXT)
            return AIReply(text=UNAVAILABLE_TEXT, requests_handoff=False)

        if not response.choices:
            raise AIAssistantError("resposta sem choices")
        raw = response.choices[0].message.content or ""
        requests_handoff = HANDOFF_TAG in raw
        clean = raw.replace(HANDOFF_TAG, "").strip() or UNAVAILABLE_TEXT
        self._history.append(customer_id, "assistant", clean)
        logger.debug(
            "ai_reply_generated",
            extra={"customer_id": mask(customer_id), "requests_handoff": requests_handoff},
        )
        return AIReply(text=clean, requests_handoff=requests_handoff)


class FallbackAssistant(_KeywordHandoffMixin):
    """Assistente usado quando OPENAI_ENABLED=false (fail-safe)."""

    def __init__(
        self,
        handoff_keywords: list[str] | None = None,
        max_history: int = 20,
        max_customers: int = 1000,
    ) -> None:
        self._history = ConversationHistory(max_history, max_customers)
        self._keywords = compile_keywords(handoff_keywords or [])

    async def ask(
        self,
        customer_id: str,
        text: str,
        language: str = "en",
        extra_context: str | None = None,
    ) -> AIReply:
        fast = self._keyword_handoff(customer_id, text)
        if fast is not None:
            return fast
        log_fallback(logger, "ai_reply", reason="openai_disabled")
        return AIReply(text=DISABLED_TEXT, requests_handoff=False)
