"""Controle de admissão por remetente (janela fixa).

Cada remetente tem uma janela de W segundos iniciada na primeira mensagem.
Dentro da janela, até C mensagens são admitidas; as demais são descartadas
(sem fila e sem retry). Quando a janela expira, a próxima mensagem inicia
uma nova janela. Estado transitório: um restart zera os limites.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)


@dataclass(slots=True)
class RateLimitEntry:
    """Início da janela corrente e contagem de mensagens admitidas."""

    window_start: float
    count: int


class RateLimiter(ABC):
    """Contrato de admissão por remetente."""

    @abstractmethod
    def admit(self, sender_id: str, now: float | None = None) -> bool:
        """Retorna True se a mensagem do remetente pode ser processada."""
        ...


class InMemoryRateLimiter(RateLimiter):
    """Rate limiter em memória do processo.

    O mapa é compartilhado entre shards de workers, por isso o acesso é
    serializado por um lock.
    """

    def __init__(self, max_messages: int = 10, window_seconds: float = 60.0) -> None:
        if max_messages < 1:
            raise ValueError("max_messages deve ser >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds deve ser > 0")
        self._max_messages = max_messages
        self._window = window_seconds
        self._entries: dict[str, RateLimitEntry] = {}
        self._next_sweep: float | None = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def admit(self, sender_id: str, now: float | None = None) -> bool:
        current = time.monotonic() if now is None else now

        with self._lock:
            self._sweep_expired(current)
            entry = self._entries.get(sender_id)
            if entry is None or current - entry.window_start >= self._window:
                self._entries[sender_id] = RateLimitEntry(window_start=current, count=1)
                return True

            if entry.count >= self._max_messages:
                logger.debug(
                    "rate_limited",
                    extra={"sender": mask(sender_id), "count": entry.count},
                )
                return False

            entry.count += 1
            return True

    def _sweep_expired(self, current: float) -> None:
        """Descarta janelas vencidas no máximo uma vez por janela."""
        if self._next_sweep is not None and current < self._next_sweep:
            return
        self._next_sweep = current + self._window
        expired = [
            sender
            for sender, entry in self._entries.items()
            if current - entry.window_start >= self._window
        ]
        for sender in expired:
            del self._entries[sender]

    def reset(self, sender_id: str | None = None) -> None:
        """Remove janelas (todas ou de um remetente)."""
        with self._lock:
            if sender_id is None:
                self._entries.clear()
            else:
                self._entries.pop(sender_id, None)


def create_rate_limiter(max_messages: int = 10, window_seconds: float = 60.0) -> RateLimiter:
    """Factory do rate limiter (estado nunca é persistido)."""
    return InMemoryRateLimiter(max_messages=max_messages, window_seconds=window_seconds)
