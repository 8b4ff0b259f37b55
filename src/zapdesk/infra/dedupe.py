"""Deduplicação de entregas do webhook por message_id.

A plataforma reenvia notificações sem ACK; cada message_id deve ser
despachado no máximo uma vez dentro do TTL.

- InMemoryDedupeStore: dev/testes, uma instância só
- RedisDedupeStore: produção, SET NX EX atômico
- Falha do backend levanta DedupeError (fail-closed): o webhook responde
  503 e a plataforma reentrega depois.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import redis

from zapdesk.observability.logging import get_logger, mask

if TYPE_CHECKING:
    from zapdesk.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


class DedupeError(Exception):
    """Backend de dedupe indisponível; a entrega não deve ser processada."""


class DedupeStore(ABC):
    """Contrato set-if-not-exists com TTL."""

    @abstractmethod
    def mark_if_new(self, key: str) -> bool:
        """True se a chave foi marcada agora; False se já tinha sido vista.

        Raises:
            DedupeError: falha no backend
        """

    @abstractmethod
    def clear(self, key: str) -> bool:
        """Remove a chave (rollback de submissão recusada)."""


class InMemoryDedupeStore(DedupeStore):
    """Dedupe local com expiração preguiçosa."""

    def __init__(self, ttl_seconds: int = 604800, clock=time.monotonic) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def mark_if_new(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            if key in self._seen:
                logger.debug("dedupe_hit", extra={"key": mask(key)})
                return False
            self._seen[key] = now
        return True

    def clear(self, key: str) -> bool:
        with self._lock:
            return self._seen.pop(key, None) is not None

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, ts in self._seen.items() if now - ts >= self._ttl_seconds]
        for k in expired:
            del self._seen[k]


class RedisDedupeStore(DedupeStore):
    """Dedupe via Redis com TTL nativo."""

    def __init__(
        self,
        client: redis.Redis,
        ttl_seconds: int = 604800,
        key_prefix: str = "zapdesk:dedupe:",
    ) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def mark_if_new(self, key: str) -> bool:
        try:
            was_set = self._client.set(self._make_key(key), "1", nx=True, ex=self._ttl_seconds)
        except redis.RedisError as e:
            logger.error(
                "dedupe_backend_error",
                extra={"operation": "mark_if_new", "error_type": type(e).__name__},
            )
            raise DedupeError(f"Falha ao verificar dedupe: {e}") from e

        if not was_set:
            logger.debug("dedupe_hit", extra={"key": mask(key)})
        return bool(was_set)

    def clear(self, key: str) -> bool:
        try:
            return self._client.delete(self._make_key(key)) > 0
        except redis.RedisError as e:
            logger.warning(
                "dedupe_backend_error",
                extra={"operation": "clear", "error_type": type(e).__name__},
            )
            return False


def create_dedupe_store(settings: Settings) -> DedupeStore:
    """Factory por `settings.dedupe_backend` (memory | redis)."""
    backend = settings.dedupe_backend.lower()

    if backend == "memory":
        logger.info(
            "dedupe_store_memory",
            extra={"ttl_seconds": settings.dedupe_ttl_seconds},
        )
        return InMemoryDedupeStore(ttl_seconds=settings.dedupe_ttl_seconds)

    if backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL é obrigatório quando dedupe_backend=redis")
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=5.0,
            socket_connect_timeout=5.0,
        )
        logger.info(
            "dedupe_store_redis",
            extra={"ttl_seconds": settings.dedupe_ttl_seconds},
        )
        return RedisDedupeStore(client=client, ttl_seconds=settings.dedupe_ttl_seconds)

    raise ValueError(f"Backend de dedupe não reconhecido: {backend}")
