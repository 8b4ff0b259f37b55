"""Testes do dedupe inbound (memória e Redis)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import redis

from zapdesk.config.settings import Settings
from zapdesk.infra.dedupe import (
    DedupeError,
    InMemoryDedupeStore,
    RedisDedupeStore,
    create_dedupe_store,
)


class _Clock:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


class TestInMemoryDedupeStore:
    def test_first_mark_is_new(self):
        store = InMemoryDedupeStore(ttl_seconds=60)

        assert store.mark_if_new("wamid.1") is True
        assert store.mark_if_new("wamid.1") is False
        assert store.mark_if_new("wamid.2") is True

    def test_key_expires_after_ttl(self):
        clock = _Clock()
        store = InMemoryDedupeStore(ttl_seconds=60, clock=clock)
        store.mark_if_new("wamid.1")

        clock.value += 59
        assert store.mark_if_new("wamid.1") is False
        clock.value += 1
        assert store.mark_if_new("wamid.1") is True

    def test_clear_allows_redelivery(self):
        store = InMemoryDedupeStore()
        store.mark_if_new("wamid.1")

        assert store.clear("wamid.1") is True
        assert store.clear("wamid.1") is False
        assert store.mark_if_new("wamid.1") is True


class TestRedisDedupeStore:
    def test_set_nx_with_ttl(self):
        client = MagicMock()
        client.set.return_value = True
        store = RedisDedupeStore(client, ttl_seconds=30)

        assert store.mark_if_new("wamid.1") is True
        client.set.assert_called_once_with("zapdesk:dedupe:wamid.1", "1", nx=True, ex=30)

    def test_existing_key_is_duplicate(self):
        client = MagicMock()
        client.set.return_value = None

        assert RedisDedupeStore(client).mark_if_new("wamid.1") is False

    def test_backend_error_fails_closed(self):
        client = MagicMock()
        client.set.side_effect = redis.ConnectionError("down")

        with pytest.raises(DedupeError):
            RedisDedupeStore(client).mark_if_new("wamid.1")

    def test_clear_swallows_backend_error(self):
        client = MagicMock()
        client.delete.side_effect = redis.TimeoutError("slow")

        assert RedisDedupeStore(client).clear("wamid.1") is False


class TestCreateDedupeStore:
    def test_memory_backend(self):
        store = create_dedupe_store(Settings(dedupe_backend="memory"))
        assert isinstance(store, InMemoryDedupeStore)

    def test_redis_backend_uses_url(self):
        settings = Settings(dedupe_backend="redis", redis_url="redis://cache:6379/0")

        with patch("zapdesk.infra.dedupe.redis.from_url") as from_url:
            store = create_dedupe_store(settings)

        assert isinstance(store, RedisDedupeStore)
        assert from_url.call_args.args[0] == "redis://cache:6379/0"

    def test_redis_without_url_rejected(self):
        with pytest.raises(ValueError, match="REDIS_URL"):
            create_dedupe_store(Settings(dedupe_backend="redis", redis_url=None))

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            create_dedupe_store(Settings(dedupe_backend="memcached"))
