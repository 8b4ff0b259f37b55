"""Testes do rate limiter de janela fixa por remetente."""

from __future__ import annotations

import pytest

from zapdesk.domain.rate_limiter import InMemoryRateLimiter, create_rate_limiter


class TestInMemoryRateLimiter:
    def test_eleventh_message_in_window_dropped(self):
        limiter = InMemoryRateLimiter(max_messages=10, window_seconds=60)

        admitted = [limiter.admit("sender", now=float(i)) for i in range(11)]

        assert admitted == [True] * 10 + [False]

    def test_window_measured_from_first_message(self):
        limiter = InMemoryRateLimiter(max_messages=10, window_seconds=60)
        for i in range(10):
            limiter.admit("sender", now=100.0 + i)

        assert limiter.admit("sender", now=159.9) is False
        assert limiter.admit("sender", now=160.0) is True

    def test_new_window_starts_count_again(self):
        limiter = InMemoryRateLimiter(max_messages=2, window_seconds=10)
        limiter.admit("sender", now=0.0)
        limiter.admit("sender", now=1.0)
        assert limiter.admit("sender", now=2.0) is False

        assert limiter.admit("sender", now=10.0) is True
        assert limiter.admit("sender", now=11.0) is True
        assert limiter.admit("sender", now=12.0) is False

    def test_senders_are_independent(self):
        limiter = InMemoryRateLimiter(max_messages=1, window_seconds=60)

        assert limiter.admit("a", now=0.0) is True
        assert limiter.admit("b", now=0.0) is True
        assert limiter.admit("a", now=1.0) is False

    def test_reset_single_sender(self):
        limiter = InMemoryRateLimiter(max_messages=1, window_seconds=60)
        limiter.admit("a", now=0.0)
        limiter.admit("b", now=0.0)

        limiter.reset("a")

        assert limiter.admit("a", now=1.0) is True
        assert limiter.admit("b", now=1.0) is False

    def test_expired_windows_are_dropped(self):
        limiter = InMemoryRateLimiter(max_messages=2, window_seconds=10)
        limiter.admit("a", now=0.0)
        limiter.admit("b", now=1.0)
        assert len(limiter) == 2

        assert limiter.admit("c", now=12.0) is True

        assert len(limiter) == 1

    def test_sweep_keeps_live_windows(self):
        limiter = InMemoryRateLimiter(max_messages=1, window_seconds=10)
        limiter.admit("a", now=0.0)
        limiter.admit("b", now=9.0)

        limiter.admit("c", now=10.0)

        assert len(limiter) == 2
        assert limiter.admit("b", now=11.0) is False

    @pytest.mark.parametrize(
        ("max_messages", "window"),
        [(0, 60), (10, 0)],
    )
    def test_invalid_configuration(self, max_messages, window):
        with pytest.raises(ValueError):
            InMemoryRateLimiter(max_messages=max_messages, window_seconds=window)

    def test_factory(self):
        limiter = create_rate_limiter(max_messages=3, window_seconds=5)
        assert isinstance(limiter, InMemoryRateLimiter)
