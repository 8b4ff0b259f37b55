"""Contrato de preferências de broadcast (opt-in/opt-out)."""

from __future__ import annotations

from typing import Protocol


class BroadcastPreferences(Protocol):
    def opt_out(self, customer_id: str) -> None: ...

    def opt_in(self, customer_id: str) -> None: ...

    def is_opted_out(self, customer_id: str) -> bool: ...
