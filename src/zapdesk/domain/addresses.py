"""Normalização e classificação de endereços de remetentes."""

from __future__ import annotations

import re

_NON_CONVERSATIONAL_SUFFIXES = ("@g.us", "@broadcast", "@newsletter")
_PHONE_NOISE = re.compile(r"[\s\-().+]")


def normalize_address(raw: str) -> str:
    """Normaliza endereço de telefone (remove +, espaços e separadores).

    Endereços com sufixo (`...@s.whatsapp.net`) mantêm o sufixo.
    """
    value = raw.strip()
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{_PHONE_NOISE.sub('', local)}@{domain}"
    return _PHONE_NOISE.sub("", value)


def is_conversational(address: str) -> bool:
    """False para grupos, listas de transmissão, status e newsletters."""
    lowered = address.lower()
    return not lowered.endswith(_NON_CONVERSATIONAL_SUFFIXES)
