"""Validação da assinatura HMAC SHA-256 enviada pela Meta no webhook."""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from enum import StrEnum

SIGNATURE_HEADER = "x-hub-signature-256"
_PREFIX = "sha256="


class SignatureCheck(StrEnum):
    VALID = "valid"
    SKIPPED = "skipped"  # sem secret configurado (dev)
    MISSING = "missing_signature"
    MALFORMED = "invalid_signature_format"
    MISMATCH = "signature_mismatch"

    @property
    def accepted(self) -> bool:
        return self in (SignatureCheck.VALID, SignatureCheck.SKIPPED)


def sign_body(raw_body: bytes, secret: str) -> str:
    """Valor do header de assinatura para um corpo (usado em testes e clientes)."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{_PREFIX}{digest}"


def check_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    secret: str | None,
) -> SignatureCheck:
    if not secret:
        return SignatureCheck.SKIPPED

    received = headers.get(SIGNATURE_HEADER)
    if not received:
        return SignatureCheck.MISSING
    if not received.startswith(_PREFIX):
        return SignatureCheck.MALFORMED

    if not hmac.compare_digest(sign_body(raw_body, secret), received):
        return SignatureCheck.MISMATCH
    return SignatureCheck.VALID
