"""Logs JSON do zapdesk.

Todo registro sai com `service` e `correlation_id` (o `message_id` do
WhatsApp nos workers, o header `x-correlation-id` nas rotas HTTP).
Endereços e ids entram mascarados via `mask`; texto de mensagem nunca.
"""

from __future__ import annotations

import logging
from typing import IO

from pythonjsonlogger.json import JsonFormatter

from zapdesk.observability.middleware import get_correlation_id

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s"

# Clientes HTTP/gRPC logam cada request em INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "google", "urllib3")


class CorrelationIdFilter(logging.Filter):
    """Preenche `correlation_id` quando o chamador não passou um em `extra`."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        return True


def configure_logging(level: str, service_name: str, stream: IO[str] | None = None) -> None:
    """Substitui os handlers do root por um único handler JSON."""
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        JsonFormatter(
            LOG_FORMAT,
            rename_fields={"levelname": "level", "name": "logger"},
            static_fields={"service": service_name},
        )
    )
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def mask(value: str | None) -> str:
    """Primeiros 8 caracteres seguidos de '...'."""
    if not value:
        return ""
    return value[:8] + "..."


def log_fallback(logger: logging.Logger, component: str, reason: str) -> None:
    """Registra que `component` respondeu com texto de fallback."""
    logger.warning(
        "fallback_used",
        extra={"fallback_used": True, "component": component, "reason": reason},
    )
