"""Rotas HTTP principais (webhook WhatsApp)."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from zapdesk.adapters.whatsapp.extractor import MalformedPayloadError, extract_envelopes
from zapdesk.adapters.whatsapp.signature import SignatureCheck, check_signature
from zapdesk.api.dependencies import (
    get_dedupe_store,
    get_dispatch_queue,
    get_handoff_router,
    get_settings,
)
from zapdesk.application.handoff_router import HandoffRouter
from zapdesk.config.settings import Settings
from zapdesk.infra.dedupe import DedupeError, DedupeStore
from zapdesk.infra.inbound_queue import QueueFullError, ShardedDispatchQueue
from zapdesk.observability.logging import get_logger
from zapdesk.observability.middleware import get_correlation_id

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health(
    settings: Settings = Depends(get_settings),
    handoff_router: HandoffRouter = Depends(get_handoff_router),
) -> dict[str, Any]:
    """Healthcheck simples."""
    return {
        "status": "ok",
        "service": settings.service_name,
        "version": settings.version,
        "handoff_index_restored": handoff_router.restored,
    }


@router.get("/webhooks/whatsapp")
def whatsapp_verify(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Verificação de webhook exigida pela Meta."""
    if not settings.whatsapp_verify_token:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="missing_verify_token",
        )

    if hub_mode != "subscribe" or hub_verify_token != settings.whatsapp_verify_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="verification_failed",
        )

    return Response(content=hub_challenge or "", media_type="text/plain")


@router.post("/webhooks/whatsapp")
async def whatsapp_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    dedupe_store: DedupeStore = Depends(get_dedupe_store),
    queue: ShardedDispatchQueue = Depends(get_dispatch_queue),
) -> dict[str, Any]:
    """Recebe eventos do WhatsApp e apenas enfileira para os workers."""
    raw_body = await request.body()
    signature = check_signature(raw_body, request.headers, settings.whatsapp_webhook_secret)
    if not signature.accepted:
        logger.warning("webhook_signature_rejected", extra={"result": signature.value})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid_signature")

    try:
        payload = json.loads(raw_body or b"{}")
        envelopes = extract_envelopes(payload)
    except (json.JSONDecodeError, MalformedPayloadError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json") from exc

    correlation_id = get_correlation_id()
    enqueued = 0
    duplicates = 0

    for envelope in envelopes:
        key = envelope.message_id
        try:
            if key and not dedupe_store.mark_if_new(key):
                duplicates += 1
                continue
        except DedupeError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"error": "inbound_dedupe_unavailable", "correlation_id": correlation_id},
            ) from exc

        try:
            queue.submit(envelope)
        except QueueFullError as exc:
            if key:
                dedupe_store.clear(key)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="enqueue_failed",
            ) from exc
        enqueued += 1

    if duplicates:
        logger.info("inbound_duplicates_skipped", extra={"count": duplicates})
    logger.debug("webhook_accepted", extra={"enqueued": enqueued})

    return {
        "ok": True,
        "result": "enqueued" if enqueued else "ignored",
        "enqueued": enqueued,
        "duplicates": duplicates,
        "correlation_id": correlation_id,
        "signature_validated": signature == SignatureCheck.VALID,
        "signature_skipped": signature == SignatureCheck.SKIPPED,
    }
