"""Montagem dos componentes a partir das settings.

Centraliza a escolha de backends (memória/Firestore, WhatsApp/memória,
OpenAI/fallback) para que a app HTTP e os testes montem o mesmo grafo.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from functools import partial

from google.cloud import firestore

from zapdesk.adapters.whatsapp.extractor import extract_text
from zapdesk.adapters.whatsapp.outbound import WhatsAppTransport
from zapdesk.ai.assistant import FallbackAssistant, OpenAIAssistant
from zapdesk.ai.prompts import build_system_prompt
from zapdesk.application.conversation_store import ConversationStore
from zapdesk.application.dispatcher import Dispatcher
from zapdesk.application.handoff_router import HandoffRouter
from zapdesk.commerce.seed import create_commerce_service
from zapdesk.config.settings import Settings
from zapdesk.domain.addresses import normalize_address
from zapdesk.domain.models import utcnow
from zapdesk.domain.protocols.ai import AIAssistant
from zapdesk.domain.protocols.broadcast import BroadcastPreferences
from zapdesk.domain.protocols.catalog import CommerceService
from zapdesk.domain.protocols.stores import CustomerStore, HandoffStore
from zapdesk.domain.protocols.transport import Transport
from zapdesk.domain.rate_limiter import RateLimiter, create_rate_limiter
from zapdesk.infra.broadcast_preferences import (
    FirestoreBroadcastPreferences,
    InMemoryBroadcastPreferences,
)
from zapdesk.infra.customer_store_firestore import FirestoreCustomerStore
from zapdesk.infra.customer_store_memory import InMemoryCustomerStore
from zapdesk.infra.dedupe import DedupeStore, create_dedupe_store
from zapdesk.infra.handoff_store_firestore import FirestoreHandoffStore
from zapdesk.infra.handoff_store_memory import InMemoryHandoffStore
from zapdesk.infra.inbound_queue import ShardedDispatchQueue
from zapdesk.infra.transport_memory import InMemoryTransport
from zapdesk.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


@dataclass(slots=True)
class Runtime:
    """Grafo de componentes compartilhado por webhook, admin e workers."""

    settings: Settings
    conversations: ConversationStore
    router: HandoffRouter
    commerce: CommerceService
    broadcast: BroadcastPreferences
    transport: Transport
    ai: AIAssistant
    rate_limiter: RateLimiter
    dedupe: DedupeStore
    dispatcher: Dispatcher
    queue: ShardedDispatchQueue


def _create_stores(
    settings: Settings,
) -> tuple[CustomerStore, HandoffStore, BroadcastPreferences]:
    backend = settings.store_backend.lower()

    if backend == "firestore":
        client = firestore.Client(
            project=settings.firestore_project_id,
            database=settings.firestore_database_id,
        )
        logger.info("store_backend_firestore", extra={"database": settings.firestore_database_id})
        return (
            FirestoreCustomerStore(
                client,
                customers_collection=settings.customers_collection,
                conversations_collection=settings.conversations_collection,
            ),
            FirestoreHandoffStore(
                client,
                handoffs_collection=settings.handoffs_collection,
                agents_collection=settings.agents_collection,
            ),
            FirestoreBroadcastPreferences(
                client, collection=settings.broadcast_optouts_collection
            ),
        )

    if backend == "memory":
        logger.info("store_backend_memory")
        return InMemoryCustomerStore(), InMemoryHandoffStore(), InMemoryBroadcastPreferences()

    raise ValueError(f"Backend de store não reconhecido: {backend}")


def create_transport(settings: Settings) -> Transport:
    """WhatsApp Cloud API ou transporte em memória.

    Em development sem credenciais, cai para memória (mensagens só logadas).
    """
    backend = settings.transport_backend.lower()

    if backend == "memory":
        return InMemoryTransport()

    if backend != "whatsapp":
        raise ValueError(f"Backend de transporte não reconhecido: {backend}")

    if not (settings.whatsapp_access_token and settings.whatsapp_phone_number_id):
        if settings.is_development:
            logger.warning("transport_credentials_missing_using_memory")
            return InMemoryTransport()
        raise ValueError("WHATSAPP_ACCESS_TOKEN e WHATSAPP_PHONE_NUMBER_ID são obrigatórios")

    return WhatsAppTransport(
        api_endpoint=settings.whatsapp_api_endpoint,
        access_token=settings.whatsapp_access_token,
        phone_number_id=settings.whatsapp_phone_number_id,
        timeout_seconds=settings.whatsapp_request_timeout_seconds,
    )


def create_assistant(settings: Settings, commerce: CommerceService) -> AIAssistant:
    """OpenAI quando habilitado; senão o assistente de fallback."""
    if settings.openai_enabled and settings.openai_api_key:
        return OpenAIAssistant(
            prompt_builder=partial(build_system_prompt, settings, commerce),
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.openai_timeout_seconds,
            max_history=settings.ai_max_history,
            max_customers=settings.ai_history_max_customers,
            handoff_keywords=settings.handoff_keywords,
        )
    return FallbackAssistant(
        handoff_keywords=settings.handoff_keywords,
        max_history=settings.ai_max_history,
        max_customers=settings.ai_history_max_customers,
    )


def seed_agents(router: HandoffRouter, settings: Settings) -> int:
    """Registra atendentes de `settings.agents` ainda desconhecidos."""
    created = 0
    for seed in settings.agents:
        address = normalize_address(seed.address)
        if router.get_agent_by_address(address) is not None:
            continue
        router.register_agent(seed.name, address)
        created += 1
    if created:
        logger.info("agents_seeded", extra={"count": created})
    return created


def create_runtime(
    settings: Settings,
    *,
    transport: Transport | None = None,
    ai: AIAssistant | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> Runtime:
    """Monta todos os componentes; `transport`/`ai` permitem substituição."""
    customer_store, handoff_store, broadcast = _create_stores(settings)
    conversations = ConversationStore(
        customer_store, clock=clock, max_cached=settings.conversation_cache_size
    )
    router = HandoffRouter(handoff_store, clock=clock)
    commerce = create_commerce_service(settings.catalog_seed_path, settings.currency)
    transport = transport or create_transport(settings)
    ai = ai or create_assistant(settings, commerce)
    rate_limiter = create_rate_limiter(
        max_messages=settings.rate_limit_max_messages,
        window_seconds=settings.rate_limit_window_seconds,
    )

    seed_agents(router, settings)

    dispatcher = Dispatcher(
        conversations=conversations,
        router=router,
        rate_limiter=rate_limiter,
        transport=transport,
        commerce=commerce,
        ai=ai,
        broadcast=broadcast,
        settings=settings,
        text_extractor=extract_text,
    )
    queue = ShardedDispatchQueue(
        handler=dispatcher.handle,
        shard_key=dispatcher.shard_key,
        workers=settings.dispatch_workers,
        max_size=settings.dispatch_queue_max_size,
    )
    logger.info(
        "runtime_created",
        extra={
            "store_backend": settings.store_backend,
            "transport": type(transport).__name__,
            "assistant": type(ai).__name__,
        },
    )
    return Runtime(
        settings=settings,
        conversations=conversations,
        router=router,
        commerce=commerce,
        broadcast=broadcast,
        transport=transport,
        ai=ai,
        rate_limiter=rate_limiter,
        dedupe=create_dedupe_store(settings),
        dispatcher=dispatcher,
        queue=queue,
    )
