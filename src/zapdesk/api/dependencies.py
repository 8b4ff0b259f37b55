"""Dependências injetadas nas rotas."""

from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request, status

from zapdesk.application.dispatcher import Dispatcher
from zapdesk.application.handoff_router import HandoffRouter
from zapdesk.config.settings import Settings
from zapdesk.infra.dedupe import DedupeStore
from zapdesk.infra.inbound_queue import ShardedDispatchQueue
from zapdesk.infra.runtime import Runtime


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.runtime.settings


def get_dedupe_store(request: Request) -> DedupeStore:
    return request.app.state.runtime.dedupe


def get_dispatch_queue(request: Request) -> ShardedDispatchQueue:
    return request.app.state.runtime.queue


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.runtime.dispatcher


def get_handoff_router(request: Request) -> HandoffRouter:
    return request.app.state.runtime.router


def require_admin_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Protege rotas administrativas com token estático.

    Sem token configurado, o acesso só é liberado em development.
    """
    expected = settings.admin_api_token
    if not expected:
        if settings.is_development:
            return
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="admin_token_not_configured",
        )

    received = request.headers.get(settings.admin_token_header, "")
    if not hmac.compare_digest(received, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")
