"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from zapdesk.api.admin_routes import admin_router
from zapdesk.api.routes import router
from zapdesk.config.settings import Settings, get_settings
from zapdesk.infra.runtime import Runtime, create_runtime
from zapdesk.observability.logging import configure_logging, get_logger
from zapdesk.observability.middleware import CorrelationIdMiddleware

logger = get_logger(__name__)


def _lifespan(runtime: Runtime):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Índice de sessões precisa estar pronto antes do primeiro dispatch;
        # falha aqui impede o boot.
        sessions = runtime.router.restore()
        await runtime.queue.start()
        logger.info("service_started", extra={"live_sessions": sessions})
        try:
            yield
        finally:
            await runtime.queue.stop()
            close = getattr(runtime.transport, "aclose", None)
            if close is not None:
                await close()
            logger.info("service_stopped")

    return lifespan


def create_app(settings: Settings | None = None, runtime: Runtime | None = None) -> FastAPI:
    """Cria a aplicação FastAPI."""
    settings = settings or (runtime.settings if runtime else get_settings())
    configure_logging(settings.log_level, settings.service_name)

    validation_errors = settings.validate_all()
    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    runtime = runtime or create_runtime(settings)

    app = FastAPI(
        title=settings.service_name,
        version=settings.version,
        lifespan=_lifespan(runtime),
    )
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(router)
    app.include_router(admin_router)

    app.state.runtime = runtime
    return app


# Instância padrão para `uvicorn zapdesk.api.app:app`
app = create_app()
