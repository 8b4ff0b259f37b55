"""Rotas administrativas (dashboard de handoffs/atendentes e envio de teste).

Todas exigem o header de token configurado em `admin_token_header`.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from zapdesk.api.dependencies import (
    get_dispatcher,
    get_handoff_router,
    get_settings,
    require_admin_token,
)
from zapdesk.application.dispatcher import Dispatcher
from zapdesk.application.handoff_router import HandoffRouter
from zapdesk.config.settings import Settings
from zapdesk.domain.addresses import normalize_address
from zapdesk.domain.enums import HandoffStatus
from zapdesk.domain.models import Agent, Handoff
from zapdesk.observability.logging import get_logger, mask

logger = get_logger(__name__)

admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin_token)])


class AgentCreate(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=3)


class AgentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    active: bool | None = None


class ExpirePendingRequest(BaseModel):
    max_age_minutes: int | None = Field(default=None, ge=0)


class SendTestMessageRequest(BaseModel):
    address: str = Field(min_length=3)
    text: str = Field(min_length=1, max_length=4096)


@admin_router.get("/handoffs")
def list_handoffs(
    status_filter: HandoffStatus | None = Query(None, alias="status"),
    handoff_router: HandoffRouter = Depends(get_handoff_router),
) -> dict[str, Any]:
    handoffs = handoff_router.list_handoffs(status_filter)
    return {
        "count": len(handoffs),
        "items": [h.model_dump(mode="json") for h in handoffs],
    }


@admin_router.post("/handoffs/expire-pending")
def expire_pending_handoffs(
    body: ExpirePendingRequest | None = None,
    settings: Settings = Depends(get_settings),
    handoff_router: HandoffRouter = Depends(get_handoff_router),
) -> dict[str, Any]:
    """Resolve handoffs pending mais antigos que o limite (padrão das settings)."""
    minutes = settings.handoff_pending_max_age_minutes
    if body is not None and body.max_age_minutes is not None:
        minutes = body.max_age_minutes
    expired: list[Handoff] = handoff_router.expire_pending(timedelta(minutes=minutes))
    return {"expired": [h.handoff_id for h in expired], "count": len(expired)}


@admin_router.get("/agents")
def list_agents(handoff_router: HandoffRouter = Depends(get_handoff_router)) -> dict[str, Any]:
    sessions = handoff_router.live_sessions()
    items = []
    for agent in handoff_router.list_agents():
        item = agent.model_dump(mode="json")
        item["live_customer_address"] = sessions.get(agent.address)
        items.append(item)
    return {"count": len(items), "items": items}


@admin_router.post("/agents", status_code=status.HTTP_201_CREATED)
def create_agent(
    body: AgentCreate,
    handoff_router: HandoffRouter = Depends(get_handoff_router),
) -> dict[str, Any]:
    try:
        agent: Agent = handoff_router.register_agent(
            body.name.strip(), normalize_address(body.address)
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="agent_address_already_registered"
        ) from exc
    return agent.model_dump(mode="json")


@admin_router.patch("/agents/{agent_id}")
def update_agent(
    agent_id: str,
    body: AgentUpdate,
    handoff_router: HandoffRouter = Depends(get_handoff_router),
) -> dict[str, Any]:
    agent = handoff_router.update_agent(agent_id, name=body.name, active=body.active)
    if agent is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="agent_not_found")
    logger.info(
        "agent_updated",
        extra={"agent_id": mask(agent_id), "active": agent.active},
    )
    return agent.model_dump(mode="json")


@admin_router.post("/messages/test")
async def send_test_message(
    body: SendTestMessageRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    """Envio direto pelo transporte, sem passar pela máquina de estados."""
    sent = await dispatcher.send_test_message(body.address, body.text)
    if not sent:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="send_failed")
    return {"ok": True}
