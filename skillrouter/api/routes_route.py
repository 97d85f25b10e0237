from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from skillrouter.api.deps import get_orchestrator
from skillrouter.core.security import Actor, get_actor, get_optional_actor
from skillrouter.routing.models import RouteRequest
from skillrouter.routing.orchestrator import RouteOrchestrator

router = APIRouter(prefix="/route", tags=["route"])


class RouteRequestBody(BaseModel):
    input: str | None = None
    context: dict[str, Any] | None = None
    request_id: str | None = None


@router.post("")
def route_request(
    body: RouteRequestBody,
    request: Request,
    actor: Actor | None = Depends(get_optional_actor),
    orchestrator: RouteOrchestrator = Depends(get_orchestrator),
):
    outcome = orchestrator.route(
        RouteRequest(input=body.input, context=body.context, request_id=body.request_id),
        actor=actor,
        user_agent=request.headers.get("user-agent"),
    )
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.get("/history")
def get_route_history(
    page: int = Query(default=1),
    limit: int | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    orchestrator: RouteOrchestrator = Depends(get_orchestrator),
):
    return {"success": True, "data": orchestrator.get_route_history(actor, page=page, limit=limit)}


@router.get("/{request_id}")
def get_route_by_id(
    request_id: str,
    actor: Actor = Depends(get_actor),
    orchestrator: RouteOrchestrator = Depends(get_orchestrator),
):
    return {"success": True, "data": orchestrator.get_route_by_id(request_id, actor)}
