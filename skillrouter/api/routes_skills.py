from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from skillrouter.core.errors import NotFoundError
from skillrouter.core.security import Actor, get_actor, require_admin
from skillrouter.persistence.pg import get_session
from skillrouter.routing.registry import SkillRegistry, skill_to_dict

router = APIRouter(prefix="/skills", tags=["skills"])


class SkillFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    version: str | None = None
    skill_type: str | None = Field(default=None, alias="type")
    description: str | None = None
    endpoint: str | None = None
    inputs: dict[str, Any] | None = None
    outputs: dict[str, Any] | None = None
    auth_config: dict[str, Any] | None = Field(default=None, alias="authConfig")
    timeout_ms: int | None = Field(default=None, alias="timeoutMs")
    capabilities: list[str] | None = None
    metadata: dict[str, Any] | None = None


class SkillUpdateRequest(SkillFields):
    is_active: bool | None = Field(default=None, alias="isActive")


@router.get("")
def list_skills(
    include_inactive: bool = Query(default=False),
    include_inactive_camel: bool | None = Query(default=None, alias="includeInactive"),
    session: Session = Depends(get_session),
):
    include_all = include_inactive or bool(include_inactive_camel)
    registry = SkillRegistry(session)
    skills = registry.find_all() if include_all else registry.find_active()
    return {
        "success": True,
        "count": len(skills),
        "data": [skill_to_dict(skill) for skill in skills],
    }


@router.get("/{skill_id}")
def get_skill(skill_id: int, session: Session = Depends(get_session)):
    skill = SkillRegistry(session).find_by_id(skill_id)
    if skill is None:
        raise NotFoundError("Skill not found")
    return {"success": True, "data": skill_to_dict(skill)}


@router.post("", status_code=201)
def register_skill(
    request: SkillFields,
    actor: Actor = Depends(get_actor),
    session: Session = Depends(get_session),
):
    require_admin(actor)
    data = request.model_dump(exclude_none=True)
    skill = SkillRegistry(session).register(data)
    return JSONResponse(status_code=201, content={"success": True, "data": skill_to_dict(skill)})


@router.put("/{skill_id}")
def update_skill(
    skill_id: int,
    request: SkillUpdateRequest,
    actor: Actor = Depends(get_actor),
    session: Session = Depends(get_session),
):
    require_admin(actor)
    patch = request.model_dump(exclude_unset=True)
    skill = SkillRegistry(session).update(skill_id, patch)
    return {"success": True, "data": skill_to_dict(skill)}


@router.delete("/{skill_id}")
def deactivate_skill(
    skill_id: int,
    actor: Actor = Depends(get_actor),
    session: Session = Depends(get_session),
):
    require_admin(actor)
    SkillRegistry(session).deactivate(skill_id)
    return {"success": True, "message": "Skill deactivated successfully"}
