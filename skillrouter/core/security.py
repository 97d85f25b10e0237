from __future__ import annotations

from typing import Literal

from fastapi import Header, HTTPException
from pydantic import BaseModel

from skillrouter.core.config import get_settings


ActorRole = Literal["user", "admin"]
ELEVATED_ROLES: frozenset[str] = frozenset({"admin"})


class Actor(BaseModel):
    role: ActorRole
    id: str

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES


def _auth_error(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def _extract_api_key(authorization: str | None, x_api_key: str | None) -> str | None:
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _auth_error("invalid authorization header")
        return token.strip()
    if x_api_key and x_api_key.strip():
        return x_api_key.strip()
    return None


def _actor_from_api_key(api_key: str) -> Actor | None:
    settings = get_settings()
    key_map = {
        settings.user_api_key: Actor(role="user", id=settings.user_actor_id),
        settings.admin_api_key: Actor(role="admin", id=settings.admin_actor_id),
    }
    return key_map.get(api_key)


def get_optional_actor(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> Actor | None:
    settings = get_settings()
    if not settings.auth_enabled:
        return Actor(role="admin", id=settings.admin_actor_id)

    api_key = _extract_api_key(authorization, x_api_key)
    if not api_key:
        return None

    actor = _actor_from_api_key(api_key)
    if actor is None:
        raise _auth_error("invalid api key")
    return actor


def get_actor(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
) -> Actor:
    actor = get_optional_actor(authorization=authorization, x_api_key=x_api_key)
    if actor is None:
        raise _auth_error("missing api key")
    return actor


def require_roles(actor: Actor, allowed: set[str], detail: str = "insufficient role") -> None:
    if actor.role not in allowed:
        raise HTTPException(status_code=403, detail=detail)


def require_admin(actor: Actor) -> None:
    require_roles(actor, set(ELEVATED_ROLES), detail="admin role required")
