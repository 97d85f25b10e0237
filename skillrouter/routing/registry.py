from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlparse

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillrouter.api.utils import iso_z
from skillrouter.core.errors import ConflictError, NotFoundError, ValidationError
from skillrouter.persistence.models import SkillModel
from skillrouter.routing.models import AuthConfig


DEFAULT_TIMEOUT_MS = 10_000

# Writable attributes, keyed by the names callers may use.
_FIELD_ALIASES: dict[str, str] = {
    "name": "name",
    "version": "version",
    "type": "skill_type",
    "skill_type": "skill_type",
    "description": "description",
    "endpoint": "endpoint",
    "inputs": "inputs",
    "outputs": "outputs",
    "auth_config": "auth_config",
    "authConfig": "auth_config",
    "timeout_ms": "timeout_ms",
    "timeoutMs": "timeout_ms",
    "is_active": "is_active",
    "isActive": "is_active",
    "capabilities": "capabilities",
    "metadata": "metadata_json",
}

_FILTERABLE = {"name", "version", "skill_type", "endpoint", "timeout_ms", "is_active"}

_AUTH_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "bearer": ("token_env", "tokenEnvVar", "tokenEnv"),
    "api_key": ("key_env", "keyEnvVar", "keyEnv"),
}


def parse_auth_config(raw: Any) -> AuthConfig | None:
    if raw is None:
        return None
    if isinstance(raw, AuthConfig):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError("authConfig must be an object")

    auth_type = str(raw.get("type") or "").strip().lower()
    if auth_type not in _AUTH_ENV_KEYS:
        raise ValidationError("authConfig.type must be 'bearer' or 'api_key'")

    for key in _AUTH_ENV_KEYS[auth_type]:
        value = raw.get(key)
        if isinstance(value, str) and value.strip():
            return AuthConfig(type=auth_type, env_var=value.strip())  # type: ignore[arg-type]
    raise ValidationError(f"authConfig of type '{auth_type}' requires {_AUTH_ENV_KEYS[auth_type][0]}")


def _normalize_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in data.items():
        attr = _FIELD_ALIASES.get(key)
        if attr is None:
            raise ValidationError(f"unknown skill field: {key}")
        out[attr] = value
    return out


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    if "name" in fields:
        name = str(fields["name"] or "").strip()
        if not name:
            raise ValidationError("skill name is required")
        fields["name"] = name

    if "version" in fields:
        version = str(fields["version"] or "").strip()
        if not version:
            raise ValidationError("skill version is required")
        fields["version"] = version

    if "skill_type" in fields:
        fields["skill_type"] = str(fields["skill_type"] or "").strip() or "http"

    if "endpoint" in fields:
        endpoint = fields["endpoint"]
        if endpoint is not None:
            endpoint = str(endpoint).strip()
            try:
                parsed = urlparse(endpoint)
            except ValueError as exc:
                raise ValidationError(f"endpoint must be an http(s) URL: {endpoint}") from exc
            if parsed.scheme not in {"http", "https"} or not parsed.netloc:
                raise ValidationError(f"endpoint must be an http(s) URL: {endpoint}")
        fields["endpoint"] = endpoint or None

    if "timeout_ms" in fields:
        timeout = fields["timeout_ms"]
        if timeout is None:
            timeout = DEFAULT_TIMEOUT_MS
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ValidationError("timeoutMs must be a positive integer")
        fields["timeout_ms"] = timeout

    if "auth_config" in fields:
        auth = parse_auth_config(fields["auth_config"])
        fields["auth_config"] = auth.to_dict() if auth else None

    if "is_active" in fields and not isinstance(fields["is_active"], bool):
        raise ValidationError("isActive must be a boolean")

    for key in ("inputs", "outputs", "metadata_json"):
        if key in fields:
            value = fields[key]
            if value is None:
                fields[key] = {}
            elif not isinstance(value, Mapping):
                raise ValidationError(f"{key.replace('_json', '')} must be an object")
            else:
                fields[key] = dict(value)

    if "capabilities" in fields:
        caps = fields["capabilities"] or []
        if isinstance(caps, str) or not isinstance(caps, (list, tuple)):
            raise ValidationError("capabilities must be a list of strings")
        fields["capabilities"] = [str(item).strip() for item in caps if str(item).strip()]

    return fields


def skill_summary(skill: SkillModel | None) -> dict[str, Any] | None:
    if skill is None:
        return None
    return {
        "id": skill.id,
        "name": skill.name,
        "type": skill.skill_type,
        "description": skill.description,
    }


def skill_to_dict(skill: SkillModel) -> dict[str, Any]:
    return {
        "id": skill.id,
        "name": skill.name,
        "version": skill.version,
        "type": skill.skill_type,
        "description": skill.description,
        "endpoint": skill.endpoint,
        "inputs": skill.inputs,
        "outputs": skill.outputs,
        "authConfig": skill.auth_config,
        "timeoutMs": skill.timeout_ms,
        "isActive": skill.is_active,
        "capabilities": skill.capabilities,
        "metadata": skill.metadata_json,
        "createdAt": iso_z(skill.created_at),
        "updatedAt": iso_z(skill.updated_at),
    }


class SkillRegistry:
    """Durable catalog of invocable skills.

    Skills are never physically removed; ``deactivate`` flips ``is_active`` so
    historical route attempts keep their reference.
    """

    def __init__(self, session: Session):
        self.session = session

    def _name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        stmt = select(SkillModel.id).where(SkillModel.name == name)
        if exclude_id is not None:
            stmt = stmt.where(SkillModel.id != exclude_id)
        return self.session.scalar(stmt.limit(1)) is not None

    def _flush_or_conflict(self, name: str) -> None:
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError(f"skill name already registered: {name}") from exc

    def register(self, data: Mapping[str, Any]) -> SkillModel:
        fields = _normalize_fields(data)
        fields.setdefault("name", "")
        fields.setdefault("version", "")
        fields = _validate_fields(fields)
        fields["is_active"] = True
        fields.setdefault("timeout_ms", DEFAULT_TIMEOUT_MS)

        if self._name_taken(fields["name"]):
            raise ConflictError(f"skill name already registered: {fields['name']}")

        skill = SkillModel(**fields)
        self.session.add(skill)
        self._flush_or_conflict(skill.name)
        return skill

    def find_by_id(self, skill_id: int) -> SkillModel | None:
        return self.session.get(SkillModel, skill_id)

    def get(self, skill_id: int) -> SkillModel:
        skill = self.find_by_id(skill_id)
        if skill is None:
            raise NotFoundError(f"Skill not found: {skill_id}")
        return skill

    def find_all(self, filters: Mapping[str, Any] | None = None) -> list[SkillModel]:
        """Return skills matching every equality predicate, in registration order.

        An empty filter returns the whole catalog, inactive skills included.
        """
        stmt = select(SkillModel)
        for key, value in (filters or {}).items():
            attr = _FIELD_ALIASES.get(key)
            if attr not in _FILTERABLE:
                raise ValidationError(f"unsupported skill filter: {key}")
            stmt = stmt.where(getattr(SkillModel, attr) == value)
        return list(self.session.scalars(stmt.order_by(SkillModel.id.asc())).all())

    def find_active(self) -> list[SkillModel]:
        return self.find_all({"is_active": True})

    def update(self, skill_id: int, patch: Mapping[str, Any]) -> SkillModel:
        skill = self.get(skill_id)
        fields = _validate_fields(_normalize_fields(patch))

        new_name = fields.get("name")
        if new_name is not None and new_name != skill.name and self._name_taken(new_name, exclude_id=skill.id):
            raise ConflictError(f"skill name already registered: {new_name}")

        for attr, value in fields.items():
            setattr(skill, attr, value)
        self._flush_or_conflict(skill.name)
        return skill

    def deactivate(self, skill_id: int) -> None:
        skill = self.get(skill_id)
        skill.is_active = False
        self.session.flush()
