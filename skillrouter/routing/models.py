from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


AuthType = Literal["bearer", "api_key"]
RouteStatus = Literal["pending", "success", "failed", "timeout"]


@dataclass(frozen=True)
class AuthConfig:
    type: AuthType
    env_var: str

    @property
    def env_field(self) -> str:
        return "token_env" if self.type == "bearer" else "key_env"

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type, self.env_field: self.env_var}


@dataclass(frozen=True)
class Intent:
    skill_id: int | None
    skill_name: str
    confidence: float
    reason: str


@dataclass(frozen=True)
class SkillInvocationRequest:
    input: str
    context: dict[str, Any] | None = None


@dataclass(frozen=True)
class RouteRequest:
    input: str | None
    context: dict[str, Any] | None = None
    request_id: str | None = None


@dataclass
class RouteAttempt:
    request_id: str
    input_text: str
    status: RouteStatus
    user_id: str | None = None
    context: dict[str, Any] = field(default_factory=dict)
    selected_skill_id: int | None = None
    confidence_score: float | None = None
    response_data: Any = None
    execution_time_ms: int | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RouteOutcome:
    status_code: int
    body: dict[str, Any]

    @property
    def success(self) -> bool:
        return bool(self.body.get("success"))
