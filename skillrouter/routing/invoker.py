from __future__ import annotations

import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from skillrouter.core.config import get_settings
from skillrouter.core.errors import (
    ConfigurationError,
    RemoteError,
    SkillTimeoutError,
    TransportError,
    ValidationError,
)
from skillrouter.persistence.models import SkillModel
from skillrouter.routing.models import SkillInvocationRequest
from skillrouter.routing.registry import parse_auth_config

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

# Calls run here so the caller can stop waiting at the deadline. A worker left
# behind by a timeout stops on its own at the next chunk or httpx timeout.
_INVOKE_POOL = ThreadPoolExecutor(max_workers=32, thread_name_prefix="skill-invoke")


class _DeadlineExceeded(Exception):
    pass


@dataclass(frozen=True)
class _RemoteReply:
    status_code: int
    content: bytes
    encoding: str


class SkillInvoker:
    """Performs one authenticated POST to a skill endpoint.

    Secrets are resolved at call time from ``environ`` using the variable name
    stored on the skill's auth config. There are no retries at this layer.
    """

    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        default_timeout_ms: int | None = None,
    ):
        self.environ = environ if environ is not None else os.environ
        self.transport = transport
        self.default_timeout_ms = default_timeout_ms or get_settings().default_skill_timeout_ms

    def _timeout_ms(self, skill: SkillModel) -> int:
        return skill.timeout_ms or self.default_timeout_ms

    def build_headers(self, skill: SkillModel) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        try:
            auth = parse_auth_config(skill.auth_config) if skill.auth_config else None
        except ValidationError as exc:
            raise ConfigurationError(f"Skill {skill.name} has invalid auth config: {exc}", skill.name) from exc
        if auth is None:
            return headers

        secret = self.environ.get(auth.env_var)
        if not secret:
            logger.warning(
                "auth env var %s is not set for skill=%s; invoking without credentials",
                auth.env_var,
                skill.name,
            )
            return headers

        if auth.type == "bearer":
            headers["Authorization"] = f"Bearer {secret}"
        else:
            headers[API_KEY_HEADER] = secret
        return headers

    @staticmethod
    def _remote_message(reply: _RemoteReply) -> str | None:
        try:
            payload = json.loads(reply.content)
        except ValueError:
            return None
        if isinstance(payload, dict):
            message = payload.get("message")
            if message is not None:
                return str(message)
        return None

    @staticmethod
    def _decode_body(reply: _RemoteReply) -> Any:
        if not reply.content:
            return None
        try:
            return json.loads(reply.content)
        except ValueError:
            return reply.content.decode(reply.encoding, errors="replace")

    def _post(
        self,
        url: str,
        body: dict[str, Any],
        headers: dict[str, str],
        timeout_s: float,
        deadline: float,
    ) -> _RemoteReply:
        chunks: list[bytes] = []
        with httpx.Client(timeout=timeout_s, transport=self.transport) as client:
            with client.stream("POST", url, json=body, headers=headers) as response:
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        raise _DeadlineExceeded()
                    chunks.append(chunk)
                return _RemoteReply(
                    status_code=response.status_code,
                    content=b"".join(chunks),
                    encoding=response.encoding or "utf-8",
                )

    def invoke(self, skill: SkillModel, request: SkillInvocationRequest) -> Any:
        if not skill.endpoint:
            raise ConfigurationError(f"Skill {skill.name} has no endpoint configured", skill.name)

        timeout_ms = self._timeout_ms(skill)
        timeout_s = timeout_ms / 1000
        body = {
            "skill": skill.name,
            "version": skill.version,
            "input": request.input,
            "context": request.context,
        }

        headers = self.build_headers(skill)

        # timeout_ms bounds the whole call, not each connect/read phase.
        deadline = time.monotonic() + timeout_s
        future = _INVOKE_POOL.submit(self._post, skill.endpoint, body, headers, timeout_s, deadline)
        try:
            reply = future.result(timeout=timeout_s)
        except (FutureTimeoutError, _DeadlineExceeded, httpx.TimeoutException) as exc:
            future.cancel()
            raise SkillTimeoutError(skill.name, timeout_ms) from exc
        except httpx.HTTPError as exc:
            raise TransportError(skill.name, exc) from exc

        if not 200 <= reply.status_code < 300:
            raise RemoteError(skill.name, reply.status_code, self._remote_message(reply))

        return self._decode_body(reply)
