from __future__ import annotations

import logging
import time
import traceback
from typing import Any
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from skillrouter.core.config import get_settings
from skillrouter.core.errors import (
    AccessDeniedError,
    ConflictError,
    InvocationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from skillrouter.core.security import Actor
from skillrouter.routing.classifier import IntentClassifier
from skillrouter.routing.history import RouteHistoryStore, route_to_dict
from skillrouter.routing.invoker import SkillInvoker
from skillrouter.routing.models import RouteAttempt, RouteOutcome, RouteRequest, SkillInvocationRequest
from skillrouter.routing.registry import SkillRegistry

logger = logging.getLogger(__name__)

CLIENT_ERRORS = (ValidationError, NotFoundError, ConflictError)


def _from_database(error: BaseException | None) -> bool:
    seen: set[int] = set()
    while error is not None and id(error) not in seen:
        if isinstance(error, (SQLAlchemyError, PersistenceError)):
            return True
        seen.add(id(error))
        error = error.__cause__ or error.__context__
    return False


class RouteOrchestrator:
    """Runs one routing request end to end.

    States: received -> classified -> skill_resolved -> invoked ->
    (success | failed) -> persisted -> responded. Invocation failures are
    recorded and reported, never raised. Client errors before invocation are
    answered without an audit row. Anything else is caught at the outer
    boundary, which writes a failed attempt only if none exists for the
    request id.
    """

    def __init__(
        self,
        session: Session,
        *,
        registry: SkillRegistry | None = None,
        classifier: IntentClassifier | None = None,
        invoker: SkillInvoker | None = None,
        history: RouteHistoryStore | None = None,
        debug_errors: bool | None = None,
    ):
        self.session = session
        self.registry = registry or SkillRegistry(session)
        self.classifier = classifier or IntentClassifier(self.registry)
        self.invoker = invoker or SkillInvoker()
        self.history = history or RouteHistoryStore(session)
        self.debug_errors = get_settings().debug_errors if debug_errors is None else debug_errors

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    @staticmethod
    def _error_body(request_id: str, message: str, error: str | None = None) -> dict[str, Any]:
        return {
            "success": False,
            "requestId": request_id,
            "message": message,
            "data": None,
            "error": error or message,
        }

    def route(
        self,
        request: RouteRequest,
        actor: Actor | None = None,
        user_agent: str | None = None,
    ) -> RouteOutcome:
        started = time.monotonic()
        request_id = request.request_id or str(uuid4())
        user_id = actor.id if actor is not None else None
        state = "received"

        try:
            if not request.input or not request.input.strip():
                raise ValidationError("Input is required")
            if self.history.exists(request_id):
                raise ConflictError(f"request_id already used: {request_id}")

            intent = self.classifier.classify(request.input, request.context)
            state = "classified"
            if intent.skill_id is None:
                raise ValidationError("Could not determine appropriate skill for this request")

            skill = self.registry.find_by_id(intent.skill_id)
            if skill is None or not skill.is_active:
                raise NotFoundError("Selected skill not found or inactive")
            state = "skill_resolved"

            metadata: dict[str, Any] = {
                "skillName": skill.name,
                "classification": intent.reason,
                "userAgent": user_agent,
            }
            response_data: Any = None
            error_message: str | None = None
            try:
                response_data = self.invoker.invoke(
                    skill,
                    SkillInvocationRequest(input=request.input, context=request.context),
                )
                if response_data is None:
                    response_data = {}
                status = "success"
            except InvocationError as exc:
                status = "failed"
                error_message = exc.message
                metadata["errorType"] = exc.error_type
            state = "invoked"

            execution_time_ms = self._elapsed_ms(started)
            self.history.record(
                RouteAttempt(
                    request_id=request_id,
                    user_id=user_id,
                    input_text=request.input,
                    context=request.context or {},
                    selected_skill_id=skill.id,
                    confidence_score=intent.confidence,
                    response_data=response_data,
                    status=status,
                    execution_time_ms=execution_time_ms,
                    error_message=error_message,
                    metadata=metadata,
                )
            )
            state = "persisted"

            logger.info(
                "route completed: request_id=%s skill=%s status=%s confidence=%.2f elapsed_ms=%s",
                request_id,
                skill.name,
                status,
                intent.confidence,
                execution_time_ms,
            )
            succeeded = status == "success"
            return RouteOutcome(
                status_code=200 if succeeded else 500,
                body={
                    "success": succeeded,
                    "requestId": request_id,
                    "data": {
                        "route": {
                            "skill": skill.name,
                            "confidence": intent.confidence,
                            "response": response_data,
                        },
                        "executionTimeMs": execution_time_ms,
                    },
                    "error": error_message,
                },
            )
        except CLIENT_ERRORS as exc:
            logger.info("route rejected: request_id=%s state=%s reason=%s", request_id, state, exc.message)
            return RouteOutcome(status_code=exc.status_code, body=self._error_body(request_id, exc.message))
        except Exception as exc:
            execution_time_ms = self._elapsed_ms(started)
            logger.exception("route failed: request_id=%s state=%s", request_id, state)
            self._record_catastrophic(
                exc,
                RouteAttempt(
                    request_id=request_id,
                    user_id=user_id,
                    input_text=request.input or "",
                    context=request.context or {},
                    status="failed",
                    execution_time_ms=execution_time_ms,
                    error_message=str(exc) or exc.__class__.__name__,
                    metadata={"failedAt": state, "errorType": exc.__class__.__name__},
                )
            )
            body = self._error_body(request_id, "Error processing route request", str(exc) or exc.__class__.__name__)
            if self.debug_errors:
                body["trace"] = traceback.format_exc()
            return RouteOutcome(status_code=500, body=body)

    def _record_catastrophic(self, error: Exception, attempt: RouteAttempt) -> None:
        try:
            # A failed statement aborts the transaction on Postgres even though
            # the session still reports itself active.
            if _from_database(error) or not self.session.is_active:
                self.session.rollback()
            _, created = self.history.record_if_absent(attempt)
        except Exception as exc:
            logger.error("failed to record route failure: request_id=%s error=%s", attempt.request_id, exc)
            return
        if not created:
            logger.info("route attempt already recorded: request_id=%s", attempt.request_id)

    def get_route_history(self, actor: Actor, page: int = 1, limit: int | None = None) -> dict[str, Any]:
        settings = get_settings()
        limit = settings.history_default_limit if limit is None else limit
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit < 1 or limit > settings.history_max_limit:
            raise ValidationError(f"limit must be between 1 and {settings.history_max_limit}")

        result = self.history.list_for_user(actor.id, page=page, limit=limit)
        return {
            "routes": [route_to_dict(row) for row in result.routes],
            "pagination": {
                "total": result.total,
                "page": result.page,
                "limit": result.limit,
                "pages": result.pages,
            },
        }

    def get_route_by_id(self, request_id: str, actor: Actor) -> dict[str, Any]:
        row = self.history.get(request_id)
        if row is None:
            raise NotFoundError("Route not found")
        # Anonymous attempts are readable by anyone holding the request id.
        if row.user_id is not None and row.user_id != actor.id and not actor.is_elevated:
            raise AccessDeniedError("Not authorized to access this route")
        return route_to_dict(row)
