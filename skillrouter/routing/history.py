from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from skillrouter.api.utils import iso_z, page_count
from skillrouter.core.errors import ConflictError, PersistenceError
from skillrouter.persistence.models import ROUTE_STATUSES, SkillRouteModel
from skillrouter.routing.models import RouteAttempt
from skillrouter.routing.registry import skill_summary

logger = logging.getLogger(__name__)


@dataclass
class HistoryPage:
    routes: list[SkillRouteModel]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return page_count(self.total, self.limit)


def _check_attempt(attempt: RouteAttempt) -> None:
    if attempt.status not in ROUTE_STATUSES:
        raise PersistenceError(f"invalid route status: {attempt.status}")
    if attempt.status == "success":
        if attempt.response_data is None:
            raise PersistenceError("successful route attempt requires response data")
        if attempt.selected_skill_id is None:
            raise PersistenceError("successful route attempt requires a selected skill")
    if attempt.status in {"failed", "timeout"} and not attempt.error_message:
        raise PersistenceError(f"{attempt.status} route attempt requires an error message")


def route_to_dict(row: SkillRouteModel) -> dict[str, Any]:
    return {
        "id": row.id,
        "requestId": row.request_id,
        "userId": row.user_id,
        "inputText": row.input_text,
        "context": row.context,
        "selectedSkillId": row.selected_skill_id,
        "confidenceScore": row.confidence_score,
        "responseData": row.response_data,
        "status": row.status,
        "executionTimeMs": row.execution_time_ms,
        "errorMessage": row.error_message,
        "metadata": row.metadata_json,
        "createdAt": iso_z(row.created_at),
        "skill": skill_summary(row.skill),
    }


class RouteHistoryStore:
    """Append-only audit log of route attempts, one row per request id."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, request_id: str) -> SkillRouteModel | None:
        stmt = select(SkillRouteModel).where(SkillRouteModel.request_id == request_id)
        return self.session.scalars(stmt).first()

    def exists(self, request_id: str) -> bool:
        stmt = select(SkillRouteModel.id).where(SkillRouteModel.request_id == request_id).limit(1)
        return self.session.scalar(stmt) is not None

    def record(self, attempt: RouteAttempt) -> SkillRouteModel:
        _check_attempt(attempt)
        row = SkillRouteModel(
            request_id=attempt.request_id,
            user_id=attempt.user_id,
            input_text=attempt.input_text,
            context=attempt.context or {},
            selected_skill_id=attempt.selected_skill_id,
            confidence_score=attempt.confidence_score,
            response_data=attempt.response_data,
            status=attempt.status,
            execution_time_ms=attempt.execution_time_ms,
            error_message=attempt.error_message,
            metadata_json=attempt.metadata or {},
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError(f"route attempt already recorded: {attempt.request_id}") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(f"failed to record route attempt {attempt.request_id}: {exc}") from exc
        return row

    def record_if_absent(self, attempt: RouteAttempt) -> tuple[SkillRouteModel, bool]:
        existing = self.get(attempt.request_id)
        if existing is not None:
            return existing, False
        try:
            return self.record(attempt), True
        except ConflictError:
            # Lost a race with a concurrent writer for the same request id.
            existing = self.get(attempt.request_id)
            if existing is None:
                raise
            return existing, False

    def list_for_user(self, user_id: str, page: int, limit: int) -> HistoryPage:
        total = self.session.scalar(
            select(func.count()).select_from(SkillRouteModel).where(SkillRouteModel.user_id == user_id)
        ) or 0
        stmt = (
            select(SkillRouteModel)
            .where(SkillRouteModel.user_id == user_id)
            .order_by(desc(SkillRouteModel.created_at), desc(SkillRouteModel.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        routes = list(self.session.scalars(stmt).unique().all())
        return HistoryPage(routes=routes, total=int(total), page=page, limit=limit)
