from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import JSON


def _json_type():
    return JSON().with_variant(JSONB(astext_type=Text()), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


ROUTE_STATUSES = ("pending", "success", "failed", "timeout")


class Base(DeclarativeBase):
    pass


class SkillModel(Base):
    __tablename__ = "skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    skill_type: Mapped[str] = mapped_column(String(100), nullable=False, default="http")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    endpoint: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    inputs: Mapped[dict] = mapped_column(_json_type(), nullable=False, default=dict)
    outputs: Mapped[dict] = mapped_column(_json_type(), nullable=False, default=dict)
    auth_config: Mapped[Optional[dict]] = mapped_column(_json_type(), nullable=True)
    timeout_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=10_000)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    capabilities: Mapped[list] = mapped_column(_json_type(), nullable=False, default=list)
    metadata_json: Mapped[dict] = mapped_column("metadata", _json_type(), nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class SkillRouteModel(Base):
    __tablename__ = "skill_routes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    input_text: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[dict] = mapped_column(_json_type(), nullable=False, default=dict)
    selected_skill_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("skills.id"),
        nullable=True,
    )
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    response_data: Mapped[Optional[dict]] = mapped_column(_json_type(), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    execution_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_json: Mapped[dict] = mapped_column("metadata", _json_type(), nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    skill: Mapped[Optional[SkillModel]] = relationship(SkillModel, lazy="joined")


Index("ix_skills_is_active", SkillModel.is_active)
Index("ix_skill_routes_user_id", SkillRouteModel.user_id)
Index("ix_skill_routes_created_at", SkillRouteModel.created_at)
