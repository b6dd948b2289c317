"""SQLAlchemy schemas for persisted goals."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from goals.dates import utc_now


class Base(DeclarativeBase):
    """Declarative base."""


class GoalRecord(Base):
    """Goal table: indexed columns plus the full goal document."""

    __tablename__ = "goals"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0, index=True)
    status: Mapped[str] = mapped_column(String(32), default="inactive", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )
    payload_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
