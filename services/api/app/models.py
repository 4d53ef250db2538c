"""SQLAlchemy ORM models for FryPlan.

Tables:
- cooking_sessions: started, completed and cancelled cooking session snapshots
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .db import Base


class CookingSessionRecord(Base):
    """Persisted cooking session.

    The full session (items, batches, phases, cursors) lives in `snapshot`;
    status and timestamps are duplicated as columns for history queries.
    """
    __tablename__ = "cooking_sessions"
    __table_args__ = (
        Index("ix_cooking_sessions_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    snapshot: Mapped[dict] = mapped_column(JSON, nullable=False)
