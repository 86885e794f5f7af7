"""
SQLAlchemy models for segments.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from crm.shared.database import Base, utcnow


class Segment(Base):
    """A named rule group plus the customer ids it matched when last populated."""

    __tablename__ = "segments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    rules_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    customer_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_populated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Segment(id={self.id}, name={self.name}, customers={self.customer_count})>"
