"""Assignment ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from studyplanner.db.base import Base
from studyplanner.db.types import JSONBCompat


class Assignment(Base):
    __tablename__ = "assignments"
    __table_args__ = (
        Index("ix_assignments_user_id", "user_id"),
        Index("ix_assignments_user_status", "user_id", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    subject = Column(Text, nullable=False)
    description = Column(Text, nullable=False, server_default=sa_text("''"))
    topics = Column(JSONBCompat, nullable=False, default=list)
    due_date = Column(DateTime(timezone=True), nullable=False)
    estimated_hours = Column(Float, nullable=False, server_default=sa_text("2"))
    actual_hours = Column(Float, nullable=False, server_default=sa_text("0"))
    status = Column(String(length=20), nullable=False, server_default=sa_text("'pending'"))
    priority = Column(String(length=10), nullable=False)
    difficulty = Column(String(length=10), nullable=False, server_default=sa_text("'medium'"))
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completion_notes = Column(Text, nullable=False, server_default=sa_text("''"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
