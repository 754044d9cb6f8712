"""Logged study session ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from studyplanner.db.base import Base


class StudyLog(Base):
    """A study session the user actually did, as opposed to one a plan scheduled."""

    __tablename__ = "study_logs"
    __table_args__ = (Index("ix_study_logs_user_started", "user_id", "start_time"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plan_id = Column(UUID(as_uuid=True), ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True)
    assignment_id = Column(UUID(as_uuid=True), ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True)
    subject = Column(Text, nullable=False)
    topic = Column(Text, nullable=False, server_default=sa_text("''"))
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    # Band of the submitted local start time; stored because the offset is not kept.
    time_of_day = Column(String(length=10), nullable=False)
    focus_score = Column(Integer, nullable=True)
    notes = Column(Text, nullable=False, server_default=sa_text("''"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
