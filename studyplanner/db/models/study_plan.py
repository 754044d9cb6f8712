"""Study plan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from studyplanner.db.base import Base
from studyplanner.db.types import JSONBCompat


class StudyPlan(Base):
    __tablename__ = "study_plans"
    __table_args__ = (
        Index("ix_study_plans_user_id", "user_id"),
        Index("ix_study_plans_user_status", "user_id", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plan_type = Column(String(length=20), nullable=False, server_default=sa_text("'custom'"))
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    # List of DaySchedule documents; the whole list is rewritten on every change.
    schedule = Column(JSONBCompat, nullable=False, default=list)
    exclude_days = Column(JSONBCompat, nullable=True)
    generation_prompt = Column(Text, nullable=True)
    ai_model = Column(String(length=100), nullable=True)
    generated_by = Column(String(length=20), nullable=False, server_default=sa_text("'oracle'"))
    status = Column(String(length=20), nullable=False, server_default=sa_text("'active'"))
    adherence_score = Column(Integer, nullable=False, server_default=sa_text("0"))
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # UPDATEs carry "WHERE version = :old"; a concurrent writer raises StaleDataError.
    __mapper_args__ = {"version_id_col": version}
