"""Schemas for user profile and habit endpoints."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from studyplanner.services.schedule_types import HabitProfile, UserPreferences


class UserStats(BaseModel):
    assignments_completed: int
    total_study_time: float


class UserProfileResponse(BaseModel):
    user_id: UUID
    preferences: UserPreferences
    habits: HabitProfile
    stats: UserStats
    created_at: datetime
    request_id: str


class StudyLogCreateRequest(BaseModel):
    """A study session the user has finished; times carry the user's UTC offset."""

    subject: str = Field(..., min_length=1)
    topic: str = ""
    start_time: datetime
    end_time: datetime
    focus_score: Optional[int] = Field(default=None, ge=1, le=10)
    notes: str = Field(default="", max_length=2000)
    plan_id: Optional[UUID] = None
    assignment_id: Optional[UUID] = None

    @model_validator(mode="after")
    def _ends_after_start(self) -> "StudyLogCreateRequest":
        start, end = (
            value if value.tzinfo else value.replace(tzinfo=timezone.utc) for value in (self.start_time, self.end_time)
        )
        if end <= start:
            raise ValueError("end_time must be after start_time")
        return self


class StudyLogOut(BaseModel):
    id: UUID
    user_id: UUID
    plan_id: Optional[UUID]
    assignment_id: Optional[UUID]
    subject: str
    topic: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    time_of_day: str
    focus_score: Optional[int]
    notes: str
    created_at: datetime


class StudyLogListResponse(BaseModel):
    count: int
    sessions: List[StudyLogOut]
    request_id: str


class HabitAnalysisResponse(BaseModel):
    user_id: UUID
    analyzed: bool
    sessions_analyzed: int
    habits: Optional[HabitProfile]
    request_id: str
