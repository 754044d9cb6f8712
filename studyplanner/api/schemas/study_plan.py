"""Schemas for study plan endpoints."""
from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from typing import Annotated, Any, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StudySessionOut(BaseModel):
    id: str
    start_time: str
    end_time: str
    subject: str
    topic: str
    assignment_id: Optional[str]
    kind: str
    completed: bool
    completed_at: Optional[datetime]
    note: Optional[str]


class DayScheduleOut(BaseModel):
    date: dt.date
    day_of_week: str
    sessions: List[StudySessionOut]
    total_planned_hours: float
    total_completed_hours: float


class StudyPlanSummary(BaseModel):
    id: UUID
    user_id: UUID
    plan_type: str
    start_date: date
    end_date: date
    status: str
    adherence_score: int
    generated_by: str
    ai_model: Optional[str]
    days_scheduled: int
    sessions_total: int
    sessions_completed: int
    created_at: datetime
    updated_at: datetime


class StudyPlanDetail(StudyPlanSummary):
    exclude_days: List[int]
    schedule: List[DayScheduleOut]


class StudyPlanGenerateRequest(BaseModel):
    user_id: UUID
    start_date: date
    end_date: date
    include_assignments: Optional[List[UUID]] = None
    exclude_days: List[Annotated[int, Field(ge=0, le=6)]] = Field(
        default_factory=list,
        description="Weekdays to keep free, 0 = Monday.",
    )
    syllabus_data: Optional[Any] = None


class StudyPlanListResponse(BaseModel):
    count: int
    plans: List[StudyPlanSummary]
    request_id: str


class StudyPlanStatusUpdateRequest(BaseModel):
    user_id: UUID
    status: Literal["active", "archived"]


class SessionUpdateRequest(BaseModel):
    user_id: UUID
    completed: Optional[bool] = None
    note: Optional[str] = None


class SessionUpdateResponse(BaseModel):
    plan_id: UUID
    session: StudySessionOut
    adherence_score: int
    changed: bool
    request_id: str


class RebalanceRequest(BaseModel):
    user_id: UUID


class RebalanceResponse(BaseModel):
    plan_id: UUID
    rebalanced: bool
    reason: Literal["rebalanced", "nothing_missed", "plan_ended"]
    missed_sessions: int
    source: Optional[str]
    plan: StudyPlanDetail
    request_id: str
