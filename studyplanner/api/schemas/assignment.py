"""Schemas for assignment endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

Difficulty = Literal["easy", "medium", "hard"]
AssignmentStatus = Literal["pending", "in-progress", "completed"]


class AssignmentCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    subject: str = Field(..., min_length=1)
    description: str = ""
    topics: List[str] = Field(default_factory=list)
    due_date: datetime
    estimated_hours: float = Field(default=2, ge=0.5, le=100)
    difficulty: Difficulty = "medium"


class AssignmentUpdateRequest(BaseModel):
    user_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    subject: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    topics: Optional[List[str]] = None
    due_date: Optional[datetime] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0.5, le=100)
    difficulty: Optional[Difficulty] = None


class AssignmentStatusUpdateRequest(BaseModel):
    user_id: UUID
    status: AssignmentStatus
    actual_hours: Optional[float] = Field(default=None, ge=0)
    completion_notes: Optional[str] = Field(default=None, max_length=2000)


class AssignmentOut(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    subject: str
    description: str
    topics: List[str]
    due_date: datetime
    estimated_hours: float
    actual_hours: float
    status: str
    priority: str
    difficulty: str
    completed_at: Optional[datetime]
    completion_notes: str
    days_remaining: int
    hours_remaining: int
    created_at: datetime
    updated_at: datetime


class AssignmentListResponse(BaseModel):
    count: int
    assignments: List[AssignmentOut]
    request_id: str


class AssignmentUpdateResponse(BaseModel):
    assignment: AssignmentOut
    changed_fields: List[str]
    request_id: str
