"""Value types shared by the synthesizer, rebalancer and adherence scorer."""
from __future__ import annotations

import datetime as dt
from datetime import date, datetime, time
from enum import Enum
from typing import Any, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from studyplanner.core.errors import InvalidPlanningRequest

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
TIME_BANDS = ("morning", "afternoon", "evening", "night")
TIME_BAND_PATTERN = "^(morning|afternoon|evening|night)$"


class PriorityTier(str, Enum):
    urgent = "urgent"
    high = "high"
    medium = "medium"
    low = "low"


PRIORITY_RANK = {
    PriorityTier.urgent: 0,
    PriorityTier.high: 1,
    PriorityTier.medium: 2,
    PriorityTier.low: 3,
}


class SessionKind(str, Enum):
    study = "study"
    assignment = "assignment"
    revision = "revision"
    break_ = "break"


def new_session_id() -> str:
    return f"session-{uuid4().hex}"


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


class UserPreferences(BaseModel):
    """Study preferences a user sets in their profile."""

    study_hours_per_day: float = Field(default=4, ge=1, le=24)
    study_time_preference: str = Field(default="evening", pattern=TIME_BAND_PATTERN)
    session_duration: int = Field(default=60, ge=15, le=180, description="Minutes per session.")
    break_duration: int = Field(default=15, ge=5, le=60, description="Minutes between sessions.")


class HabitProfile(BaseModel):
    """Observed study habits, normally derived from logged study sessions."""

    peak_productivity_time: str = Field(default="evening", pattern=TIME_BAND_PATTERN)
    average_study_hours: float = Field(default=0, ge=0)
    consistency: int = Field(default=0, ge=0, le=100, description="Percent of days studied since the first logged session.")
    preferred_subjects: List[str] = Field(default_factory=list)
    last_analyzed_at: Optional[datetime] = None


class AssignmentRef(BaseModel):
    """The slice of an assignment the planner needs."""

    id: Optional[str] = None
    title: str
    subject: str
    due_date: datetime
    estimated_hours: float = Field(..., gt=0)
    topics: List[str] = Field(default_factory=list)
    priority: PriorityTier


class StudySession(BaseModel):
    """A single block in a day's schedule; times are HH:MM on the owning day."""

    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    start_time: str
    end_time: str
    subject: str
    topic: str
    assignment_id: Optional[str] = None
    kind: SessionKind = SessionKind.study
    completed: bool = False
    completed_at: Optional[datetime] = None
    note: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _clock_time(cls, value: str) -> str:
        parsed = time.fromisoformat(value.strip())
        return parsed.strftime("%H:%M")

    @model_validator(mode="after")
    def _starts_before_it_ends(self) -> "StudySession":
        if self.start_time >= self.end_time:
            raise ValueError(f"session must start before it ends ({self.start_time} >= {self.end_time})")
        return self

    def duration_hours(self) -> float:
        start = time.fromisoformat(self.start_time)
        end = time.fromisoformat(self.end_time)
        minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
        return minutes / 60


class DaySchedule(BaseModel):
    date: dt.date
    day_of_week: str = ""
    sessions: List[StudySession] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_day_of_week(self) -> "DaySchedule":
        self.day_of_week = weekday_name(self.date)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_planned_hours(self) -> float:
        return round(sum(s.duration_hours() for s in self.sessions if s.kind != SessionKind.break_.value), 2)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_completed_hours(self) -> float:
        return round(
            sum(s.duration_hours() for s in self.sessions if s.completed and s.kind != SessionKind.break_.value),
            2,
        )


class PlanningRequest(BaseModel):
    """Everything the synthesizer needs to lay out a schedule."""

    start: date
    end: date
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    habits: HabitProfile = Field(default_factory=HabitProfile)
    assignments: List[AssignmentRef] = Field(default_factory=list)
    syllabus_data: Optional[Any] = None
    exclude_days: List[int] = Field(default_factory=list, description="Weekdays to keep free, 0 = Monday.")

    @field_validator("exclude_days")
    @classmethod
    def _valid_weekdays(cls, value: List[int]) -> List[int]:
        bad = [day for day in value if day < 0 or day > 6]
        if bad:
            raise ValueError(f"exclude_days must be between 0 and 6, got {bad}")
        return sorted(set(value))


def ensure_valid_range(start: date, end: date) -> None:
    """Reject inverted ranges; a single-day range is fine."""
    if start > end:
        raise InvalidPlanningRequest(f"start date {start.isoformat()} is after end date {end.isoformat()}")


def load_schedule(raw: Any) -> List[DaySchedule]:
    """Validate a stored schedule document into typed days."""
    return [DaySchedule.model_validate(day) for day in (raw or [])]


_DERIVED_DAY_FIELDS = {"total_planned_hours", "total_completed_hours"}


def dump_schedule(days: List[DaySchedule]) -> List[dict]:
    """Render typed days into the JSON document that is persisted."""
    return [day.model_dump(mode="json", exclude=_DERIVED_DAY_FIELDS) for day in days]
