"""Store-to-API mapping; one function per entity."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from studyplanner.api.schemas.assignment import AssignmentOut
from studyplanner.api.schemas.study_plan import (
    DayScheduleOut,
    StudyPlanDetail,
    StudyPlanSummary,
    StudySessionOut,
)
from studyplanner.api.schemas.user import StudyLogOut, UserProfileResponse, UserStats
from studyplanner.db.models.assignment import Assignment
from studyplanner.db.models.study_log import StudyLog
from studyplanner.db.models.study_plan import StudyPlan
from studyplanner.db.models.user import User
from studyplanner.services.adherence import count_sessions
from studyplanner.services.priority import days_remaining, hours_remaining
from studyplanner.services.schedule_types import DaySchedule, StudySession, load_schedule
from studyplanner.services.user_service import load_habits, load_preferences, load_stats


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; all timestamps are written in UTC.
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def serialize_session(session: StudySession) -> StudySessionOut:
    return StudySessionOut(
        id=session.id or "",
        start_time=session.start_time,
        end_time=session.end_time,
        subject=session.subject,
        topic=session.topic,
        assignment_id=session.assignment_id,
        kind=str(getattr(session.kind, "value", session.kind)),
        completed=session.completed,
        completed_at=_utc(session.completed_at),
        note=session.note,
    )


def serialize_day(day: DaySchedule) -> DayScheduleOut:
    return DayScheduleOut(
        date=day.date,
        day_of_week=day.day_of_week,
        sessions=[serialize_session(session) for session in day.sessions],
        total_planned_hours=day.total_planned_hours,
        total_completed_hours=day.total_completed_hours,
    )


def _summary_fields(plan: StudyPlan, days: List[DaySchedule]) -> dict:
    completed, total = count_sessions(days)
    return {
        "id": plan.id,
        "user_id": plan.user_id,
        "plan_type": plan.plan_type or "custom",
        "start_date": plan.start_date,
        "end_date": plan.end_date,
        "status": plan.status,
        "adherence_score": plan.adherence_score or 0,
        "generated_by": plan.generated_by or "oracle",
        "ai_model": plan.ai_model,
        "days_scheduled": len(days),
        "sessions_total": total,
        "sessions_completed": completed,
        "created_at": _utc(plan.created_at),
        "updated_at": _utc(plan.updated_at),
    }


def serialize_plan_summary(plan: StudyPlan) -> StudyPlanSummary:
    return StudyPlanSummary(**_summary_fields(plan, load_schedule(plan.schedule)))


def serialize_plan(plan: StudyPlan) -> StudyPlanDetail:
    days = load_schedule(plan.schedule)
    return StudyPlanDetail(
        **_summary_fields(plan, days),
        exclude_days=list(plan.exclude_days or []),
        schedule=[serialize_day(day) for day in days],
    )


def serialize_assignment(assignment: Assignment, now: datetime) -> AssignmentOut:
    due = _utc(assignment.due_date)
    return AssignmentOut(
        id=assignment.id,
        user_id=assignment.user_id,
        title=assignment.title,
        subject=assignment.subject,
        description=assignment.description or "",
        topics=list(assignment.topics or []),
        due_date=due,
        estimated_hours=assignment.estimated_hours,
        actual_hours=assignment.actual_hours or 0,
        status=assignment.status,
        priority=assignment.priority,
        difficulty=assignment.difficulty or "medium",
        completed_at=_utc(assignment.completed_at),
        completion_notes=assignment.completion_notes or "",
        days_remaining=days_remaining(due, now),
        hours_remaining=hours_remaining(due, now),
        created_at=_utc(assignment.created_at),
        updated_at=_utc(assignment.updated_at),
    )


def serialize_user_profile(user: User, request_id: str) -> UserProfileResponse:
    stats = load_stats(user)
    return UserProfileResponse(
        user_id=user.id,
        preferences=load_preferences(user),
        habits=load_habits(user),
        stats=UserStats(
            assignments_completed=int(stats["assignments_completed"]),
            total_study_time=float(stats["total_study_time"]),
        ),
        created_at=_utc(user.created_at),
        request_id=request_id,
    )


def serialize_study_log(log: StudyLog) -> StudyLogOut:
    return StudyLogOut(
        id=log.id,
        user_id=log.user_id,
        plan_id=log.plan_id,
        assignment_id=log.assignment_id,
        subject=log.subject,
        topic=log.topic or "",
        start_time=_utc(log.start_time),
        end_time=_utc(log.end_time),
        duration_minutes=log.duration_minutes,
        time_of_day=log.time_of_day,
        focus_score=log.focus_score,
        notes=log.notes or "",
        created_at=_utc(log.created_at),
    )
