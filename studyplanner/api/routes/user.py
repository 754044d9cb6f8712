"""User profile and habit API routes."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from studyplanner.api.deps import get_clock
from studyplanner.api.schemas.user import (
    HabitAnalysisResponse,
    StudyLogCreateRequest,
    StudyLogListResponse,
    StudyLogOut,
    UserProfileResponse,
)
from studyplanner.api.serializers import serialize_study_log, serialize_user_profile
from studyplanner.core.clock import Clock
from studyplanner.db.deps import get_db
from studyplanner.db.stores import AssignmentStore, StudyLogStore, StudyPlanStore
from studyplanner.observability.metrics import log_metric
from studyplanner.observability.tracing import trace
from studyplanner.services.habit_service import analyze_habits, log_study_session
from studyplanner.services.schedule_types import HabitProfile, UserPreferences
from studyplanner.services.user_service import get_or_create_user, update_habits, update_preferences

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/profile", response_model=UserProfileResponse)
def get_profile(user_id: UUID, http_request: Request, db: Session = Depends(get_db)) -> UserProfileResponse:
    """Return planning preferences, habits and stats, creating defaults for a new user."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        user = get_or_create_user(db, user_id)
        db.commit()
        db.refresh(user)
    except Exception:
        db.rollback()
        raise
    return serialize_user_profile(user, request_id or "")


@router.put("/{user_id}/preferences", response_model=UserProfileResponse)
def put_preferences(
    user_id: UUID,
    payload: UserPreferences,
    http_request: Request,
    db: Session = Depends(get_db),
) -> UserProfileResponse:
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace("user.preferences", metadata=payload.model_dump(mode="json"), user_id=str(user_id), request_id=request_id):
            user = update_preferences(db, user_id, payload)
            db.commit()
            db.refresh(user)
    except Exception:
        db.rollback()
        raise
    return serialize_user_profile(user, request_id or "")


@router.put("/{user_id}/habits", response_model=UserProfileResponse)
def put_habits(
    user_id: UUID,
    payload: HabitProfile,
    http_request: Request,
    db: Session = Depends(get_db),
) -> UserProfileResponse:
    """Overwrite the habit profile by hand; normally it comes from /habits/analyze."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace("user.habits", metadata=payload.model_dump(mode="json"), user_id=str(user_id), request_id=request_id):
            user = update_habits(db, user_id, payload)
            db.commit()
            db.refresh(user)
    except Exception:
        db.rollback()
        raise
    return serialize_user_profile(user, request_id or "")


def _require_owned(record, user_id: UUID, label: str) -> None:
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    if record.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{label} does not belong to user")


@router.post("/{user_id}/study-sessions", response_model=StudyLogOut, status_code=status.HTTP_201_CREATED)
def log_session(
    user_id: UUID,
    payload: StudyLogCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> StudyLogOut:
    """Log a finished study session; its minutes feed habit analysis and the study-time total."""
    request_id = getattr(http_request.state, "request_id", None)
    if payload.plan_id:
        _require_owned(StudyPlanStore(db).get(payload.plan_id), user_id, "Study plan")
    if payload.assignment_id:
        _require_owned(AssignmentStore(db).get(payload.assignment_id), user_id, "Assignment")
    try:
        with trace(
            "user.study_session.log",
            metadata={"subject": payload.subject, "plan_id": str(payload.plan_id or "")},
            user_id=str(user_id),
            request_id=request_id,
        ):
            log = log_study_session(db, user_id, payload.model_dump())
            db.commit()
            db.refresh(log)
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except Exception:
        db.rollback()
        raise

    log_metric("user.study_session.minutes", log.duration_minutes, metadata={"time_of_day": log.time_of_day})
    return serialize_study_log(log)


@router.get("/{user_id}/study-sessions", response_model=StudyLogListResponse)
def list_sessions(
    user_id: UUID,
    http_request: Request,
    start: Optional[datetime] = Query(default=None, description="Only sessions starting at or after this time"),
    end: Optional[datetime] = Query(default=None, description="Only sessions starting at or before this time"),
    subject: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> StudyLogListResponse:
    """Logged sessions, most recent first."""
    request_id = getattr(http_request.state, "request_id", None)
    logs = StudyLogStore(db).list_for_user(user_id, since=start, until=end, subject=subject)
    return StudyLogListResponse(
        count=len(logs),
        sessions=[serialize_study_log(log) for log in logs],
        request_id=request_id or "",
    )


@router.post("/{user_id}/habits/analyze", response_model=HabitAnalysisResponse)
def analyze_user_habits(
    user_id: UUID,
    http_request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> HabitAnalysisResponse:
    """Derive average study hours and the peak time band from the last 30 days of logs."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace("user.habits.analyze", metadata={"route": "/users/{user_id}/habits/analyze"}, user_id=str(user_id), request_id=request_id) as span:
            profile, analysed = analyze_habits(db, user_id, clock)
            db.commit()
            if span:
                span.update(metadata={"sessions_analyzed": analysed})
    except Exception:
        db.rollback()
        raise

    log_metric("user.habits.analyzed", 1 if profile else 0, metadata={"sessions": analysed})
    return HabitAnalysisResponse(
        user_id=user_id,
        analyzed=profile is not None,
        sessions_analyzed=analysed,
        habits=profile,
        request_id=request_id or "",
    )
