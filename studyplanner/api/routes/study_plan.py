"""Study plan API routes."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from studyplanner.api.deps import get_clock, get_synthesizer
from studyplanner.api.schemas.study_plan import (
    RebalanceRequest,
    RebalanceResponse,
    SessionUpdateRequest,
    SessionUpdateResponse,
    StudyPlanDetail,
    StudyPlanGenerateRequest,
    StudyPlanListResponse,
    StudyPlanStatusUpdateRequest,
)
from studyplanner.api.serializers import serialize_plan, serialize_plan_summary, serialize_session
from studyplanner.core.clock import Clock
from studyplanner.core.context import bind_user_id
from studyplanner.core.errors import InvalidPlanningRequest, SessionNotFound
from studyplanner.db.deps import get_db
from studyplanner.db.models.study_plan import StudyPlan
from studyplanner.db.stores import StudyPlanStore
from studyplanner.observability.metrics import log_metric, timed
from studyplanner.observability.tracing import trace
from studyplanner.services.adherence import UNSET
from studyplanner.services.schedule_synthesizer import ScheduleSynthesizer
from studyplanner.services.study_plan_service import StudyPlanService

router = APIRouter(prefix="/study-plans", tags=["study-plans"])


def _service(
    db: Session = Depends(get_db),
    synthesizer: ScheduleSynthesizer = Depends(get_synthesizer),
    clock: Clock = Depends(get_clock),
) -> StudyPlanService:
    return StudyPlanService(db, synthesizer, clock)


def _owned_plan(db: Session, plan_id: UUID, user_id: UUID) -> StudyPlan:
    plan = StudyPlanStore(db).get(plan_id)
    if not plan:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Study plan not found")
    if plan.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Study plan does not belong to user")
    return plan


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Study plan was modified by another request; reload and retry",
    )


@router.post("/generate", response_model=StudyPlanDetail, status_code=status.HTTP_201_CREATED)
def generate_study_plan(
    payload: StudyPlanGenerateRequest,
    http_request: Request,
    service: StudyPlanService = Depends(_service),
) -> StudyPlanDetail:
    """Synthesize a new plan for the requested range from the user's open assignments."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(payload.user_id)
    metadata = {
        "route": "/study-plans/generate",
        "user_id": str(payload.user_id),
        "start_date": payload.start_date.isoformat(),
        "end_date": payload.end_date.isoformat(),
        "include_assignments": len(payload.include_assignments or []),
        "request_id": request_id,
    }

    try:
        with timed("study_plan.generate", metadata={"user_id": str(payload.user_id)}), trace(
            "study_plan.generate",
            metadata=metadata,
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            plan = service.generate_plan(
                payload.user_id,
                payload.start_date,
                payload.end_date,
                include_assignments=payload.include_assignments,
                exclude_days=payload.exclude_days,
                syllabus_data=payload.syllabus_data,
                request_id=request_id,
            )
    except InvalidPlanningRequest as exc:
        service.db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except Exception:
        service.db.rollback()
        raise

    log_metric(
        "study_plan.generate.success",
        1,
        metadata={"user_id": str(payload.user_id), "source": plan.generated_by},
    )
    return serialize_plan(plan)


@router.get("", response_model=StudyPlanListResponse)
def list_study_plans(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the plans"),
    plan_status: Optional[str] = Query(default=None, alias="status", pattern="^(active|archived)$"),
    db: Session = Depends(get_db),
) -> StudyPlanListResponse:
    """List a user's plans, newest first."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "study_plan.list",
        metadata={"route": "/study-plans", "status": plan_status},
        user_id=str(user_id),
        request_id=request_id,
    ):
        plans = StudyPlanStore(db).list_for_user(user_id, status=plan_status)

    log_metric("study_plan.list.count", len(plans), metadata={"user_id": str(user_id)})
    return StudyPlanListResponse(
        count=len(plans),
        plans=[serialize_plan_summary(plan) for plan in plans],
        request_id=request_id or "",
    )


@router.get("/{plan_id}", response_model=StudyPlanDetail)
def get_study_plan(
    plan_id: UUID,
    user_id: UUID = Query(..., description="User ID owning the plan"),
    db: Session = Depends(get_db),
) -> StudyPlanDetail:
    return serialize_plan(_owned_plan(db, plan_id, user_id))


@router.patch("/{plan_id}", response_model=StudyPlanDetail)
def update_study_plan_status(
    plan_id: UUID,
    payload: StudyPlanStatusUpdateRequest,
    http_request: Request,
    service: StudyPlanService = Depends(_service),
) -> StudyPlanDetail:
    """Archive or reactivate a plan."""
    request_id = getattr(http_request.state, "request_id", None)
    plan = _owned_plan(service.db, plan_id, payload.user_id)
    try:
        with trace(
            "study_plan.status",
            metadata={"plan_id": str(plan_id), "status": payload.status},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            plan, changed = service.set_status(plan, payload.status)
    except StaleDataError as exc:
        service.db.rollback()
        raise _conflict() from exc
    except Exception:
        service.db.rollback()
        raise

    log_metric("study_plan.status.changed", 1 if changed else 0, metadata={"plan_id": str(plan_id)})
    return serialize_plan(plan)


@router.patch("/{plan_id}/sessions/{session_id}", response_model=SessionUpdateResponse)
def update_session(
    plan_id: UUID,
    session_id: str,
    payload: SessionUpdateRequest,
    http_request: Request,
    service: StudyPlanService = Depends(_service),
) -> SessionUpdateResponse:
    """Mark a session complete/incomplete and/or set its note; adherence is recomputed."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(payload.user_id)
    plan = _owned_plan(service.db, plan_id, payload.user_id)
    note = payload.note if "note" in payload.model_fields_set else UNSET

    try:
        with timed("study_plan.session_update", metadata={"plan_id": str(plan_id)}), trace(
            "study_plan.session_update",
            metadata={
                "route": f"/study-plans/{plan_id}/sessions/{session_id}",
                "plan_id": str(plan_id),
                "session_id": session_id,
                "completed": payload.completed,
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            result = service.update_session(plan, session_id, completed=payload.completed, note=note)
    except SessionNotFound as exc:
        service.db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found") from exc
    except StaleDataError as exc:
        service.db.rollback()
        raise _conflict() from exc
    except ValueError as exc:
        service.db.rollback()
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except Exception:
        service.db.rollback()
        raise

    log_metric("study_plan.session_update.changed", 1 if result.changed else 0, metadata={"plan_id": str(plan_id)})
    log_metric("study_plan.adherence", result.plan.adherence_score, metadata={"plan_id": str(plan_id)})
    return SessionUpdateResponse(
        plan_id=result.plan.id,
        session=serialize_session(result.session),
        adherence_score=result.plan.adherence_score,
        changed=result.changed,
        request_id=request_id or "",
    )


@router.post("/{plan_id}/rebalance", response_model=RebalanceResponse)
def rebalance_study_plan(
    plan_id: UUID,
    payload: RebalanceRequest,
    http_request: Request,
    service: StudyPlanService = Depends(_service),
) -> RebalanceResponse:
    """Regenerate the plan from today when past sessions were missed."""
    request_id = getattr(http_request.state, "request_id", None)
    bind_user_id(payload.user_id)
    plan = _owned_plan(service.db, plan_id, payload.user_id)

    try:
        with timed("study_plan.rebalance", metadata={"plan_id": str(plan_id)}), trace(
            "study_plan.rebalance",
            metadata={"route": f"/study-plans/{plan_id}/rebalance", "plan_id": str(plan_id)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ) as span:
            result = service.rebalance(plan, request_id=request_id)
            if span:
                span.update(metadata={"reason": result.reason, "missed_sessions": len(result.missed_sessions)})
    except StaleDataError as exc:
        service.db.rollback()
        raise _conflict() from exc
    except Exception:
        service.db.rollback()
        raise

    log_metric("study_plan.rebalance.changed", 1 if result.changed else 0, metadata={"reason": result.reason})
    return RebalanceResponse(
        plan_id=plan.id,
        rebalanced=result.changed,
        reason=result.reason,
        missed_sessions=len(result.missed_sessions),
        source=result.source,
        plan=serialize_plan(plan),
        request_id=request_id or "",
    )


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_study_plan(
    plan_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the plan"),
    service: StudyPlanService = Depends(_service),
) -> Response:
    request_id = getattr(http_request.state, "request_id", None)
    plan = _owned_plan(service.db, plan_id, user_id)
    try:
        with trace("study_plan.delete", metadata={"plan_id": str(plan_id)}, user_id=str(user_id), request_id=request_id):
            service.delete(plan)
    except Exception:
        service.db.rollback()
        raise

    log_metric("study_plan.delete.success", 1, metadata={"plan_id": str(plan_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
