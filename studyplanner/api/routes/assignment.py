"""Assignment API routes."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from studyplanner.api.deps import get_clock
from studyplanner.api.schemas.assignment import (
    AssignmentCreateRequest,
    AssignmentListResponse,
    AssignmentOut,
    AssignmentStatusUpdateRequest,
    AssignmentUpdateRequest,
    AssignmentUpdateResponse,
)
from studyplanner.api.serializers import serialize_assignment
from studyplanner.core.clock import Clock
from studyplanner.db.deps import get_db
from studyplanner.db.models.assignment import Assignment
from studyplanner.db.stores import AssignmentStore
from studyplanner.observability.metrics import log_metric
from studyplanner.observability.tracing import trace
from studyplanner.services.assignment_service import (
    create_assignment,
    update_assignment,
    update_assignment_status,
)

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _owned_assignment(db: Session, assignment_id: UUID, user_id: UUID) -> Assignment:
    assignment = AssignmentStore(db).get(assignment_id)
    if not assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    if assignment.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Assignment does not belong to user")
    return assignment


@router.get("", response_model=AssignmentListResponse)
def list_assignments(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the assignments"),
    assignment_status: Optional[str] = Query(default=None, alias="status", pattern="^(pending|in-progress|completed)$"),
    priority: Optional[str] = Query(default=None, pattern="^(urgent|high|medium|low)$"),
    subject: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AssignmentListResponse:
    """List assignments ordered by due date."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "assignment.list",
        metadata={"route": "/assignments", "status": assignment_status, "priority": priority, "subject": subject},
        user_id=str(user_id),
        request_id=request_id,
    ):
        assignments = AssignmentStore(db).list_for_user(
            user_id,
            status=assignment_status,
            priority=priority,
            subject=subject,
        )

    now = clock.now()
    log_metric("assignment.list.count", len(assignments), metadata={"user_id": str(user_id)})
    return AssignmentListResponse(
        count=len(assignments),
        assignments=[serialize_assignment(item, now) for item in assignments],
        request_id=request_id or "",
    )


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(
    assignment_id: UUID,
    user_id: UUID = Query(..., description="User ID owning the assignment"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AssignmentOut:
    return serialize_assignment(_owned_assignment(db, assignment_id, user_id), clock.now())


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment_route(
    payload: AssignmentCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AssignmentOut:
    """Create an assignment; its priority tier comes from the due date."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        with trace(
            "assignment.create",
            metadata={"route": "/assignments", "subject": payload.subject},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            assignment = create_assignment(
                db,
                payload.user_id,
                payload.model_dump(exclude={"user_id"}),
                clock,
            )
            db.commit()
            db.refresh(assignment)
    except Exception:
        db.rollback()
        raise

    log_metric("assignment.create.success", 1, metadata={"priority": assignment.priority})
    return serialize_assignment(assignment, clock.now())


@router.put("/{assignment_id}", response_model=AssignmentUpdateResponse)
def update_assignment_route(
    assignment_id: UUID,
    payload: AssignmentUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AssignmentUpdateResponse:
    """Partially update an assignment; a new due date re-derives the priority."""
    request_id = getattr(http_request.state, "request_id", None)
    assignment = _owned_assignment(db, assignment_id, payload.user_id)
    try:
        with trace(
            "assignment.update",
            metadata={"assignment_id": str(assignment_id)},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            changed = update_assignment(db, assignment, payload.model_dump(exclude={"user_id"}, exclude_unset=True), clock)
            db.commit()
            db.refresh(assignment)
    except Exception:
        db.rollback()
        raise

    log_metric("assignment.update.fields", len(changed), metadata={"assignment_id": str(assignment_id)})
    return AssignmentUpdateResponse(
        assignment=serialize_assignment(assignment, clock.now()),
        changed_fields=changed,
        request_id=request_id or "",
    )


@router.patch("/{assignment_id}/status", response_model=AssignmentOut)
def update_assignment_status_route(
    assignment_id: UUID,
    payload: AssignmentStatusUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AssignmentOut:
    """Move an assignment between pending, in-progress and completed."""
    request_id = getattr(http_request.state, "request_id", None)
    assignment = _owned_assignment(db, assignment_id, payload.user_id)
    try:
        with trace(
            "assignment.status",
            metadata={"assignment_id": str(assignment_id), "status": payload.status},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            update_assignment_status(
                db,
                assignment,
                status=payload.status,
                clock=clock,
                actual_hours=payload.actual_hours,
                completion_notes=payload.completion_notes,
            )
            db.commit()
            db.refresh(assignment)
    except Exception:
        db.rollback()
        raise

    log_metric("assignment.status.success", 1, metadata={"status": payload.status})
    return serialize_assignment(assignment, clock.now())


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assignment(
    assignment_id: UUID,
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the assignment"),
    db: Session = Depends(get_db),
) -> Response:
    request_id = getattr(http_request.state, "request_id", None)
    assignment = _owned_assignment(db, assignment_id, user_id)
    try:
        with trace("assignment.delete", metadata={"assignment_id": str(assignment_id)}, user_id=str(user_id), request_id=request_id):
            AssignmentStore(db).delete(assignment)
            db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("assignment.delete.success", 1, metadata={"assignment_id": str(assignment_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
