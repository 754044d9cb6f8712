"""Whole-record stores for plans and assignments."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import asc, desc
from sqlalchemy.orm import Session

from studyplanner.db.models.assignment import Assignment
from studyplanner.db.models.study_log import StudyLog
from studyplanner.db.models.study_plan import StudyPlan

OPEN_ASSIGNMENT_STATUSES = ("pending", "in-progress")


class StudyPlanStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, plan_id: UUID) -> Optional[StudyPlan]:
        return self.db.get(StudyPlan, plan_id)

    def list_for_user(self, user_id: UUID, status: Optional[str] = None) -> List[StudyPlan]:
        query = self.db.query(StudyPlan).filter(StudyPlan.user_id == user_id)
        if status:
            query = query.filter(StudyPlan.status == status)
        return query.order_by(desc(StudyPlan.created_at)).all()

    def add(self, plan: StudyPlan) -> StudyPlan:
        self.db.add(plan)
        self.db.flush()
        return plan

    def delete(self, plan: StudyPlan) -> None:
        self.db.delete(plan)
        self.db.flush()


class AssignmentStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, assignment_id: UUID) -> Optional[Assignment]:
        return self.db.get(Assignment, assignment_id)

    def list_for_user(
        self,
        user_id: UUID,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> List[Assignment]:
        query = self.db.query(Assignment).filter(Assignment.user_id == user_id)
        if status:
            query = query.filter(Assignment.status == status)
        if priority:
            query = query.filter(Assignment.priority == priority)
        if subject:
            query = query.filter(Assignment.subject == subject)
        return query.order_by(asc(Assignment.due_date), asc(Assignment.created_at)).all()

    def list_open(self, user_id: UUID, only_ids: Optional[Iterable[UUID]] = None) -> List[Assignment]:
        """Pending and in-progress assignments, optionally restricted to the given ids."""
        query = self.db.query(Assignment).filter(
            Assignment.user_id == user_id,
            Assignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
        )
        if only_ids is not None:
            ids = list(only_ids)
            if not ids:
                return []
            query = query.filter(Assignment.id.in_(ids))
        return query.order_by(asc(Assignment.due_date)).all()

    def add(self, assignment: Assignment) -> Assignment:
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def delete(self, assignment: Assignment) -> None:
        self.db.delete(assignment)
        self.db.flush()


class StudyLogStore:
    def __init__(self, db: Session):
        self.db = db

    def list_for_user(
        self,
        user_id: UUID,
        *,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        subject: Optional[str] = None,
    ) -> List[StudyLog]:
        """Logged sessions, most recent first."""
        query = self.db.query(StudyLog).filter(StudyLog.user_id == user_id)
        if subject:
            query = query.filter(StudyLog.subject == subject)
        if since:
            query = query.filter(StudyLog.start_time >= since)
        if until:
            query = query.filter(StudyLog.start_time <= until)
        return query.order_by(desc(StudyLog.start_time)).all()

    def add(self, log: StudyLog) -> StudyLog:
        self.db.add(log)
        self.db.flush()
        return log
