"""Study plan orchestration: generation, session updates, rebalancing."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from studyplanner.core.clock import Clock
from studyplanner.db.models.study_plan import StudyPlan
from studyplanner.db.stores import AssignmentStore, StudyPlanStore
from studyplanner.services.adherence import UNSET, apply_session_update, score_schedule
from studyplanner.services.assignment_service import to_assignment_ref
from studyplanner.services.schedule_rebalancer import RebalanceResult, ScheduleRebalancer
from studyplanner.services.schedule_synthesizer import ScheduleSynthesizer
from studyplanner.services.schedule_types import (
    PlanningRequest,
    StudySession,
    dump_schedule,
    ensure_valid_range,
    load_schedule,
)
from studyplanner.services.user_service import get_or_create_user, load_habits, load_preferences

logger = logging.getLogger(__name__)

PLAN_STATUSES = ("active", "archived")


@dataclass
class SessionUpdateResult:
    plan: StudyPlan
    session: StudySession
    changed: bool


class StudyPlanService:
    """Coordinates stores, the synthesizer and the clock for one request."""

    def __init__(self, db: Session, synthesizer: ScheduleSynthesizer, clock: Clock):
        self.db = db
        self.plans = StudyPlanStore(db)
        self.assignments = AssignmentStore(db)
        self.synthesizer = synthesizer
        self.clock = clock

    def _planning_template(
        self,
        user_id: UUID,
        start: date,
        end: date,
        *,
        include_assignments: Optional[List[UUID]] = None,
        exclude_days: Optional[List[int]] = None,
        syllabus_data: Any = None,
    ) -> PlanningRequest:
        user = get_or_create_user(self.db, user_id)
        assignments = self.assignments.list_open(user_id, only_ids=include_assignments or None)
        return PlanningRequest(
            start=start,
            end=end,
            preferences=load_preferences(user),
            habits=load_habits(user),
            assignments=[to_assignment_ref(item) for item in assignments],
            syllabus_data=syllabus_data,
            exclude_days=exclude_days or [],
        )

    def generate_plan(
        self,
        user_id: UUID,
        start: date,
        end: date,
        *,
        include_assignments: Optional[List[UUID]] = None,
        exclude_days: Optional[List[int]] = None,
        syllabus_data: Any = None,
        request_id: str | None = None,
    ) -> StudyPlan:
        ensure_valid_range(start, end)
        request = self._planning_template(
            user_id,
            start,
            end,
            include_assignments=include_assignments,
            exclude_days=exclude_days,
            syllabus_data=syllabus_data,
        )
        result = self.synthesizer.synthesize_with_details(request, user_id=str(user_id), request_id=request_id)

        plan = StudyPlan(
            user_id=user_id,
            plan_type="custom",
            start_date=start,
            end_date=end,
            schedule=dump_schedule(result.days),
            exclude_days=request.exclude_days,
            generation_prompt=result.prompt,
            ai_model=self.synthesizer.model_name,
            generated_by=result.source,
            status="active",
            adherence_score=score_schedule(result.days),
        )
        self.plans.add(plan)
        self.db.commit()
        self.db.refresh(plan)
        logger.info("Study plan %s generated via %s with %d days", plan.id, result.source, len(result.days))
        return plan

    def update_session(
        self,
        plan: StudyPlan,
        session_id: str,
        *,
        completed: Optional[bool] = None,
        note: object = UNSET,
    ) -> SessionUpdateResult:
        schedule = load_schedule(plan.schedule)
        updated, session = apply_session_update(
            schedule,
            session_id,
            now=self.clock.now(),
            completed=completed,
            note=note,
        )
        changed = dump_schedule(updated) != dump_schedule(schedule)
        if changed:
            plan.schedule = dump_schedule(updated)
            plan.adherence_score = score_schedule(updated)
            self.db.add(plan)
            self.db.commit()
            self.db.refresh(plan)
        return SessionUpdateResult(plan=plan, session=session, changed=changed)

    def rebalance(self, plan: StudyPlan, *, request_id: str | None = None) -> RebalanceResult:
        schedule = load_schedule(plan.schedule)
        template = self._planning_template(
            plan.user_id,
            plan.start_date,
            plan.end_date,
            exclude_days=list(plan.exclude_days or []),
        )
        rebalancer = ScheduleRebalancer(self.synthesizer, self.clock)
        result = rebalancer.rebalance(
            schedule,
            plan.end_date,
            template,
            user_id=str(plan.user_id),
            request_id=request_id,
        )
        if result.changed:
            plan.schedule = dump_schedule(result.schedule)
            plan.adherence_score = score_schedule(result.schedule)
            if result.source:
                plan.generated_by = result.source
            self.db.add(plan)
            self.db.commit()
            self.db.refresh(plan)
        return result

    def set_status(self, plan: StudyPlan, status: str) -> Tuple[StudyPlan, bool]:
        if status not in PLAN_STATUSES:
            raise ValueError(f"Unknown plan status {status!r}")
        if plan.status == status:
            return plan, False
        plan.status = status
        self.db.add(plan)
        self.db.commit()
        self.db.refresh(plan)
        return plan, True

    def delete(self, plan: StudyPlan) -> None:
        self.plans.delete(plan)
        self.db.commit()
