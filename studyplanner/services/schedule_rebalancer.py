"""Regenerate the unfinished tail of a schedule after sessions are missed."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Literal

from studyplanner.core.clock import Clock
from studyplanner.services.schedule_synthesizer import ScheduleSynthesizer, ensure_unique_session_ids
from studyplanner.services.schedule_types import DaySchedule, PlanningRequest, StudySession

logger = logging.getLogger(__name__)

RebalanceReason = Literal["rebalanced", "nothing_missed", "plan_ended"]


@dataclass
class RebalanceResult:
    schedule: List[DaySchedule]
    changed: bool
    reason: RebalanceReason
    missed_sessions: List[StudySession] = field(default_factory=list)
    source: str | None = None


def find_missed_sessions(schedule: List[DaySchedule], today: date) -> List[StudySession]:
    """Incomplete sessions on days strictly before today."""
    return [
        session
        for day in schedule
        if day.date < today
        for session in day.sessions
        if not session.completed
    ]


class ScheduleRebalancer:
    def __init__(self, synthesizer: ScheduleSynthesizer, clock: Clock):
        self.synthesizer = synthesizer
        self.clock = clock

    def rebalance(
        self,
        schedule: List[DaySchedule],
        plan_end: date,
        template: PlanningRequest,
        *,
        user_id: str | None = None,
        request_id: str | None = None,
    ) -> RebalanceResult:
        """
        Re-synthesize [today, plan_end] when a past session was missed.

        `template` supplies preferences, habits, assignments and syllabus data; its dates are
        replaced. Days before today are kept verbatim. Returns the input list itself when there
        is nothing to do.
        """
        today = self.clock.today()
        missed = find_missed_sessions(schedule, today)
        if not missed:
            return RebalanceResult(schedule=schedule, changed=False, reason="nothing_missed")
        if today > plan_end:
            logger.info("Plan ended on %s; %d missed sessions left as-is", plan_end, len(missed))
            return RebalanceResult(schedule=schedule, changed=False, reason="plan_ended", missed_sessions=missed)

        request = template.model_copy(update={"start": today, "end": plan_end})
        result = self.synthesizer.synthesize_with_details(request, user_id=user_id, request_id=request_id)

        head = [day for day in schedule if day.date < today]
        head_ids = {session.id for day in head for session in day.sessions if session.id}
        tail = ensure_unique_session_ids(result.days, taken=head_ids)
        logger.info(
            "Rebalanced from %s to %s: %d missed sessions, %d days regenerated (%s)",
            today,
            plan_end,
            len(missed),
            len(tail),
            result.source,
        )
        return RebalanceResult(
            schedule=head + tail,
            changed=True,
            reason="rebalanced",
            missed_sessions=missed,
            source=result.source,
        )
