"""Study session logging and habit analysis."""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from studyplanner.core.clock import Clock
from studyplanner.db.models.study_log import StudyLog
from studyplanner.db.stores import StudyLogStore
from studyplanner.services.schedule_types import TIME_BANDS, HabitProfile
from studyplanner.services.user_service import add_study_time, get_or_create_user, load_habits

logger = logging.getLogger(__name__)

ANALYSIS_WINDOW_DAYS = 30
MAX_PREFERRED_SUBJECTS = 5

_DAY = timedelta(days=1)


def _utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def time_of_day(moment: datetime) -> str:
    """Band of the wall-clock hour: 05-12 morning, 12-17 afternoon, 17-21 evening, else night."""
    hour = moment.hour
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def session_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between start and end; raises ValueError unless end is after start."""
    minutes = round((_utc(end) - _utc(start)).total_seconds() / 60)
    if minutes <= 0:
        raise ValueError("end_time must be after start_time")
    return minutes


def analyze_study_habits(logs: Iterable[StudyLog], now: datetime) -> HabitProfile:
    """
    Derive a habit profile from logged sessions.

    average_study_hours is total hours over distinct study days. The peak band is the one
    with the most minutes (earlier band wins a tie). Consistency is days studied over the
    days since the first logged session, capped at 100. With no sessions the default
    profile is returned.
    """
    logs = list(logs)
    if not logs:
        return HabitProfile()

    total_minutes = sum(log.duration_minutes for log in logs)
    study_days = {_utc(log.start_time).date() for log in logs}
    average = round(total_minutes / 60 / len(study_days), 2)

    band_minutes: Dict[str, int] = {band: 0 for band in TIME_BANDS}
    subject_minutes: Dict[str, int] = defaultdict(int)
    for log in logs:
        band_minutes[log.time_of_day] = band_minutes.get(log.time_of_day, 0) + log.duration_minutes
        subject_minutes[log.subject] += log.duration_minutes
    peak = max(TIME_BANDS, key=lambda band: band_minutes[band])

    first_start = min(_utc(log.start_time) for log in logs)
    period_days = max(1, math.ceil((_utc(now) - first_start) / _DAY))
    consistency = min(100, math.floor(100 * len(study_days) / period_days + 0.5))

    preferred = sorted(subject_minutes, key=lambda subject: subject_minutes[subject], reverse=True)

    return HabitProfile(
        peak_productivity_time=peak,
        average_study_hours=average,
        consistency=consistency,
        preferred_subjects=preferred[:MAX_PREFERRED_SUBJECTS],
    )


def log_study_session(db: Session, user_id: UUID, data: Dict[str, Any]) -> StudyLog:
    """Record a completed study session and add its time to the user's stats."""
    get_or_create_user(db, user_id)
    start: datetime = data["start_time"]
    end: datetime = data["end_time"]
    minutes = session_minutes(start, end)

    log = StudyLog(
        user_id=user_id,
        plan_id=data.get("plan_id"),
        assignment_id=data.get("assignment_id"),
        subject=data["subject"],
        topic=data.get("topic") or "",
        # The band uses the submitted wall-clock time; storage is UTC.
        time_of_day=time_of_day(start),
        start_time=_utc(start),
        end_time=_utc(end),
        duration_minutes=minutes,
        focus_score=data.get("focus_score"),
        notes=data.get("notes") or "",
    )
    StudyLogStore(db).add(log)
    add_study_time(db, user_id, minutes / 60)
    return log


def analyze_habits(db: Session, user_id: UUID, clock: Clock) -> tuple[Optional[HabitProfile], int]:
    """
    Recompute the user's habit profile from the last 30 days of logged sessions.

    Returns (profile, sessions analysed). With nothing logged the stored profile is left
    unchanged and None is returned.
    """
    user = get_or_create_user(db, user_id)
    previous_peak = load_habits(user).peak_productivity_time
    now = clock.now()
    logs: List[StudyLog] = StudyLogStore(db).list_for_user(user_id, since=_utc(now) - ANALYSIS_WINDOW_DAYS * _DAY)
    if not logs:
        logger.info("No study sessions logged in the last %d days; habits unchanged", ANALYSIS_WINDOW_DAYS)
        return None, 0

    profile = analyze_study_habits(logs, now).model_copy(update={"last_analyzed_at": now})
    user.habits = profile.model_dump(mode="json")
    db.add(user)
    logger.info(
        "Habits analysed from %d sessions: %.2fh/day, peak %s (was %s)",
        len(logs),
        profile.average_study_hours,
        profile.peak_productivity_time,
        previous_peak,
    )
    return profile, len(logs)
