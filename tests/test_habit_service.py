"""Tests for habit analysis over logged study sessions."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from studyplanner.db.models.study_log import StudyLog
from studyplanner.services.habit_service import analyze_study_habits, session_minutes, time_of_day
from studyplanner.services.schedule_types import HabitProfile

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def _log(start: datetime, minutes: int, subject: str = "Math") -> StudyLog:
    return StudyLog(
        subject=subject,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        duration_minutes=minutes,
        time_of_day=time_of_day(start),
    )


@pytest.mark.parametrize(
    "hour, band",
    [(4, "night"), (5, "morning"), (11, "morning"), (12, "afternoon"), (16, "afternoon"), (17, "evening"), (20, "evening"), (21, "night")],
)
def test_time_of_day_bands(hour: int, band: str) -> None:
    assert time_of_day(datetime(2026, 1, 5, hour, 30)) == band


def test_time_of_day_uses_submitted_wall_clock() -> None:
    local_morning = datetime(2026, 1, 5, 8, 0, tzinfo=timezone(timedelta(hours=-8)))

    assert time_of_day(local_morning) == "morning"


def test_session_minutes_requires_positive_length() -> None:
    start = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

    assert session_minutes(start, start + timedelta(minutes=90)) == 90
    with pytest.raises(ValueError):
        session_minutes(start, start)
    with pytest.raises(ValueError):
        session_minutes(start, start - timedelta(minutes=5))


def test_no_sessions_gives_default_profile() -> None:
    assert analyze_study_habits([], NOW) == HabitProfile()
    assert HabitProfile().peak_productivity_time == "evening"
    assert HabitProfile().average_study_hours == 0


def test_average_is_total_hours_over_distinct_days() -> None:
    logs = [
        _log(datetime(2026, 1, 8, 9, 0, tzinfo=timezone.utc), 60),
        _log(datetime(2026, 1, 8, 14, 0, tzinfo=timezone.utc), 90),
        _log(datetime(2026, 1, 9, 19, 0, tzinfo=timezone.utc), 50),
    ]

    profile = analyze_study_habits(logs, NOW)

    # 200 minutes over 2 days
    assert profile.average_study_hours == 1.67


def test_peak_band_has_the_most_minutes() -> None:
    logs = [
        _log(datetime(2026, 1, 8, 9, 0, tzinfo=timezone.utc), 30),
        _log(datetime(2026, 1, 8, 10, 0, tzinfo=timezone.utc), 30),
        _log(datetime(2026, 1, 9, 22, 0, tzinfo=timezone.utc), 90, subject="Physics"),
    ]

    profile = analyze_study_habits(logs, NOW)

    assert profile.peak_productivity_time == "night"
    assert profile.preferred_subjects == ["Physics", "Math"]


def test_peak_band_tie_goes_to_the_earlier_band() -> None:
    logs = [
        _log(datetime(2026, 1, 9, 18, 0, tzinfo=timezone.utc), 45),
        _log(datetime(2026, 1, 9, 13, 0, tzinfo=timezone.utc), 45),
    ]

    assert analyze_study_habits(logs, NOW).peak_productivity_time == "afternoon"


def test_consistency_is_days_studied_over_period() -> None:
    logs = [
        _log(datetime(2026, 1, 6, 12, 0, tzinfo=timezone.utc), 30),
        _log(datetime(2026, 1, 9, 12, 0, tzinfo=timezone.utc), 30),
    ]

    # 2 study days over the 4 days since the first session
    assert analyze_study_habits(logs, NOW).consistency == 50

    same_day = [_log(datetime(2026, 1, 10, 11, 0, tzinfo=timezone.utc), 30)]
    assert analyze_study_habits(same_day, NOW).consistency == 100
