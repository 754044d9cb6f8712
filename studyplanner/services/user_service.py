"""Helpers for working with users and their planning profile."""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studyplanner.db.models.user import User
from studyplanner.services.schedule_types import HabitProfile, UserPreferences

DEFAULT_STATS: Dict[str, float] = {"assignments_completed": 0, "total_study_time": 0.0}


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Fetch an existing user or create a row with default preferences."""
    user = db.get(User, user_id)
    if user:
        return user

    user = User(
        id=user_id,
        preferences=UserPreferences().model_dump(mode="json"),
        habits=HabitProfile().model_dump(mode="json"),
        stats=dict(DEFAULT_STATS),
    )
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise


def load_preferences(user: User) -> UserPreferences:
    return UserPreferences.model_validate(user.preferences or {})


def load_habits(user: User) -> HabitProfile:
    return HabitProfile.model_validate(user.habits or {})


def load_stats(user: User) -> Dict[str, float]:
    return {**DEFAULT_STATS, **(user.stats or {})}


def update_preferences(db: Session, user_id: UUID, preferences: UserPreferences) -> User:
    user = get_or_create_user(db, user_id)
    user.preferences = preferences.model_dump(mode="json")
    db.add(user)
    return user


def update_habits(db: Session, user_id: UUID, habits: HabitProfile) -> User:
    user = get_or_create_user(db, user_id)
    user.habits = habits.model_dump(mode="json")
    db.add(user)
    return user


def record_assignment_completed(db: Session, user_id: UUID, hours: float) -> Dict[str, Any]:
    """Bump the completion counters after an assignment is marked done."""
    user = get_or_create_user(db, user_id)
    stats = load_stats(user)
    stats["assignments_completed"] = int(stats["assignments_completed"]) + 1
    stats["total_study_time"] = float(stats["total_study_time"]) + float(hours or 0)
    # Reassign so the JSON column is flagged dirty.
    user.stats = stats
    db.add(user)
    return stats


def record_assignment_reopened(db: Session, user_id: UUID, hours: float) -> Dict[str, Any]:
    """Undo the counters added by `record_assignment_completed` when an assignment leaves completed."""
    user = get_or_create_user(db, user_id)
    stats = load_stats(user)
    stats["assignments_completed"] = max(0, int(stats["assignments_completed"]) - 1)
    stats["total_study_time"] = max(0.0, float(stats["total_study_time"]) - float(hours or 0))
    user.stats = stats
    db.add(user)
    return stats


def add_study_time(db: Session, user_id: UUID, hours: float) -> Dict[str, Any]:
    """Add logged study hours to the user's running total."""
    user = get_or_create_user(db, user_id)
    stats = load_stats(user)
    stats["total_study_time"] = float(stats["total_study_time"]) + float(hours)
    user.stats = stats
    db.add(user)
    return stats
