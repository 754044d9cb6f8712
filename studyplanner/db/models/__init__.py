"""ORM models exposed for metadata discovery."""
from studyplanner.db.models.assignment import Assignment
from studyplanner.db.models.study_log import StudyLog
from studyplanner.db.models.study_plan import StudyPlan
from studyplanner.db.models.user import User

__all__ = [
    "Assignment",
    "StudyLog",
    "StudyPlan",
    "User",
]
