"""ORM models exposed for metadata discovery."""
from studymentor.db.models.daily_plan import DailyPlanRecord
from studymentor.db.models.profile import ProfileRecord
from studymentor.db.models.subject import SubjectRecord
from studymentor.db.models.topic import TopicRecord

__all__ = [
    "DailyPlanRecord",
    "ProfileRecord",
    "SubjectRecord",
    "TopicRecord",
]
