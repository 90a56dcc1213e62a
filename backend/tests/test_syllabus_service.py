from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studymentor.db.base import Base
from studymentor.domain.entities import (
    DailyPlan,
    Difficulty,
    PlanItem,
    Subject,
    Topic,
    TopicStatus,
    TopicSuggestion,
)
from studymentor.services.plan_drafting import DraftingError
from studymentor.services.plan_store import PlanStore, ProfileNotFoundError, SubjectNotFoundError
from studymentor.services.syllabus_service import (
    approve_suggestion,
    complete_onboarding,
    fetch_suggestions,
    mark_topic_done,
    toggle_hard_mark,
)

TODAY = date(2026, 3, 10)


@pytest.fixture()
def store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    db = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)()
    plan_store = PlanStore(db, uuid4())
    complete_onboarding(
        plan_store,
        exam_date=date(2026, 5, 1),
        daily_available_hours=3,
        preferred_study_time="evening",
        subjects=[Subject(id="math", name="Math")],
        topics=[
            Topic(id="limits", subject_id="math", name="Limits", difficulty=Difficulty.HARD),
            Topic(id="sets", subject_id="math", name="Sets", difficulty=Difficulty.EASY),
        ],
    )
    try:
        yield plan_store
    finally:
        db.close()


class _SuggestingDrafter:
    def __init__(self, suggestions=None, error=None):
        self.suggestions = suggestions or []
        self.error = error
        self.calls = []

    def suggest_related_topics(self, profile, subject, existing_topic_names):
        self.calls.append((subject.id, list(existing_topic_names)))
        if self.error:
            raise self.error
        return self.suggestions


def _today_plan(*topic_ids: str) -> DailyPlan:
    return DailyPlan(
        date=TODAY,
        mentor_message="m",
        reasoning="r",
        items=[PlanItem(subject_id="math", topic_id=topic_id, allocated_time=1) for topic_id in topic_ids],
    )


def test_onboarding_stores_profile_and_syllabus(store):
    profile = store.require_profile()

    assert profile.onboarding_completed is True
    assert profile.daily_available_hours == 3
    assert profile.preferred_study_time == "evening"
    assert [topic.id for topic in store.list_topics()] == ["limits", "sets"]


def test_mark_done_updates_progress(store):
    result = mark_topic_done(store, "sets", today=TODAY)

    assert result.topic.status == TopicStatus.DONE
    assert result.topic.exposure_count == 1
    assert result.topic.confidence_score == 100
    assert result.plan is None
    assert result.plan_completed_now is False

    again = mark_topic_done(store, "sets", today=TODAY)
    assert again.topic.exposure_count == 2
    assert again.topic.confidence_score == 100


def test_plan_completes_when_last_item_is_done(store):
    store.upsert_plan(_today_plan("limits", "sets"))

    first = mark_topic_done(store, "limits", today=TODAY)
    assert first.plan_completed_now is False
    assert first.plan.completed is False

    second = mark_topic_done(store, "sets", today=TODAY)
    assert second.plan_completed_now is True
    assert store.get_plan(TODAY).completed is True


def test_toggle_hard_mark(store):
    assert toggle_hard_mark(store, "sets").is_hard_marked is True
    assert toggle_hard_mark(store, "sets").is_hard_marked is False


def test_suggestions_filter_existing_topics(store):
    drafter = _SuggestingDrafter(
        [
            TopicSuggestion(name="SETS", difficulty=Difficulty.EASY, estimated_hours=1, subject_id="math"),
            TopicSuggestion(name="Series", difficulty=Difficulty.MEDIUM, estimated_hours=4, subject_id="math"),
        ]
    )

    suggestions = fetch_suggestions(store, drafter, "math")

    assert [s.name for s in suggestions] == ["Series"]
    assert drafter.calls == [("math", ["Limits", "Sets"])]


def test_suggestions_are_empty_on_failure(store):
    assert fetch_suggestions(store, _SuggestingDrafter(error=DraftingError("down")), "math") == []
    assert fetch_suggestions(store, None, "math") == []


def test_suggestions_require_known_subject_and_profile(store):
    with pytest.raises(SubjectNotFoundError):
        fetch_suggestions(store, _SuggestingDrafter(), "bio")

    with pytest.raises(ProfileNotFoundError):
        fetch_suggestions(PlanStore(store.db, uuid4()), _SuggestingDrafter(), "math")


def test_approved_suggestion_becomes_pending_topic(store):
    topic = approve_suggestion(store, "math", name=" Series ", difficulty=Difficulty.MEDIUM, estimated_hours=4)

    assert topic.name == "Series"
    assert topic.status == TopicStatus.PENDING
    assert topic.confidence_score == 0
    assert topic.exposure_count == 0
    assert store.list_topics()[-1].id == topic.id

    with pytest.raises(SubjectNotFoundError):
        approve_suggestion(store, "bio", name="Cells", difficulty=Difficulty.EASY, estimated_hours=1)
