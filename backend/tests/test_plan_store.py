from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studymentor.db.base import Base
from studymentor.db.models.daily_plan import DailyPlanRecord
from studymentor.db.models.topic import TopicRecord
from studymentor.domain.entities import DailyPlan, Difficulty, PlanItem, Subject, Topic, TopicStatus
from studymentor.services.plan_store import (
    PlanStore,
    ProfileNotFoundError,
    SubjectNotFoundError,
    TopicNotFoundError,
)


@pytest.fixture()
def session_factory():
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
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def store(session_factory):
    db = session_factory()
    plan_store = PlanStore(db, uuid4())
    plan_store.get_or_create_profile(email="student@example.com")
    try:
        yield plan_store
    finally:
        db.close()


def _plan(plan_date: date, *topic_ids: str, completed: bool = False) -> DailyPlan:
    return DailyPlan(
        date=plan_date,
        mentor_message="Steady.",
        reasoning="Because.",
        items=[PlanItem(subject_id="math", topic_id=topic_id, allocated_time=1.0) for topic_id in topic_ids],
        completed=completed,
    )


def test_skeleton_profile_defaults(session_factory):
    db = session_factory()
    store = PlanStore(db, uuid4())

    assert store.get_profile() is None
    with pytest.raises(ProfileNotFoundError):
        store.require_profile()

    profile = store.get_or_create_profile()
    assert profile.daily_available_hours == 4.0
    assert profile.preferred_study_time == "morning"
    assert profile.onboarding_completed is False
    assert store.get_or_create_profile() == profile
    db.close()


def test_upsert_keeps_one_plan_per_date(store):
    store.upsert_plan(_plan(date(2026, 3, 10), "a"))
    store.upsert_plan(_plan(date(2026, 3, 11), "b"))
    replaced = store.upsert_plan(_plan(date(2026, 3, 10), "c", completed=True))

    plans = store.list_plans()
    assert [plan.date for plan in plans] == [date(2026, 3, 10), date(2026, 3, 11)]
    assert plans[0] == replaced
    assert plans[0].items[0].topic_id == "c"
    assert store.db.query(DailyPlanRecord).count() == 2


def test_plans_are_scoped_per_user(store, session_factory):
    store.upsert_plan(_plan(date(2026, 3, 10), "a"))
    other = PlanStore(session_factory(), uuid4())
    other.get_or_create_profile()

    assert other.list_plans() == []
    assert other.get_plan(date(2026, 3, 10)) is None


def test_replace_syllabus_swaps_everything(store):
    store.replace_syllabus(
        [Subject(id="math", name="Math")],
        [Topic(id="limits", subject_id="math", name="Limits", difficulty=Difficulty.HARD)],
    )
    store.replace_syllabus(
        [Subject(id="bio", name="Biology"), Subject(id="math", name="Mathematics")],
        [
            Topic(id="cells", subject_id="bio", name="Cells", difficulty=Difficulty.EASY),
            Topic(id="limits", subject_id="math", name="Limits", difficulty=Difficulty.MEDIUM),
        ],
    )

    assert [subject.name for subject in store.list_subjects()] == ["Biology", "Mathematics"]
    assert [(topic.id, topic.difficulty) for topic in store.list_topics()] == [
        ("cells", Difficulty.EASY),
        ("limits", Difficulty.MEDIUM),
    ]


def test_replace_syllabus_rejects_orphan_topics(store):
    with pytest.raises(SubjectNotFoundError):
        store.replace_syllabus(
            [Subject(id="math", name="Math")],
            [Topic(id="cells", subject_id="bio", name="Cells", difficulty=Difficulty.EASY)],
        )


def test_legacy_topics_get_confidence_backfilled(store):
    store.replace_syllabus([Subject(id="math", name="Math")], [])
    store.db.add_all(
        [
            TopicRecord(user_id=store.user_id, id="old-done", subject_id="math", name="Old done",
                        difficulty="easy", status="done", confidence_score=None, position=0),
            TopicRecord(user_id=store.user_id, id="old-pending", subject_id="math", name="Old pending",
                        difficulty="easy", status="pending", confidence_score=None, position=1),
        ]
    )
    store.db.commit()

    topics = store.list_topics()

    assert [(topic.id, topic.confidence_score) for topic in topics] == [("old-done", 100), ("old-pending", 0)]
    stored = store.db.get(TopicRecord, (store.user_id, "old-done"))
    assert stored.confidence_score == 100


def test_add_and_update_topic(store):
    store.replace_syllabus([Subject(id="math", name="Math")], [
        Topic(id="limits", subject_id="math", name="Limits", difficulty=Difficulty.HARD),
    ])

    added = store.add_topic(Topic(id="series", subject_id="math", name="Series", difficulty=Difficulty.MEDIUM))
    updated = store.update_topic("series", status=TopicStatus.DONE, exposure_count=2)

    assert added.status == TopicStatus.PENDING
    assert updated.status == TopicStatus.DONE
    assert updated.exposure_count == 2
    assert [topic.id for topic in store.list_topics()] == ["limits", "series"]

    with pytest.raises(ValueError):
        store.update_topic("series", subject_id="bio")
    with pytest.raises(TopicNotFoundError):
        store.update_topic("ghost", status=TopicStatus.DONE)
    with pytest.raises(SubjectNotFoundError):
        store.add_topic(Topic(id="cells", subject_id="bio", name="Cells", difficulty=Difficulty.EASY))
