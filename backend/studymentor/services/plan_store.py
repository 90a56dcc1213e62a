"""SQLAlchemy-backed store for profiles, syllabus and plan history.

One ``PlanStore`` is bound to one user. Collections are read and written
whole; plans are upserted by date so each day has exactly one history entry.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studymentor.db.models.daily_plan import DailyPlanRecord
from studymentor.db.models.profile import ProfileRecord
from studymentor.db.models.subject import SubjectRecord
from studymentor.db.models.topic import TopicRecord
from studymentor.domain.entities import (
    DailyPlan,
    Difficulty,
    PlanItem,
    Profile,
    Subject,
    Topic,
    TopicStatus,
    legacy_confidence,
)

logger = logging.getLogger(__name__)

DEFAULT_DAILY_HOURS = 4.0
DEFAULT_STUDY_TIME = "morning"

TOPIC_UPDATABLE_FIELDS = {"status", "is_hard_marked", "exposure_count", "confidence_score", "name", "difficulty", "estimated_hours"}


class ProfileNotFoundError(LookupError):
    pass


class SubjectNotFoundError(LookupError):
    pass


class TopicNotFoundError(LookupError):
    pass


class PlanStore:
    def __init__(self, db: Session, user_id: UUID) -> None:
        self.db = db
        self.user_id = user_id

    # Profile

    def get_profile(self) -> Optional[Profile]:
        record = self.db.get(ProfileRecord, self.user_id)
        return _profile_from_record(record) if record else None

    def require_profile(self) -> Profile:
        profile = self.get_profile()
        if profile is None:
            raise ProfileNotFoundError(str(self.user_id))
        return profile

    def get_or_create_profile(self, email: str | None = None) -> Profile:
        """Fetch the profile, creating an un-onboarded skeleton on first access."""
        record = self.db.get(ProfileRecord, self.user_id)
        if record:
            return _profile_from_record(record)

        record = ProfileRecord(
            id=self.user_id,
            email=email,
            daily_available_hours=DEFAULT_DAILY_HOURS,
            preferred_study_time=DEFAULT_STUDY_TIME,
            onboarding_completed=False,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.db.get(ProfileRecord, self.user_id)
            if existing:
                return _profile_from_record(existing)
            raise
        logger.info("Created skeleton profile")
        return _profile_from_record(record)

    def save_profile(self, profile: Profile) -> Profile:
        record = self.db.get(ProfileRecord, self.user_id)
        if record is None:
            record = ProfileRecord(id=self.user_id)
            self.db.add(record)
        record.email = profile.email
        record.exam_date = profile.exam_date
        record.daily_available_hours = profile.daily_available_hours
        record.preferred_study_time = profile.preferred_study_time
        record.onboarding_completed = profile.onboarding_completed
        self._commit()
        return _profile_from_record(record)

    # Syllabus

    def list_subjects(self) -> List[Subject]:
        records = (
            self.db.query(SubjectRecord)
            .filter(SubjectRecord.user_id == self.user_id)
            .order_by(SubjectRecord.position, SubjectRecord.created_at)
            .all()
        )
        return [Subject(id=record.id, name=record.name) for record in records]

    def get_subject(self, subject_id: str) -> Subject:
        record = self.db.get(SubjectRecord, (self.user_id, subject_id))
        if record is None:
            raise SubjectNotFoundError(subject_id)
        return Subject(id=record.id, name=record.name)

    def replace_syllabus(self, subjects: Sequence[Subject], topics: Sequence[Topic]) -> None:
        """Swap the whole syllabus. Topics must reference one of ``subjects``."""
        subject_ids = {subject.id for subject in subjects}
        orphans = [topic.id for topic in topics if topic.subject_id not in subject_ids]
        if orphans:
            raise SubjectNotFoundError(f"Topics reference unknown subjects: {', '.join(orphans)}")

        for record in self.db.query(TopicRecord).filter(TopicRecord.user_id == self.user_id).all():
            self.db.delete(record)
        self.db.flush()
        for record in self.db.query(SubjectRecord).filter(SubjectRecord.user_id == self.user_id).all():
            self.db.delete(record)
        self.db.flush()
        for position, subject in enumerate(subjects):
            self.db.add(SubjectRecord(user_id=self.user_id, id=subject.id, name=subject.name, position=position))
        self.db.flush()
        for position, topic in enumerate(topics):
            self.db.add(_record_from_topic(self.user_id, topic, position))
        self._commit()

    def list_topics(self) -> List[Topic]:
        """All topics in syllabus order, back-filling confidence on legacy rows."""
        records = (
            self.db.query(TopicRecord)
            .filter(TopicRecord.user_id == self.user_id)
            .order_by(TopicRecord.position, TopicRecord.created_at)
            .all()
        )
        backfilled = 0
        for record in records:
            if record.confidence_score is None:
                record.confidence_score = legacy_confidence(record.status)
                backfilled += 1
        if backfilled:
            logger.info("Back-filled confidence_score on %s legacy topic(s)", backfilled)
            self._commit()
        return [_topic_from_record(record) for record in records]

    def get_topic(self, topic_id: str) -> Topic:
        record = self._topic_record(topic_id)
        if record.confidence_score is None:
            record.confidence_score = legacy_confidence(record.status)
            self._commit()
        return _topic_from_record(record)

    def add_topic(self, topic: Topic) -> Topic:
        self.get_subject(topic.subject_id)
        next_position = (
            self.db.query(func.coalesce(func.max(TopicRecord.position), -1))
            .filter(TopicRecord.user_id == self.user_id)
            .scalar()
        ) + 1
        record = _record_from_topic(self.user_id, topic, next_position)
        self.db.add(record)
        self._commit()
        return _topic_from_record(record)

    def update_topic(self, topic_id: str, **changes: Any) -> Topic:
        unknown = set(changes) - TOPIC_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update topic field(s): {', '.join(sorted(unknown))}")
        record = self._topic_record(topic_id)
        for key, value in changes.items():
            if isinstance(value, (TopicStatus, Difficulty)):
                value = value.value
            setattr(record, key, value)
        self._commit()
        return _topic_from_record(record)

    # Plans

    def list_plans(self) -> List[DailyPlan]:
        records = (
            self.db.query(DailyPlanRecord)
            .filter(DailyPlanRecord.user_id == self.user_id)
            .order_by(DailyPlanRecord.plan_date)
            .all()
        )
        return [_plan_from_record(record) for record in records]

    def get_plan(self, plan_date: date) -> Optional[DailyPlan]:
        record = self._plan_record(plan_date)
        return _plan_from_record(record) if record else None

    def upsert_plan(self, plan: DailyPlan) -> DailyPlan:
        """Insert or replace the plan for ``plan.date``; the last write wins."""
        record = self._plan_record(plan.date)
        if record is None:
            record = DailyPlanRecord(user_id=self.user_id, plan_date=plan.date)
            self.db.add(record)
        _apply_plan(record, plan)
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent writer inserted the same date first; overwrite it.
            self.db.rollback()
            record = self._plan_record(plan.date)
            if record is None:
                raise
            _apply_plan(record, plan)
            self._commit()
        return _plan_from_record(record)

    # Internals

    def _topic_record(self, topic_id: str) -> TopicRecord:
        record = self.db.get(TopicRecord, (self.user_id, topic_id))
        if record is None:
            raise TopicNotFoundError(topic_id)
        return record

    def _plan_record(self, plan_date: date) -> Optional[DailyPlanRecord]:
        return (
            self.db.query(DailyPlanRecord)
            .filter(DailyPlanRecord.user_id == self.user_id, DailyPlanRecord.plan_date == plan_date)
            .one_or_none()
        )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


def _profile_from_record(record: ProfileRecord) -> Profile:
    return Profile(
        id=str(record.id),
        email=record.email,
        exam_date=record.exam_date,
        daily_available_hours=record.daily_available_hours,
        preferred_study_time=record.preferred_study_time,
        onboarding_completed=record.onboarding_completed,
    )


def _topic_from_record(record: TopicRecord) -> Topic:
    confidence = record.confidence_score
    if confidence is None:
        confidence = legacy_confidence(record.status)
    return Topic(
        id=record.id,
        subject_id=record.subject_id,
        name=record.name,
        difficulty=Difficulty(record.difficulty),
        estimated_hours=record.estimated_hours,
        status=TopicStatus(record.status),
        is_hard_marked=record.is_hard_marked,
        exposure_count=record.exposure_count,
        confidence_score=confidence,
    )


def _record_from_topic(user_id: UUID, topic: Topic, position: int) -> TopicRecord:
    return TopicRecord(
        user_id=user_id,
        id=topic.id,
        subject_id=topic.subject_id,
        name=topic.name,
        difficulty=topic.difficulty.value,
        estimated_hours=topic.estimated_hours,
        status=topic.status.value,
        is_hard_marked=topic.is_hard_marked,
        exposure_count=topic.exposure_count,
        confidence_score=topic.confidence_score,
        position=position,
    )


def _plan_from_record(record: DailyPlanRecord) -> DailyPlan:
    items: List[Dict[str, Any]] = record.items or []
    return DailyPlan(
        date=record.plan_date,
        mentor_message=record.mentor_message,
        reasoning=record.reasoning,
        items=[PlanItem.model_validate(item) for item in items],
        completed=record.completed,
        preview_flag=record.preview_flag,
    )


def _apply_plan(record: DailyPlanRecord, plan: DailyPlan) -> None:
    record.mentor_message = plan.mentor_message
    record.reasoning = plan.reasoning
    record.items = [item.model_dump(mode="json") for item in plan.items]
    record.completed = plan.completed
    record.preview_flag = plan.preview_flag
