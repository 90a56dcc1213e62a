"""Syllabus operations: onboarding, progress marks and topic suggestions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence
from uuid import uuid4

from studymentor.domain.entities import (
    DailyPlan,
    Difficulty,
    Profile,
    Subject,
    Topic,
    TopicStatus,
    TopicSuggestion,
    next_confidence,
)
from studymentor.observability.metrics import log_metric
from studymentor.services.plan_drafting import DraftingError, PlanDraftingClient
from studymentor.services.plan_store import PlanStore

logger = logging.getLogger(__name__)


@dataclass
class MarkDoneResult:
    topic: Topic
    plan: Optional[DailyPlan]
    plan_completed_now: bool


def new_topic_id() -> str:
    return f"topic-{uuid4().hex[:12]}"


def new_subject_id() -> str:
    return f"subject-{uuid4().hex[:12]}"


def complete_onboarding(
    store: PlanStore,
    *,
    exam_date: date,
    daily_available_hours: float,
    preferred_study_time: str,
    subjects: Sequence[Subject],
    topics: Sequence[Topic],
) -> Profile:
    """Store the study settings and replace the syllabus in one go."""
    profile = store.get_or_create_profile()
    updated = profile.model_copy(
        update={
            "exam_date": exam_date,
            "daily_available_hours": daily_available_hours,
            "preferred_study_time": preferred_study_time,
            "onboarding_completed": True,
        }
    )
    # Re-validate so the hours > 0 invariant holds for copied data too.
    updated = Profile.model_validate(updated.model_dump())
    store.replace_syllabus(subjects, topics)
    saved = store.save_profile(updated)
    logger.info("Onboarding completed with %s subject(s) and %s topic(s)", len(subjects), len(topics))
    return saved


def mark_topic_done(store: PlanStore, topic_id: str, *, today: Optional[date] = None) -> MarkDoneResult:
    """Mark a topic done and close today's plan once all of its topics are done."""
    today = today or date.today()
    topic = store.get_topic(topic_id)
    topic = store.update_topic(
        topic_id,
        status=TopicStatus.DONE,
        exposure_count=topic.exposure_count + 1,
        confidence_score=next_confidence(topic.confidence_score),
    )

    plan = store.get_plan(today)
    if plan is None or plan.completed:
        return MarkDoneResult(topic=topic, plan=plan, plan_completed_now=False)

    done_ids = {t.id for t in store.list_topics() if t.status == TopicStatus.DONE}
    if not all(item.topic_id in done_ids for item in plan.items):
        return MarkDoneResult(topic=topic, plan=plan, plan_completed_now=False)

    plan = store.upsert_plan(plan.model_copy(update={"completed": True}))
    log_metric("daily_plan.completed", 1, {"items": len(plan.items)})
    logger.info("Plan for %s completed", plan.date)
    return MarkDoneResult(topic=topic, plan=plan, plan_completed_now=True)


def toggle_hard_mark(store: PlanStore, topic_id: str) -> Topic:
    topic = store.get_topic(topic_id)
    return store.update_topic(topic_id, is_hard_marked=not topic.is_hard_marked)


def fetch_suggestions(
    store: PlanStore,
    drafter: Optional[PlanDraftingClient],
    subject_id: str,
) -> List[TopicSuggestion]:
    """Generated topic ideas for a subject; an empty list when generation fails."""
    profile = store.require_profile()
    subject = store.get_subject(subject_id)
    subject_topic_names = [t.name for t in store.list_topics() if t.subject_id == subject_id]

    if drafter is None:
        logger.warning("No drafting client configured; no suggestions for subject %s", subject_id)
        return []

    try:
        suggestions = drafter.suggest_related_topics(profile, subject, subject_topic_names)
    except DraftingError:
        logger.exception("Suggestion generation failed for subject %s", subject_id)
        log_metric("suggestions.fetch.failed", 1, {"subject_id": subject_id})
        return []

    existing = {name.lower() for name in subject_topic_names}
    filtered = [s for s in suggestions if s.name.lower() not in existing]
    log_metric("suggestions.fetch.count", len(filtered), {"subject_id": subject_id})
    return filtered


def approve_suggestion(
    store: PlanStore,
    subject_id: str,
    *,
    name: str,
    difficulty: Difficulty,
    estimated_hours: float,
) -> Topic:
    """Turn an accepted suggestion into a fresh pending topic."""
    topic = Topic(
        id=new_topic_id(),
        subject_id=subject_id,
        name=name.strip(),
        difficulty=difficulty,
        estimated_hours=estimated_hours,
        status=TopicStatus.PENDING,
        is_hard_marked=False,
        exposure_count=0,
        confidence_score=0,
    )
    return store.add_topic(topic)
