"""Profile, onboarding and syllabus endpoints."""
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from studymentor.api.schemas.syllabus import (
    OnboardingRequest,
    ProfileResponse,
    SyllabusResponse,
    TopicActionRequest,
    TopicDoneResponse,
    TopicResponse,
)
from studymentor.db.deps import get_db
from studymentor.domain.entities import Subject, Topic
from studymentor.observability.metrics import log_metric
from studymentor.observability.tracing import trace
from studymentor.services.plan_store import PlanStore, TopicNotFoundError
from studymentor.services.syllabus_service import (
    complete_onboarding,
    mark_topic_done,
    new_subject_id,
    new_topic_id,
    toggle_hard_mark,
)

router = APIRouter()


@router.get("/profile", response_model=ProfileResponse, tags=["profile"])
def get_profile(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    """Return the profile, creating a skeleton one on first access."""
    request_id = getattr(request.state, "request_id", None)
    with trace("profile.get", metadata={"user_id": str(user_id)}, user_id=str(user_id), request_id=request_id):
        profile = PlanStore(db, user_id).get_or_create_profile()
    return ProfileResponse(profile=profile, request_id=request_id or "")


@router.post("/onboarding", response_model=ProfileResponse, tags=["profile"])
def onboarding(
    request: Request,
    payload: OnboardingRequest,
    db: Session = Depends(get_db),
) -> ProfileResponse:
    request_id = getattr(request.state, "request_id", None)
    subjects: List[Subject] = []
    topics: List[Topic] = []
    for subject_input in payload.subjects:
        subject = Subject(id=subject_input.id or new_subject_id(), name=subject_input.name)
        subjects.append(subject)
        topics.extend(
            Topic(
                id=topic_input.id or new_topic_id(),
                subject_id=subject.id,
                name=topic_input.name,
                difficulty=topic_input.difficulty,
                estimated_hours=topic_input.estimated_hours,
            )
            for topic_input in subject_input.topics
        )

    metadata = {"user_id": str(payload.user_id), "subjects": len(subjects), "topics": len(topics)}
    with trace("profile.onboarding", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        profile = complete_onboarding(
            PlanStore(db, payload.user_id),
            exam_date=payload.exam_date,
            daily_available_hours=payload.daily_available_hours,
            preferred_study_time=payload.preferred_study_time,
            subjects=subjects,
            topics=topics,
        )

    log_metric("profile.onboarding.topics", len(topics), metadata={"user_id": str(payload.user_id)})
    return ProfileResponse(profile=profile, request_id=request_id or "")


@router.get("/syllabus", response_model=SyllabusResponse, tags=["syllabus"])
def get_syllabus(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> SyllabusResponse:
    request_id = getattr(request.state, "request_id", None)
    store = PlanStore(db, user_id)
    with trace("syllabus.get", metadata={"user_id": str(user_id)}, user_id=str(user_id), request_id=request_id):
        subjects = store.list_subjects()
        topics = store.list_topics()
    return SyllabusResponse(user_id=user_id, subjects=subjects, topics=topics, request_id=request_id or "")


@router.post("/topics/{topic_id}/done", response_model=TopicDoneResponse, tags=["topics"])
def topic_done(
    topic_id: str,
    request: Request,
    payload: TopicActionRequest,
    db: Session = Depends(get_db),
) -> TopicDoneResponse:
    """Mark a topic done; completes today's plan when it was the last open item."""
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "topic_id": topic_id}
    with trace("topic.done", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        try:
            result = mark_topic_done(PlanStore(db, payload.user_id), topic_id)
        except TopicNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")

    log_metric("topic.done.success", 1, metadata={"user_id": str(payload.user_id)})
    return TopicDoneResponse(
        topic=result.topic,
        plan=result.plan,
        plan_completed=bool(result.plan and result.plan.completed),
        request_id=request_id or "",
    )


@router.post("/topics/{topic_id}/hard", response_model=TopicResponse, tags=["topics"])
def topic_hard_toggle(
    topic_id: str,
    request: Request,
    payload: TopicActionRequest,
    db: Session = Depends(get_db),
) -> TopicResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "topic_id": topic_id}
    with trace("topic.hard_toggle", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        try:
            topic = toggle_hard_mark(PlanStore(db, payload.user_id), topic_id)
        except TopicNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Topic not found")
    return TopicResponse(topic=topic, request_id=request_id or "")

