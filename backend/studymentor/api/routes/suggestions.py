"""Topic suggestion endpoints."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from studymentor.api.deps import get_drafting_client
from studymentor.api.schemas.syllabus import ApproveSuggestionRequest, SuggestionsResponse, TopicResponse
from studymentor.db.deps import get_db
from studymentor.observability.metrics import log_metric
from studymentor.observability.tracing import trace
from studymentor.services.plan_drafting import PlanDraftingClient
from studymentor.services.plan_store import PlanStore, ProfileNotFoundError, SubjectNotFoundError
from studymentor.services.syllabus_service import approve_suggestion, fetch_suggestions

router = APIRouter()


@router.get("/subjects/{subject_id}/suggestions", response_model=SuggestionsResponse, tags=["suggestions"])
def list_suggestions(
    subject_id: str,
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
    drafter: Optional[PlanDraftingClient] = Depends(get_drafting_client),
) -> SuggestionsResponse:
    """Suggest new topics for a subject. Generation failures yield an empty list."""
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(user_id), "subject_id": subject_id}
    with trace("suggestions.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        try:
            suggestions = fetch_suggestions(PlanStore(db, user_id), drafter, subject_id)
        except ProfileNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
        except SubjectNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")

    return SuggestionsResponse(subject_id=subject_id, suggestions=suggestions, request_id=request_id or "")


@router.post(
    "/subjects/{subject_id}/suggestions/approve",
    response_model=TopicResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["suggestions"],
)
def approve(
    subject_id: str,
    request: Request,
    payload: ApproveSuggestionRequest,
    db: Session = Depends(get_db),
) -> TopicResponse:
    """Add an approved suggestion to the syllabus as a pending topic."""
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "subject_id": subject_id}
    with trace("suggestions.approve", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        try:
            topic = approve_suggestion(
                PlanStore(db, payload.user_id),
                subject_id,
                name=payload.name,
                difficulty=payload.difficulty,
                estimated_hours=payload.estimated_hours,
            )
        except SubjectNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")

    log_metric("suggestions.approve.success", 1, metadata={"user_id": str(payload.user_id)})
    return TopicResponse(topic=topic, request_id=request_id or "")
