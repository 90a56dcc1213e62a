"""Daily plan endpoints."""
from __future__ import annotations

from time import perf_counter
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from studymentor.api.deps import get_drafting_client
from studymentor.api.schemas.daily_plan import (
    DailyPlanResponse,
    PlanHistoryResponse,
    TodayPlanRequest,
    TomorrowPreviewRequest,
)
from studymentor.db.deps import get_db
from studymentor.domain.entities import DailyPlan, Profile
from studymentor.observability.metrics import log_metric
from studymentor.observability.tracing import trace
from studymentor.services.daily_planner import PreviewNotAvailableError, preview_tomorrow, run_daily_planning
from studymentor.services.plan_drafting import PlanDraftingClient
from studymentor.services.plan_store import PlanStore

router = APIRouter()


@router.post("/plans/today", response_model=DailyPlanResponse, tags=["plans"])
def plan_today(
    request: Request,
    payload: TodayPlanRequest,
    db: Session = Depends(get_db),
    drafter: Optional[PlanDraftingClient] = Depends(get_drafting_client),
) -> DailyPlanResponse:
    """Return today's plan, generating it on first request or when forced."""
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "force": payload.force, "request_id": request_id}
    start = perf_counter()

    store = PlanStore(db, payload.user_id)
    with trace("daily_plan.today", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        _require_onboarded(store.get_profile())
        plan = run_daily_planning(store, drafter, force=payload.force)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("daily_plan.today.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric("daily_plan.today.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})
    return _plan_response(payload.user_id, plan, request_id)


@router.post("/plans/tomorrow", response_model=DailyPlanResponse, tags=["plans"])
def plan_tomorrow(
    request: Request,
    payload: TomorrowPreviewRequest,
    db: Session = Depends(get_db),
    drafter: Optional[PlanDraftingClient] = Depends(get_drafting_client),
) -> DailyPlanResponse:
    """Preview tomorrow's plan once today's plan is completed."""
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": str(payload.user_id), "request_id": request_id}
    start = perf_counter()

    store = PlanStore(db, payload.user_id)
    with trace("daily_plan.tomorrow", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        _require_onboarded(store.get_profile())
        try:
            plan = preview_tomorrow(store, drafter)
        except PreviewNotAvailableError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    latency_ms = (perf_counter() - start) * 1000
    log_metric("daily_plan.tomorrow.success", 1, metadata={"user_id": str(payload.user_id)})
    log_metric("daily_plan.tomorrow.latency_ms", latency_ms, metadata={"user_id": str(payload.user_id)})
    return _plan_response(payload.user_id, plan, request_id)


@router.get("/plans/history", response_model=PlanHistoryResponse, tags=["plans"])
def plan_history(
    request: Request,
    user_id: UUID = Query(..., description="User ID"),
    db: Session = Depends(get_db),
) -> PlanHistoryResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("daily_plan.history", metadata={"user_id": str(user_id)}, user_id=str(user_id), request_id=request_id):
        plans = PlanStore(db, user_id).list_plans()

    log_metric("daily_plan.history.count", len(plans), metadata={"user_id": str(user_id)})
    return PlanHistoryResponse(user_id=user_id, plans=plans, request_id=request_id or "")


def _require_onboarded(profile: Optional[Profile]) -> None:
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    if not profile.onboarding_completed:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Onboarding not completed")


def _plan_response(user_id: UUID, plan: DailyPlan, request_id: Optional[str]) -> DailyPlanResponse:
    return DailyPlanResponse(
        user_id=user_id,
        plan=plan,
        total_hours=plan.total_hours,
        request_id=request_id or "",
    )
