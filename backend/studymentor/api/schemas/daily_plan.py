"""Schemas for daily plan endpoints."""
from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel

from studymentor.domain.entities import DailyPlan


class TodayPlanRequest(BaseModel):
    user_id: UUID
    force: bool = False


class TomorrowPreviewRequest(BaseModel):
    user_id: UUID


class DailyPlanResponse(BaseModel):
    user_id: UUID
    plan: DailyPlan
    total_hours: float
    request_id: str


class PlanHistoryResponse(BaseModel):
    user_id: UUID
    plans: List[DailyPlan]
    request_id: str
