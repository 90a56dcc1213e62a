"""Shared FastAPI dependencies."""
from __future__ import annotations

from typing import Optional

from studymentor.core.config import settings
from studymentor.services.plan_drafting import PlanDraftingClient


def get_drafting_client() -> Optional[PlanDraftingClient]:
    """Drafting client for the request, or None when the LLM is not configured."""
    return PlanDraftingClient.from_settings(settings)
