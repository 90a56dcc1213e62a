"""Untrusted shapes returned by the generative text service."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from studymentor.domain.entities import Difficulty


class DraftItem(BaseModel):
    """One proposed study block. Nothing here is checked against the syllabus."""

    topic_id: str = Field(..., description="ID of a topic from the provided syllabus lists.")
    allocated_time: float = Field(..., allow_inf_nan=False, description="Hours to spend on the topic.")
    reason: str = Field("", description="Short justification for choosing this topic today.")


class PlanDraft(BaseModel):
    mentor_message: str = Field("", description="A gentle, teacher-like message for the student.")
    reasoning: str = Field("", description="The logic used to choose these topics.")
    items: List[DraftItem] = Field(..., description="Ordered study blocks for the day.")


class SuggestionDraft(BaseModel):
    name: str
    difficulty: Difficulty
    estimated_hours: float = Field(..., ge=0, description="Estimated hours, 1-10.")


class SuggestionBatch(BaseModel):
    suggestions: List[SuggestionDraft] = Field(default_factory=list)
