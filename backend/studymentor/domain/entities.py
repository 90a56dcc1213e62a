"""Trusted study-planning entities.

Everything in this module is either loaded from the store or produced by the
plan validator. Raw generative output lives in ``studymentor.domain.drafts``
and must pass through ``studymentor.services.plan_validator`` before it can
become a ``PlanItem``.
"""
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TopicStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    exam_date: Optional[dt.date] = None
    daily_available_hours: float = Field(4.0, gt=0, description="Budget ceiling in hours per day.")
    preferred_study_time: str = "morning"
    onboarding_completed: bool = False


class Subject(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class Topic(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    subject_id: str
    name: str
    difficulty: Difficulty
    estimated_hours: float = Field(1.0, ge=0)
    status: TopicStatus = TopicStatus.PENDING
    is_hard_marked: bool = False
    exposure_count: int = Field(0, ge=0)
    confidence_score: int = Field(0, ge=0, le=100)

    @property
    def is_done(self) -> bool:
        return self.status == TopicStatus.DONE


class PlanItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    subject_id: str
    topic_id: str
    allocated_time: float = Field(..., gt=0, description="Hours allotted to the topic.")
    reason: str = ""


class DailyPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    mentor_message: str
    reasoning: str
    items: List[PlanItem] = Field(default_factory=list)
    completed: bool = False
    preview_flag: bool = False

    @property
    def total_hours(self) -> float:
        return sum(item.allocated_time for item in self.items)


class TopicSuggestion(BaseModel):
    """A generated topic idea awaiting user approval; never stored as-is."""

    model_config = ConfigDict(frozen=True)

    name: str
    difficulty: Difficulty
    estimated_hours: float = Field(..., ge=0)
    subject_id: str
    suggested: Literal[True] = True


CONFIDENCE_MAX = 100


def legacy_confidence(status: TopicStatus | str) -> int:
    """Confidence for records saved before the score was tracked."""
    return CONFIDENCE_MAX if TopicStatus(status) == TopicStatus.DONE else 0


def next_confidence(current: int) -> int:
    """Confidence after a completion event: a flat +100, capped at 100."""
    return min(CONFIDENCE_MAX, (current or 0) + CONFIDENCE_MAX)
