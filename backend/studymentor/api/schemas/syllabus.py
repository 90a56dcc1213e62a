"""Schemas for profile, onboarding and syllabus endpoints."""
from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from studymentor.domain.entities import DailyPlan, Difficulty, Profile, Subject, Topic, TopicSuggestion


class TopicInput(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    difficulty: Difficulty = Difficulty.MEDIUM
    estimated_hours: float = Field(1.0, ge=0)


class SubjectInput(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    topics: List[TopicInput] = Field(default_factory=list)


class OnboardingRequest(BaseModel):
    user_id: UUID
    exam_date: date
    daily_available_hours: float = Field(..., gt=0, le=24)
    preferred_study_time: str = "morning"
    subjects: List[SubjectInput] = Field(default_factory=list)


class ProfileResponse(BaseModel):
    profile: Profile
    request_id: str


class SyllabusResponse(BaseModel):
    user_id: UUID
    subjects: List[Subject]
    topics: List[Topic]
    request_id: str


class TopicActionRequest(BaseModel):
    user_id: UUID


class TopicResponse(BaseModel):
    topic: Topic
    request_id: str


class TopicDoneResponse(BaseModel):
    topic: Topic
    plan: Optional[DailyPlan]
    plan_completed: bool
    request_id: str


class SuggestionsResponse(BaseModel):
    subject_id: str
    suggestions: List[TopicSuggestion]
    request_id: str


class ApproveSuggestionRequest(BaseModel):
    user_id: UUID
    name: str = Field(..., min_length=1)
    difficulty: Difficulty
    estimated_hours: float = Field(..., ge=0)
