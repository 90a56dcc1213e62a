"""LLM-backed drafting of daily plans and topic suggestions.

The drafting client only *asks* the model to respect the day's constraints.
Its output is a ``PlanDraft`` and is never trusted: the plan validator is the
only place the constraints are enforced.
"""
from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

import openai
from pydantic import ValidationError

from studymentor.core.config import Settings
from studymentor.domain.drafts import PlanDraft, SuggestionBatch
from studymentor.domain.entities import Profile, Subject, Topic, TopicSuggestion
from studymentor.domain.planning import PlanningContext
from studymentor.observability.tracing import trace
from studymentor.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

MENTOR_PERSONA = (
    "You are a senior teacher guiding a student gently. "
    "Your tone is calm, non-judgmental, and sustainable."
)


class DraftingError(RuntimeError):
    """The generative service could not produce a usable draft."""


class PlanDraftingClient:
    """Thin wrapper over the OpenAI chat API with retries and strict parsing."""

    def __init__(self, client, *, model: str, retry_policy: RetryPolicy | None = None) -> None:
        self._client = client
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["PlanDraftingClient"]:
        """Build a client, or return None when no API key is configured."""
        if not settings.openai_api_key:
            return None
        return cls(
            # Retries happen only in RetryPolicy.
            openai.OpenAI(api_key=settings.openai_api_key, max_retries=0),
            model=settings.openai_model,
            retry_policy=RetryPolicy(
                max_attempts=settings.llm_max_attempts,
                base_delay_s=settings.llm_retry_base_delay_s,
            ),
        )

    def draft_plan(
        self,
        profile: Profile,
        pending_topics: Sequence[Topic],
        completed_topics: Sequence[Topic],
        priority_topics: Sequence[Topic],
        context: PlanningContext,
    ) -> PlanDraft:
        system_prompt, user_prompt = build_plan_prompts(
            profile, pending_topics, completed_topics, priority_topics, context
        )
        metadata = {
            "target_date": context.target_date.isoformat(),
            "days_to_exam": context.days_to_exam,
            "missed_previous_day": context.missed_previous_day,
            "exam_mode": context.exam_mode,
            "pending_count": len(pending_topics),
            "model": self.model,
        }
        with trace("daily_plan.draft", metadata=metadata, user_id=profile.id):
            content = self._complete_json(system_prompt, user_prompt, operation="daily_plan.draft")
        try:
            return PlanDraft.model_validate_json(content)
        except ValidationError as exc:
            raise DraftingError(f"Malformed plan draft: {exc.error_count()} validation error(s)") from exc

    def suggest_related_topics(
        self,
        profile: Profile,
        subject: Subject,
        existing_topic_names: Sequence[str],
    ) -> List[TopicSuggestion]:
        system_prompt, user_prompt = build_suggestion_prompts(subject, existing_topic_names)
        metadata = {"subject_id": subject.id, "existing_count": len(existing_topic_names), "model": self.model}
        with trace("suggestions.generate", metadata=metadata, user_id=profile.id):
            content = self._complete_json(system_prompt, user_prompt, operation="suggestions.generate")
        try:
            batch = SuggestionBatch.model_validate_json(content)
        except ValidationError as exc:
            raise DraftingError(f"Malformed suggestions: {exc.error_count()} validation error(s)") from exc

        existing = {name.strip().lower() for name in existing_topic_names}
        suggestions: List[TopicSuggestion] = []
        for draft in batch.suggestions:
            if draft.name.strip().lower() in existing:
                logger.debug("Dropping suggestion %r already in subject %s", draft.name, subject.id)
                continue
            suggestions.append(
                TopicSuggestion(
                    name=draft.name.strip(),
                    difficulty=draft.difficulty,
                    estimated_hours=draft.estimated_hours,
                    subject_id=subject.id,
                )
            )
        return suggestions

    def _complete_json(self, system_prompt: str, user_prompt: str, *, operation: str) -> str:
        def _call():
            return self._client.chat.completions.create(
                model=self.model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )

        try:
            completion = self.retry_policy.run(_call, operation=operation)
        except openai.OpenAIError as exc:
            raise DraftingError(f"{operation} failed: {exc.__class__.__name__}") from exc

        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise DraftingError(f"{operation} returned an unexpected completion shape") from exc
        if not isinstance(content, str) or not content.strip():
            raise DraftingError(f"{operation} returned an empty response")
        return content


def build_plan_prompts(
    profile: Profile,
    pending_topics: Sequence[Topic],
    completed_topics: Sequence[Topic],
    priority_topics: Sequence[Topic],
    context: PlanningContext,
) -> tuple[str, str]:
    schema_json = json.dumps(PlanDraft.model_json_schema(), indent=2)
    # Estimated hours stay out of the prompt; allocation is the model's call.
    pending_payload = json.dumps(
        [{"id": t.id, "name": t.name, "difficulty": t.difficulty.value} for t in pending_topics]
    )
    completed_payload = json.dumps([{"id": t.id, "name": t.name} for t in completed_topics])
    priority_payload = json.dumps([{"id": t.id, "name": t.name} for t in priority_topics])

    days_to_exam = "Unknown" if context.days_to_exam is None else str(context.days_to_exam)
    missed = "Yes (Reduce load, be extra supportive)" if context.missed_previous_day else "No"
    exam_mode = (
        "Active (Focus on revision, shorter sessions, reassurance)"
        if context.exam_mode
        else "Inactive (Mix learning and progress)"
    )
    user_prompt = (
        "Context:\n"
        f"- Target Planning Date: {context.target_date.isoformat()} (Current Date: {context.today.isoformat()})\n"
        f"- Days to Exam: {days_to_exam}\n"
        f"- Daily Limit: {profile.daily_available_hours} hours\n"
        f"- Preferred Time: {profile.preferred_study_time}\n"
        f"- Missed Previous Day: {missed}\n"
        f"- Exam Mode: {exam_mode}\n\n"
        f"Available Syllabus (Pending): {pending_payload}\n"
        f"Completed Topics (For Revision): {completed_payload}\n"
        f"Priority (Marked Hard, most exposed first): {priority_payload}\n\n"
        "### STRICT REQUIREMENTS\n"
        "1. Only use topic IDs provided above. NEVER invent topic IDs or names.\n"
        f"2. Total allocated_time must be <= {profile.daily_available_hours}.\n"
        "3. Include at most 1 HARD difficulty topic per day.\n"
        "4. If Missed Previous Day is Yes, reduce total time by 30%.\n"
        "5. If Exam Mode is active, prioritize revision of Completed Topics over new ones.\n\n"
        "### OUTPUT REQUIREMENT\n"
        "Return strictly valid JSON matching this schema:\n"
        f"{schema_json}"
    )
    return MENTOR_PERSONA, user_prompt


def build_suggestion_prompts(subject: Subject, existing_topic_names: Sequence[str]) -> tuple[str, str]:
    schema_json = json.dumps(SuggestionBatch.model_json_schema(), indent=2)
    existing = ", ".join(existing_topic_names)
    system_prompt = (
        "You are a senior academic mentor who extends a student's syllabus with relevant, "
        "well-scoped topics."
    )
    user_prompt = (
        f'Based on the subject "{subject.name}" and the following existing topics already in the '
        f"syllabus: [{existing}], suggest 3-5 new, academically relevant topics that would naturally "
        "extend the student's learning journey.\n\n"
        "### STRICT GUIDELINES\n"
        f'1. Suggestions must strictly belong to the domain of "{subject.name}".\n'
        "2. Do NOT suggest topics already in the syllabus.\n"
        "3. Topic names should be concise and academic.\n"
        "4. Provide a difficulty (easy, medium, or hard) and an estimated_hours (1-10) for each.\n"
        "5. No motivational or conversational text in the JSON response.\n\n"
        "### OUTPUT REQUIREMENT\n"
        "Return strictly valid JSON matching this schema:\n"
        f"{schema_json}"
    )
    return system_prompt, user_prompt
