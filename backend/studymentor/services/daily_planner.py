"""Daily plan orchestration: context, draft, validate, persist."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from time import perf_counter
from typing import List, Optional, Sequence

from studymentor.core.config import settings
from studymentor.domain.entities import DailyPlan, PlanItem, Profile, Subject, Topic, TopicStatus
from studymentor.domain.planning import PlanningContext
from studymentor.observability.metrics import log_metric, log_metrics
from studymentor.observability.tracing import trace
from studymentor.services.plan_drafting import DraftingError, PlanDraftingClient
from studymentor.services.plan_store import PlanStore
from studymentor.services.plan_validator import effective_budget, validate_with_report

logger = logging.getLogger(__name__)

DEFAULT_MENTOR_MESSAGE = "Let's take a steady step forward."
DEFAULT_REASONING = "A balanced selection from your syllabus."
FALLBACK_MENTOR_MESSAGE = (
    "I'm here for you. Technology can be unpredictable, but our journey continues. "
    "Let's focus on one simple step while things stabilize."
)
FALLBACK_REASONING = "Fallback plan: the plan generator was unavailable."
FALLBACK_ITEM_REASON = "Picking the next logical step from your syllabus."


class PreviewNotAvailableError(Exception):
    """Tomorrow can only be previewed once today's plan is completed."""


def days_until_exam(exam_date: Optional[date], target_date: date) -> Optional[int]:
    if exam_date is None:
        return None
    return max(0, (exam_date - target_date).days)


def find_plan(history: Sequence[DailyPlan], plan_date: date) -> Optional[DailyPlan]:
    return next((plan for plan in history if plan.date == plan_date), None)


def build_planning_context(
    profile: Profile,
    history: Sequence[DailyPlan],
    target_date: date,
    today: date,
) -> PlanningContext:
    days_to_exam = days_until_exam(profile.exam_date, target_date)
    previous = find_plan(history, target_date - timedelta(days=1))
    missed_previous_day = previous is not None and not previous.completed
    exam_mode = days_to_exam is not None and days_to_exam <= settings.exam_mode_threshold_days
    return PlanningContext(
        target_date=target_date,
        today=today,
        days_to_exam=days_to_exam,
        missed_previous_day=missed_previous_day,
        exam_mode=exam_mode,
        daily_hours=profile.daily_available_hours,
        effective_budget=effective_budget(
            profile.daily_available_hours,
            missed_previous_day,
            settings.missed_day_factor,
        ),
    )


def priority_topics(topics: Sequence[Topic]) -> List[Topic]:
    """Pending, user-marked-hard topics; the most exposed come first."""
    marked = [topic for topic in topics if topic.status == TopicStatus.PENDING and topic.is_hard_marked]
    return sorted(marked, key=lambda topic: topic.exposure_count, reverse=True)


def fallback_plan(profile: Profile, pending_topics: Sequence[Topic], context: PlanningContext) -> DailyPlan:
    """Minimal reassuring plan used when no usable draft exists.

    It holds at most one item and is not passed through the validator.
    """
    items: List[PlanItem] = []
    if pending_topics:
        first = pending_topics[0]
        items.append(
            PlanItem(
                subject_id=first.subject_id,
                topic_id=first.id,
                allocated_time=min(settings.fallback_max_hours, profile.daily_available_hours),
                reason=FALLBACK_ITEM_REASON,
            )
        )
    return DailyPlan(
        date=context.target_date,
        mentor_message=FALLBACK_MENTOR_MESSAGE,
        reasoning=FALLBACK_REASONING,
        items=items,
        completed=False,
        preview_flag=context.is_preview,
    )


def generate_daily_plan(
    profile: Profile,
    subjects: Sequence[Subject],
    topics: Sequence[Topic],
    history: Sequence[DailyPlan],
    drafter: Optional[PlanDraftingClient],
    target_date: Optional[date] = None,
    *,
    today: Optional[date] = None,
) -> DailyPlan:
    """Build the plan for ``target_date`` (default today). Never raises on drafting failure."""
    today = today or date.today()
    context = build_planning_context(profile, history, target_date or today, today)
    pending = [topic for topic in topics if topic.status == TopicStatus.PENDING]
    completed = [topic for topic in topics if topic.status == TopicStatus.DONE]
    priority = priority_topics(topics)
    metadata = {
        "target_date": context.target_date.isoformat(),
        "preview": context.is_preview,
        "subjects": len(subjects),
        "pending": len(pending),
        "effective_budget": context.effective_budget,
    }

    start = perf_counter()
    tags = ["preview" if context.is_preview else "today"]
    with trace("daily_plan.generate", metadata=metadata, user_id=profile.id, tags=tags):
        if drafter is None:
            logger.warning("No drafting client configured; using fallback plan for %s.", context.target_date)
            plan = fallback_plan(profile, pending, context)
            log_metric("daily_plan.fallback.used", 1, {"reason": "unconfigured"})
        else:
            plan = _draft_and_validate(profile, topics, pending, completed, priority, context, drafter)

    log_metric("daily_plan.generate.latency_ms", (perf_counter() - start) * 1000, {"preview": context.is_preview})
    return plan


def _draft_and_validate(
    profile: Profile,
    topics: Sequence[Topic],
    pending: Sequence[Topic],
    completed: Sequence[Topic],
    priority: Sequence[Topic],
    context: PlanningContext,
    drafter: PlanDraftingClient,
) -> DailyPlan:
    try:
        draft = drafter.draft_plan(profile, pending, completed, priority, context)
    except DraftingError:
        logger.exception("Plan drafting failed for %s; using fallback plan.", context.target_date)
        log_metric("daily_plan.fallback.used", 1, {"reason": "drafting_error"})
        return fallback_plan(profile, pending, context)

    report = validate_with_report(draft.items, topics, context.effective_budget)
    log_metric("daily_plan.draft.success", 1, {"draft_items": len(draft.items)})
    log_metrics("daily_plan.validation", report.to_dict())
    if report.dropped_total:
        logger.info(
            "Validator kept %s of %s drafted items for %s (%s)",
            len(report.items),
            len(draft.items),
            context.target_date,
            report.to_dict(),
        )

    return DailyPlan(
        date=context.target_date,
        mentor_message=draft.mentor_message.strip() or DEFAULT_MENTOR_MESSAGE,
        reasoning=draft.reasoning.strip() or DEFAULT_REASONING,
        items=report.items,
        completed=False,
        preview_flag=context.is_preview,
    )


def run_daily_planning(
    store: PlanStore,
    drafter: Optional[PlanDraftingClient],
    target_date: Optional[date] = None,
    *,
    today: Optional[date] = None,
    force: bool = False,
) -> DailyPlan:
    """Return the stored plan for the date, or generate and persist a new one."""
    today = today or date.today()
    target_date = target_date or today
    profile = store.require_profile()

    if not force:
        existing = store.get_plan(target_date)
        # A preview stored on an earlier day is replanned once its date becomes today.
        if existing and not (existing.preview_flag and target_date == today):
            return existing

    plan = generate_daily_plan(
        profile,
        store.list_subjects(),
        store.list_topics(),
        store.list_plans(),
        drafter,
        target_date,
        today=today,
    )
    return store.upsert_plan(plan)


def preview_tomorrow(
    store: PlanStore,
    drafter: Optional[PlanDraftingClient],
    *,
    today: Optional[date] = None,
) -> DailyPlan:
    """Plan tomorrow once today's plan is done; an existing preview is reused."""
    today = today or date.today()
    today_plan = store.get_plan(today)
    if today_plan is None or not today_plan.completed:
        raise PreviewNotAvailableError("Today's plan must be completed before previewing tomorrow.")
    return run_daily_planning(store, drafter, today + timedelta(days=1), today=today)
