"""Deterministic guardrails applied to every drafted daily plan."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence

from studymentor.domain.entities import Difficulty, PlanItem, Topic

logger = logging.getLogger(__name__)

MAX_HARD_ITEMS = 1
MISSED_DAY_FACTOR = 0.7
# Absorbs float noise such as 1.4 + 1.4 against a 2.8h budget.
BUDGET_TOLERANCE = 1e-9


class ProposedItem(Protocol):
    topic_id: str
    allocated_time: float
    reason: str


@dataclass
class ValidationReport:
    items: List[PlanItem] = field(default_factory=list)
    total_hours: float = 0.0
    dropped_invalid_time: int = 0
    dropped_unknown_topic: int = 0
    dropped_hard_cap: int = 0
    dropped_over_budget: int = 0

    @property
    def dropped_total(self) -> int:
        return (
            self.dropped_invalid_time
            + self.dropped_unknown_topic
            + self.dropped_hard_cap
            + self.dropped_over_budget
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": len(self.items),
            "total_hours": self.total_hours,
            "dropped_invalid_time": self.dropped_invalid_time,
            "dropped_unknown_topic": self.dropped_unknown_topic,
            "dropped_hard_cap": self.dropped_hard_cap,
            "dropped_over_budget": self.dropped_over_budget,
        }


def effective_budget(daily_hours: float, missed_previous_day: bool, missed_day_factor: float = MISSED_DAY_FACTOR) -> float:
    """Usable hours for the day: the full budget, or a reduced one after a missed day."""
    if missed_previous_day:
        return daily_hours * missed_day_factor
    return daily_hours


def validate(
    draft_items: Iterable[ProposedItem],
    topics: Sequence[Topic] | Mapping[str, Topic],
    budget: float,
) -> List[PlanItem]:
    """Return the draft items that survive every guardrail, in draft order."""
    return validate_with_report(draft_items, topics, budget).items


def validate_with_report(
    draft_items: Iterable[ProposedItem],
    topics: Sequence[Topic] | Mapping[str, Topic],
    budget: float,
) -> ValidationReport:
    """Single greedy pass over the draft; rejected items are dropped, never trimmed."""
    topics_by_id = topics if isinstance(topics, Mapping) else {topic.id: topic for topic in topics}
    report = ValidationReport()
    hard_count = 0
    used_hours = 0.0

    for item in draft_items:
        hours = float(item.allocated_time)
        # NaN and infinity slip past both comparisons below, so they are rejected here.
        if not math.isfinite(hours) or hours <= 0:
            report.dropped_invalid_time += 1
            logger.debug("Dropping %s: invalid allocation %s", item.topic_id, hours)
            continue

        topic = topics_by_id.get(item.topic_id)
        if topic is None:
            report.dropped_unknown_topic += 1
            logger.debug("Dropping unknown topic id %r", item.topic_id)
            continue

        # The hard slot is spent even if the budget check below rejects the item.
        if topic.difficulty == Difficulty.HARD:
            if hard_count >= MAX_HARD_ITEMS:
                report.dropped_hard_cap += 1
                logger.debug("Dropping %s: hard topic cap reached", topic.id)
                continue
            hard_count += 1

        if used_hours + hours > budget + BUDGET_TOLERANCE:
            report.dropped_over_budget += 1
            logger.debug("Dropping %s: %.2fh would exceed %.2fh budget", topic.id, used_hours + hours, budget)
            continue

        report.items.append(
            PlanItem(
                subject_id=topic.subject_id,
                topic_id=topic.id,
                allocated_time=hours,
                reason=item.reason,
            )
        )
        used_hours += hours

    report.total_hours = used_hours
    return report
