"""Per-day planning context computed before a draft is requested."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class PlanningContext:
    target_date: date
    today: date
    days_to_exam: Optional[int]
    missed_previous_day: bool
    exam_mode: bool
    daily_hours: float
    effective_budget: float

    @property
    def is_preview(self) -> bool:
        return self.target_date != self.today
