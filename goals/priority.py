"""Priority scoring for goals."""

from __future__ import annotations

from datetime import date

from goals.dates import days_until, utc_now
from goals.types.goal import Goal

# Days before a deadline at which the deadline starts adding priority.
DEADLINE_BONUS_DAYS = 30
URGENCY_WEIGHT = 10


def deadline_bonus(deadline: date | None, today: date) -> float:
    """Map deadline proximity to a bonus; overdue deadlines keep growing."""
    if deadline is None:
        return 0.0
    remaining = days_until(deadline, today)
    if remaining > DEADLINE_BONUS_DAYS:
        return 0.0
    return float(DEADLINE_BONUS_DAYS - remaining)


def compute_priority(goal: Goal, today: date | None = None) -> float:
    """Weighted goal priority: urgency dominates, motivation breaks ties, deadline adds."""
    today = today or utc_now().date()
    return goal.motivation + URGENCY_WEIGHT * goal.urgency + deadline_bonus(goal.deadline, today)
