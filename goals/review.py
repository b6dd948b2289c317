"""Spaced-repetition style review cadence for goal ratings."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from core.settings import DEFAULT_REVIEW_INTERVALS
from goals.dates import as_utc
from goals.errors import GoalValidationError
from goals.lifecycle import GoalLifecycleManager
from goals.types.goal import MAX_RATING_VALUE, MIN_RATING_VALUE, Goal, GoalStatus

logger = logging.getLogger("goaly.review")

REVIEWABLE_STATUSES = frozenset({GoalStatus.ACTIVE, GoalStatus.INACTIVE, GoalStatus.PAUSED})


@dataclass
class ReviewResult:
    """Outcome of one submitted review."""

    goal: Goal
    ratings_match: bool


@dataclass
class ReviewPrompt:
    """A goal whose next review is due."""

    goal: Goal
    due_at: datetime
    is_overdue: bool


def next_interval_index(current: int, ratings_match: bool, interval_count: int) -> int:
    """Stable ratings lengthen the cadence by one step; any change resets it."""
    if not ratings_match or interval_count <= 0:
        return 0
    return min(current + 1, interval_count - 1)


def parse_rating(value: Any, fallback: int) -> int:
    """Parse a submitted rating, keeping ``fallback`` for missing or garbled input.

    Fractional input is truncated (``"4.5"`` gives 4) and the result is clamped
    into the rating range.
    """
    if value is None or isinstance(value, bool):
        return fallback
    try:
        parsed = int(float(value)) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        return fallback
    return min(MAX_RATING_VALUE, max(MIN_RATING_VALUE, parsed))


class ReviewScheduler:
    """Decides the next review interval after each re-rating.

    Interval days are read from ``intervals_source`` on every call so that
    configuration changes apply immediately.
    """

    def __init__(
        self,
        manager: GoalLifecycleManager,
        intervals_source: Callable[[], Sequence[float]] | None = None,
    ) -> None:
        self.manager = manager
        self.intervals_source = intervals_source or (lambda: DEFAULT_REVIEW_INTERVALS)

    def get_review_intervals(self) -> list[float]:
        intervals = [float(days) for days in self.intervals_source() if days and days > 0]
        return intervals or list(DEFAULT_REVIEW_INTERVALS)

    def record_review(self, goal_id: str, ratings: Mapping[str, Any] | None = None) -> ReviewResult:
        goal = self.manager.get_goal(goal_id)
        if goal.status not in REVIEWABLE_STATUSES:
            raise GoalValidationError(f"Goal {goal_id} is {goal.status.value} and cannot be reviewed.")
        ratings = ratings or {}
        intervals = self.get_review_intervals()
        current = min(goal.review_interval_index, len(intervals) - 1)

        motivation = parse_rating(ratings.get("motivation"), goal.motivation)
        urgency = parse_rating(ratings.get("urgency"), goal.urgency)
        ratings_match = motivation == goal.motivation and urgency == goal.urgency
        if not ratings_match:
            self.manager.update_goal(goal_id, {"motivation": motivation, "urgency": urgency})

        next_index = next_interval_index(current, ratings_match, len(intervals))
        goal = self.manager.record_review_outcome(goal_id, next_index, self.manager.clock())
        logger.info(
            "Reviewed goal %s: ratings %s, interval index %d -> %d (%g days)",
            goal_id,
            "unchanged" if ratings_match else "changed",
            current,
            next_index,
            intervals[next_index],
        )
        return ReviewResult(goal=goal, ratings_match=ratings_match)

    def next_review_at(self, goal: Goal) -> datetime:
        intervals = self.get_review_intervals()
        index = min(goal.review_interval_index, len(intervals) - 1)
        if goal.last_review_at is not None:
            base = goal.last_review_at
        elif goal.review_dates:
            base = max(as_utc(item) for item in goal.review_dates)
        else:
            base = goal.created_at
        return as_utc(base) + timedelta(days=intervals[index])

    def is_review_due(self, goal: Goal, now: datetime | None = None) -> bool:
        if goal.status not in REVIEWABLE_STATUSES:
            return False
        now = as_utc(now or self.manager.clock())
        return self.next_review_at(goal) <= now

    def due_reviews(self, now: datetime | None = None) -> list[ReviewPrompt]:
        """Goals due for re-rating, most overdue first."""
        now = as_utc(now or self.manager.clock())
        prompts = []
        for goal in self.manager.list_goals():
            if goal.status not in REVIEWABLE_STATUSES:
                continue
            due_at = self.next_review_at(goal)
            if due_at <= now:
                prompts.append(ReviewPrompt(goal=goal, due_at=due_at, is_overdue=due_at < now))
        return sorted(prompts, key=lambda prompt: prompt.due_at)

    def sync_interval_configuration(self) -> list[Goal]:
        """Clamp stored indexes after the interval sequence shrank."""
        return self.manager.clamp_review_indexes(len(self.get_review_intervals()))
