"""Typed goal models."""

from goals.types.goal import (
    MAX_RATING_VALUE,
    MIN_RATING_VALUE,
    Goal,
    GoalDraft,
    GoalPatch,
    GoalResource,
    GoalStatus,
    GoalStep,
    PauseUntilDate,
    PauseUntilGoal,
    RecurPeriodUnit,
)

__all__ = [
    "MAX_RATING_VALUE",
    "MIN_RATING_VALUE",
    "Goal",
    "GoalDraft",
    "GoalPatch",
    "GoalResource",
    "GoalStatus",
    "GoalStep",
    "PauseUntilDate",
    "PauseUntilGoal",
    "RecurPeriodUnit",
]
