"""Goal engine error taxonomy."""

from __future__ import annotations


class GoalError(Exception):
    """Base class for every failure reported by the goal engine."""


class GoalValidationError(GoalError):
    """Rejected input: ratings, patch fields, pause condition or status target."""


class InvalidTransitionError(GoalValidationError):
    """Requested status change is not allowed from the goal's current status."""

    def __init__(self, goal_id: str, current: str, target: str) -> None:
        super().__init__(f"Goal {goal_id} cannot move from '{current}' to '{target}'.")
        self.goal_id = goal_id
        self.current = current
        self.target = target


class GoalNotFoundError(GoalError):
    """An id-addressed operation referenced an unknown goal."""

    def __init__(self, goal_id: str) -> None:
        super().__init__(f"Goal not found: {goal_id}")
        self.goal_id = goal_id


class InvariantViolationError(GoalError):
    """Operation would break a structural invariant, e.g. a goal pausing on itself."""
