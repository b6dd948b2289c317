"""Authoritative in-memory goal collection."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from goals.errors import GoalNotFoundError
from goals.types.goal import Goal, GoalStatus


class GoalStore:
    """Insertion-ordered goal collection keyed by goal id.

    Insertion order doubles as the final tie-breaker when goals share both
    priority and creation timestamp.
    """

    def __init__(self, goals: Iterable[Goal] | None = None) -> None:
        self._goals: dict[str, Goal] = {}
        for goal in goals or []:
            self.add(goal)

    def __iter__(self) -> Iterator[Goal]:
        return iter(list(self._goals.values()))

    def __len__(self) -> int:
        return len(self._goals)

    def __contains__(self, goal_id: object) -> bool:
        return goal_id in self._goals

    def find(self, goal_id: str) -> Goal | None:
        return self._goals.get(goal_id)

    def get(self, goal_id: str) -> Goal:
        """Return the goal or raise ``GoalNotFoundError``."""
        goal = self._goals.get(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        return goal

    def add(self, goal: Goal) -> None:
        if goal.id in self._goals:
            raise ValueError(f"Duplicate goal id: {goal.id}")
        self._goals[goal.id] = goal

    def remove(self, goal_id: str) -> Goal:
        goal = self.get(goal_id)
        del self._goals[goal_id]
        return goal

    def reset(self, goals: Iterable[Goal]) -> None:
        """Replace the whole collection; the old one survives a rejected load."""
        replacement: dict[str, Goal] = {}
        for goal in goals:
            if goal.id in replacement:
                raise ValueError(f"Duplicate goal id: {goal.id}")
            replacement[goal.id] = goal
        self._goals = replacement

    def with_status(self, *statuses: GoalStatus) -> list[Goal]:
        return [goal for goal in self._goals.values() if goal.status in statuses]

    def paused_on(self, goal_id: str) -> list[Goal]:
        """Goals whose pause condition references ``goal_id``."""
        return [goal for goal in self._goals.values() if goal.pause_until_goal_id == goal_id]

    def snapshot(self) -> list[Goal]:
        return list(self._goals.values())
