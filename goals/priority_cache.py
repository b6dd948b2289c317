"""Memoized goal priorities with explicit invalidation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date

from goals.dates import Clock, utc_now
from goals.priority import compute_priority
from goals.store import GoalStore
from goals.types.goal import Goal

logger = logging.getLogger("goaly.priority_cache")

PriorityFn = Callable[[Goal, date], float]


@dataclass
class PriorityCacheEntry:
    """Last computed priority for one goal."""

    priority: float
    valid: bool
    computed_on: date


class PriorityCache:
    """Caches per-goal priority over a ``GoalStore``.

    Entries are only served for the calendar day they were computed on, since
    deadline proximity changes daily.
    """

    def __init__(
        self,
        store: GoalStore,
        calculator: PriorityFn = compute_priority,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.calculator = calculator
        self.clock = clock
        self._entries: dict[str, PriorityCacheEntry] = {}

    def get_priority(self, goal_id: str) -> float:
        """Return the priority of a goal, or ``0.0`` when the goal does not exist."""
        goal = self.store.find(goal_id)
        if goal is None:
            self._entries.pop(goal_id, None)
            return 0.0
        today = self.clock().date()
        entry = self._entries.get(goal_id)
        if entry is not None and entry.valid and entry.computed_on == today:
            return entry.priority
        priority = self.calculator(goal, today)
        self._entries[goal_id] = PriorityCacheEntry(priority=priority, valid=True, computed_on=today)
        return priority

    def get_all_priorities(self) -> dict[str, float]:
        """Snapshot of priorities for every known goal."""
        priorities = {goal.id: self.get_priority(goal.id) for goal in self.store}
        for stale_id in set(self._entries) - set(priorities):
            del self._entries[stale_id]
        return priorities

    def invalidate(self, goal_id: str) -> None:
        entry = self._entries.get(goal_id)
        if entry is not None:
            entry.valid = False

    def invalidate_many(self, goal_ids: Iterable[str]) -> None:
        for goal_id in goal_ids:
            self.invalidate(goal_id)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()
        logger.debug("Priority cache cleared")

    def is_cached(self, goal_id: str) -> bool:
        entry = self._entries.get(goal_id)
        return entry is not None and entry.valid
