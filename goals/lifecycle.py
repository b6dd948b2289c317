"""Goal lifecycle: status state machine, pauses, recurrence and auto-activation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.event_bus import GOALS_CHANGED, EventBus
from core.settings import DEFAULT_MAX_ACTIVE_GOALS
from goals.dates import Clock, as_utc, parse_date, utc_now
from goals.errors import (
    GoalValidationError,
    InvalidTransitionError,
    InvariantViolationError,
)
from goals.priority_cache import PriorityCache
from goals.store import GoalStore
from goals.types.goal import (
    Goal,
    GoalDraft,
    GoalPatch,
    GoalStatus,
    PauseUntilDate,
    PauseUntilGoal,
)

logger = logging.getLogger("goaly.lifecycle")

# Direct transitions accepted by set_goal_status. Pausing has its own operation.
ALLOWED_TRANSITIONS: dict[GoalStatus, frozenset[GoalStatus]] = {
    GoalStatus.ACTIVE: frozenset(
        {GoalStatus.INACTIVE, GoalStatus.COMPLETED, GoalStatus.NOT_COMPLETED}
    ),
    GoalStatus.INACTIVE: frozenset(
        {GoalStatus.ACTIVE, GoalStatus.COMPLETED, GoalStatus.NOT_COMPLETED}
    ),
    GoalStatus.PAUSED: frozenset(
        {GoalStatus.INACTIVE, GoalStatus.COMPLETED, GoalStatus.NOT_COMPLETED}
    ),
    GoalStatus.COMPLETED: frozenset({GoalStatus.INACTIVE}),
    GoalStatus.NOT_COMPLETED: frozenset({GoalStatus.INACTIVE}),
}

PAUSE_FIELD_ALIASES = {
    "pause_until": "pause_until",
    "pause_until_goal_id": "pause_until_goal_id",
    "pauseUntil": "pause_until",
    "pauseUntilGoalId": "pause_until_goal_id",
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(item) for item in err.get("loc", ())) or "input"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


class GoalLifecycleManager:
    """Owns the goal set and every transition applied to it.

    Every public mutation validates its input first, then mutates the store,
    invalidates affected priority cache entries and finally emits
    ``goals.changed`` with the full goal set. Every mutation except forced
    activation runs an auto-activation pass before emitting.
    """

    def __init__(
        self,
        store: GoalStore | None = None,
        cache: PriorityCache | None = None,
        event_bus: EventBus | None = None,
        clock: Clock = utc_now,
        max_active_goals_source: Callable[[], int] | None = None,
    ) -> None:
        self.store = store if store is not None else GoalStore()
        self.clock = clock
        self.cache = cache if cache is not None else PriorityCache(self.store, clock=clock)
        self.event_bus = event_bus or EventBus()
        self.max_active_goals_source = max_active_goals_source or (lambda: DEFAULT_MAX_ACTIVE_GOALS)

    # ------------------------------------------------------------------ reads

    def get_goal(self, goal_id: str) -> Goal:
        return self.store.get(goal_id)

    def list_goals(self, status: GoalStatus | str | None = None) -> list[Goal]:
        if status is None:
            return self.store.snapshot()
        return self.store.with_status(self._parse_status(status))

    def sorted_goals(self) -> list[Goal]:
        """All goals ordered by priority, highest first."""
        return self._ranked(self.store.snapshot())

    def get_active_goals(self) -> list[Goal]:
        return self._ranked(self.store.with_status(GoalStatus.ACTIVE))

    def is_withheld(self, goal: Goal) -> bool:
        """Whether the goal's pause condition is still unresolved."""
        condition = goal.pause
        if condition is None:
            return False
        if isinstance(condition, PauseUntilDate):
            return condition.until > self._today()
        dependency = self.store.find(condition.goal_id)
        return dependency is not None and not dependency.status.is_terminal

    # -------------------------------------------------------------- mutations

    def load_goals(self, goals: Iterable[Goal | Mapping[str, Any]]) -> list[Goal]:
        """Replace the goal set wholesale, e.g. after loading or importing.

        The incoming set is checked as a whole before anything is replaced:
        duplicate ids are a ``GoalValidationError`` and pause cycles an
        ``InvariantViolationError``. A rejected load keeps the current set.
        """
        loaded = [self._validate(Goal, goal) for goal in goals]
        by_id: dict[str, Goal] = {}
        for goal in loaded:
            if goal.id in by_id:
                raise GoalValidationError(f"Duplicate goal id: {goal.id}")
            by_id[goal.id] = goal
        for goal in loaded:
            self._check_loaded_pause(goal, by_id)

        self.store.reset(loaded)
        self.cache.clear()
        logger.info("Loaded %d goals", len(loaded))
        self._notify("load_goals", None)
        return loaded

    def create_goal(
        self, data: GoalDraft | Mapping[str, Any], max_active_goals: int | None = None
    ) -> Goal:
        draft = self._validate(GoalDraft, data)
        cap = self._resolve_cap(max_active_goals)
        now = self.clock()
        goal = self._validate(
            Goal,
            {**draft.model_dump(), "status": GoalStatus.INACTIVE, "created_at": now, "last_updated": now},
        )
        self.store.add(goal)
        self.cache.invalidate(goal.id)
        logger.info(
            "Created goal %s (motivation=%d, urgency=%d)", goal.id, goal.motivation, goal.urgency
        )
        self._run_auto_activation(cap)
        self._notify("create_goal", goal.id)
        return goal

    def update_goal(
        self,
        goal_id: str,
        patch: GoalPatch | Mapping[str, Any],
        max_active_goals: int | None = None,
    ) -> Goal:
        goal = self.store.get(goal_id)
        changes = self._validate(GoalPatch, patch).changes()
        cap = self._resolve_cap(max_active_goals)
        if not changes:
            return goal

        candidate = self._validate(Goal, {**goal.model_dump(), **changes})
        changed_fields = [
            name for name in changes if getattr(candidate, name) != getattr(goal, name)
        ]
        if not changed_fields:
            return goal

        for name in changed_fields:
            setattr(goal, name, getattr(candidate, name))
        self._touch(goal)
        self.cache.invalidate(goal.id)
        logger.info("Updated goal %s: %s", goal.id, ", ".join(changed_fields))
        self._run_auto_activation(cap)
        self._notify("update_goal", goal.id)
        return goal

    def delete_goal(self, goal_id: str, max_active_goals: int | None = None) -> Goal:
        self.store.get(goal_id)
        cap = self._resolve_cap(max_active_goals)
        goal = self.store.remove(goal_id)
        self.cache.invalidate(goal_id)
        released = self._release_dependents(goal_id)
        logger.info("Deleted goal %s (released %d dependents)", goal_id, len(released))
        self._run_auto_activation(cap)
        self._notify("delete_goal", goal_id)
        return goal

    def set_goal_status(
        self,
        goal_id: str,
        new_status: GoalStatus | str,
        max_active_goals: int | None = None,
        recurrence_date: date | datetime | str | None = None,
    ) -> Goal:
        """Apply a direct status transition such as completion or reactivation.

        Completing (or failing) a goal with a ``recurrence_date`` re-arms it:
        the recurrence and outcome counters are incremented, the deadline moves
        to the recurrence date, and the goal is paused until that date.
        """
        goal = self.store.get(goal_id)
        target = self._parse_status(new_status)
        recur_on = self._parse_day(recurrence_date, "recurrence_date")
        if recur_on is not None and not target.is_terminal:
            raise GoalValidationError("recurrence_date is only accepted when finishing a goal.")
        cap = self._resolve_cap(max_active_goals)
        if target is goal.status:
            return goal
        if target not in ALLOWED_TRANSITIONS[goal.status]:
            raise InvalidTransitionError(goal.id, goal.status.value, target.value)

        previous = goal.status
        goal.pause = None
        # A direct activation is a human override that later passes keep.
        goal.force_activated = target is GoalStatus.ACTIVE
        if target.is_terminal and recur_on is not None:
            self._rearm(goal, target, recur_on)
        else:
            goal.status = target
        self._touch(goal)
        self.cache.invalidate(goal.id)
        logger.info("Goal %s: %s -> %s", goal.id, previous.value, goal.status.value)

        if target.is_terminal:
            self._release_dependents(goal.id)
        self._run_auto_activation(cap)
        self._notify("set_goal_status", goal.id)
        return goal

    def pause_goal(
        self,
        goal_id: str,
        pause: PauseUntilDate | PauseUntilGoal | Mapping[str, Any] | None = None,
        max_active_goals: int | None = None,
        *,
        pause_until: date | datetime | str | None = None,
        pause_until_goal_id: str | None = None,
    ) -> Goal:
        """Pause a goal until a date or until another goal is finished.

        The condition may be passed as a ``PauseUntilDate``/``PauseUntilGoal``,
        as a mapping with ``pause_until`` or ``pause_until_goal_id``, or as the
        matching keyword arguments. Exactly one condition is accepted.
        """
        goal = self.store.get(goal_id)
        condition = self._build_pause(goal, pause, pause_until, pause_until_goal_id)
        cap = self._resolve_cap(max_active_goals)
        if goal.status.is_terminal:
            raise InvalidTransitionError(goal.id, goal.status.value, GoalStatus.PAUSED.value)

        previous = goal.status
        goal.pause = condition
        goal.force_activated = False
        goal.status = GoalStatus.PAUSED
        self._touch(goal)
        self.cache.invalidate(goal.id)
        logger.info("Goal %s: %s -> paused (%s)", goal.id, previous.value, condition.kind)
        self._run_auto_activation(cap)
        self._notify("pause_goal", goal.id)
        return goal

    def unpause_goal(self, goal_id: str, max_active_goals: int | None = None) -> Goal:
        goal = self.store.get(goal_id)
        cap = self._resolve_cap(max_active_goals)
        if goal.status is not GoalStatus.PAUSED:
            raise InvalidTransitionError(goal.id, goal.status.value, GoalStatus.INACTIVE.value)
        goal.pause = None
        goal.status = GoalStatus.INACTIVE
        self._touch(goal)
        self.cache.invalidate(goal.id)
        logger.info("Goal %s: paused -> inactive (unpaused)", goal.id)
        self._run_auto_activation(cap)
        self._notify("unpause_goal", goal.id)
        return goal

    def force_activate_goal(self, goal_id: str, max_active_goals: int | None = None) -> Goal:
        """Activate a goal regardless of the cap; later passes never revoke it."""
        goal = self.store.get(goal_id)
        cap = self._resolve_cap(max_active_goals)
        if goal.status not in (GoalStatus.INACTIVE, GoalStatus.PAUSED):
            raise InvalidTransitionError(goal.id, goal.status.value, GoalStatus.ACTIVE.value)
        previous = goal.status
        goal.pause = None
        goal.force_activated = True
        goal.status = GoalStatus.ACTIVE
        self._touch(goal)
        self.cache.invalidate(goal.id)
        logger.info("Goal %s: %s -> active (forced)", goal.id, previous.value)
        if self._active_count() > max(0, cap):
            logger.info("Active goals now exceed the cap of %d", cap)
        self._notify("force_activate_goal", goal.id)
        return goal

    def auto_activate_goals_by_priority(self, max_active_goals: int | None = None) -> list[Goal]:
        """Promote the highest-priority eligible goals until the cap is reached.

        Returns the promoted goals. Active goals are never demoted.
        """
        cap = self._resolve_cap(max_active_goals)
        released, promoted = self._run_auto_activation(cap)
        if released or promoted:
            self._notify("auto_activate", None)
        return promoted

    def record_review_outcome(
        self, goal_id: str, review_interval_index: int, reviewed_at: datetime
    ) -> Goal:
        """Store the review schedule decided by the review scheduler."""
        goal = self.store.get(goal_id)
        if review_interval_index < 0:
            raise GoalValidationError("review_interval_index must not be negative.")
        goal.review_interval_index = review_interval_index
        goal.review_dates = [*goal.review_dates, reviewed_at]
        goal.last_review_at = reviewed_at
        goal.last_updated = reviewed_at
        self._notify("record_review", goal.id)
        return goal

    def clamp_review_indexes(self, interval_count: int) -> list[Goal]:
        """Pull review indexes back inside a shrunken interval configuration."""
        last_index = max(0, interval_count - 1)
        clamped = [goal for goal in self.store if goal.review_interval_index > last_index]
        for goal in clamped:
            goal.review_interval_index = last_index
        if clamped:
            logger.info("Clamped review index of %d goals to %d", len(clamped), last_index)
            self._notify("clamp_review_indexes", None)
        return clamped

    # -------------------------------------------------------------- internals

    def _run_auto_activation(self, cap: int) -> tuple[list[Goal], list[Goal]]:
        released = self._release_resolved_pauses()
        slots = max(0, cap) - self._active_count()
        promoted: list[Goal] = []
        if slots > 0:
            for goal in self._ranked(self.store.with_status(GoalStatus.INACTIVE))[:slots]:
                goal.status = GoalStatus.ACTIVE
                self._touch(goal)
                promoted.append(goal)
                logger.info(
                    "Auto-activated goal %s (priority=%.1f)", goal.id, self.cache.get_priority(goal.id)
                )
        return released, promoted

    def _release_resolved_pauses(self) -> list[Goal]:
        released = []
        for goal in self.store.with_status(GoalStatus.PAUSED):
            if self.is_withheld(goal):
                continue
            goal.pause = None
            goal.status = GoalStatus.INACTIVE
            self._touch(goal)
            released.append(goal)
            logger.info("Pause of goal %s resolved", goal.id)
        self.cache.invalidate_many(goal.id for goal in released)
        return released

    def _release_dependents(self, goal_id: str) -> list[Goal]:
        released = self.store.paused_on(goal_id)
        for goal in released:
            goal.pause = None
            if goal.status is GoalStatus.PAUSED:
                goal.status = GoalStatus.INACTIVE
            self._touch(goal)
            logger.info("Goal %s released from pause on %s", goal.id, goal_id)
        self.cache.invalidate_many(goal.id for goal in released)
        return released

    def _rearm(self, goal: Goal, outcome: GoalStatus, recur_on: date) -> None:
        goal.is_recurring = True
        goal.recur_count += 1
        if outcome is GoalStatus.COMPLETED:
            goal.completion_count += 1
        else:
            goal.not_completed_count += 1
        goal.deadline = recur_on
        goal.pause = PauseUntilDate(until=recur_on)
        goal.status = GoalStatus.PAUSED

    def _build_pause(
        self,
        goal: Goal,
        pause: PauseUntilDate | PauseUntilGoal | Mapping[str, Any] | None,
        pause_until: date | datetime | str | None,
        pause_until_goal_id: str | None,
    ) -> PauseUntilDate | PauseUntilGoal:
        if isinstance(pause, PauseUntilDate):
            pause_until = pause.until
        elif isinstance(pause, PauseUntilGoal):
            pause_until_goal_id = pause.goal_id
        elif pause is not None:
            unknown = set(pause) - set(PAUSE_FIELD_ALIASES)
            if unknown:
                raise GoalValidationError(f"Unknown pause fields: {', '.join(sorted(unknown))}")
            fields = {PAUSE_FIELD_ALIASES[key]: value for key, value in pause.items()}
            pause_until = fields.get("pause_until", pause_until)
            pause_until_goal_id = fields.get("pause_until_goal_id", pause_until_goal_id)

        until = self._parse_day(pause_until, "pause_until")
        if (until is None) == (not pause_until_goal_id):
            raise GoalValidationError(
                "Exactly one of pause_until or pause_until_goal_id must be given."
            )
        if until is not None:
            if until <= self._today():
                raise GoalValidationError("pause_until must be a future date.")
            return PauseUntilDate(until=until)

        dependency_id = str(pause_until_goal_id)
        if dependency_id == goal.id:
            raise InvariantViolationError(f"Goal {goal.id} cannot be paused on itself.")
        dependency = self.store.get(dependency_id)
        if dependency.status.is_terminal:
            raise GoalValidationError(f"Goal {dependency_id} is already finished.")
        self._check_pause_chain(goal.id, dependency)
        return PauseUntilGoal(goal_id=dependency_id)

    def _check_pause_chain(self, goal_id: str, dependency: Goal) -> None:
        seen: set[str] = set()
        current: Goal | None = dependency
        while current is not None and current.id not in seen:
            seen.add(current.id)
            next_id = current.pause_until_goal_id
            if next_id is None:
                return
            if next_id == goal_id:
                raise InvariantViolationError(
                    f"Pausing goal {goal_id} on {dependency.id} would create a pause cycle."
                )
            current = self.store.find(next_id)

    def _check_loaded_pause(self, goal: Goal, by_id: Mapping[str, Goal]) -> None:
        seen = {goal.id}
        next_id = goal.pause_until_goal_id
        while next_id is not None:
            if next_id in seen:
                raise InvariantViolationError(f"Goal {goal.id} is part of a pause cycle.")
            seen.add(next_id)
            dependency = by_id.get(next_id)
            next_id = dependency.pause_until_goal_id if dependency is not None else None

    def _ranked(self, goals: list[Goal]) -> list[Goal]:
        """Order by priority descending, then creation time, then insertion order."""
        positions = {goal_id: index for index, goal_id in enumerate(g.id for g in self.store)}
        return sorted(
            goals,
            key=lambda g: (
                -self.cache.get_priority(g.id),
                as_utc(g.created_at),
                positions.get(g.id, len(positions)),
            ),
        )

    def _notify(self, operation: str, goal_id: str | None) -> None:
        self.event_bus.emit(
            GOALS_CHANGED,
            {"operation": operation, "goal_id": goal_id, "goals": self.store.snapshot()},
        )

    def _resolve_cap(self, max_active_goals: int | None) -> int:
        value = self.max_active_goals_source() if max_active_goals is None else max_active_goals
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise GoalValidationError(f"max_active_goals must be an integer: {value!r}") from exc

    def _active_count(self) -> int:
        return len(self.store.with_status(GoalStatus.ACTIVE))

    def _touch(self, goal: Goal) -> None:
        goal.last_updated = self.clock()

    def _today(self) -> date:
        return self.clock().date()

    @staticmethod
    def _parse_status(value: GoalStatus | str) -> GoalStatus:
        try:
            return GoalStatus(value)
        except ValueError as exc:
            raise GoalValidationError(f"Unknown goal status: {value!r}") from exc

    @staticmethod
    def _parse_day(value: date | datetime | str | None, field: str) -> date | None:
        try:
            return parse_date(value)
        except ValueError as exc:
            raise GoalValidationError(f"{field} is not a valid date: {value!r}") from exc

    @staticmethod
    def _validate(model: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
        if isinstance(data, model):
            return data
        if not isinstance(data, Mapping):
            raise GoalValidationError(f"Expected a mapping for {model.__name__}, got {type(data).__name__}.")
        try:
            return model.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise GoalValidationError(_describe(exc)) from exc
