"""Goal lifecycle and auto-activation tests."""

from __future__ import annotations

from typing import Any

import pytest

from core.event_bus import GOALS_CHANGED
from goals.errors import (
    GoalNotFoundError,
    GoalValidationError,
    InvalidTransitionError,
    InvariantViolationError,
)
from goals.lifecycle import GoalLifecycleManager
from goals.types.goal import Goal, GoalStatus, PauseUntilGoal


def statuses(manager: GoalLifecycleManager) -> dict[str, GoalStatus]:
    return {goal.id: goal.status for goal in manager.list_goals()}


def test_completing_the_active_goal_backfills_its_slot(manager: GoalLifecycleManager) -> None:
    x = manager.create_goal({"title": "X", "motivation": 5, "urgency": 5}, 1)
    y = manager.create_goal({"title": "Y", "motivation": 1, "urgency": 1}, 1)
    assert x.status is GoalStatus.ACTIVE
    assert y.status is GoalStatus.INACTIVE

    manager.set_goal_status(x.id, GoalStatus.COMPLETED, 1)
    assert x.status is GoalStatus.COMPLETED
    assert manager.get_active_goals() == [y]
    assert manager.auto_activate_goals_by_priority(1) == []


def test_reactivated_goal_competes_for_free_slots(manager: GoalLifecycleManager) -> None:
    goal = manager.create_goal({"motivation": 3, "urgency": 3}, 1)
    manager.set_goal_status(goal.id, GoalStatus.COMPLETED, 1)

    manager.set_goal_status(goal.id, GoalStatus.INACTIVE, 1)
    assert goal.status is GoalStatus.ACTIVE


def test_create_rejects_missing_or_out_of_range_ratings(manager: GoalLifecycleManager) -> None:
    with pytest.raises(GoalValidationError):
        manager.create_goal({"title": "no urgency", "motivation": 3}, 3)
    with pytest.raises(GoalValidationError):
        manager.create_goal({"motivation": 6, "urgency": 3}, 3)
    with pytest.raises(GoalValidationError):
        manager.create_goal({"motivation": 0, "urgency": 3}, 3)
    with pytest.raises(GoalValidationError):
        manager.create_goal({"motivation": 3, "urgency": 3, "status": "active"}, 3)
    assert manager.list_goals() == []


def test_activation_never_demotes_an_active_goal(manager: GoalLifecycleManager) -> None:
    low = manager.create_goal({"motivation": 1, "urgency": 1}, 1)
    high = manager.create_goal({"motivation": 5, "urgency": 5}, 1)
    assert low.status is GoalStatus.ACTIVE
    assert high.status is GoalStatus.INACTIVE

    manager.update_goal(high.id, {"urgency": 5, "motivation": 4}, 1)
    assert low.status is GoalStatus.ACTIVE
    assert high.status is GoalStatus.INACTIVE


def test_cap_selects_top_priorities(manager: GoalLifecycleManager) -> None:
    goals = [
        manager.create_goal({"title": f"g{urgency}", "motivation": 3, "urgency": urgency}, 0)
        for urgency in (2, 5, 1, 4)
    ]
    assert all(goal.status is GoalStatus.INACTIVE for goal in goals)

    promoted = manager.auto_activate_goals_by_priority(2)
    assert sorted(goal.urgency for goal in promoted) == [4, 5]
    active = manager.list_goals(GoalStatus.ACTIVE)
    inactive = manager.list_goals(GoalStatus.INACTIVE)
    assert len(active) == 2
    lowest_active = min(manager.cache.get_priority(goal.id) for goal in active)
    assert all(manager.cache.get_priority(goal.id) <= lowest_active for goal in inactive)


@pytest.mark.parametrize("cap", [0, -3])
def test_non_positive_cap_activates_nothing(manager: GoalLifecycleManager, cap: int) -> None:
    goal = manager.create_goal({"motivation": 5, "urgency": 5}, cap)
    assert goal.status is GoalStatus.INACTIVE
    assert manager.auto_activate_goals_by_priority(cap) == []


def test_auto_activation_is_idempotent(manager: GoalLifecycleManager, event_bus) -> None:
    for urgency in (1, 2, 3, 4):
        manager.create_goal({"motivation": 2, "urgency": urgency}, 0)
    events: list[dict[str, Any]] = []
    event_bus.subscribe(GOALS_CHANGED, events.append)

    manager.auto_activate_goals_by_priority(2)
    before = statuses(manager)
    assert manager.auto_activate_goals_by_priority(2) == []
    assert statuses(manager) == before
    assert len(events) == 1


def test_equal_priorities_resolve_in_creation_order(manager: GoalLifecycleManager) -> None:
    first = manager.create_goal({"title": "first", "motivation": 3, "urgency": 3}, 0)
    second = manager.create_goal({"title": "second", "motivation": 3, "urgency": 3}, 0)

    manager.auto_activate_goals_by_priority(1)
    assert first.status is GoalStatus.ACTIVE
    assert second.status is GoalStatus.INACTIVE
    assert [goal.id for goal in manager.sorted_goals()] == [first.id, second.id]


def test_update_invalidates_priority_and_reruns_activation(manager: GoalLifecycleManager) -> None:
    goal = manager.create_goal({"motivation": 5, "urgency": 5}, 0)
    assert manager.cache.get_priority(goal.id) == 55

    manager.update_goal(goal.id, {"urgency": 1}, 1)
    assert manager.cache.get_priority(goal.id) == 15
    assert goal.status is GoalStatus.ACTIVE


def test_rejected_update_leaves_goal_and_cache_untouched(manager: GoalLifecycleManager) -> None:
    goal = manager.create_goal({"motivation": 4, "urgency": 4}, 1)
    priority = manager.cache.get_priority(goal.id)
    stamp = goal.last_updated

    with pytest.raises(GoalValidationError):
        manager.update_goal(goal.id, {"motivation": 2, "urgency": 9}, 1)
    with pytest.raises(GoalValidationError):
        manager.update_goal(goal.id, {"status": "completed"}, 1)

    assert (goal.motivation, goal.urgency) == (4, 4)
    assert goal.last_updated == stamp
    assert manager.cache.is_cached(goal.id)
    assert manager.cache.get_priority(goal.id) == priority


def test_unknown_ids_are_reported(manager: GoalLifecycleManager) -> None:
    with pytest.raises(GoalNotFoundError):
        manager.update_goal("nope", {"motivation": 3}, 1)
    with pytest.raises(GoalNotFoundError):
        manager.delete_goal("nope", 1)
    with pytest.raises(GoalNotFoundError):
        manager.set_goal_status("nope", "completed", 1)
    with pytest.raises(GoalNotFoundError):
        manager.force_activate_goal("nope", 1)


def test_delete_backfills_capacity_and_drops_priority(manager: GoalLifecycleManager) -> None:
    x = manager.create_goal({"motivation": 5, "urgency": 5}, 1)
    y = manager.create_goal({"motivation": 2, "urgency": 2}, 1)

    manager.delete_goal(x.id, 1)
    assert y.status is GoalStatus.ACTIVE
    assert manager.cache.get_priority(x.id) == 0.0
    assert x.id not in manager.cache.get_all_priorities()


def test_forced_activation_exceeds_cap_and_persists(manager: GoalLifecycleManager) -> None:
    x = manager.create_goal({"motivation": 5, "urgency": 5}, 1)
    y = manager.create_goal({"motivation": 1, "urgency": 1}, 1)

    manager.force_activate_goal(y.id, 1)
    assert x.status is GoalStatus.ACTIVE
    assert y.status is GoalStatus.ACTIVE
    assert y.force_activated

    manager.auto_activate_goals_by_priority(1)
    manager.create_goal({"motivation": 5, "urgency": 5}, 1)
    assert len(manager.list_goals(GoalStatus.ACTIVE)) == 2


def test_forced_activation_is_illegal_from_active_or_terminal(manager: GoalLifecycleManager) -> None:
    x = manager.create_goal({"motivation": 5, "urgency": 5}, 1)
    with pytest.raises(InvalidTransitionError):
        manager.force_activate_goal(x.id, 1)

    manager.set_goal_status(x.id, GoalStatus.COMPLETED, 1)
    with pytest.raises(InvalidTransitionError):
        manager.force_activate_goal(x.id, 1)


def test_status_state_machine(manager: GoalLifecycleManager) -> None:
    goal = manager.create_goal({"motivation": 3, "urgency": 3}, 0)

    with pytest.raises(GoalValidationError):
        manager.set_goal_status(goal.id, "archived", 0)
    with pytest.raises(InvalidTransitionError):
        manager.set_goal_status(goal.id, GoalStatus.PAUSED, 0)

    manager.set_goal_status(goal.id, "notCompleted", 0)
    assert goal.status is GoalStatus.NOT_COMPLETED
    with pytest.raises(InvalidTransitionError):
        manager.set_goal_status(goal.id, GoalStatus.ACTIVE, 0)

    manager.set_goal_status(goal.id, GoalStatus.INACTIVE, 0)
    assert goal.status is GoalStatus.INACTIVE


def test_direct_activation_is_marked_as_an_override(manager: GoalLifecycleManager) -> None:
    promoted = manager.create_goal({"motivation": 3, "urgency": 3}, 1)
    assert promoted.status is GoalStatus.ACTIVE
    assert not promoted.force_activated

    chosen = manager.create_goal({"motivation": 3, "urgency": 3}, 1)
    manager.set_goal_status(chosen.id, GoalStatus.ACTIVE, 5)
    assert chosen.status is GoalStatus.ACTIVE
    assert chosen.force_activated

    manager.set_goal_status(chosen.id, GoalStatus.INACTIVE, 0)
    assert not chosen.force_activated


def test_every_mutation_emits_full_goal_set(manager: GoalLifecycleManager, event_bus) -> None:
    events: list[dict[str, Any]] = []
    event_bus.subscribe(GOALS_CHANGED, events.append)

    goal = manager.create_goal({"motivation": 3, "urgency": 3}, 1)
    manager.update_goal(goal.id, {"title": "renamed"}, 1)
    manager.delete_goal(goal.id, 1)

    assert [event["operation"] for event in events] == ["create_goal", "update_goal", "delete_goal"]
    assert events[0]["goals"] == [goal]
    assert events[-1]["goals"] == []


def test_max_active_goals_defaults_to_source(clock, event_bus) -> None:
    cap = {"value": 1}
    manager = GoalLifecycleManager(
        event_bus=event_bus, clock=clock, max_active_goals_source=lambda: cap["value"]
    )
    manager.create_goal({"motivation": 5, "urgency": 5})
    second = manager.create_goal({"motivation": 4, "urgency": 4})
    assert second.status is GoalStatus.INACTIVE

    cap["value"] = 2
    manager.auto_activate_goals_by_priority()
    assert second.status is GoalStatus.ACTIVE


def test_load_replaces_the_set_and_clears_priorities(manager: GoalLifecycleManager) -> None:
    old = manager.create_goal({"motivation": 2, "urgency": 2}, 1)
    manager.cache.get_priority(old.id)
    incoming = [Goal(motivation=4, urgency=4), {"motivation": 1, "urgency": 5}]

    loaded = manager.load_goals(incoming)
    assert [goal.id for goal in manager.list_goals()] == [goal.id for goal in loaded]
    assert not manager.cache.is_cached(old.id)
    assert manager.cache.get_priority(old.id) == 0.0


def test_rejected_load_keeps_the_current_set(manager: GoalLifecycleManager) -> None:
    kept = manager.create_goal({"motivation": 2, "urgency": 2}, 1)
    priority = manager.cache.get_priority(kept.id)
    duplicate = Goal(motivation=3, urgency=3)
    looped = Goal(motivation=3, urgency=3, status=GoalStatus.PAUSED)
    looped.pause = PauseUntilGoal(goal_id=looped.id)
    first = Goal(motivation=1, urgency=1, status=GoalStatus.PAUSED)
    second = Goal(
        motivation=1, urgency=1, status=GoalStatus.PAUSED, pause=PauseUntilGoal(goal_id=first.id)
    )
    first.pause = PauseUntilGoal(goal_id=second.id)

    with pytest.raises(GoalValidationError):
        manager.load_goals([duplicate, duplicate])
    with pytest.raises(GoalValidationError):
        manager.load_goals([{"motivation": 9, "urgency": 1}])
    with pytest.raises(InvariantViolationError):
        manager.load_goals([looped])
    with pytest.raises(InvariantViolationError):
        manager.load_goals([first, second])

    assert manager.list_goals() == [kept]
    assert manager.cache.is_cached(kept.id)
    assert manager.cache.get_priority(kept.id) == priority
