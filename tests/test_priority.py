"""Priority calculation and priority cache tests."""

from __future__ import annotations

from datetime import date, timedelta

from goals.priority import compute_priority
from goals.priority_cache import PriorityCache
from goals.store import GoalStore
from goals.types.goal import Goal

TODAY = date(2026, 3, 2)


def test_priority_is_monotonic_in_each_rating() -> None:
    for fixed in range(1, 6):
        by_motivation = [
            compute_priority(Goal(motivation=value, urgency=fixed), TODAY) for value in range(1, 6)
        ]
        by_urgency = [
            compute_priority(Goal(motivation=fixed, urgency=value), TODAY) for value in range(1, 6)
        ]
        assert by_motivation == sorted(by_motivation)
        assert by_urgency == sorted(by_urgency)
        assert len(set(by_motivation)) == 5
        assert len(set(by_urgency)) == 5


def test_approaching_and_overdue_deadlines_raise_priority() -> None:
    plain = Goal(motivation=3, urgency=3)
    distant = Goal(motivation=3, urgency=3, deadline=TODAY + timedelta(days=90))
    soon = Goal(motivation=3, urgency=3, deadline=TODAY + timedelta(days=10))
    overdue = Goal(motivation=3, urgency=3, deadline=TODAY - timedelta(days=5))

    assert compute_priority(plain, TODAY) == 33
    assert compute_priority(distant, TODAY) == 33
    assert compute_priority(soon, TODAY) == 53
    assert compute_priority(overdue, TODAY) == 68
    assert compute_priority(overdue, TODAY) > compute_priority(soon, TODAY) > compute_priority(plain, TODAY)


def test_goals_with_and_without_deadline_sort_together() -> None:
    goals = [
        Goal(motivation=1, urgency=1),
        Goal(motivation=5, urgency=5),
        Goal(motivation=1, urgency=1, deadline=TODAY + timedelta(days=1)),
    ]
    ranked = sorted(goals, key=lambda goal: compute_priority(goal, TODAY), reverse=True)
    assert ranked[0].motivation == 5
    assert ranked[1].deadline is not None


def test_cache_serves_memoized_value_until_invalidated(clock) -> None:
    goal = Goal(motivation=2, urgency=2)
    calls: list[str] = []

    def counting(item: Goal, today: date) -> float:
        calls.append(item.id)
        return compute_priority(item, today)

    cache = PriorityCache(GoalStore([goal]), calculator=counting, clock=clock)
    assert cache.get_priority(goal.id) == 22
    assert cache.get_priority(goal.id) == 22
    assert len(calls) == 1

    goal.urgency = 4
    assert cache.get_priority(goal.id) == 22
    cache.invalidate(goal.id)
    assert cache.get_priority(goal.id) == 42
    assert len(calls) == 2


def test_cache_returns_zero_for_unknown_goal(clock) -> None:
    cache = PriorityCache(GoalStore(), clock=clock)
    assert cache.get_priority("missing") == 0.0


def test_all_priorities_match_single_lookups(clock) -> None:
    goals = [Goal(motivation=m, urgency=6 - m) for m in range(1, 6)]
    store = GoalStore(goals)
    cache = PriorityCache(store, clock=clock)

    snapshot = cache.get_all_priorities()
    assert set(snapshot) == {goal.id for goal in goals}
    for goal in goals:
        assert snapshot[goal.id] == cache.get_priority(goal.id)

    store.remove(goals[0].id)
    assert goals[0].id not in cache.get_all_priorities()


def test_cache_recomputes_on_a_new_day(clock) -> None:
    goal = Goal(motivation=1, urgency=1, deadline=clock().date() + timedelta(days=5))
    cache = PriorityCache(GoalStore([goal]), clock=clock)
    first = cache.get_priority(goal.id)

    clock.advance(days=1)
    assert cache.get_priority(goal.id) == first + 1


def test_clear_drops_every_entry(clock) -> None:
    goal = Goal(motivation=1, urgency=1)
    cache = PriorityCache(GoalStore([goal]), clock=clock)
    cache.get_priority(goal.id)
    assert cache.is_cached(goal.id)

    cache.clear()
    assert not cache.is_cached(goal.id)
    assert cache.get_priority(goal.id) == 11
