"""Typer command handlers."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any

import typer

from core.orchestrator import Orchestrator, RuntimeBundle
from core.policy_runtime import configure_logging, load_effective_config
from goals.errors import GoalError
from goals.recurrence import next_recurrence_date
from goals.transfer import export_payload, read_import, write_export
from goals.types.goal import Goal, GoalStatus


def _runtime(root: Path | None = None) -> RuntimeBundle:
    return Orchestrator(root=root).build()


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Turn goal engine failures into a message and exit code 1."""
    try:
        yield
    except GoalError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _goal_line(bundle: RuntimeBundle, goal: Goal) -> str:
    priority = bundle.manager.cache.get_priority(goal.id)
    deadline = goal.deadline.isoformat() if goal.deadline else "-"
    status = f"{goal.status.value}*" if goal.force_activated else goal.status.value
    return f"{goal.id}  {status:<12} p={priority:>5.1f}  due={deadline:<10}  {goal.title}"


def _echo_goal(goal: Goal) -> None:
    typer.echo(json.dumps(goal.model_dump(mode="json"), indent=2))


def setup_logging(root: Path | None, verbose: bool) -> None:
    """Configure logging from the effective config before any command runs."""
    orchestrator = Orchestrator(root=root)
    configure_logging(load_effective_config(orchestrator.root), verbose=verbose)


def goals_add(
    root: Path | None,
    title: str,
    motivation: int,
    urgency: int,
    deadline: str | None,
    recurring: bool,
    period: int,
    unit: str,
) -> None:
    """Create a goal and report whether it became active."""
    bundle = _runtime(root)
    data: dict[str, Any] = {
        "title": title,
        "motivation": motivation,
        "urgency": urgency,
        "deadline": deadline,
        "is_recurring": recurring,
        "recur_period": period,
        "recur_period_unit": unit,
    }
    with _reporting_errors():
        goal = bundle.manager.create_goal(data)
    typer.echo(f"Added goal {goal.id} ({goal.status.value}): {goal.title}")


def goals_list(root: Path | None, status: str | None) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        goals = bundle.manager.sorted_goals()
        if status:
            wanted = {goal.id for goal in bundle.manager.list_goals(status)}
            goals = [goal for goal in goals if goal.id in wanted]
    if not goals:
        typer.echo("No goals.")
        return
    for goal in goals:
        typer.echo(_goal_line(bundle, goal))


def goals_show(root: Path | None, goal_id: str) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        goal = bundle.manager.get_goal(goal_id)
    _echo_goal(goal)
    typer.echo(f"Next review: {bundle.reviews.next_review_at(goal).isoformat()}")


def goals_update(root: Path | None, goal_id: str, patch: dict[str, Any]) -> None:
    bundle = _runtime(root)
    if not patch:
        typer.echo("Nothing to update.")
        return
    with _reporting_errors():
        goal = bundle.manager.update_goal(goal_id, patch)
    typer.echo(_goal_line(bundle, goal))


def goals_delete(root: Path | None, goal_id: str) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        goal = bundle.manager.delete_goal(goal_id)
    typer.echo(f"Deleted goal {goal.id}: {goal.title}")


def goals_finish(
    root: Path | None,
    goal_id: str,
    outcome: GoalStatus,
    recur_on: str | None,
    recur: bool,
) -> None:
    """Complete or fail a goal, optionally re-arming it as a recurring goal."""
    bundle = _runtime(root)
    with _reporting_errors():
        goal = bundle.manager.get_goal(goal_id)
        recurrence_date: date | str | None = recur_on
        if recurrence_date is None and (recur or goal.is_recurring):
            recurrence_date = next_recurrence_date(goal, bundle.manager.clock().date())
        active_before = {item.id for item in bundle.manager.get_active_goals()}
        goal = bundle.manager.set_goal_status(goal_id, outcome, recurrence_date=recurrence_date)
    promoted = [item for item in bundle.manager.get_active_goals() if item.id not in active_before]
    if goal.status is GoalStatus.PAUSED:
        typer.echo(f"Goal {goal.id} recorded as {outcome.value}; returns on {goal.pause_until}.")
    else:
        typer.echo(f"Goal {goal.id} is now {goal.status.value}.")
    for item in promoted:
        typer.echo(f"Activated: {item.id} {item.title}")


def goals_reactivate(root: Path | None, goal_id: str) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        goal = bundle.manager.set_goal_status(goal_id, GoalStatus.INACTIVE)
    typer.echo(f"Goal {goal.id} is now {goal.status.value}.")


def goals_pause(root: Path | None, goal_id: str, until: str | None, until_goal: str | None) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        goal = bundle.manager.pause_goal(
            goal_id, pause_until=until, pause_until_goal_id=until_goal
        )
    typer.echo(f"Paused goal {goal.id} ({goal.pause.kind if goal.pause else 'no condition'}).")


def goals_unpause(root: Path | None, goal_id: str) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        goal = bundle.manager.unpause_goal(goal_id)
    typer.echo(f"Goal {goal.id} is now {goal.status.value}.")


def goals_activate(root: Path | None, goal_id: str) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        goal = bundle.manager.force_activate_goal(goal_id)
    active = len(bundle.manager.get_active_goals())
    typer.echo(f"Goal {goal.id} activated ({active}/{bundle.settings.max_active_goals} active).")


def goals_review(root: Path | None, goal_id: str, motivation: int | None, urgency: int | None) -> None:
    bundle = _runtime(root)
    with _reporting_errors():
        result = bundle.reviews.record_review(
            goal_id, {"motivation": motivation, "urgency": urgency}
        )
    verdict = "unchanged" if result.ratings_match else "changed"
    typer.echo(
        f"Ratings {verdict}; next review {bundle.reviews.next_review_at(result.goal).date().isoformat()}."
    )


def goals_due(root: Path | None) -> None:
    bundle = _runtime(root)
    prompts = bundle.reviews.due_reviews()
    if not prompts:
        typer.echo("No reviews due.")
        return
    for prompt in prompts:
        marker = "overdue" if prompt.is_overdue else "due"
        typer.echo(f"{prompt.goal.id}  {marker} since {prompt.due_at.date().isoformat()}  {prompt.goal.title}")


def goals_priorities(root: Path | None) -> None:
    bundle = _runtime(root)
    priorities = bundle.manager.cache.get_all_priorities()
    typer.echo(json.dumps(priorities, indent=2))


def goals_export(root: Path | None, path: Path) -> None:
    bundle = _runtime(root)
    goals = bundle.manager.list_goals()
    write_export(path, export_payload(goals, bundle.settings.get_settings().model_dump()))
    typer.echo(f"Exported {len(goals)} goals to {path}")


def goals_import(root: Path | None, path: Path) -> None:
    """Replace the stored goals with the contents of an export file."""
    bundle = _runtime(root)
    with _reporting_errors():
        goals = bundle.manager.load_goals(read_import(path))
        promoted = bundle.manager.auto_activate_goals_by_priority()
    typer.echo(f"Imported {len(goals)} goals ({len(promoted)} activated).")


def config_show(root: Path | None) -> None:
    """Show effective runtime config."""
    bundle = _runtime(root)
    payload = {"config": bundle.config, "settings": bundle.settings.get_settings().model_dump()}
    typer.echo(json.dumps(payload, indent=2, default=str))
