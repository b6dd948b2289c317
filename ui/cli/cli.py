"""CLI entrypoint for goaly."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from goals.types.goal import GoalStatus
from ui.cli import commands

app = typer.Typer(help="Goal tracking with priority-based activation and review cadence")
goals_app = typer.Typer(help="Goal commands")
config_app = typer.Typer(help="Configuration commands")


def _root(ctx: typer.Context) -> Path | None:
    return (ctx.obj or {}).get("root")


@app.callback()
def main_callback(
    ctx: typer.Context,
    root: Path | None = typer.Option(None, "--root", help="Directory holding config/ and data"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Goaly command-line interface."""
    ctx.obj = {"root": root}
    commands.setup_logging(root, verbose)


@goals_app.command("add")
def goals_add_cmd(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Goal title"),
    motivation: int = typer.Option(..., "--motivation", "-m", min=1, max=5),
    urgency: int = typer.Option(..., "--urgency", "-u", min=1, max=5),
    deadline: str | None = typer.Option(None, help="Deadline as YYYY-MM-DD"),
    recurring: bool = typer.Option(False, "--recurring", help="Goal comes back after completion"),
    period: int = typer.Option(7, min=1, help="Recurrence period"),
    unit: str = typer.Option("days", help="Recurrence unit: days, weeks or months"),
) -> None:
    """Add a new goal."""
    commands.goals_add(
        _root(ctx),
        title=title,
        motivation=motivation,
        urgency=urgency,
        deadline=deadline,
        recurring=recurring,
        period=period,
        unit=unit,
    )


@goals_app.command("list")
def goals_list_cmd(
    ctx: typer.Context,
    status: str | None = typer.Option(None, help="Only show goals with this status"),
) -> None:
    """List goals by priority; * marks a manually activated goal."""
    commands.goals_list(_root(ctx), status=status)


@goals_app.command("show")
def goals_show_cmd(ctx: typer.Context, goal_id: str) -> None:
    """Show one goal."""
    commands.goals_show(_root(ctx), goal_id=goal_id)


@goals_app.command("update")
def goals_update_cmd(
    ctx: typer.Context,
    goal_id: str,
    title: str | None = typer.Option(None),
    motivation: int | None = typer.Option(None, "--motivation", "-m"),
    urgency: int | None = typer.Option(None, "--urgency", "-u"),
    deadline: str | None = typer.Option(None, help="New deadline as YYYY-MM-DD"),
    clear_deadline: bool = typer.Option(False, "--clear-deadline"),
) -> None:
    """Update goal fields."""
    patch: dict[str, Any] = {}
    if title is not None:
        patch["title"] = title
    if motivation is not None:
        patch["motivation"] = motivation
    if urgency is not None:
        patch["urgency"] = urgency
    if deadline is not None:
        patch["deadline"] = deadline
    if clear_deadline:
        patch["deadline"] = None
    commands.goals_update(_root(ctx), goal_id=goal_id, patch=patch)


@goals_app.command("delete")
def goals_delete_cmd(ctx: typer.Context, goal_id: str) -> None:
    """Delete a goal."""
    commands.goals_delete(_root(ctx), goal_id=goal_id)


@goals_app.command("complete")
def goals_complete_cmd(
    ctx: typer.Context,
    goal_id: str,
    recur_on: str | None = typer.Option(None, "--recur-on", help="Bring the goal back on this date"),
    recur: bool = typer.Option(False, "--recur", help="Bring the goal back after its period"),
) -> None:
    """Mark a goal as completed."""
    commands.goals_finish(
        _root(ctx), goal_id=goal_id, outcome=GoalStatus.COMPLETED, recur_on=recur_on, recur=recur
    )


@goals_app.command("fail")
def goals_fail_cmd(
    ctx: typer.Context,
    goal_id: str,
    recur_on: str | None = typer.Option(None, "--recur-on", help="Bring the goal back on this date"),
    recur: bool = typer.Option(False, "--recur", help="Bring the goal back after its period"),
) -> None:
    """Mark a goal as not completed."""
    commands.goals_finish(
        _root(ctx), goal_id=goal_id, outcome=GoalStatus.NOT_COMPLETED, recur_on=recur_on, recur=recur
    )


@goals_app.command("reactivate")
def goals_reactivate_cmd(ctx: typer.Context, goal_id: str) -> None:
    """Return a finished goal to the inactive pool."""
    commands.goals_reactivate(_root(ctx), goal_id=goal_id)


@goals_app.command("pause")
def goals_pause_cmd(
    ctx: typer.Context,
    goal_id: str,
    until: str | None = typer.Option(None, "--until", help="Pause until YYYY-MM-DD"),
    until_goal: str | None = typer.Option(None, "--until-goal", help="Pause until this goal is finished"),
) -> None:
    """Pause a goal."""
    commands.goals_pause(_root(ctx), goal_id=goal_id, until=until, until_goal=until_goal)


@goals_app.command("unpause")
def goals_unpause_cmd(ctx: typer.Context, goal_id: str) -> None:
    """Unpause a goal."""
    commands.goals_unpause(_root(ctx), goal_id=goal_id)


@goals_app.command("activate")
def goals_activate_cmd(ctx: typer.Context, goal_id: str) -> None:
    """Activate a goal even when the active cap is reached."""
    commands.goals_activate(_root(ctx), goal_id=goal_id)


@goals_app.command("review")
def goals_review_cmd(
    ctx: typer.Context,
    goal_id: str,
    motivation: int | None = typer.Option(None, "--motivation", "-m"),
    urgency: int | None = typer.Option(None, "--urgency", "-u"),
) -> None:
    """Re-rate a goal."""
    commands.goals_review(_root(ctx), goal_id=goal_id, motivation=motivation, urgency=urgency)


@goals_app.command("due")
def goals_due_cmd(ctx: typer.Context) -> None:
    """List goals due for review."""
    commands.goals_due(_root(ctx))


@goals_app.command("priorities")
def goals_priorities_cmd(ctx: typer.Context) -> None:
    """Show computed priorities."""
    commands.goals_priorities(_root(ctx))


@goals_app.command("export")
def goals_export_cmd(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Destination JSON file"),
) -> None:
    """Export all goals to a JSON file."""
    commands.goals_export(_root(ctx), path=path)


@goals_app.command("import")
def goals_import_cmd(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Export file to load"),
) -> None:
    """Replace all goals with those from an export file."""
    commands.goals_import(_root(ctx), path=path)


@config_app.command("show")
def config_show_cmd(ctx: typer.Context) -> None:
    """Show effective configuration."""
    commands.config_show(_root(ctx))


app.add_typer(goals_app, name="goals")
app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
