"""JSON export and import of the goal set."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from goals.errors import GoalValidationError
from goals.types.goal import Goal

EXPORT_VERSION = 1


def export_payload(goals: Iterable[Goal], settings: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Build the export document: format version, goals, settings and export time."""
    return {
        "version": EXPORT_VERSION,
        "exported_at": datetime.now(UTC).isoformat(),
        "goals": [goal.model_dump(mode="json") for goal in goals],
        "settings": dict(settings or {}),
    }


def parse_import_payload(data: Any) -> list[dict[str, Any]]:
    """Return the goal documents of an export.

    A bare list of goals is accepted as well as the versioned document.
    Files from a newer format version are rejected.
    """
    if isinstance(data, list):
        goals = data
    elif isinstance(data, Mapping):
        version = data.get("version")
        if version is not None:
            if not isinstance(version, int) or isinstance(version, bool) or version < 1:
                raise GoalValidationError(f"Invalid export version: {version!r}")
            if version > EXPORT_VERSION:
                raise GoalValidationError(
                    f"Export version {version} is newer than supported version {EXPORT_VERSION}."
                )
        goals = data.get("goals")
        if not isinstance(goals, list):
            raise GoalValidationError("Import file has no 'goals' list.")
    else:
        raise GoalValidationError("Import file must contain a JSON object or list.")

    for index, item in enumerate(goals):
        if not isinstance(item, Mapping):
            raise GoalValidationError(f"Goal entry {index} is not an object.")
    return [dict(item) for item in goals]


def write_export(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=True)
        fh.write("\n")


def read_import(path: Path) -> list[dict[str, Any]]:
    """Read and parse an export file."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as exc:
        raise GoalValidationError(f"Import file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise GoalValidationError(f"Import file is not valid JSON: {exc}") from exc
    return parse_import_payload(data)
