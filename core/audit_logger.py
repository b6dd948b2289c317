"""JSONL audit trail of goal lifecycle operations."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from goals.types.goal import Goal, GoalStatus


class AuditLogger:
    """Appends one JSON line per lifecycle operation."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("goaly.audit")

    @staticmethod
    def _status_counts(goals: list[Goal]) -> dict[str, int]:
        counts = {status.value: 0 for status in GoalStatus}
        for goal in goals:
            counts[goal.status.value] += 1
        return counts

    def log(self, operation: str, goal_id: str | None, goals: list[Goal]) -> dict[str, Any]:
        """Append one audit event and return it."""
        goal = next((item for item in goals if item.id == goal_id), None)
        event = {
            "timestamp": datetime.now(UTC).isoformat(),
            "operation": operation,
            "goal_id": goal_id,
            "goal_status": goal.status.value if goal is not None else None,
            "goal_count": len(goals),
            "status_counts": self._status_counts(goals),
        }
        with self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(event, ensure_ascii=True) + "\n")
        self.logger.info(json.dumps(event, ensure_ascii=True))
        return event

    def handle_goals_changed(self, payload: dict[str, Any]) -> None:
        """Event bus subscriber for ``goals.changed``."""
        self.log(
            operation=str(payload.get("operation", "unknown")),
            goal_id=payload.get("goal_id"),
            goals=list(payload.get("goals", [])),
        )
