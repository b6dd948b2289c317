"""SQLite persistence for the goal set."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker

from goals.errors import GoalValidationError
from goals.schemas import Base, GoalRecord
from goals.types.goal import Goal

logger = logging.getLogger("goaly.repository")


class GoalRepository:
    """Loads the initial goal set and stores the full set after each mutation."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(f"sqlite+pysqlite:///{self.db_path}", future=True)
        self._session_factory = sessionmaker(bind=self.engine, future=True)
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Commit on success, roll back on error."""
        sess = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    def load_all(self) -> list[Goal]:
        """Return stored goals in their original insertion order."""
        with self.session() as sess:
            rows = sess.scalars(select(GoalRecord).order_by(GoalRecord.position)).all()
            payloads = [(row.id, dict(row.payload_json or {})) for row in rows]
        goals = []
        for goal_id, payload in payloads:
            try:
                goals.append(Goal.model_validate(payload))
            except PydanticValidationError as exc:
                raise GoalValidationError(f"Stored goal {goal_id} is invalid: {exc}") from exc
        logger.debug("Loaded %d goals from %s", len(goals), self.db_path)
        return goals

    def save_all(self, goals: Iterable[Goal]) -> int:
        """Replace the stored set with ``goals`` in one transaction."""
        goals = list(goals)
        keep_ids = {goal.id for goal in goals}
        with self.session() as sess:
            stored_ids = set(sess.scalars(select(GoalRecord.id)).all())
            stale_ids = stored_ids - keep_ids
            if stale_ids:
                sess.execute(delete(GoalRecord).where(GoalRecord.id.in_(stale_ids)))
            for position, goal in enumerate(goals):
                sess.merge(
                    GoalRecord(
                        id=goal.id,
                        position=position,
                        status=goal.status.value,
                        created_at=goal.created_at,
                        last_updated=goal.last_updated,
                        payload_json=goal.model_dump(mode="json"),
                    )
                )
        logger.debug("Saved %d goals (%d removed)", len(goals), len(stale_ids))
        return len(goals)

    def handle_goals_changed(self, payload: dict[str, Any]) -> None:
        """Event bus subscriber for ``goals.changed``."""
        self.save_all(payload.get("goals", []))
