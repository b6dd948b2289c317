"""Top-level application orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.audit_logger import AuditLogger
from core.event_bus import GOALS_CHANGED, EventBus
from core.policy_runtime import ensure_runtime_dirs, load_effective_config
from core.settings import SettingsService
from goals.lifecycle import GoalLifecycleManager
from goals.repository import GoalRepository
from goals.review import ReviewScheduler
from goals.store import GoalStore

logger = logging.getLogger("goaly.orchestrator")


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    settings: SettingsService
    manager: GoalLifecycleManager
    reviews: ReviewScheduler
    repository: GoalRepository
    audit_logger: AuditLogger
    event_bus: EventBus


class Orchestrator:
    """Creates and wires runtime components for CLI use."""

    def __init__(self, root: Path | None = None, config_path: Path | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self.config_path = config_path

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root, self.config_path)
        paths = ensure_runtime_dirs(self.root, config)
        settings = SettingsService.from_config(config)

        event_bus = EventBus()
        repository = GoalRepository(paths["db_path"])
        audit_logger = AuditLogger(paths["audit_log_path"])

        manager = GoalLifecycleManager(
            store=GoalStore(),
            event_bus=event_bus,
            max_active_goals_source=lambda: settings.max_active_goals,
        )
        manager.load_goals(repository.load_all())
        reviews = ReviewScheduler(manager, intervals_source=settings.get_review_intervals)

        # Subscribed after loading so the initial load is not written back.
        event_bus.subscribe(GOALS_CHANGED, repository.handle_goals_changed)
        event_bus.subscribe(GOALS_CHANGED, audit_logger.handle_goals_changed)
        settings.on_change(lambda _settings: reviews.sync_interval_configuration())

        # Expired pauses and freed capacity are settled on every start.
        reviews.sync_interval_configuration()
        promoted = manager.auto_activate_goals_by_priority()
        if promoted:
            logger.info("Activated %d goals on startup", len(promoted))

        return RuntimeBundle(
            config=config,
            settings=settings,
            manager=manager,
            reviews=reviews,
            repository=repository,
            audit_logger=audit_logger,
            event_bus=event_bus,
        )
