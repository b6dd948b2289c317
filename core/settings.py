"""User settings: active-goal cap and review interval cadence."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("goaly.settings")

DEFAULT_MAX_ACTIVE_GOALS = 3
DEFAULT_REVIEW_INTERVALS: tuple[float, ...] = (7.0, 14.0, 30.0)

_INTERVAL_TOKEN = re.compile(r"^(\d+(?:\.\d+)?)([dhms]?)$", re.IGNORECASE)
_UNIT_DAYS = {"d": 1.0, "h": 1 / 24, "m": 1 / (24 * 60), "s": 1 / (24 * 60 * 60)}
_DEDUP_PRECISION = 6


def parse_interval_token(raw: Any) -> float | None:
    """Parse ``7``, ``"7d"``, ``"24h"``, ``"30m"`` or ``"60s"`` into days."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if raw > 0 else None
    if not isinstance(raw, str):
        return None
    match = _INTERVAL_TOKEN.match(raw.strip())
    if not match:
        return None
    days = float(match.group(1)) * _UNIT_DAYS[(match.group(2) or "d").lower()]
    return days if days > 0 else None


def normalize_review_intervals(value: Any) -> list[float]:
    """Return ascending, de-duplicated interval days; falls back to defaults."""
    if isinstance(value, str):
        tokens: list[Any] = [token for token in re.split(r"[,;\s]+", value) if token]
    elif isinstance(value, (list, tuple)):
        tokens = list(value)
    elif value is None:
        tokens = []
    else:
        tokens = [value]

    seen: dict[str, float] = {}
    for token in tokens:
        days = parse_interval_token(token)
        if days is None:
            logger.warning("Ignoring invalid review interval: %r", token)
            continue
        seen.setdefault(f"{days:.{_DEDUP_PRECISION}f}", days)
    if not seen:
        return list(DEFAULT_REVIEW_INTERVALS)
    return sorted(seen.values())


class Settings(BaseModel):
    """Effective goal settings."""

    max_active_goals: int = DEFAULT_MAX_ACTIVE_GOALS
    review_intervals: list[float] = Field(default_factory=lambda: list(DEFAULT_REVIEW_INTERVALS))

    @field_validator("review_intervals", mode="before")
    @classmethod
    def _normalize_intervals(cls, value: Any) -> list[float]:
        return normalize_review_intervals(value)


class SettingsService:
    """Holds the current settings and notifies listeners when they change."""

    def __init__(self, settings: Settings | Mapping[str, Any] | None = None) -> None:
        if isinstance(settings, Settings):
            self.settings = settings
        else:
            self.settings = Settings.model_validate(dict(settings or {}))
        self._listeners: list[Callable[[Settings], None]] = []

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SettingsService:
        """Build from the ``goals`` section of the effective config."""
        section = config.get("goals", {}) or {}
        if not isinstance(section, Mapping):
            raise ValueError("Config section 'goals' must be a mapping.")
        known = {key: section[key] for key in ("max_active_goals", "review_intervals") if key in section}
        return cls(known)

    def get_settings(self) -> Settings:
        return self.settings

    @property
    def max_active_goals(self) -> int:
        return self.settings.max_active_goals

    def get_review_intervals(self) -> list[float]:
        return list(self.settings.review_intervals)

    def update_settings(self, **values: Any) -> Settings:
        """Merge new values, re-normalise and notify listeners."""
        merged = {**self.settings.model_dump(), **values}
        self.settings = Settings.model_validate(merged)
        for listener in list(self._listeners):
            listener(self.settings)
        return self.settings

    def on_change(self, listener: Callable[[Settings], None]) -> Callable[[], None]:
        """Register a change listener and return its unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
