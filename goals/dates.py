"""Calendar helpers shared by the goal engine."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return UTC datetime for default timestamps."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def days_until(target: date, today: date) -> int:
    """Signed calendar days from ``today`` to ``target`` (negative when overdue)."""
    return (target - today).days


def parse_date(value: date | datetime | str | None) -> date | None:
    """Parse ISO dates; datetimes are truncated to their calendar day."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if "T" in text:
        return datetime.fromisoformat(text).date()
    return date.fromisoformat(text)
