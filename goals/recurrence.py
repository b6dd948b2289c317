"""Recurrence date suggestions for recurring goals."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from goals.types.goal import Goal, RecurPeriodUnit


def add_months(start: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of shorter months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def next_recurrence_date(goal: Goal, today: date) -> date:
    """Propose when a completed recurring goal should come back."""
    period = goal.recur_period
    if goal.recur_period_unit is RecurPeriodUnit.WEEKS:
        return today + timedelta(weeks=period)
    if goal.recur_period_unit is RecurPeriodUnit.MONTHS:
        return add_months(today, period)
    return today + timedelta(days=period)
