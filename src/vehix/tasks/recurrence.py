# src/vehix/tasks/recurrence.py

"""
Calendar arithmetic for recurring tasks.

Day/week frequencies add a fixed timedelta. Month-based frequencies move the
calendar month and clamp the day to the target month's length (Jan 31 + 1 month
-> Feb 29/28), keeping the time of day and tzinfo.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from .task_models import TaskFrequency

_DAY_STEPS: dict[TaskFrequency, timedelta] = {
    TaskFrequency.DAILY: timedelta(days=1),
    TaskFrequency.WEEKLY: timedelta(weeks=1),
    TaskFrequency.BI_WEEKLY: timedelta(weeks=2),
}

_MONTH_STEPS: dict[TaskFrequency, int] = {
    TaskFrequency.MONTHLY: 1,
    TaskFrequency.QUARTERLY: 3,
}


def add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def next_due_date(due_date: datetime, frequency: TaskFrequency) -> datetime | None:
    """Advance due_date by one interval; None for one-time tasks."""
    step = _DAY_STEPS.get(frequency)
    if step is not None:
        return due_date + step

    months = _MONTH_STEPS.get(frequency)
    if months is not None:
        return add_months(due_date, months)

    return None
