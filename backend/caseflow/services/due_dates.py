"""Step due-date arithmetic and overdue checks.

Business days are Monday to Friday; there is no holiday calendar.
A time limit of zero means "no enforced limit": the due date equals the start
date and the step is never displayed as overdue.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_date(value: date | datetime) -> date:
    # datetime is a subclass of date, so check it first.
    if isinstance(value, datetime):
        return value.date()
    return value


def add_business_days(start: date, days: int) -> date:
    # A weekend start behaves like the preceding Friday: Saturday + 1 is Monday.
    current = start
    remaining = days
    while remaining > 0:
        current += timedelta(days=1)
        if current.weekday() < 5:
            remaining -= 1
    return current


def due_date(start: date | datetime, time_limit_days: int, is_calendar_days: bool) -> date:
    if time_limit_days < 0:
        raise ValueError(f"time_limit_days must be non-negative, got {time_limit_days}")

    start_date = _as_date(start)
    if time_limit_days == 0:
        return start_date
    if is_calendar_days:
        return start_date + timedelta(days=time_limit_days)
    return add_business_days(start_date, time_limit_days)


def is_overdue(due: date | datetime, today: date | datetime) -> bool:
    return _as_date(due) < _as_date(today)


def display_overdue(due: date | datetime | None, today: date | datetime, time_limit_days: int | None) -> bool:
    """Overdue flag shown in listings; suppressed for steps without a limit."""
    if due is None or not time_limit_days:
        return False
    return is_overdue(due, today)
