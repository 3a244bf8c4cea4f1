from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta


def start_of_day(value: date | datetime) -> date:
    # Truncate timestamps to their calendar date; plain dates pass through.
    if isinstance(value, datetime):
        return value.date()
    return value


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def add_weeks(value: date, weeks: int) -> date:
    return value + timedelta(weeks=weeks)


def add_months(value: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of the target month.

    ``add_months(date(2024, 1, 31), 1)`` is ``date(2024, 2, 29)``, never a
    date in March.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def add_years(value: date, years: int) -> date:
    # Feb 29 lands on Feb 28 in non-leap target years.
    return add_months(value, years * 12)


def days_before(value: date, days: int) -> date:
    return value - timedelta(days=days)


def days_between(start: date, end: date) -> int:
    return (end - start).days
