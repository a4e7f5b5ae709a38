"""Date helpers shared by the calculators.

- months_between: whole calendar months elapsed (day-of-month aware)
- add_months: month arithmetic, day clamped to the end of shorter months
- month_key: "YYYY-MM" key used for monthly idempotency
- business_days_between: weekdays in (start, end], minus holidays
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


def months_between(start: date, end: date) -> int:
    """Whole months from start to end, floored at zero.

    A month only counts once the end day-of-month reaches the start day:
    2024-01-31 -> 2024-02-29 is 0 months, 2024-01-15 -> 2024-02-15 is 1.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def add_months(start: date, months: int) -> date:
    """start + N months; 2024-01-31 + 1 -> 2024-02-29."""
    return start + relativedelta(months=months)


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def business_days_between(
    start: date,
    end: date,
    holidays: Iterable[date] = (),
) -> int:
    """Count business days in the half-open interval (start, end].

    Returns 0 when end <= start.
    """
    if end <= start:
        return 0

    total_days = (end - start).days
    full_weeks, extra = divmod(total_days, 7)
    count = full_weeks * 5

    # Remaining days after the full weeks
    day = start + timedelta(days=full_weeks * 7)
    for _ in range(extra):
        day += timedelta(days=1)
        if day.weekday() < 5:
            count += 1

    count -= sum(1 for h in set(holidays) if start < h <= end and h.weekday() < 5)
    return count


def calendar_days_between(start: date, end: date) -> int:
    """Signed number of calendar days from start to end."""
    return (end - start).days
