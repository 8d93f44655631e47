import calendar
from datetime import date, datetime, time
from functools import lru_cache
from typing import Optional, Tuple, Union

from tracker.domain import Recurrence

Instant = Union[date, datetime]


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def next_month(year: int, month: int) -> Tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def _is_before(candidate: date, reference: Instant) -> bool:
    # datetime is a subclass of date, so it has to be checked first
    if isinstance(reference, datetime):
        return datetime.combine(candidate, time.min, tzinfo=reference.tzinfo) < reference
    return candidate < reference


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    if day > days_in_month(year, month):
        return None
    return date(year, month, day)


def next_occurrence_from(start_date: date, recurrence: Recurrence, reference: Instant) -> date:
    """Next billing day of a subscription at or after ``reference``.

    Months (or, for annual billing, years) that lack the start day are
    skipped rather than clamped to month-end. The result is never earlier
    than ``start_date``.
    """
    if _is_before(start_date, reference):
        year, month = reference.year, reference.month
    else:
        year, month = start_date.year, start_date.month

    if recurrence == Recurrence.ANNUALLY:
        year = max(year, start_date.year)
        while True:
            candidate = _safe_date(year, start_date.month, start_date.day)
            if candidate is not None and candidate >= start_date and not _is_before(candidate, reference):
                return candidate
            year += 1

    while True:
        candidate = _safe_date(year, month, start_date.day)
        if candidate is not None and candidate >= start_date and not _is_before(candidate, reference):
            return candidate
        year, month = next_month(year, month)


def occurrences_in_month(start_date: date, recurrence: Recurrence, year: int, month: int) -> Optional[date]:
    """The billing day of a subscription inside one month, or None.

    None covers "not started yet" and "start day does not exist in this
    month"; neither is an error.
    """
    _, last_day = month_bounds(year, month)
    if start_date > last_day:
        return None
    if start_date.day > last_day.day:
        return None

    if recurrence == Recurrence.ANNUALLY:
        if month != start_date.month or year < start_date.year:
            return None
    return date(year, month, start_date.day)


@lru_cache(maxsize=1024)
def occurrences_in_year(start_date: date, recurrence: Recurrence, year: int) -> Tuple[date, ...]:
    months = (start_date.month,) if recurrence == Recurrence.ANNUALLY else range(1, 13)
    found = (occurrences_in_month(start_date, recurrence, year, m) for m in months)
    return tuple(d for d in found if d is not None)
