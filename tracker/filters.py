from datetime import date

from tracker.billing import month_bounds
from tracker.domain import Expense


def by_date_range(start: date, end: date):
    def _filter(e: Expense) -> bool:
        return start <= e.date <= end

    return _filter


def by_month(year: int, month: int):
    return by_date_range(*month_bounds(year, month))
