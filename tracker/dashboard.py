from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from tracker.billing import occurrences_in_month, previous_month
from tracker.domain import Category, Expense, Subscription
from tracker.filters import by_month
from tracker.lazy import category_totals, iter_expenses, lazy_top_categories

# index 0 is Sunday, matching date.isoweekday() % 7
WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

ZERO = Decimal("0")
CENT = Decimal("0.01")
TENTH = Decimal("0.1")


@dataclass(frozen=True)
class CategorySummary:
    id: str
    name: str
    color: str
    icon: str
    total: Decimal
    percentage: float


@dataclass(frozen=True)
class MonthComparison:
    current: Decimal
    previous: Decimal
    percentage_change: float


@dataclass(frozen=True)
class DailyTotal:
    date: date
    total: Decimal


@dataclass(frozen=True)
class WeekdayAverage:
    weekday: int   # 0=Sunday..6=Saturday
    average: Decimal

    @property
    def day(self) -> str:
        return WEEKDAYS[self.weekday]


@dataclass(frozen=True)
class Dashboard:
    total_expenses: Decimal
    top_categories: Tuple[CategorySummary, ...]
    comparison: MonthComparison
    daily: Tuple[DailyTotal, ...]
    weekday_averages: Tuple[WeekdayAverage, ...]


def round_percentage(value: Decimal) -> float:
    return float(value.quantize(TENTH, rounding=ROUND_HALF_UP))


def billing_subscriptions(
    subscriptions: Iterable[Subscription], year: int, month: int
) -> Tuple[Subscription, ...]:
    return tuple(
        s for s in subscriptions
        if occurrences_in_month(s.start_date, s.recurrence, year, month) is not None
    )


def month_total(expenses: Iterable[Expense], billing: Iterable[Subscription]) -> Decimal:
    manual = sum((e.amount for e in expenses), ZERO)
    return manual + sum((s.amount for s in billing), ZERO)


def percentage_change(current: Decimal, previous: Decimal) -> float:
    if previous == 0:
        return 0.0
    return round_percentage((current - previous) / previous * 100)


def share_of(part: Decimal, whole: Decimal) -> float:
    if whole == 0:
        return 0.0
    return round_percentage(part / whole * 100)


def daily_totals(expenses: Iterable[Expense]) -> Tuple[DailyTotal, ...]:
    by_day: Dict[date, Decimal] = defaultdict(Decimal)
    for e in expenses:
        by_day[e.date] += e.amount
    return tuple(DailyTotal(d, by_day[d]) for d in sorted(by_day))


def weekday_averages(expenses: Iterable[Expense]) -> Tuple[WeekdayAverage, ...]:
    """Average spend per weekday over the days that actually had expenses.

    The divisor is the number of distinct spending days on that weekday,
    not the number of such weekdays in the month.
    """
    sums: Dict[int, Decimal] = defaultdict(Decimal)
    days: Dict[int, set] = defaultdict(set)
    for e in expenses:
        weekday = e.date.isoweekday() % 7
        sums[weekday] += e.amount
        days[weekday].add(e.date)

    return tuple(
        WeekdayAverage(w, (sums[w] / len(days[w])).quantize(CENT, rounding=ROUND_HALF_UP))
        for w in sorted(sums)
    )


def top_categories(
    expenses: Sequence[Expense],
    billing: Sequence[Subscription],
    categories: Iterable[Category],
    total: Decimal,
    k: int = 5,
) -> Tuple[CategorySummary, ...]:
    category_by_id = {c.id: c for c in categories}
    totals = category_totals(expenses, billing)

    summaries = []
    for category_id, amount in lazy_top_categories(totals, k):
        category = category_by_id.get(category_id)
        summaries.append(
            CategorySummary(
                id=category_id,
                name=category.name if category else category_id,
                color=category.color if category else "",
                icon=category.icon if category else "",
                total=amount,
                percentage=share_of(amount, total),
            )
        )
    return tuple(summaries)


def build_dashboard(
    expenses: Iterable[Expense],
    previous_expenses: Iterable[Expense],
    subscriptions: Iterable[Subscription],
    categories: Iterable[Category],
    year: int,
    month: int,
    top_n: int = 5,
) -> Dashboard:
    subscriptions = tuple(subscriptions)
    prev_year, prev_month = previous_month(year, month)

    current = tuple(iter_expenses(expenses, by_month(year, month)))
    previous = tuple(iter_expenses(previous_expenses, by_month(prev_year, prev_month)))
    billing_now = billing_subscriptions(subscriptions, year, month)
    billing_before = billing_subscriptions(subscriptions, prev_year, prev_month)

    current_total = month_total(current, billing_now)
    previous_total = month_total(previous, billing_before)

    return Dashboard(
        total_expenses=current_total,
        top_categories=top_categories(current, billing_now, categories, current_total, top_n),
        comparison=MonthComparison(
            current=current_total,
            previous=previous_total,
            percentage_change=percentage_change(current_total, previous_total),
        ),
        daily=daily_totals(current),
        weekday_averages=weekday_averages(current),
    )


def dashboard_to_dict(dashboard: Dashboard) -> Dict[str, Any]:
    """JSON-ready payload; money goes out as decimal strings."""
    top: List[Dict[str, Any]] = [
        {
            "id": c.id,
            "name": c.name,
            "color": c.color,
            "icon": c.icon,
            "total": str(c.total),
            "percentage": c.percentage,
        }
        for c in dashboard.top_categories
    ]
    return {
        "totalExpenses": str(dashboard.total_expenses),
        "topCategories": top,
        "monthComparison": {
            "currentMonth": str(dashboard.comparison.current),
            "previousMonth": str(dashboard.comparison.previous),
            "percentageChange": dashboard.comparison.percentage_change,
        },
        "charts": {
            "dailyExpenses": [
                {"date": d.date.isoformat(), "total": str(d.total)} for d in dashboard.daily
            ],
            "weekdayAverages": [
                {"day": w.day, "average": str(w.average)} for w in dashboard.weekday_averages
            ],
        },
    }
