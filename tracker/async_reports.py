import asyncio
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from tracker.billing import occurrences_in_year
from tracker.dashboard import billing_subscriptions, month_total
from tracker.domain import Expense, Subscription
from tracker.filters import by_month
from tracker.functional import parse_month


async def expenses_by_month(
    expenses: Sequence[Expense], subscriptions: Sequence[Subscription], months: List[str]
) -> Dict[str, Decimal]:
    """Compute total spend (manual + subscriptions) per month in parallel.

    months: list of YYYY-MM strings (e.g., '2025-01'); callers validate them.
    """
    async def month_spend(month: str) -> tuple[str, Decimal]:
        year, month_num = parse_month(month).get_or_else((None, None))
        if year is None:
            return month, Decimal("0")
        manual = filter(by_month(year, month_num), expenses)
        total = month_total(manual, billing_subscriptions(subscriptions, year, month_num))
        await asyncio.sleep(0)  # cooperate
        return month, total

    results = await asyncio.gather(*(month_spend(m) for m in months))
    return {k: v for k, v in results}


async def subscription_costs_by_year(
    subscriptions: Iterable[Subscription], years: List[int]
) -> Dict[int, Decimal]:
    """Total billed by subscriptions in each calendar year."""
    subscriptions = tuple(subscriptions)

    async def year_cost(year: int) -> tuple[int, Decimal]:
        total = Decimal("0")
        for s in subscriptions:
            total += s.amount * len(occurrences_in_year(s.start_date, s.recurrence, year))
        await asyncio.sleep(0)
        return year, total

    results = await asyncio.gather(*(year_cost(y) for y in years))
    return {k: v for k, v in results}
