from collections import defaultdict
from decimal import Decimal
from typing import Callable, Dict, Iterable, Iterator, Tuple

from tracker.domain import Expense, Subscription


def iter_expenses(
    expenses: Iterable[Expense], pred: Callable[[Expense], bool]
) -> Iterator[Expense]:
    for e in expenses:
        if pred(e):
            yield e


def category_totals(
    expenses: Iterable[Expense], subscriptions: Iterable[Subscription] = ()
) -> Dict[str, Decimal]:
    totals_by_category: Dict[str, Decimal] = defaultdict(Decimal)

    for e in expenses:
        totals_by_category[e.category_id] += e.amount
    for s in subscriptions:
        totals_by_category[s.category_id] += s.amount

    return dict(totals_by_category)


def lazy_top_categories(
    totals_by_category: Dict[str, Decimal], k: int
) -> Iterator[Tuple[str, Decimal]]:
    ordered = sorted(totals_by_category.items(), key=lambda item: item[1], reverse=True)

    for category_id, total in ordered[: max(0, k)]:
        yield category_id, total
