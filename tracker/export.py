from decimal import Decimal
from typing import Dict, Iterable, List

import pandas as pd

from tracker.billing import occurrences_in_month
from tracker.domain import Category, Expense, Subscription
from tracker.filters import by_month

COLUMNS = ["Date", "Amount ($)", "Category", "Note", "Type"]
MANUAL = "Manual Expense"
SUBSCRIPTION = "Subscription"


def export_rows(
    expenses: Iterable[Expense],
    subscriptions: Iterable[Subscription],
    categories: Iterable[Category],
    year: int,
    month: int,
) -> List[Dict[str, object]]:
    """One row per manual expense and per subscription charge in the month, by date."""
    names = {c.id: c.name for c in categories}
    rows = []

    for e in filter(by_month(year, month), expenses):
        rows.append({
            "Date": e.date,
            "Amount ($)": e.amount,
            "Category": names.get(e.category_id, e.category_id),
            "Note": e.note or "",
            "Type": MANUAL,
        })

    for s in subscriptions:
        billed_on = occurrences_in_month(s.start_date, s.recurrence, year, month)
        if billed_on is None:
            continue
        rows.append({
            "Date": billed_on,
            "Amount ($)": s.amount,
            "Category": names.get(s.category_id, s.category_id),
            "Note": s.name,
            "Type": SUBSCRIPTION,
        })

    return sorted(rows, key=lambda r: r["Date"])


def export_summary(rows: Iterable[Dict[str, object]]) -> Dict[str, str]:
    rows = list(rows)
    manual = sum((r["Amount ($)"] for r in rows if r["Type"] == MANUAL), Decimal("0"))
    subscription = sum((r["Amount ($)"] for r in rows if r["Type"] == SUBSCRIPTION), Decimal("0"))
    return {
        "manual": str(manual),
        "subscriptions": str(subscription),
        "total": str(manual + subscription),
    }


def rows_to_frame(rows: List[Dict[str, object]]) -> pd.DataFrame:
    df = pd.DataFrame(rows, columns=COLUMNS)
    if not df.empty:
        df["Date"] = df["Date"].map(lambda d: d.isoformat())
        df["Amount ($)"] = df["Amount ($)"].map(str)
    return df


def export_csv(rows: List[Dict[str, object]]) -> str:
    return rows_to_frame(rows).to_csv(index=False)
