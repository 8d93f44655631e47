from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from tracker.domain import Expense, ExpensePatch, Recurrence, Subscription, SubscriptionPatch
from tracker.transforms import (
    apply_patch,
    load_seed,
    patch_touches,
    with_next_payment,
)

SEED = Path(__file__).resolve().parent.parent / "data" / "seed.json"


def make_expense(id="e1", amount="10.00", note="Lunch"):
    return Expense(id, "u1", "c1", Decimal(amount), date(2024, 3, 1), note)


def test_load_seed():
    users, categories, expenses, subscriptions = load_seed(str(SEED))

    assert len(users) >= 2
    assert len(categories) >= 5
    assert len(expenses) >= 5
    assert len(subscriptions) >= 3
    assert all(isinstance(e.amount, Decimal) for e in expenses)
    assert all(isinstance(e.date, date) for e in expenses)
    assert {s.recurrence for s in subscriptions} == {Recurrence.MONTHLY, Recurrence.ANNUALLY}


def test_apply_patch_sets_only_given_fields():
    expense = make_expense()
    patched = apply_patch(expense, ExpensePatch(amount=Decimal("12.50")))

    assert patched.amount == Decimal("12.50")
    assert patched.note == "Lunch"
    assert patched.date == expense.date
    assert expense.amount == Decimal("10.00")


def test_patch_touches():
    assert patch_touches(SubscriptionPatch(start_date=date(2024, 1, 1)), "recurrence", "start_date")
    assert not patch_touches(SubscriptionPatch(name="Netflix HD"), "recurrence", "start_date")


def test_with_next_payment():
    subs = (
        Subscription("s1", "u1", "c1", "Netflix", Decimal("15.99"), Recurrence.MONTHLY, date(2024, 1, 15)),
    )
    (projected,) = with_next_payment(subs, datetime(2024, 3, 20, 8, 0))
    assert projected.next_payment == date(2024, 4, 15)
    assert subs[0].next_payment is None
