import asyncio
from datetime import date
from decimal import Decimal

import pytest

from tracker.async_reports import expenses_by_month, subscription_costs_by_year
from tracker.domain import Expense, Recurrence, Subscription


def make_exp(id, amount, day):
    return Expense(id=id, user_id="u1", category_id="c1", amount=Decimal(amount), date=day)


def make_sub(id, amount, start, recurrence=Recurrence.MONTHLY):
    return Subscription(
        id=id, user_id="u1", category_id="c1", name=id,
        amount=Decimal(amount), recurrence=recurrence, start_date=start,
    )


@pytest.mark.asyncio
async def test_expenses_by_month_simple():
    expenses = [
        make_exp("e1", "100.00", date(2025, 1, 2)),
        make_exp("e2", "200.00", date(2025, 1, 15)),
        make_exp("e3", "50.00", date(2025, 2, 5)),
    ]
    res = await expenses_by_month(expenses, [], ["2025-01", "2025-02"])
    assert res["2025-01"] == Decimal("300.00")
    assert res["2025-02"] == Decimal("50.00")


@pytest.mark.asyncio
async def test_expenses_by_month_includes_subscriptions():
    expenses = [make_exp("e1", "10.00", date(2025, 3, 10))]
    subs = [make_sub("late", "5.00", date(2025, 1, 31))]
    res = await expenses_by_month(expenses, subs, ["2025-02", "2025-03"])
    # no 31st in February
    assert res["2025-02"] == Decimal("0")
    assert res["2025-03"] == Decimal("15.00")


@pytest.mark.asyncio
async def test_expenses_by_month_empty_month():
    res = await expenses_by_month([make_exp("e1", "500.00", date(2025, 3, 10))], [], ["2025-01", "2025-03"])
    assert res["2025-01"] == 0
    assert res["2025-03"] == Decimal("500.00")


@pytest.mark.asyncio
async def test_subscription_costs_by_year():
    subs = [
        make_sub("monthly", "10.00", date(2024, 7, 1)),
        make_sub("yearly", "99.00", date(2023, 2, 1), Recurrence.ANNUALLY),
    ]
    res = await subscription_costs_by_year(subs, [2023, 2024, 2025])
    assert res[2023] == Decimal("99.00")
    assert res[2024] == Decimal("60.00") + Decimal("99.00")
    assert res[2025] == Decimal("120.00") + Decimal("99.00")


def test_end_to_end_both_reports():
    expenses = [make_exp("e1", "100.00", date(2025, 1, 2))]
    subs = [make_sub("s1", "9.99", date(2024, 12, 1))]

    async def run_both():
        return await asyncio.gather(
            expenses_by_month(expenses, subs, ["2025-01"]),
            subscription_costs_by_year(subs, [2025]),
        )

    by_month, by_year = asyncio.run(run_both())
    assert by_month["2025-01"] == Decimal("109.99")
    assert by_year[2025] == Decimal("119.88")


@pytest.mark.asyncio
async def test_concurrent_month_tasks_scale():
    expenses = [make_exp(str(i), "10.00", date(2025, 1, 1)) for i in range(100)]
    months = ["2025-01", "2025-02", "2025-03", "2025-04"]
    res = await expenses_by_month(expenses, [], months)
    assert res["2025-01"] == Decimal("1000.00")
    assert res["2025-02"] == 0
