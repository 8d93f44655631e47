from datetime import date
from decimal import Decimal

from tracker.dashboard import (
    build_dashboard,
    dashboard_to_dict,
    daily_totals,
    month_total,
    percentage_change,
    share_of,
    weekday_averages,
)
from tracker.domain import Category, Expense, Recurrence, Subscription


def make_exp(id, cat_id, amount, day, user_id="u1"):
    return Expense(id=id, user_id=user_id, category_id=cat_id, amount=Decimal(amount), date=day)


def make_sub(id, cat_id, amount, start, recurrence=Recurrence.MONTHLY, name=None):
    return Subscription(
        id=id, user_id="u1", category_id=cat_id, name=name or id,
        amount=Decimal(amount), recurrence=recurrence, start_date=start,
    )


def make_cat(id, name):
    return Category(id=id, user_id="u1", name=name, color="#123456", icon="Tag")


def test_decimal_sums_are_exact():
    expenses = [make_exp("e1", "c1", "0.10", date(2024, 3, 1)), make_exp("e2", "c1", "0.20", date(2024, 3, 2))]
    total = month_total(expenses, [])
    assert total == Decimal("0.3")
    assert str(total) == "0.30"


def test_percentage_change_guards_zero_previous():
    assert percentage_change(Decimal("100"), Decimal("0")) == 0
    assert percentage_change(Decimal("150"), Decimal("100")) == 50.0
    assert percentage_change(Decimal("50"), Decimal("100")) == -50.0
    assert percentage_change(Decimal("80"), Decimal("80")) == 0


def test_share_of_zero_total():
    assert share_of(Decimal("10"), Decimal("0")) == 0


def test_category_percentages_sorted_by_total():
    expenses = [
        make_exp("e1", "a", "30.00", date(2024, 3, 4)),
        make_exp("e2", "b", "70.00", date(2024, 3, 5)),
    ]
    cats = [make_cat("a", "Food"), make_cat("b", "Rent")]
    dashboard = build_dashboard(expenses, [], [], cats, 2024, 3)

    assert [c.id for c in dashboard.top_categories] == ["b", "a"]
    assert dashboard.top_categories[0].percentage == 70.0
    assert dashboard.top_categories[1].percentage == 30.0
    assert dashboard.top_categories[0].name == "Rent"


def test_top_categories_limited():
    expenses = [make_exp(f"e{i}", f"c{i}", f"{i}.00", date(2024, 3, 1)) for i in range(1, 8)]
    dashboard = build_dashboard(expenses, [], [], [], 2024, 3)
    assert [c.id for c in dashboard.top_categories] == ["c7", "c6", "c5", "c4", "c3"]

    dashboard = build_dashboard(expenses, [], [], [], 2024, 3, top_n=2)
    assert len(dashboard.top_categories) == 2


def test_unknown_category_falls_back_to_id():
    dashboard = build_dashboard([make_exp("e1", "ghost", "5.00", date(2024, 3, 1))], [], [], [], 2024, 3)
    summary = dashboard.top_categories[0]
    assert summary.name == "ghost"
    assert summary.color == ""
    assert summary.icon == ""


def test_weekday_average_over_observed_days():
    # 2024-03-04 and 2024-03-11 are Mondays
    expenses = [
        make_exp("e1", "c1", "10.00", date(2024, 3, 4)),
        make_exp("e2", "c1", "30.00", date(2024, 3, 11)),
    ]
    averages = weekday_averages(expenses)
    assert len(averages) == 1
    assert averages[0].day == "Monday"
    assert averages[0].weekday == 1
    assert averages[0].average == Decimal("20.00")


def test_weekday_average_counts_distinct_days():
    expenses = [
        make_exp("e1", "c1", "10.00", date(2024, 3, 4)),
        make_exp("e2", "c2", "5.00", date(2024, 3, 4)),
        make_exp("e3", "c1", "30.00", date(2024, 3, 11)),
        make_exp("e4", "c1", "8.00", date(2024, 3, 3)),  # Sunday
    ]
    averages = weekday_averages(expenses)
    assert [a.day for a in averages] == ["Sunday", "Monday"]
    assert str(averages[1].average) == "22.50"


def test_daily_totals_only_days_with_activity():
    expenses = [
        make_exp("e1", "c1", "10.00", date(2024, 3, 9)),
        make_exp("e2", "c1", "2.50", date(2024, 3, 2)),
        make_exp("e3", "c2", "7.50", date(2024, 3, 2)),
    ]
    daily = daily_totals(expenses)
    assert [d.date for d in daily] == [date(2024, 3, 2), date(2024, 3, 9)]
    assert daily[0].total == Decimal("10.00")


def test_subscriptions_merge_into_totals_and_categories():
    expenses = [
        make_exp("e1", "groceries", "40.00", date(2024, 3, 10)),
        make_exp("e2", "groceries", "20.00", date(2024, 2, 10)),
    ]
    subs = [
        make_sub("netflix", "fun", "15.99", date(2024, 1, 5)),
        make_sub("club", "groceries", "10.00", date(2023, 3, 1), Recurrence.ANNUALLY),
    ]
    cats = [make_cat("groceries", "Groceries"), make_cat("fun", "Fun")]

    dashboard = build_dashboard(expenses, expenses, subs, cats, 2024, 3)

    assert dashboard.total_expenses == Decimal("65.99")
    assert dashboard.comparison.previous == Decimal("35.99")
    assert dashboard.comparison.percentage_change == 83.4
    assert [(c.id, str(c.total), c.percentage) for c in dashboard.top_categories] == [
        ("groceries", "50.00", 75.8),
        ("fun", "15.99", 24.2),
    ]
    # subscription charges stay out of the daily chart
    assert [d.date for d in dashboard.daily] == [date(2024, 3, 10)]


def test_rows_outside_the_month_are_ignored():
    expenses = [
        make_exp("e1", "c1", "10.00", date(2024, 3, 31)),
        make_exp("e2", "c1", "99.00", date(2024, 4, 1)),
    ]
    subs = [make_sub("late", "c1", "5.00", date(2024, 1, 31))]
    dashboard = build_dashboard(expenses, [], subs, [], 2024, 4)
    assert dashboard.total_expenses == Decimal("99.00")
    # the 31st exists in March, so the previous month still has the charge
    assert dashboard.comparison.previous == Decimal("5.00")


def test_empty_month_dashboard():
    payload = dashboard_to_dict(build_dashboard([], [], [], [], 2024, 3))
    assert payload == {
        "totalExpenses": "0",
        "topCategories": [],
        "monthComparison": {"currentMonth": "0", "previousMonth": "0", "percentageChange": 0},
        "charts": {"dailyExpenses": [], "weekdayAverages": []},
    }


def test_dashboard_payload_uses_decimal_strings():
    expenses = [make_exp("e1", "c1", "12.50", date(2024, 3, 4))]
    payload = dashboard_to_dict(build_dashboard(expenses, [], [], [make_cat("c1", "Food")], 2024, 3))
    assert payload["totalExpenses"] == "12.50"
    assert payload["topCategories"][0]["total"] == "12.50"
    assert payload["topCategories"][0]["percentage"] == 100.0
    assert payload["charts"]["dailyExpenses"] == [{"date": "2024-03-04", "total": "12.50"}]
    assert payload["charts"]["weekdayAverages"] == [{"day": "Monday", "average": "12.50"}]
