import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.utils.reports import (
    card_usage,
    category_breakdown,
    category_report,
    dashboard_summary,
    expense_report,
    financial_summary,
    payer_report,
    payer_shares,
    payer_stats,
    period_key,
    previous_period,
    trends,
    upcoming_dues,
)

ANA = SimpleNamespace(id=uuid.UUID(int=1), name="Ana", color="#f00", active=True)
BRUNO = SimpleNamespace(id=uuid.UUID(int=2), name="Bruno", color="#00f", active=True)
MORADIA = SimpleNamespace(id=uuid.UUID(int=10), name="Moradia", color="#111", icon="home")
LAZER = SimpleNamespace(id=uuid.UUID(int=11), name="Lazer", color="#222", icon="film")


def make_expense(description="Rent", buyer=ANA, payer=None, category=MORADIA, splits=(), **kwargs):
    values = dict(
        id=uuid.uuid4(),
        description=description,
        supplier=None,
        type=ExpenseType.ONE_TIME,
        total_amount=Decimal("100.00"),
        buyer=buyer,
        buyer_id=buyer.id,
        payer=payer,
        payer_id=payer.id if payer else None,
        category=category,
        category_id=category.id if category else None,
        is_divided=bool(splits),
        splits=[SimpleNamespace(payer_id=p.id, payer=p, percentage=Decimal(pct)) for p, pct in splits],
    )
    values.update(kwargs)
    values["effective_payer_id"] = values["payer_id"] or values["buyer_id"]
    return SimpleNamespace(**values)


def make_payment(expense, amount, due_date, status=PaymentStatus.PENDING):
    return SimpleNamespace(
        id=uuid.uuid4(),
        expense=expense,
        expense_id=expense.id,
        amount=Decimal(amount),
        due_date=due_date,
        month=due_date.month,
        year=due_date.year,
        status=status,
    )


def test_payer_shares_for_divided_expense_sum_to_payment():
    expense = make_expense(splits=[(ANA, "33.34"), (BRUNO, "66.66")])
    shares = payer_shares(make_payment(expense, "100.01", date(2025, 3, 10)))
    assert sum(amount for _, amount in shares) == Decimal("100.01")
    assert [p.name for p, _ in shares] == ["Ana", "Bruno"]


def test_payer_shares_falls_back_to_buyer():
    shares = payer_shares(make_payment(make_expense(), "50", date(2025, 3, 10)))
    assert shares == [(ANA, Decimal("50"))]
    shares = payer_shares(make_payment(make_expense(payer=BRUNO), "50", date(2025, 3, 10)))
    assert shares == [(BRUNO, Decimal("50"))]


def test_dashboard_summary_counts_future_as_pending():
    rent = make_expense()
    dinner = make_expense("Dinner", category=LAZER, splits=[(ANA, "50"), (BRUNO, "50")])
    payments = [
        make_payment(rent, "1000", date(2025, 3, 5), PaymentStatus.PAID),
        make_payment(dinner, "200", date(2025, 3, 20), PaymentStatus.FUTURE),
        make_payment(dinner, "50", date(2025, 3, 1), PaymentStatus.OVERDUE),
    ]
    summary = dashboard_summary(payments)

    assert summary["total_amount"] == Decimal("1250.00")
    assert summary["paid_amount"] == Decimal("1000.00")
    assert summary["pending_amount"] == Decimal("200.00")
    assert summary["overdue_amount"] == Decimal("50.00")
    by_payer = {p["payer_name"]: p["total_amount"] for p in summary["payer_breakdown"]}
    assert by_payer == {"Ana": Decimal("1125.00"), "Bruno": Decimal("125.00")}


def test_category_breakdown_percentages_and_uncategorized():
    payments = [
        make_payment(make_expense(), "75", date(2025, 3, 5)),
        make_payment(make_expense(category=None), "25", date(2025, 3, 6)),
    ]
    breakdown = category_breakdown(payments)
    assert [(c["category_name"], c["percentage"]) for c in breakdown] == [("Moradia", 75.0), ("Uncategorized", 25.0)]


def test_upcoming_dues_skips_paid_and_past():
    expense = make_expense()
    payments = [
        make_payment(expense, "10", date(2025, 3, 20)),
        make_payment(expense, "10", date(2025, 3, 12)),
        make_payment(expense, "10", date(2025, 3, 15), PaymentStatus.PAID),
        make_payment(expense, "10", date(2025, 3, 1), PaymentStatus.OVERDUE),
    ]
    dues = upcoming_dues(payments, date(2025, 3, 10), date(2025, 3, 31))
    assert [d["due_date"] for d in dues] == [date(2025, 3, 12), date(2025, 3, 20)]
    assert dues[0]["days_until_due"] == 2


def test_trends_compare_with_previous_month():
    current = [make_payment(make_expense(), "150", date(2025, 3, 5))]
    previous = [make_payment(make_expense(), "100", date(2025, 2, 5))]
    result = trends(current, previous)
    assert result["monthly_comparison"]["percentage_change"] == 50.0
    assert result["category_trends"][0]["category_name"] == "Moradia"


def test_previous_period_wraps_year():
    assert previous_period(1, 2025) == (12, 2024)


@pytest.mark.parametrize("group_by, key", [("month", "2025-05"), ("quarter", "2025-Q2"), ("year", "2025")])
def test_period_key(group_by, key):
    assert period_key(5, 2025, group_by) == key


def test_expense_report_groups_by_quarter():
    expense = make_expense()
    payments = [
        make_payment(expense, "100", date(2025, 1, 5), PaymentStatus.PAID),
        make_payment(expense, "100", date(2025, 2, 5)),
        make_payment(expense, "100", date(2025, 4, 5)),
    ]
    report = expense_report(payments, "quarter")
    assert [p["period"] for p in report["periods"]] == ["2025-Q1", "2025-Q2"]
    assert report["periods"][0]["total_amount"] == Decimal("200.00")
    assert report["summary"]["grand_total"] == Decimal("300.00")
    assert report["summary"]["unique_expenses"] == 1


def test_expense_report_rejects_unknown_grouping():
    with pytest.raises(ValueError):
        expense_report([], "week")


def test_category_report_lists_unused_categories():
    payments = [make_payment(make_expense(), "80", date(2025, 3, 5))]
    report = category_report([MORADIA, LAZER], payments)
    assert [c["name"] for c in report["categories"]] == ["Moradia", "Lazer"]
    assert report["categories"][1]["total_amount"] == Decimal("0.00")
    assert report["summary"]["top_category"] == "Moradia"


def test_payer_report_separates_bought_and_owed():
    expense = make_expense(splits=[(ANA, "25"), (BRUNO, "75")])
    report = payer_report([ANA, BRUNO], [make_payment(expense, "100", date(2025, 3, 5))])
    rows = {r["name"]: r for r in report["payers"]}
    assert rows["Ana"]["bought_amount"] == Decimal("100.00")
    assert rows["Ana"]["total_amount"] == Decimal("25.00")
    assert rows["Bruno"]["total_amount"] == Decimal("75.00")
    assert rows["Bruno"]["percentage"] == 75.0


def test_financial_summary_window_and_growth():
    expense = make_expense(type=ExpenseType.FIXED_RECURRING)
    payments = [
        make_payment(expense, "100", date(2025, 2, 5)),
        make_payment(expense, "150", date(2025, 3, 5)),
    ]
    summary = financial_summary(payments, [expense], date(2025, 3, 15), months=3)

    assert [m["period"] for m in summary["breakdown"]["by_month"]] == ["2025-01", "2025-02", "2025-03"]
    assert summary["totals"]["spending"] == Decimal("250.00")
    assert summary["growth"] == {"month_over_month": 50.0, "trend": "increase"}
    assert summary["insights"]["highest_spending_month"] == "2025-03"
    assert summary["breakdown"]["by_type"][0]["type"] == "FIXED_RECURRING"


def test_payer_stats():
    single = make_expense(buyer=ANA, payer=BRUNO)
    divided = make_expense(splits=[(ANA, "50"), (BRUNO, "50")])
    payments = [make_payment(single, "40", date(2025, 3, 5)), make_payment(divided, "60", date(2025, 3, 6))]

    stats = payer_stats(BRUNO.id, payments)
    assert stats["as_buyer"]["total_amount"] == Decimal("0.00")
    assert stats["as_payer_single"]["total_amount"] == Decimal("40.00")
    assert stats["as_payer_split"]["total_amount"] == Decimal("30.00")
    assert stats["total"]["total_amount"] == Decimal("70.00")


def test_card_usage_utilization():
    card = SimpleNamespace(limit=Decimal("1000"), due_day=5)
    usage = card_usage(card, [make_payment(make_expense(), "250", date(2025, 3, 5))])
    assert usage["utilization_percentage"] == 25.0
    assert usage["available_limit"] == Decimal("750.00")
