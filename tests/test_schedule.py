from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from partilio.core.errors import InvalidInputError
from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.utils.schedule import credit_card_due_date, generate_schedule, resolve_status


def expense(**kwargs):
    values = {
        "type": ExpenseType.ONE_TIME,
        "installment_amount": Decimal("100.00"),
        "start_date": date(2025, 1, 15),
        "due_day": None,
        "purchase_date": None,
        "number_of_installments": None,
        "number_of_months": None,
    }
    values.update(kwargs)
    return SimpleNamespace(**values)


CARD = SimpleNamespace(closing_day=10, due_day=5)


def test_one_time_has_single_payment_on_start_date():
    schedule = generate_schedule(expense())
    assert len(schedule) == 1
    assert (schedule[0].month, schedule[0].year, schedule[0].due_date) == (1, 2025, date(2025, 1, 15))


def test_installments_follow_consecutive_months():
    schedule = generate_schedule(expense(type=ExpenseType.INSTALLMENT, number_of_installments=3, due_day=20))
    assert [p.due_date for p in schedule] == [date(2025, 1, 20), date(2025, 2, 20), date(2025, 3, 20)]
    assert all(p.amount == Decimal("100.00") for p in schedule)


def test_due_day_31_is_clamped_to_month_length():
    schedule = generate_schedule(expense(type=ExpenseType.FIXED_RECURRING, start_date=date(2025, 1, 31)))
    assert [p.due_date.day for p in schedule] == [31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31]
    assert [p.month for p in schedule] == list(range(1, 13))
    assert {p.year for p in schedule} == {2025}


def test_leap_year_february():
    schedule = generate_schedule(
        expense(type=ExpenseType.INSTALLMENT, start_date=date(2024, 1, 30), number_of_installments=2)
    )
    assert schedule[1].due_date == date(2024, 2, 29)


def test_recurring_defaults_to_twelve_months_and_crosses_year():
    schedule = generate_schedule(expense(type=ExpenseType.VARIABLE_RECURRING, start_date=date(2025, 6, 1)))
    assert len(schedule) == 12
    assert (schedule[-1].month, schedule[-1].year) == (5, 2026)


def test_recurring_default_can_be_overridden():
    schedule = generate_schedule(expense(type=ExpenseType.FIXED_RECURRING), default_months=3)
    assert len(schedule) == 3


@pytest.mark.parametrize(
    "purchase, due",
    [
        (date(2025, 1, 9), date(2025, 2, 5)),
        (date(2025, 1, 10), date(2025, 3, 5)),
        (date(2025, 12, 15), date(2026, 2, 5)),
    ],
)
def test_credit_card_closing_day_rule(purchase, due):
    assert credit_card_due_date(purchase, 10, 5) == due


def test_credit_card_schedule_in_installments():
    schedule = generate_schedule(
        expense(type=ExpenseType.CREDIT_CARD, purchase_date=date(2025, 1, 10), number_of_installments=3),
        CARD,
    )
    assert [p.due_date for p in schedule] == [date(2025, 3, 5), date(2025, 4, 5), date(2025, 5, 5)]
    assert [(p.month, p.year) for p in schedule] == [(3, 2025), (4, 2025), (5, 2025)]


@pytest.mark.parametrize(
    "purchase, dues",
    [
        (date(2025, 1, 30), [date(2025, 2, 5), date(2025, 3, 5), date(2025, 4, 5)]),
        (date(2025, 1, 31), [date(2025, 3, 5), date(2025, 4, 5), date(2025, 5, 5)]),
    ],
)
def test_credit_card_late_closing_day_gives_one_bill_per_month(purchase, dues):
    card = SimpleNamespace(closing_day=31, due_day=5)
    schedule = generate_schedule(
        expense(type=ExpenseType.CREDIT_CARD, purchase_date=purchase, number_of_installments=3), card
    )
    assert [p.due_date for p in schedule] == dues
    assert len({(p.year, p.month) for p in schedule}) == 3


def test_credit_card_due_day_31_is_clamped_each_month():
    card = SimpleNamespace(closing_day=28, due_day=31)
    schedule = generate_schedule(
        expense(type=ExpenseType.CREDIT_CARD, purchase_date=date(2025, 1, 5), number_of_installments=3), card
    )
    assert [p.due_date for p in schedule] == [date(2025, 2, 28), date(2025, 3, 31), date(2025, 4, 30)]


def test_credit_card_without_card_is_rejected():
    with pytest.raises(InvalidInputError):
        generate_schedule(expense(type=ExpenseType.CREDIT_CARD))


@pytest.mark.parametrize("field", ["number_of_installments", "number_of_months"])
def test_non_positive_counts_are_rejected(field):
    expense_type = ExpenseType.INSTALLMENT if field == "number_of_installments" else ExpenseType.FIXED_RECURRING
    with pytest.raises(InvalidInputError):
        generate_schedule(expense(type=expense_type, **{field: 0}))


def test_non_positive_amount_is_rejected():
    with pytest.raises(InvalidInputError):
        generate_schedule(expense(installment_amount=Decimal("0")))


def test_invalid_due_day_is_rejected():
    with pytest.raises(InvalidInputError):
        generate_schedule(expense(due_day=32))


@pytest.mark.parametrize(
    "stored, due, expected",
    [
        (PaymentStatus.PENDING, date(2025, 3, 9), PaymentStatus.OVERDUE),
        (PaymentStatus.FUTURE, date(2025, 3, 10), PaymentStatus.PENDING),
        (PaymentStatus.PENDING, date(2025, 3, 31), PaymentStatus.PENDING),
        (PaymentStatus.PENDING, date(2025, 4, 1), PaymentStatus.FUTURE),
        (PaymentStatus.OVERDUE, date(2025, 5, 1), PaymentStatus.FUTURE),
        (PaymentStatus.PAID, date(2024, 1, 1), PaymentStatus.PAID),
    ],
)
def test_resolve_status(stored, due, expected):
    assert resolve_status(stored, due, date(2025, 3, 10)) == expected
