# partilio/utils/schedule.py
"""
Payment schedule generation.

Turns an expense definition into the ordered list of monthly obligations
that become ExpensePayment rows. Everything here is pure: the same expense
always yields the same schedule, and status refinement against the current
date happens on read through ``resolve_status``.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from partilio.core.errors import InvalidInputError
from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.utils.financial import clamp_day, require_positive, shift_month

DEFAULT_RECURRING_MONTHS = 12

RECURRING_TYPES = (ExpenseType.FIXED_RECURRING, ExpenseType.VARIABLE_RECURRING)


@dataclass(frozen=True)
class ScheduledPayment:
    month: int
    year: int
    due_date: date
    amount: Decimal
    status: PaymentStatus = PaymentStatus.PENDING


def _positive_count(value: Optional[int], field: str, default: int) -> int:
    if value is None:
        return default
    if value <= 0:
        raise InvalidInputError(f"{field} must be greater than zero")
    return int(value)


def _anchor_day(expense: Any, start: date) -> int:
    due_day = getattr(expense, "due_day", None)
    if due_day is None:
        return start.day
    if not 1 <= due_day <= 31:
        raise InvalidInputError("due_day must be between 1 and 31")
    return due_day


def _monthly(start: date, day: int, count: int, amount: Decimal) -> List[ScheduledPayment]:
    schedule = []
    for offset in range(count):
        year, month = shift_month(start.year, start.month, offset)
        schedule.append(ScheduledPayment(month=month, year=year, due_date=clamp_day(year, month, day), amount=amount))
    return schedule


def credit_card_due_date(purchase: date, closing_day: int, due_day: int) -> date:
    """
    Due date of the bill that will carry a purchase.

    A purchase made before the card's closing day falls in the cycle that
    closes this month; on or after the closing day it falls in the cycle that
    closes next month. The bill is due on `due_day` of the month after the
    cycle's closing month. Both days are clamped to the month length.

    closing 10 / due 5: Jan 9 -> Feb 5, Jan 10 -> Mar 5.
    """
    for value, field in ((closing_day, "closing_day"), (due_day, "due_day")):
        if not 1 <= value <= 31:
            raise InvalidInputError(f"{field} must be between 1 and 31")

    closing = clamp_day(purchase.year, purchase.month, closing_day)
    closing_year, closing_month = purchase.year, purchase.month
    if purchase >= closing:
        closing_year, closing_month = shift_month(closing_year, closing_month, 1)

    due_year, due_month = shift_month(closing_year, closing_month, 1)
    return clamp_day(due_year, due_month, due_day)


def _credit_card(expense: Any, credit_card: Any, start: date, amount: Decimal) -> List[ScheduledPayment]:
    if credit_card is None:
        raise InvalidInputError("Credit card expenses need a credit card")

    purchase = getattr(expense, "purchase_date", None) or start
    count = _positive_count(getattr(expense, "number_of_installments", None), "number_of_installments", 1)

    # Later installments land on the following bills, one per month
    first_due = credit_card_due_date(purchase, credit_card.closing_day, credit_card.due_day)
    return _monthly(first_due, credit_card.due_day, count, amount)


def generate_schedule(
    expense: Any,
    credit_card: Any = None,
    default_months: int = DEFAULT_RECURRING_MONTHS,
) -> List[ScheduledPayment]:
    """
    Build the ordered payment schedule for an expense.

    `expense` only needs the attributes ``type``, ``installment_amount``,
    ``start_date`` and, depending on the type, ``due_day``,
    ``purchase_date``, ``number_of_installments`` and ``number_of_months``;
    ORM rows and request schemas both qualify. `credit_card` needs
    ``closing_day`` and ``due_day``.
    """
    start = getattr(expense, "start_date", None)
    if not isinstance(start, date):
        raise InvalidInputError("start_date is required")
    amount = require_positive(getattr(expense, "installment_amount", None) or 0, "installment_amount")
    expense_type = ExpenseType(getattr(expense, "type", ExpenseType.ONE_TIME))

    if expense_type == ExpenseType.CREDIT_CARD:
        return _credit_card(expense, credit_card, start, amount)

    day = _anchor_day(expense, start)

    if expense_type == ExpenseType.ONE_TIME:
        return _monthly(start, day, 1, amount)

    if expense_type in RECURRING_TYPES:
        count = _positive_count(getattr(expense, "number_of_months", None), "number_of_months", default_months)
        return _monthly(start, day, count, amount)

    # ExpenseType.INSTALLMENT
    count = _positive_count(getattr(expense, "number_of_installments", None), "number_of_installments", 1)
    return _monthly(start, day, count, amount)


def resolve_status(status: PaymentStatus, due_date: date, today: date) -> PaymentStatus:
    """
    Refine a stored status against `today`.

    PAID is final until reverted. Unpaid obligations are OVERDUE once the due
    date has passed, FUTURE while their due month has not started and
    PENDING inside the due month up to and including the due date.
    """
    if status == PaymentStatus.PAID:
        return PaymentStatus.PAID
    if due_date < today:
        return PaymentStatus.OVERDUE
    if (due_date.year, due_date.month) > (today.year, today.month):
        return PaymentStatus.FUTURE
    return PaymentStatus.PENDING
