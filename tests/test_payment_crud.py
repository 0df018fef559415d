import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest

from partilio.core.errors import InvalidInputError
from partilio.crud.expense import create_expense_for_user
from partilio.crud.payment import (
    bulk_mark_as_paid,
    get_payment_stats,
    get_payments_for_user,
    mark_as_paid,
    refresh_payment_statuses,
    revert_payment,
    update_due_date,
)
from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.schemas.expense import ExpenseCreate
from partilio.schemas.payment import MarkAsPaid

TODAY = date(2025, 2, 10)


@pytest.fixture
async def rent(db, user, payer):
    expense_in = ExpenseCreate(
        description="Aluguel",
        total_amount=Decimal("1800.00"),
        type=ExpenseType.FIXED_RECURRING,
        start_date=date(2025, 1, 10),
        number_of_months=3,
        buyer_id=payer.id,
    )
    return await create_expense_for_user(user.id, expense_in, db, today=TODAY)


async def test_list_by_period_and_status(db, user, rent):
    february = await get_payments_for_user(user.id, db, month=2, year=2025)
    assert [(p.month, p.amount) for p in february] == [(2, Decimal("1800.00"))]

    overdue = await get_payments_for_user(user.id, db, statuses=[PaymentStatus.OVERDUE])
    assert [p.month for p in overdue] == [1]


async def test_mark_as_paid_sets_paid_at(db, user, rent):
    paid_at = datetime(2025, 1, 9, 12, 0)
    payment = await mark_as_paid(user.id, MarkAsPaid(expense_id=rent.id, month=1, year=2025, paid_at=paid_at), db)
    assert payment.status == PaymentStatus.PAID
    assert payment.paid_at == paid_at


async def test_mark_as_paid_unknown_period_returns_none(db, user, rent):
    assert await mark_as_paid(user.id, MarkAsPaid(expense_id=rent.id, month=12, year=2025), db) is None


async def test_bulk_mark_skips_missing_periods(db, user, rent):
    marks = [
        MarkAsPaid(expense_id=rent.id, month=1, year=2025),
        MarkAsPaid(expense_id=rent.id, month=2, year=2025),
        MarkAsPaid(expense_id=rent.id, month=11, year=2025),
    ]
    updated = await bulk_mark_as_paid(user.id, marks, db)
    assert sorted(p.month for p in updated) == [1, 2]


async def test_bulk_mark_with_unknown_expense_writes_nothing(db, user, rent):
    marks = [
        MarkAsPaid(expense_id=rent.id, month=1, year=2025),
        MarkAsPaid(expense_id=uuid.uuid4(), month=1, year=2025),
    ]
    with pytest.raises(InvalidInputError):
        await bulk_mark_as_paid(user.id, marks, db)

    paid = await get_payments_for_user(user.id, db, statuses=[PaymentStatus.PAID])
    assert paid == []


async def test_revert_recomputes_status(db, user, rent):
    payment = await mark_as_paid(user.id, MarkAsPaid(expense_id=rent.id, month=1, year=2025), db)
    reverted = await revert_payment(payment, db, today=TODAY)
    assert reverted.status == PaymentStatus.OVERDUE
    assert reverted.paid_at is None


async def test_update_due_date_recomputes_status(db, user, rent):
    [january] = await get_payments_for_user(user.id, db, month=1, year=2025)
    moved = await update_due_date(january, date(2025, 2, 20), db, today=TODAY)
    assert moved.status == PaymentStatus.PENDING


async def test_refresh_statuses_persists_changes(db, user, rent):
    # By early March February is overdue and March is due
    assert await refresh_payment_statuses(user.id, db, today=date(2025, 3, 5)) == 2
    statuses = [p.status for p in await get_payments_for_user(user.id, db)]
    assert statuses == [PaymentStatus.OVERDUE, PaymentStatus.OVERDUE, PaymentStatus.PENDING]
    assert await refresh_payment_statuses(user.id, db, today=date(2025, 3, 5)) == 0


async def test_payment_stats(db, user, rent):
    await mark_as_paid(user.id, MarkAsPaid(expense_id=rent.id, month=2, year=2025), db)
    stats = await get_payment_stats(user.id, 2, 2025, db)
    assert stats["paid"] == {"count": 1, "amount": Decimal("1800.00")}
    assert stats["total"]["count"] == 1
    assert stats["completion_rate"] == 100.0

    empty = await get_payment_stats(user.id, 6, 2025, db)
    assert empty["completion_rate"] == 0.0
