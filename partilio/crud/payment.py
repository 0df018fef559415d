# partilio/crud/payment.py
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from partilio.core.errors import InvalidInputError
from partilio.models.expense import Expense, ExpensePayment, PaymentStatus
from partilio.schemas.payment import MarkAsPaid
from partilio.utils.financial import ZERO, round_money
from partilio.utils.schedule import resolve_status

logger = logging.getLogger(__name__)


async def get_payments_for_user(
    user_id: uuid.UUID,
    db: AsyncSession,
    month: Optional[int] = None,
    year: Optional[int] = None,
    statuses: Optional[Iterable[PaymentStatus]] = None,
    expense_id: Optional[uuid.UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[ExpensePayment]:
    query = select(ExpensePayment).join(Expense, ExpensePayment.expense_id == Expense.id).where(
        Expense.user_id == user_id, Expense.active.is_(True)
    )
    if month:
        query = query.where(ExpensePayment.month == month)
    if year:
        query = query.where(ExpensePayment.year == year)
    statuses = list(statuses or [])
    if statuses:
        query = query.where(ExpensePayment.status.in_(statuses))
    if expense_id:
        query = query.where(ExpensePayment.expense_id == expense_id)
    if start_date:
        query = query.where(ExpensePayment.due_date >= start_date)
    if end_date:
        query = query.where(ExpensePayment.due_date <= end_date)

    result = await db.execute(query.order_by(ExpensePayment.due_date, ExpensePayment.created_at.desc()))
    return result.scalars().unique().all()


async def get_payment_by_id(payment_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[ExpensePayment]:
    result = await db.execute(
        select(ExpensePayment)
        .join(Expense, ExpensePayment.expense_id == Expense.id)
        .where(ExpensePayment.id == payment_id, Expense.user_id == user_id)
    )
    return result.scalars().unique().one_or_none()


async def get_payment_for_period(
    expense_id: uuid.UUID, month: int, year: int, user_id: uuid.UUID, db: AsyncSession
) -> Optional[ExpensePayment]:
    result = await db.execute(
        select(ExpensePayment)
        .join(Expense, ExpensePayment.expense_id == Expense.id)
        .where(
            ExpensePayment.expense_id == expense_id,
            ExpensePayment.month == month,
            ExpensePayment.year == year,
            Expense.user_id == user_id,
        )
    )
    return result.scalars().unique().one_or_none()


async def refresh_payment_statuses(user_id: uuid.UUID, db: AsyncSession, today: Optional[date] = None) -> int:
    """Persist the date-derived status of every unpaid payment; returns how many changed."""
    today = today or date.today()
    result = await db.execute(
        select(ExpensePayment)
        .join(Expense, ExpensePayment.expense_id == Expense.id)
        .where(
            Expense.user_id == user_id,
            Expense.active.is_(True),
            ExpensePayment.status != PaymentStatus.PAID,
        )
    )
    updated = 0
    for payment in result.scalars().unique().all():
        status = resolve_status(payment.status, payment.due_date, today)
        if status != payment.status:
            payment.status = status
            updated += 1

    if updated:
        await db.commit()
        logger.info(f"Refreshed {updated} payment statuses for user {user_id}")
    return updated


async def mark_as_paid(
    user_id: uuid.UUID, mark_in: MarkAsPaid, db: AsyncSession
) -> Optional[ExpensePayment]:
    payment = await get_payment_for_period(mark_in.expense_id, mark_in.month, mark_in.year, user_id, db)
    if payment is None:
        return None
    payment.status = PaymentStatus.PAID
    payment.paid_at = mark_in.paid_at or datetime.utcnow()
    await db.commit()
    await db.refresh(payment)
    return payment


async def bulk_mark_as_paid(
    user_id: uuid.UUID, marks: List[MarkAsPaid], db: AsyncSession
) -> List[ExpensePayment]:
    """
    Mark several payments as paid in one transaction.

    Every referenced expense must belong to the user, otherwise nothing is
    written. Periods without a payment are skipped.
    """
    expense_ids = {m.expense_id for m in marks}
    result = await db.execute(select(Expense.id).where(Expense.id.in_(expense_ids), Expense.user_id == user_id))
    found = {row[0] for row in result.all()}
    if found != expense_ids:
        raise InvalidInputError("One or more expenses were not found")

    updated: List[ExpensePayment] = []
    try:
        for mark in marks:
            payment = await get_payment_for_period(mark.expense_id, mark.month, mark.year, user_id, db)
            if payment is None:
                continue
            payment.status = PaymentStatus.PAID
            payment.paid_at = mark.paid_at or datetime.utcnow()
            updated.append(payment)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Marked {len(updated)} payments as paid for user {user_id}")
    return updated


async def revert_payment(payment: ExpensePayment, db: AsyncSession, today: Optional[date] = None) -> ExpensePayment:
    """Undo a payment: back to an unpaid status derived from the due date."""
    today = today or date.today()
    payment.status = resolve_status(PaymentStatus.PENDING, payment.due_date, today)
    payment.paid_at = None
    await db.commit()
    await db.refresh(payment)
    return payment


async def update_due_date(
    payment: ExpensePayment, due_date: date, db: AsyncSession, today: Optional[date] = None
) -> ExpensePayment:
    today = today or date.today()
    payment.due_date = due_date
    payment.status = resolve_status(payment.status, due_date, today)
    await db.commit()
    await db.refresh(payment)
    return payment


def summarize_by_status(payments: Iterable[ExpensePayment]) -> Dict[str, Dict]:
    """Count and amount per status, plus the overall total."""
    totals = {status.value.lower(): {"count": 0, "amount": ZERO} for status in PaymentStatus}
    totals["total"] = {"count": 0, "amount": ZERO}
    for payment in payments:
        amount = Decimal(payment.amount)
        bucket = totals[PaymentStatus(payment.status).value.lower()]
        bucket["count"] += 1
        bucket["amount"] += amount
        totals["total"]["count"] += 1
        totals["total"]["amount"] += amount
    for bucket in totals.values():
        bucket["amount"] = round_money(bucket["amount"])
    return totals


async def get_payment_stats(user_id: uuid.UUID, month: int, year: int, db: AsyncSession) -> Dict:
    payments = await get_payments_for_user(user_id, db, month=month, year=year)
    totals = summarize_by_status(payments)
    total_count = totals["total"]["count"]
    completion_rate = round(totals["paid"]["count"] / total_count * 100, 2) if total_count else 0.0
    return {"month": month, "year": year, **totals, "completion_rate": completion_rate}
