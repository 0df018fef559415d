# partilio/crud/expense.py
import logging
import math
import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from partilio.core.config import settings
from partilio.core.db_utils import with_db_retry
from partilio.core.errors import InvalidInputError
from partilio.crud.category import get_category_by_id
from partilio.crud.credit_card import get_credit_card_by_id
from partilio.models.credit_card import CreditCard
from partilio.models.expense import Expense, ExpensePayment, ExpenseSplit, ExpenseType, PaymentStatus
from partilio.models.payer import Payer
from partilio.schemas.expense import ExpenseCreate, ExpenseUpdate, SplitIn
from partilio.utils.financial import round_money, to_decimal
from partilio.utils.schedule import generate_schedule, resolve_status
from partilio.utils.splits import calculate_splits

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (cópia)"

# Changing any of these regenerates the unpaid part of the schedule
SCHEDULE_FIELDS = {
    "type", "total_amount", "installment_amount", "start_date", "due_day", "purchase_date",
    "number_of_installments", "number_of_months", "credit_card_id",
}
SPLIT_FIELDS = {"is_divided", "total_amount", "installment_amount", "type", "number_of_installments"}
DIVIDED_TYPES = (ExpenseType.INSTALLMENT, ExpenseType.CREDIT_CARD)
# Attributes the split calculator and the schedule generator read
PREVIEW_FIELDS = SCHEDULE_FIELDS | SPLIT_FIELDS


def derive_installment_amount(
    total_amount: Any, expense_type: ExpenseType, number_of_installments: Optional[int]
) -> Decimal:
    """Per-payment amount when the client sends only the total."""
    total = to_decimal(total_amount)
    if ExpenseType(expense_type) in DIVIDED_TYPES and number_of_installments and number_of_installments > 0:
        return round_money(total / number_of_installments)
    return round_money(total)


# ────────────────────────────────────────────────────────────────────────────────
# QUERIES
# ────────────────────────────────────────────────────────────────────────────────
async def get_expense_by_id(
    expense_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession, refresh: bool = False
) -> Optional[Expense]:
    query = select(Expense).where(Expense.id == expense_id, Expense.user_id == user_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalars().unique().one_or_none()


def _expense_filters(
    user_id: uuid.UUID,
    category_id: Optional[uuid.UUID] = None,
    payer_id: Optional[uuid.UUID] = None,
    expense_type: Optional[ExpenseType] = None,
    active: Optional[bool] = True,
    search: Optional[str] = None,
) -> list:
    filters = [Expense.user_id == user_id]
    if category_id:
        filters.append(Expense.category_id == category_id)
    if payer_id:
        filters.append(
            or_(
                Expense.buyer_id == payer_id,
                Expense.payer_id == payer_id,
                Expense.splits.any(ExpenseSplit.payer_id == payer_id),
            )
        )
    if expense_type:
        filters.append(Expense.type == expense_type)
    if active is not None:
        filters.append(Expense.active == active)
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(Expense.description.ilike(pattern), Expense.supplier.ilike(pattern)))
    return filters


async def get_expenses_for_user(
    user_id: uuid.UUID,
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    **filters: Any,
) -> Tuple[List[Expense], int]:
    """One page of the user's expenses (newest first) and the total match count."""
    conditions = _expense_filters(user_id, **filters)

    total = (await db.execute(select(func.count(Expense.id)).where(*conditions))).scalar_one()

    result = await db.execute(
        select(Expense)
        .where(*conditions)
        .order_by(Expense.start_date.desc(), Expense.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return result.scalars().unique().all(), total


async def get_all_expenses_for_user(
    user_id: uuid.UUID, db: AsyncSession, include_paused: bool = True, **filters: Any
) -> List[Expense]:
    conditions = _expense_filters(user_id, **filters)
    if not include_paused:
        conditions.append(Expense.paused.is_(False))
    result = await db.execute(select(Expense).where(*conditions).order_by(Expense.start_date))
    return result.scalars().unique().all()


async def count_expenses_for_payer(payer_id: uuid.UUID, db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Expense.id)).where(
            or_(
                Expense.buyer_id == payer_id,
                Expense.payer_id == payer_id,
                Expense.splits.any(ExpenseSplit.payer_id == payer_id),
            )
        )
    )
    return result.scalar_one()


async def count_expenses_for_category(category_id: uuid.UUID, db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Expense.id)).where(Expense.category_id == category_id))
    return result.scalar_one()


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


# ────────────────────────────────────────────────────────────────────────────────
# REFERENCES, SPLITS AND SCHEDULE
# ────────────────────────────────────────────────────────────────────────────────
async def _check_payers(user_id: uuid.UUID, payer_ids: Iterable[uuid.UUID], db: AsyncSession) -> None:
    wanted = {pid for pid in payer_ids if pid is not None}
    if not wanted:
        return
    result = await db.execute(select(Payer.id).where(Payer.user_id == user_id, Payer.id.in_(wanted)))
    found = {row[0] for row in result.all()}
    missing = wanted - found
    if missing:
        raise InvalidInputError(f"Unknown payer: {sorted(str(m) for m in missing)[0]}")


async def _check_references(user_id: uuid.UUID, values: dict, db: AsyncSession) -> Optional[CreditCard]:
    """Make sure every referenced row belongs to the user; return the credit card, if any."""
    await _check_payers(user_id, [values.get("buyer_id"), values.get("payer_id")], db)

    if values.get("category_id") and not await get_category_by_id(values["category_id"], user_id, db):
        raise InvalidInputError("Unknown category")

    card = None
    if values.get("credit_card_id"):
        card = await get_credit_card_by_id(values["credit_card_id"], user_id, db)
        if not card:
            raise InvalidInputError("Unknown credit card")
    return card


def _build_splits(expense: Any, splits_in: Iterable[Any]) -> List[ExpenseSplit]:
    shares = calculate_splits(expense.installment_amount, list(splits_in), settings.SPLIT_TOLERANCE)
    return [
        ExpenseSplit(payer_id=share.payer_id, percentage=share.percentage, amount=share.amount)
        for share in shares
    ]


def _build_payments(
    expense: Any, card: Optional[CreditCard], today: date, skip_periods: Iterable[Tuple[int, int]] = ()
) -> List[ExpensePayment]:
    skip = set(skip_periods)
    payments = []
    for entry in generate_schedule(expense, card, settings.DEFAULT_RECURRING_MONTHS):
        if (entry.year, entry.month) in skip:
            continue
        payments.append(
            ExpensePayment(
                month=entry.month,
                year=entry.year,
                amount=entry.amount,
                due_date=entry.due_date,
                status=resolve_status(entry.status, entry.due_date, today),
            )
        )
    return payments


# ────────────────────────────────────────────────────────────────────────────────
# WRITES
# ────────────────────────────────────────────────────────────────────────────────
@with_db_retry()
async def create_expense_for_user(
    user_id: uuid.UUID, expense_in: ExpenseCreate, db: AsyncSession, today: Optional[date] = None
) -> Expense:
    """
    Persist an expense together with its splits and its payment schedule.

    Splits and schedule are computed before anything touches the session, so
    a domain error leaves the database untouched. The expense, its splits and
    its payments go out in a single commit.
    """
    today = today or date.today()
    values = expense_in.model_dump(exclude={"splits"})
    card = await _check_references(user_id, values, db)

    if values.get("installment_amount") is None:
        values["installment_amount"] = derive_installment_amount(
            values["total_amount"], values["type"], values.get("number_of_installments")
        )
    if values["type"] == ExpenseType.CREDIT_CARD and card is None:
        raise InvalidInputError("Credit card expenses need a credit card")

    expense = Expense(**values, user_id=user_id)
    if expense.is_divided:
        await _check_payers(user_id, [s.payer_id for s in expense_in.splits], db)
        splits = _build_splits(expense, expense_in.splits)
    else:
        splits = []
    payments = _build_payments(expense, card, today)

    expense.splits = splits
    expense.payments = payments
    try:
        db.add(expense)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Created expense {expense.id} with {len(payments)} payments and {len(splits)} splits")
    return await get_expense_by_id(expense.id, user_id, db, refresh=True)


async def update_expense(
    expense: Expense,
    expense_in: ExpenseUpdate,
    db: AsyncSession,
    today: Optional[date] = None,
) -> Expense:
    """
    Apply a partial update.

    When a schedule field changes the unpaid payments are replaced by a freshly
    generated schedule; PAID payments stay as they are and their periods are
    not generated again. Splits are recomputed when the split set or the
    amounts change.
    """
    today = today or date.today()
    changes = expense_in.model_dump(exclude_unset=True, exclude={"splits"})
    for required in ("buyer_id", "description", "total_amount", "type", "start_date"):
        if required in changes and changes[required] is None:
            raise InvalidInputError(f"{required} cannot be empty")

    merged = {
        "buyer_id": changes.get("buyer_id"),
        "payer_id": changes.get("payer_id"),
        "category_id": changes.get("category_id"),
        "credit_card_id": changes.get("credit_card_id", expense.credit_card_id),
    }
    card = await _check_references(expense.user_id, merged, db)

    if "installment_amount" not in changes and {"total_amount", "type", "number_of_installments"} & changes.keys():
        changes["installment_amount"] = derive_installment_amount(
            changes.get("total_amount", expense.total_amount),
            changes.get("type", expense.type),
            changes.get("number_of_installments", expense.number_of_installments),
        )

    # Nothing touches the ORM row until the new state has been validated
    proposed = SimpleNamespace(**{field: getattr(expense, field) for field in PREVIEW_FIELDS})
    for field, value in changes.items():
        if field in PREVIEW_FIELDS:
            setattr(proposed, field, value)

    if proposed.type == ExpenseType.CREDIT_CARD and card is None:
        raise InvalidInputError("Credit card expenses need a credit card")

    resplit = expense_in.splits is not None or bool(SPLIT_FIELDS & changes.keys())
    reschedule = bool(SCHEDULE_FIELDS & changes.keys())

    new_splits = None
    if resplit:
        if proposed.is_divided:
            source = expense_in.splits
            if source is None:
                source = [SplitIn(payer_id=s.payer_id, percentage=s.percentage) for s in expense.splits]
            await _check_payers(expense.user_id, [s.payer_id for s in source], db)
            new_splits = _build_splits(proposed, source)
        else:
            new_splits = []

    new_payments = None
    kept_payments = list(expense.payments)
    if reschedule:
        kept_payments = [p for p in expense.payments if p.status == PaymentStatus.PAID]
        paid_periods = [(p.year, p.month) for p in kept_payments]
        new_payments = _build_payments(proposed, card, today, skip_periods=paid_periods)

    for field, value in changes.items():
        setattr(expense, field, value)

    try:
        # Flush the removals first so the unique (expense, period) and
        # (expense, payer) constraints never see old and new rows together
        if new_splits is not None:
            expense.splits = []
        if new_payments is not None:
            expense.payments = kept_payments
        await db.flush()

        if new_splits is not None:
            expense.splits = new_splits
        if new_payments is not None:
            expense.payments = kept_payments + new_payments
        db.add(expense)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Updated expense {expense.id} (resplit={resplit}, reschedule={reschedule})")
    return await get_expense_by_id(expense.id, expense.user_id, db, refresh=True)


async def duplicate_expense(expense: Expense, db: AsyncSession, today: Optional[date] = None) -> Expense:
    """Copy an expense with a fresh schedule; payments are never copied."""
    copy_in = ExpenseCreate(
        description=f"{expense.description}{COPY_SUFFIX}"[:255],
        supplier=expense.supplier,
        total_amount=expense.total_amount,
        installment_amount=expense.installment_amount,
        type=expense.type,
        start_date=expense.start_date,
        due_day=expense.due_day,
        purchase_date=expense.purchase_date,
        is_installment=expense.is_installment,
        number_of_installments=expense.number_of_installments,
        number_of_months=expense.number_of_months,
        is_divided=expense.is_divided,
        payer_id=expense.payer_id,
        buyer_id=expense.buyer_id,
        category_id=expense.category_id,
        credit_card_id=expense.credit_card_id,
        notes=expense.notes,
        splits=[SplitIn(payer_id=s.payer_id, percentage=s.percentage) for s in expense.splits],
    )
    return await create_expense_for_user(expense.user_id, copy_in, db, today=today)


async def toggle_pause(expense: Expense, db: AsyncSession) -> Expense:
    expense.paused = not expense.paused
    db.add(expense)
    await db.commit()
    return await get_expense_by_id(expense.id, expense.user_id, db, refresh=True)


async def delete_expense(expense: Expense, db: AsyncSession) -> None:
    await db.delete(expense)
    await db.commit()
    logger.info(f"Deleted expense {expense.id}")
