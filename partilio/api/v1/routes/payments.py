# partilio/api/v1/routes/payments.py
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from partilio.models.expense import PaymentStatus
from partilio.schemas.payment import (
    BulkMarkAsPaid,
    BulkMarkResult,
    DueDateUpdate,
    MarkAsPaid,
    PaymentRead,
    PaymentStats,
    StatusRefreshResult,
)
from partilio.crud.payment import (
    bulk_mark_as_paid,
    get_payment_by_id,
    get_payment_stats,
    get_payments_for_user,
    mark_as_paid,
    refresh_payment_statuses,
    revert_payment,
    update_due_date,
)
from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.api.deps import require_onboarding

router = APIRouter(prefix="/payments", tags=["payments"])

def _parse_statuses(raw: Optional[str]) -> List[PaymentStatus]:
    """Comma separated status list; unknown values are ignored."""
    if not raw:
        return []
    known = {s.value for s in PaymentStatus}
    return [PaymentStatus(s.strip().upper()) for s in raw.split(",") if s.strip().upper() in known]

@router.get("", response_model=List[PaymentRead])
async def read_payments(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    status_filter: Optional[str] = Query(None, alias="status", description="e.g. PENDING,OVERDUE"),
    expense_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    """List payments; stored statuses are brought up to date with today's date first."""
    await refresh_payment_statuses(user.id, db)
    return await get_payments_for_user(
        user.id, db, month=month, year=year, statuses=_parse_statuses(status_filter), expense_id=expense_id
    )

@router.get("/stats", response_model=PaymentStats)
async def read_payment_stats(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    today = date.today()
    await refresh_payment_statuses(user.id, db, today)
    return await get_payment_stats(user.id, month or today.month, year or today.year, db)

@router.post("/refresh-status", response_model=StatusRefreshResult)
async def refresh_statuses(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    return StatusRefreshResult(updated_count=await refresh_payment_statuses(user.id, db))

@router.post("/mark-paid", response_model=PaymentRead)
async def mark_payment_as_paid(
    mark_in: MarkAsPaid,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    payment = await mark_as_paid(user.id, mark_in, db)
    if not payment:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return payment

@router.post("/bulk-mark-paid", response_model=BulkMarkResult)
async def bulk_mark_payments_as_paid(
    bulk_in: BulkMarkAsPaid,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    payments = await bulk_mark_as_paid(user.id, bulk_in.payments, db)
    return BulkMarkResult(
        updated_count=len(payments),
        payments=[PaymentRead.model_validate(p) for p in payments],
    )

@router.patch("/{payment_id}/revert", response_model=PaymentRead)
async def revert_payment_endpoint(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    payment = await get_payment_by_id(payment_id, user.id, db)
    if not payment:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return await revert_payment(payment, db)

@router.patch("/{payment_id}/due-date", response_model=PaymentRead)
async def update_due_date_endpoint(
    payment_id: uuid.UUID,
    due_in: DueDateUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    payment = await get_payment_by_id(payment_id, user.id, db)
    if not payment:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Payment not found")
    return await update_due_date(payment, due_in.due_date, db)
