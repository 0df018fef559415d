# partilio/api/v1/routes/reports.py
import logging
from datetime import date, datetime
from enum import Enum
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
import uuid

from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.crud.category import get_categories_for_user
from partilio.crud.expense import get_all_expenses_for_user
from partilio.crud.payer import get_payers_for_user
from partilio.crud.payment import get_payments_for_user
from partilio.models.expense import ExpenseType, PaymentStatus
from partilio.utils.financial import shift_month
from partilio.utils.reports import (
    category_report,
    end_of_month,
    expense_report,
    financial_summary,
    payer_report,
)
from partilio.api.deps import require_onboarding

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])

class GroupBy(str, Enum):
    month = "month"
    quarter = "quarter"
    year = "year"

class ReportWindow(str, Enum):
    three_months = "3months"
    six_months = "6months"
    twelve_months = "12months"

WINDOW_MONTHS = {
    ReportWindow.three_months: 3,
    ReportWindow.six_months: 6,
    ReportWindow.twelve_months: 12,
}

def _window(months: int, today: date):
    """First day of the month `months - 1` back through the end of this month."""
    year, month = shift_month(today.year, today.month, -(months - 1))
    return date(year, month, 1), end_of_month(today.year, today.month)

def _resolve_range(start_date: Optional[date], end_date: Optional[date], months: int):
    if start_date and end_date:
        if start_date > end_date:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="start_date must not be after end_date")
        return start_date, end_date
    return _window(months, date.today())

def _meta(report_type: str, user: User) -> Dict[str, Any]:
    return {"generated_at": datetime.utcnow(), "report_type": report_type, "user_id": user.id}

@router.get("/expenses")
async def get_expense_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    category_id: Optional[uuid.UUID] = Query(None),
    payer_id: Optional[uuid.UUID] = Query(None),
    type: Optional[ExpenseType] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    group_by: GroupBy = Query(GroupBy.month),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
) -> Dict[str, Any]:
    """Payments in a date range (default: last 12 months) grouped by month, quarter or year."""
    start, end = _resolve_range(start_date, end_date, 12)
    expenses = await get_all_expenses_for_user(
        user.id, db, category_id=category_id, payer_id=payer_id, expense_type=type
    )
    expense_ids = {e.id for e in expenses}
    payments = await get_payments_for_user(
        user.id, db, statuses=[payment_status] if payment_status else None, start_date=start, end_date=end
    )
    payments = [p for p in payments if p.expense_id in expense_ids]

    report = expense_report(payments, group_by.value)
    logger.info(f"Expense report for user {user.id}: {report['summary']['total_periods']} periods")
    return {
        **report,
        "filters": {
            "start_date": start,
            "end_date": end,
            "category_id": category_id,
            "payer_id": payer_id,
            "type": type,
            "status": payment_status,
            "group_by": group_by,
        },
        "meta": _meta("expense_report", user),
    }

@router.get("/categories")
async def get_category_report(
    period: ReportWindow = Query(ReportWindow.six_months),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
) -> Dict[str, Any]:
    months = WINDOW_MONTHS[period]
    start, end = _window(months, date.today())
    categories = await get_categories_for_user(user.id, db)
    payments = await get_payments_for_user(user.id, db, start_date=start, end_date=end)

    report = category_report(categories, payments)
    report["summary"]["period"] = {"start": start, "end": end, "months": months}
    logger.info(f"Category report for user {user.id}: {report['summary']['total_categories']} categories")
    return {**report, "meta": _meta("category_report", user)}

@router.get("/payers")
async def get_payer_report(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
) -> Dict[str, Any]:
    """Share of the payments each payer owes in a date range (default: last 6 months)."""
    start, end = _resolve_range(start_date, end_date, 6)
    payers = await get_payers_for_user(user.id, db)
    payments = await get_payments_for_user(user.id, db, start_date=start, end_date=end)

    report = payer_report(payers, payments)
    report["summary"]["period"] = {"start": start, "end": end}
    logger.info(f"Payer report for user {user.id}: {report['summary']['total_payers']} payers")
    return {**report, "meta": _meta("payer_report", user)}

@router.get("/financial-summary")
async def get_financial_summary(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
) -> Dict[str, Any]:
    today = date.today()
    start, end = _window(12, today)
    payments = await get_payments_for_user(user.id, db, start_date=start, end_date=end)
    expenses = await get_all_expenses_for_user(user.id, db, active=True)

    summary = financial_summary(payments, expenses, today)
    logger.info(f"Financial summary for user {user.id}: {summary['totals']['spending']} over 12 months")
    return {**summary, "meta": _meta("financial_summary", user)}
