# partilio/api/v1/routes/dashboard.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Dict, Any
from datetime import date

from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.crud.expense import get_all_expenses_for_user
from partilio.crud.payment import get_payments_for_user, refresh_payment_statuses
from partilio.utils.reports import (
    category_breakdown,
    change_direction,
    dashboard_summary,
    end_of_month,
    monthly_total,
    period_label,
    previous_period,
    trends,
    upcoming_dues,
)
from partilio.utils.financial import percentage_change
from partilio.api.deps import require_onboarding

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

async def _month_payments(user: User, month: int, year: int, db: AsyncSession):
    payments = await get_payments_for_user(user.id, db, month=month, year=year)
    # Paused expenses are left out of every dashboard figure
    return [p for p in payments if not p.expense.paused]

@router.get("")
async def get_dashboard(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
) -> Dict[str, Any]:
    """
    Everything the dashboard screen shows for one month:
    - summary: totals by status and what each payer owes
    - category_breakdown: spend per category
    - upcoming_dues: next unpaid payments until the end of the month
    - trends: comparison with the previous month
    """
    today = date.today()
    month = month or today.month
    year = year or today.year
    await refresh_payment_statuses(user.id, db, today)

    current = await _month_payments(user, month, year, db)
    prev_month, prev_year = previous_period(month, year)
    previous = await _month_payments(user, prev_month, prev_year, db)

    return {
        "period": {"month": month, "year": year},
        "summary": dashboard_summary(current),
        "category_breakdown": category_breakdown(current),
        "upcoming_dues": upcoming_dues(current, today, end_of_month(year, month)),
        "trends": trends(current, previous),
    }

@router.get("/quick-stats")
async def get_quick_stats(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
) -> Dict[str, Any]:
    today = date.today()
    prev_month, prev_year = previous_period(today.month, today.year)

    current_total = monthly_total(await _month_payments(user, today.month, today.year, db))
    previous_total = monthly_total(await _month_payments(user, prev_month, prev_year, db))
    year_payments = await get_payments_for_user(user.id, db, year=today.year)
    year_to_date = monthly_total(p for p in year_payments if not p.expense.paused and p.month <= today.month)
    expenses = await get_all_expenses_for_user(user.id, db, active=True)

    change = percentage_change(previous_total, current_total)
    return {
        "current_month": {"amount": current_total, "period": period_label(today.month, today.year)},
        "previous_month": {"amount": previous_total, "period": period_label(prev_month, prev_year)},
        "monthly_change": {"percentage": change, "direction": change_direction(change)},
        "year_to_date": {"amount": year_to_date, "period": str(today.year)},
        "total_expenses": len(expenses),
    }
