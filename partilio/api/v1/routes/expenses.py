# partilio/api/v1/routes/expenses.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from partilio.core.config import settings
from partilio.models.expense import ExpenseType
from partilio.schemas.expense import (
    ExpenseCreate,
    ExpensePage,
    ExpenseRead,
    ExpenseUpdate,
    Pagination,
    SplitPreview,
    SplitPreviewRequest,
)
from partilio.crud.expense import (
    create_expense_for_user,
    delete_expense,
    duplicate_expense,
    get_expense_by_id,
    get_expenses_for_user,
    toggle_pause,
    total_pages,
    update_expense,
)
from partilio.utils.splits import calculate_splits
from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.api.deps import require_onboarding

router = APIRouter(prefix="/expenses", tags=["expenses"])

async def _get_owned_expense(expense_id: uuid.UUID, user: User, db: AsyncSession):
    expense = await get_expense_by_id(expense_id, user.id, db)
    if not expense:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense

@router.get("", response_model=ExpensePage)
async def read_expenses(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category_id: Optional[uuid.UUID] = Query(None),
    payer_id: Optional[uuid.UUID] = Query(None, description="Matches buyer, payer or split participant"),
    type: Optional[ExpenseType] = Query(None),
    active: Optional[bool] = Query(True),
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    expenses, total = await get_expenses_for_user(
        user.id,
        db,
        page=page,
        limit=limit,
        category_id=category_id,
        payer_id=payer_id,
        expense_type=type,
        active=active,
        search=search,
    )
    return ExpensePage(
        data=[ExpenseRead.model_validate(e) for e in expenses],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages(total, limit)),
    )

@router.post("", response_model=ExpenseRead, status_code=status.HTTP_201_CREATED)
async def create_expense(
    expense_in: ExpenseCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    return await create_expense_for_user(user.id, expense_in, db)

@router.post("/split-preview", response_model=List[SplitPreview])
async def preview_split(
    preview_in: SplitPreviewRequest,
    user: User = Depends(require_onboarding),
):
    """Show how an amount would be divided without saving anything."""
    shares = calculate_splits(preview_in.amount, preview_in.splits, settings.SPLIT_TOLERANCE)
    return [SplitPreview(payer_id=s.payer_id, percentage=s.percentage, amount=s.amount) for s in shares]

@router.get("/{expense_id}", response_model=ExpenseRead)
async def read_expense(
    expense_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    return await _get_owned_expense(expense_id, user, db)

@router.put("/{expense_id}", response_model=ExpenseRead)
async def update_expense_endpoint(
    expense_id: uuid.UUID,
    expense_in: ExpenseUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    expense = await _get_owned_expense(expense_id, user, db)
    return await update_expense(expense, expense_in, db)

@router.post("/{expense_id}/duplicate", response_model=ExpenseRead, status_code=status.HTTP_201_CREATED)
async def duplicate_expense_endpoint(
    expense_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    expense = await _get_owned_expense(expense_id, user, db)
    return await duplicate_expense(expense, db)

@router.patch("/{expense_id}/toggle-pause", response_model=ExpenseRead)
async def toggle_pause_endpoint(
    expense_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    expense = await _get_owned_expense(expense_id, user, db)
    return await toggle_pause(expense, db)

@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense_endpoint(
    expense_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(require_onboarding),
):
    expense = await _get_owned_expense(expense_id, user, db)
    await delete_expense(expense, db)
    return None
