# partilio/api/v1/routes/categories.py
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional
import uuid

from partilio.schemas.category import CategoryCreate, CategoryRead, CategoryUpdate
from partilio.crud.category import (
    create_category_for_user,
    get_categories_for_user,
    get_category_by_id,
    get_category_by_name_for_user,
    update_category,
    toggle_category_active,
    delete_category,
    seed_default_categories_for_user,
)
from partilio.crud.expense import count_expenses_for_category
from partilio.crud.payment import get_payments_for_user
from partilio.utils.reports import category_usage
from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.api.deps import get_current_user

router = APIRouter(prefix="/categories", tags=["categories"])

async def _get_owned_category(category_id: uuid.UUID, user: User, db: AsyncSession):
    category = await get_category_by_id(category_id, user.id, db)
    if not category:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category

@router.get("", response_model=List[CategoryRead])
async def read_categories(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await get_categories_for_user(user.id, db)

@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    cat_in: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    if await get_category_by_name_for_user(cat_in.name, user.id, db):
        raise HTTPException(status.HTTP_409_CONFLICT, detail="A category with this name already exists")
    return await create_category_for_user(user.id, cat_in, db)

@router.post("/seed-defaults", response_model=List[CategoryRead], status_code=status.HTTP_201_CREATED)
async def seed_default_categories(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    """Create whichever default categories the user does not have yet."""
    return await seed_default_categories_for_user(user.id, db)

@router.get("/usage-stats", response_model=Dict[str, Any])
async def read_category_usage(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    today = date.today()
    month = month or today.month
    year = year or today.year
    payments = await get_payments_for_user(user.id, db, month=month, year=year)
    usage = category_usage(payments)
    return {"period": {"month": month, "year": year}, "categories": usage, "total_categories": len(usage)}

@router.get("/{category_id}", response_model=CategoryRead)
async def read_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await _get_owned_category(category_id, user, db)

@router.put("/{category_id}", response_model=CategoryRead)
async def update_category_endpoint(
    category_id: uuid.UUID,
    cat_in: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    category = await _get_owned_category(category_id, user, db)
    if cat_in.name:
        existing = await get_category_by_name_for_user(cat_in.name, user.id, db)
        if existing and existing.id != category.id:
            raise HTTPException(status.HTTP_409_CONFLICT, detail="A category with this name already exists")
    return await update_category(category, cat_in, db)

@router.patch("/{category_id}/toggle-active", response_model=CategoryRead)
async def toggle_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    category = await _get_owned_category(category_id, user, db)
    return await toggle_category_active(category, db)

@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category_endpoint(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    category = await _get_owned_category(category_id, user, db)
    if await count_expenses_for_category(category.id, db):
        raise HTTPException(status.HTTP_409_CONFLICT, detail="Category is used by expenses")
    await delete_category(category, db)
    return None
