# partilio/api/v1/routes/payers.py
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional
import uuid

from partilio.schemas.payer import PayerCreate, PayerRead, PayerRef, PayerUpdate
from partilio.crud.payer import (
    create_payer_for_user,
    get_payers_for_user,
    get_payer_by_id,
    get_payer_by_name,
    update_payer,
    toggle_payer_active,
    delete_payer,
)
from partilio.crud.expense import count_expenses_for_payer
from partilio.crud.payment import get_payments_for_user
from partilio.utils.reports import payer_stats
from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.api.deps import get_current_user

router = APIRouter(prefix="/payers", tags=["payers"])

async def _get_owned_payer(payer_id: uuid.UUID, user: User, db: AsyncSession):
    payer = await get_payer_by_id(payer_id, user.id, db)
    if not payer:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Payer not found")
    return payer

@router.get("", response_model=List[PayerRead])
async def read_payers(
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await get_payers_for_user(user.id, db, active=active)

@router.post("", response_model=PayerRead, status_code=status.HTTP_201_CREATED)
async def create_payer(
    payer_in: PayerCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    if await get_payer_by_name(payer_in.name, user.id, db):
        raise HTTPException(status.HTTP_409_CONFLICT, detail="A payer with this name already exists")
    return await create_payer_for_user(user.id, payer_in, db)

@router.get("/{payer_id}", response_model=PayerRead)
async def read_payer(
    payer_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await _get_owned_payer(payer_id, user, db)

@router.put("/{payer_id}", response_model=PayerRead)
async def update_payer_endpoint(
    payer_id: uuid.UUID,
    payer_in: PayerUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    payer = await _get_owned_payer(payer_id, user, db)
    if payer_in.name:
        existing = await get_payer_by_name(payer_in.name, user.id, db)
        if existing and existing.id != payer.id:
            raise HTTPException(status.HTTP_409_CONFLICT, detail="A payer with this name already exists")
    return await update_payer(payer, payer_in, db)

@router.patch("/{payer_id}/toggle-active", response_model=PayerRead)
async def toggle_payer(
    payer_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    payer = await _get_owned_payer(payer_id, user, db)
    return await toggle_payer_active(payer, db)

@router.delete("/{payer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payer_endpoint(
    payer_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    payer = await _get_owned_payer(payer_id, user, db)
    if await count_expenses_for_payer(payer.id, db):
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail="Payer is referenced by expenses; deactivate it instead",
        )
    await delete_payer(payer, db)
    return None

@router.get("/{payer_id}/stats", response_model=Dict[str, Any])
async def read_payer_stats(
    payer_id: uuid.UUID,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    """What the payer bought and owes in a month (defaults to the current one)."""
    payer = await _get_owned_payer(payer_id, user, db)
    today = date.today()
    month = month or today.month
    year = year or today.year
    payments = await get_payments_for_user(user.id, db, month=month, year=year)
    return {
        "payer": PayerRef.model_validate(payer),
        "period": {"month": month, "year": year},
        **payer_stats(payer.id, payments),
    }
