# partilio/api/v1/routes/credit_cards.py
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional
import uuid

from partilio.schemas.credit_card import CreditCardCreate, CreditCardRead, CreditCardUpdate
from partilio.schemas.payer import PayerRef
from partilio.crud.credit_card import (
    create_credit_card_for_user,
    get_credit_cards_for_user,
    get_credit_card_by_id,
    get_credit_card_by_name,
    update_credit_card,
    toggle_credit_card_active,
    delete_credit_card,
)
from partilio.crud.payer import get_payer_by_id
from partilio.crud.payment import get_payments_for_user
from partilio.utils.reports import card_due_date, card_usage
from partilio.core.database import get_async_session
from partilio.core.auth import User
from partilio.api.deps import get_current_user

router = APIRouter(prefix="/credit-cards", tags=["credit-cards"])

async def _get_owned_card(card_id: uuid.UUID, user: User, db: AsyncSession):
    card = await get_credit_card_by_id(card_id, user.id, db)
    if not card:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Credit card not found")
    return card

async def _check_payer(payer_id: Optional[uuid.UUID], user: User, db: AsyncSession) -> None:
    if payer_id and not await get_payer_by_id(payer_id, user.id, db):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Payer not found")

def _period(month: Optional[int], year: Optional[int]):
    today = date.today()
    return month or today.month, year or today.year

def _card_payments(payments, card_id: uuid.UUID):
    return [p for p in payments if p.expense.credit_card_id == card_id]

@router.get("", response_model=List[CreditCardRead])
async def read_credit_cards(
    active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await get_credit_cards_for_user(user.id, db, active=active)

@router.post("", response_model=CreditCardRead, status_code=status.HTTP_201_CREATED)
async def create_credit_card(
    card_in: CreditCardCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    await _check_payer(card_in.payer_id, user, db)
    if await get_credit_card_by_name(card_in.name, user.id, db):
        raise HTTPException(status.HTTP_409_CONFLICT, detail="A credit card with this name already exists")
    return await create_credit_card_for_user(user.id, card_in, db)

@router.get("/upcoming-due-dates", response_model=Dict[str, Any])
async def read_upcoming_due_dates(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    """Bill due date and amount of every active card for a month, soonest first."""
    month, year = _period(month, year)
    today = date.today()
    cards = await get_credit_cards_for_user(user.id, db, active=True)
    payments = await get_payments_for_user(user.id, db, month=month, year=year)

    due_dates = []
    for card in cards:
        usage = card_usage(card, _card_payments(payments, card.id))
        due = card_due_date(card, month, year)
        due_dates.append({
            "credit_card": {
                "id": card.id,
                "name": card.name,
                "holder": card.holder,
                "due_day": card.due_day,
                "limit": card.limit,
                "payer": PayerRef.model_validate(card.payer) if card.payer else None,
            },
            "due_date": due,
            "amount": usage["total_amount"],
            "transaction_count": usage["transaction_count"],
            "days_until_due": (due - today).days,
        })
    due_dates.sort(key=lambda d: d["due_date"])
    return {"period": {"month": month, "year": year}, "due_dates": due_dates}

@router.get("/{card_id}", response_model=CreditCardRead)
async def read_credit_card(
    card_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    return await _get_owned_card(card_id, user, db)

@router.put("/{card_id}", response_model=CreditCardRead)
async def update_credit_card_endpoint(
    card_id: uuid.UUID,
    card_in: CreditCardUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    card = await _get_owned_card(card_id, user, db)
    await _check_payer(card_in.payer_id, user, db)
    if card_in.name:
        existing = await get_credit_card_by_name(card_in.name, user.id, db)
        if existing and existing.id != card.id:
            raise HTTPException(status.HTTP_409_CONFLICT, detail="A credit card with this name already exists")
    return await update_credit_card(card, card_in, db)

@router.patch("/{card_id}/toggle-active", response_model=CreditCardRead)
async def toggle_credit_card(
    card_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    card = await _get_owned_card(card_id, user, db)
    return await toggle_credit_card_active(card, db)

@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_credit_card_endpoint(
    card_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    card = await _get_owned_card(card_id, user, db)
    await delete_credit_card(card, db)
    return None

@router.get("/{card_id}/usage-summary", response_model=Dict[str, Any])
async def read_usage_summary(
    card_id: uuid.UUID,
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(get_current_user),
):
    card = await _get_owned_card(card_id, user, db)
    month, year = _period(month, year)
    payments = await get_payments_for_user(user.id, db, month=month, year=year)
    return {
        "credit_card": CreditCardRead.model_validate(card),
        "period": {"month": month, "year": year},
        "usage": card_usage(card, _card_payments(payments, card.id)),
    }
