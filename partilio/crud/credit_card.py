# partilio/crud/credit_card.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
from partilio.models.credit_card import CreditCard
from typing import List, Optional
import uuid
from partilio.schemas.credit_card import CreditCardCreate, CreditCardUpdate

async def get_credit_cards_for_user(
    user_id: uuid.UUID, db: AsyncSession, active: Optional[bool] = None
) -> List[CreditCard]:
    query = select(CreditCard).where(CreditCard.user_id == user_id)
    if active is not None:
        query = query.where(CreditCard.active == active)
    result = await db.execute(query.order_by(CreditCard.name))
    return result.scalars().all()

async def get_credit_card_by_id(card_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[CreditCard]:
    result = await db.execute(
        select(CreditCard).where(CreditCard.id == card_id, CreditCard.user_id == user_id)
    )
    return result.scalar_one_or_none()

async def get_credit_card_by_name(name: str, user_id: uuid.UUID, db: AsyncSession) -> Optional[CreditCard]:
    result = await db.execute(
        select(CreditCard).where(
            CreditCard.user_id == user_id,
            func.lower(CreditCard.name) == func.lower(name),
        )
    )
    return result.scalars().first()

async def create_credit_card_for_user(user_id: uuid.UUID, card_in: CreditCardCreate, db: AsyncSession) -> CreditCard:
    new_card = CreditCard(**card_in.model_dump(), user_id=user_id)
    db.add(new_card)
    await db.commit()
    await db.refresh(new_card)
    return new_card

async def update_credit_card(card: CreditCard, card_in: CreditCardUpdate, db: AsyncSession) -> CreditCard:
    for field, value in card_in.model_dump(exclude_unset=True).items():
        setattr(card, field, value)
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card

async def toggle_credit_card_active(card: CreditCard, db: AsyncSession) -> CreditCard:
    card.active = not card.active
    db.add(card)
    await db.commit()
    await db.refresh(card)
    return card

async def delete_credit_card(card: CreditCard, db: AsyncSession) -> None:
    await db.delete(card)
    await db.commit()
