# partilio/crud/payer.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
from partilio.models.payer import Payer
from typing import List, Optional
import uuid
from partilio.schemas.payer import PayerCreate, PayerUpdate

async def get_payers_for_user(user_id: uuid.UUID, db: AsyncSession, active: Optional[bool] = None) -> List[Payer]:
    query = select(Payer).where(Payer.user_id == user_id)
    if active is not None:
        query = query.where(Payer.active == active)
    result = await db.execute(query.order_by(Payer.name))
    return result.scalars().all()

async def get_payer_by_id(payer_id: uuid.UUID, user_id: uuid.UUID, db: AsyncSession) -> Optional[Payer]:
    result = await db.execute(
        select(Payer).where(Payer.id == payer_id, Payer.user_id == user_id)
    )
    return result.scalar_one_or_none()

async def get_payer_by_name(name: str, user_id: uuid.UUID, db: AsyncSession) -> Optional[Payer]:
    """Case-insensitive lookup of a payer by name for a given user."""
    result = await db.execute(
        select(Payer).where(
            Payer.user_id == user_id,
            func.lower(Payer.name) == func.lower(name),
        )
    )
    return result.scalars().first()

async def get_default_payer(user_id: uuid.UUID, db: AsyncSession) -> Optional[Payer]:
    """The user's oldest active payer."""
    result = await db.execute(
        select(Payer)
        .where(Payer.user_id == user_id, Payer.active.is_(True))
        .order_by(Payer.created_at)
        .limit(1)
    )
    return result.scalars().first()

async def count_active_payers(user_id: uuid.UUID, db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Payer.id)).where(Payer.user_id == user_id, Payer.active.is_(True))
    )
    return result.scalar_one()

async def create_payer_for_user(user_id: uuid.UUID, payer_in: PayerCreate, db: AsyncSession) -> Payer:
    new_payer = Payer(**payer_in.model_dump(), user_id=user_id)
    db.add(new_payer)
    await db.commit()
    await db.refresh(new_payer)
    return new_payer

async def update_payer(payer: Payer, payer_in: PayerUpdate, db: AsyncSession) -> Payer:
    for field, value in payer_in.model_dump(exclude_unset=True).items():
        setattr(payer, field, value)
    db.add(payer)
    await db.commit()
    await db.refresh(payer)
    return payer

async def toggle_payer_active(payer: Payer, db: AsyncSession) -> Payer:
    payer.active = not payer.active
    db.add(payer)
    await db.commit()
    await db.refresh(payer)
    return payer

async def delete_payer(payer: Payer, db: AsyncSession) -> None:
    await db.delete(payer)
    await db.commit()
