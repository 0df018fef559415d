import os

# Settings are read at import time; point them at a throwaway database first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./partilio_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import uuid
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from partilio.core.database import Base
from partilio.core.auth import User
from partilio.models.payer import Payer
from partilio.models.category import Category
from partilio.models.credit_card import CreditCard
from partilio.models import expense as _expense_models  # noqa: F401  registers expense tables


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'partilio.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(db):
    user = User(
        id=uuid.uuid4(),
        email=f"{uuid.uuid4().hex[:8]}@example.com",
        hashed_password="not-a-real-hash",
        is_active=True,
        is_superuser=False,
        is_verified=True,
        full_name="Ana Souza",
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
def make_payer(db, user):
    async def _make(name="Ana", active=True):
        payer = Payer(user_id=user.id, name=name, active=active)
        db.add(payer)
        await db.commit()
        return payer
    return _make


@pytest.fixture
async def payer(make_payer):
    return await make_payer("Ana")


@pytest.fixture
async def category(db, user):
    category = Category(user_id=user.id, name="Moradia", color="#4f46e5")
    db.add(category)
    await db.commit()
    return category


@pytest.fixture
async def card(db, user, payer):
    card = CreditCard(user_id=user.id, payer_id=payer.id, name="Nubank", closing_day=10, due_day=5)
    db.add(card)
    await db.commit()
    return card
