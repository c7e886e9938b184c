"""Shared test fixtures for async DB tests.

Uses an in-memory SQLite database (via aiosqlite) so tests run
without an external PostgreSQL instance.
"""

from __future__ import annotations

import os

# Settings() requires DATABASE_URL; tests never connect through it.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fluxcal.db.models import Base, FoodEntry, User
from fluxcal.db.session import configure_sqlite
from fluxcal.services.tracker import EnergyLedger


def utc(*args: int) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
async def engine():
    """Create an async in-memory SQLite engine with all tables."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    configure_sqlite(eng)

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng
    await eng.dispose()


@pytest.fixture
async def session(engine):
    """Yield an async session bound to the test engine."""
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture
async def test_user(session: AsyncSession) -> User:
    """A user in UTC with no biometrics yet."""
    user = User(
        id=uuid.uuid4(),
        tz_mode="offset",
        tz_offset_minutes=0,
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def profiled_user(session: AsyncSession) -> User:
    """An onboarded user in UTC: BMR 1699, TDEE 2336, no goal.

    Tracking started 2026-06-01 00:00 and the persisted balance anchor is
    0 kcal at 2026-06-02 12:00.
    """
    user = User(
        id=uuid.uuid4(),
        weight=75.0,
        height=175.0,
        age=30,
        gender="male",
        activity_level="light",
        tz_mode="offset",
        tz_offset_minutes=0,
        fasting_tracking_start_date=utc(2026, 6, 1),
        cumulative_net_calories=0.0,
        last_balance_update_date=utc(2026, 6, 2, 12),
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
def ledger() -> EnergyLedger:
    """A fresh, test-local balance ledger."""
    return EnergyLedger()


async def count_food(session: AsyncSession, user: User) -> int:
    """Number of food entries stored for *user*."""
    return await session.scalar(select(func.count(FoodEntry.id)).where(FoodEntry.user_id == user.id))


def make_food(
    user: User,
    timestamp: datetime,
    calories: float = 500.0,
    name: str = "Test food",
    protein: float | None = 30.0,
    carbs: float | None = 50.0,
    fat: float | None = 20.0,
) -> FoodEntry:
    """Helper to build a FoodEntry instance for testing."""
    return FoodEntry(
        user_id=user.id,
        name=name,
        calories=calories,
        timestamp=timestamp,
        protein=protein,
        carbs=carbs,
        fat=fat,
    )
