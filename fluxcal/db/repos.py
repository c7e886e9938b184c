"""Database repositories: thin CRUD layer over SQLAlchemy models.

Every food and summary query is scoped to one ``user_id``; a row that
belongs to someone else behaves exactly like a missing row.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fluxcal.db.models import FastingStateSummary, FoodEntry, User


# ---------------------------------------------------------------------------
# UserRepo
# ---------------------------------------------------------------------------
class UserRepo:
    """CRUD operations for the ``users`` table."""

    @staticmethod
    async def get(session: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key (``None`` if missing)."""
        return await session.get(User, user_id)

    @staticmethod
    async def create(session: AsyncSession, **fields: Any) -> User:
        """Insert a new user row.

        Args:
            session: Active async session.
            **fields: Column values matching ``User`` attributes.

        Returns:
            The created ``User``.
        """
        user = User(**fields)
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def update_fields(session: AsyncSession, user_id: uuid.UUID, **fields: Any) -> User | None:
        """Apply a partial update (explicit ``None`` clears a column).

        Returns:
            The updated ``User`` or ``None`` if no such user exists.
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**fields)
            .returning(User)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def set_balance_anchor(
        session: AsyncSession,
        user_id: uuid.UUID,
        value: float,
        timestamp: datetime | None,
    ) -> User | None:
        """Persist the energy-balance anchor (value true at *timestamp*)."""
        return await UserRepo.update_fields(
            session, user_id, cumulative_net_calories=value, last_balance_update_date=timestamp
        )

    @staticmethod
    async def set_buffer(
        session: AsyncSession,
        user_id: uuid.UUID,
        amount: int,
        for_date: str,
    ) -> User | None:
        """Store a single-use buffer for the ``YYYY-MM-DD`` day *for_date*."""
        return await UserRepo.update_fields(
            session, user_id, buffer_amount=amount, buffer_for_date=for_date
        )

    @staticmethod
    async def clear_buffer(session: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Remove any stored buffer."""
        return await UserRepo.update_fields(
            session, user_id, buffer_amount=None, buffer_for_date=None
        )

    @staticmethod
    async def list_profiled(session: AsyncSession) -> list[User]:
        """Users whose five biometric fields are all set."""
        stmt = select(User).where(
            User.weight.is_not(None),
            User.height.is_not(None),
            User.age.is_not(None),
            User.gender.is_not(None),
            User.activity_level.is_not(None),
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_tracking(session: AsyncSession) -> list[User]:
        """Users with a fasting tracking start or at least one food entry."""
        has_food = select(FoodEntry.id).where(FoodEntry.user_id == User.id).exists()
        stmt = select(User).where(or_(User.fasting_tracking_start_date.is_not(None), has_food))
        result = await session.execute(stmt)
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# FoodRepo
# ---------------------------------------------------------------------------
class FoodRepo:
    """CRUD operations for the ``food_items`` table."""

    @staticmethod
    async def create(session: AsyncSession, **fields: Any) -> FoodEntry:
        """Insert a new food entry.

        Returns:
            The created ``FoodEntry`` (with its id assigned).
        """
        food = FoodEntry(**fields)
        session.add(food)
        await session.flush()
        return food

    @staticmethod
    async def get_by_id(
        session: AsyncSession,
        food_id: int,
        user_id: uuid.UUID,
    ) -> FoodEntry | None:
        """Fetch a food entry owned by *user_id*."""
        stmt = select(FoodEntry).where(FoodEntry.id == food_id, FoodEntry.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_in_range(
        session: AsyncSession,
        user_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> list[FoodEntry]:
        """Food entries with ``start <= timestamp < end``, oldest first."""
        stmt = (
            select(FoodEntry)
            .where(
                FoodEntry.user_id == user_id,
                FoodEntry.timestamp >= start,
                FoodEntry.timestamp < end,
            )
            .order_by(FoodEntry.timestamp, FoodEntry.id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def update(
        session: AsyncSession,
        food_id: int,
        user_id: uuid.UUID,
        **fields: Any,
    ) -> FoodEntry | None:
        """Update name/calories/timestamp of an owned entry.

        Returns:
            The updated ``FoodEntry`` or ``None`` if not found / not owned.
        """
        stmt = (
            update(FoodEntry)
            .where(FoodEntry.id == food_id, FoodEntry.user_id == user_id)
            .values(**fields)
            .returning(FoodEntry)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(session: AsyncSession, food_id: int, user_id: uuid.UUID) -> bool:
        """Delete one owned entry.

        Returns:
            ``True`` if a row was removed, ``False`` otherwise.
        """
        stmt = delete(FoodEntry).where(FoodEntry.id == food_id, FoodEntry.user_id == user_id)
        result = await session.execute(stmt)
        return result.rowcount > 0  # type: ignore[union-attr]

    @staticmethod
    async def delete_all(session: AsyncSession, user_id: uuid.UUID) -> int:
        """Delete every entry of *user_id*; returns the number removed."""
        stmt = delete(FoodEntry).where(FoodEntry.user_id == user_id)
        result = await session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]

    @staticmethod
    async def most_recent(session: AsyncSession, user_id: uuid.UUID) -> FoodEntry | None:
        """Latest entry by timestamp across the whole log."""
        stmt = (
            select(FoodEntry)
            .where(FoodEntry.user_id == user_id)
            .order_by(FoodEntry.timestamp.desc(), FoodEntry.id.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# FastingSummaryRepo
# ---------------------------------------------------------------------------
class FastingSummaryRepo:
    """CRUD operations for the ``fasting_state_summaries`` table."""

    @staticmethod
    async def upsert(
        session: AsyncSession,
        user_id: uuid.UUID,
        date: str,
        **seconds: int,
    ) -> FastingStateSummary:
        """Insert or overwrite the row for ``(user_id, date)``.

        Args:
            session: Active async session.
            user_id: Owner's user ID.
            date: ``YYYY-MM-DD`` day key.
            **seconds: The five ``*_seconds`` columns.
        """
        stmt = select(FastingStateSummary).where(
            FastingStateSummary.user_id == user_id,
            FastingStateSummary.date == date,
        )
        row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            row = FastingStateSummary(user_id=user_id, date=date, **seconds)
            session.add(row)
        else:
            for key, value in seconds.items():
                setattr(row, key, value)
        await session.flush()
        return row

    @staticmethod
    async def list_since(
        session: AsyncSession,
        user_id: uuid.UUID,
        since: str,
    ) -> list[FastingStateSummary]:
        """Rows with ``date >= since``, newest first."""
        stmt = (
            select(FastingStateSummary)
            .where(
                FastingStateSummary.user_id == user_id,
                FastingStateSummary.date >= since,
            )
            .order_by(FastingStateSummary.date.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete_before(session: AsyncSession, user_id: uuid.UUID, cutoff: str) -> int:
        """Delete rows with ``date < cutoff``; returns the number removed."""
        stmt = delete(FastingStateSummary).where(
            FastingStateSummary.user_id == user_id,
            FastingStateSummary.date < cutoff,
        )
        result = await session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]

    @staticmethod
    async def delete_all(session: AsyncSession, user_id: uuid.UUID) -> int:
        stmt = delete(FastingStateSummary).where(FastingStateSummary.user_id == user_id)
        result = await session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]
