"""Intake aggregation queries for a user's local calendar days.

Days are bounded by local midnight in the user's zone; days with no
food entries come back as zeros.
"""

from __future__ import annotations

import uuid
from datetime import date, tzinfo
from typing import TypedDict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fluxcal.core.time import day_bounds
from fluxcal.db.models import FoodEntry


class DayStats(TypedDict):
    """Intake totals for a single local day."""

    date: date
    calories: float
    protein: float
    carbs: float
    fat: float
    entries: int


async def day_stats(
    session: AsyncSession,
    user_id: uuid.UUID,
    day: date,
    tz: tzinfo,
) -> DayStats:
    """Sum of calories and macros logged on *day* (local to *tz*).

    Returns zeros if no food exists for the day.
    """
    start, end = day_bounds(day, tz)
    stmt = select(
        func.coalesce(func.sum(FoodEntry.calories), 0.0).label("calories"),
        func.coalesce(func.sum(FoodEntry.protein), 0.0).label("protein"),
        func.coalesce(func.sum(FoodEntry.carbs), 0.0).label("carbs"),
        func.coalesce(func.sum(FoodEntry.fat), 0.0).label("fat"),
        func.count(FoodEntry.id).label("entries"),
    ).where(
        FoodEntry.user_id == user_id,
        FoodEntry.timestamp >= start,
        FoodEntry.timestamp < end,
    )
    row = (await session.execute(stmt)).one()
    return DayStats(
        date=day,
        calories=float(row.calories),
        protein=float(row.protein),
        carbs=float(row.carbs),
        fat=float(row.fat),
        entries=int(row.entries),
    )


async def daily_stats(
    session: AsyncSession,
    user_id: uuid.UUID,
    days: list[date],
    tz: tzinfo,
) -> list[DayStats]:
    """Per-day totals for a list of local dates, in the same order."""
    return [await day_stats(session, user_id, d, tz) for d in days]
