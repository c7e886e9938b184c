"""Persisted fasting-summary pass over the trailing window.

Deletes rows older than the retention window, recomputes every day in
the window from the food log and upserts one row per day.  Re-running
it with no new food produces identical rows, so an interrupted pass can
simply be repeated.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from fluxcal.core.config import get_settings
from fluxcal.core.time import (
    as_utc,
    date_key,
    local_date_from_utc,
    local_midnight,
    user_timezone,
    utc_now,
)
from fluxcal.db.models import FastingStateSummary, User
from fluxcal.db.repos import FastingSummaryRepo, FoodRepo, UserRepo
from fluxcal.services.fasting import summarize_days

logger = logging.getLogger(__name__)


async def recalculate_fasting_summaries(
    session: AsyncSession,
    user: User,
    now: datetime | None = None,
) -> list[FastingStateSummary]:
    """Recompute and store per-day stage totals for *user*.

    Returns:
        The upserted rows, newest day first.  Empty when the user has
        neither a tracking start nor any food in the window.
    """
    settings = get_settings()
    now = as_utc(now) if now is not None else utc_now()
    tz = user_timezone(user.tz_mode, user.tz_name, user.tz_offset_minutes)
    today = local_date_from_utc(now, tz)

    cutoff = date_key(today - timedelta(days=settings.FASTING_RETENTION_DAYS))
    pruned = await FastingSummaryRepo.delete_before(session, user.id, cutoff)

    # One extra day back so the first window day can see its previous meal.
    query_start = local_midnight(today - timedelta(days=settings.FASTING_WINDOW_DAYS + 1), tz)
    query_end = local_midnight(today + timedelta(days=1), tz)
    foods = await FoodRepo.list_in_range(session, user.id, query_start, query_end)

    window = summarize_days(
        [f.timestamp for f in foods],
        user.fasting_tracking_start_date,
        now,
        tz,
        window_days=settings.FASTING_WINDOW_DAYS,
    )

    if window.backfilled_start is not None:
        await UserRepo.update_fields(
            session, user.id, fasting_tracking_start_date=window.backfilled_start
        )
        logger.info(
            "Backfilled tracking start from food log",
            extra={"event": "tracking_start_backfilled", "user_id": str(user.id)},
        )

    rows = [
        await FastingSummaryRepo.upsert(session, user.id, date_key(day.day), **day.seconds())
        for day in window.days
    ]

    logger.info(
        "Fasting summaries recalculated",
        extra={
            "event": "fasting_recalculated",
            "user_id": str(user.id),
            "count": len(rows),
            "date": date_key(today),
        },
    )
    if pruned:
        logger.debug("Pruned %d expired fasting summaries", pruned, extra={"user_id": str(user.id)})
    return rows


async def list_fasting_summaries(
    session: AsyncSession,
    user: User,
    days_back: int | None = None,
    now: datetime | None = None,
) -> list[FastingStateSummary]:
    """Stored rows for the last *days_back* local days (today included), newest first."""
    if days_back is None:
        days_back = get_settings().FASTING_WINDOW_DAYS
    now = as_utc(now) if now is not None else utc_now()
    tz = user_timezone(user.tz_mode, user.tz_name, user.tz_offset_minutes)
    since = local_date_from_utc(now, tz) - timedelta(days=days_back - 1)
    return await FastingSummaryRepo.list_since(session, user.id, date_key(since))
