"""Tests for fluxcal.reports: intake aggregation and persisted fasting summaries."""

from __future__ import annotations

import datetime as _dt
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from fluxcal.core.time import as_utc, user_timezone
from fluxcal.db.models import User
from fluxcal.db.repos import FastingSummaryRepo
from fluxcal.reports.fasting import list_fasting_summaries, recalculate_fasting_summaries
from fluxcal.reports.stats import daily_stats, day_stats
from tests.conftest import make_food, utc

UTC = _dt.timezone.utc
PLUS_5 = user_timezone("offset", None, 300)


def _snapshot(rows) -> list[tuple[str, int, int, int, int, int]]:  # noqa: ANN001
    return [
        (
            r.date,
            r.fed_seconds,
            r.post_absorptive_seconds,
            r.fat_burning_seconds,
            r.deep_ketosis_seconds,
            r.autophagy_seconds,
        )
        for r in rows
    ]


# ---------------------------------------------------------------------------
# day_stats / daily_stats
# ---------------------------------------------------------------------------
class TestDayStats:
    async def test_two_entries_sum(self, session: AsyncSession, test_user: User):
        session.add(make_food(test_user, utc(2026, 6, 1, 8), calories=300, protein=20, carbs=30, fat=10))
        session.add(make_food(test_user, utc(2026, 6, 1, 13), calories=200, protein=10, carbs=20, fat=5))
        await session.flush()

        result = await day_stats(session, test_user.id, _dt.date(2026, 6, 1), UTC)
        assert result["calories"] == 500
        assert result["protein"] == 30.0
        assert result["carbs"] == 50.0
        assert result["fat"] == 15.0
        assert result["entries"] == 2

    async def test_no_food_returns_zeros(self, session: AsyncSession, test_user: User):
        result = await day_stats(session, test_user.id, _dt.date(2026, 6, 1), UTC)
        assert result["calories"] == 0
        assert result["protein"] == 0.0
        assert result["entries"] == 0

    async def test_missing_macros_count_as_zero(self, session: AsyncSession, test_user: User):
        session.add(make_food(test_user, utc(2026, 6, 1, 8), protein=None, carbs=None, fat=None))
        await session.flush()
        result = await day_stats(session, test_user.id, _dt.date(2026, 6, 1), UTC)
        assert result["calories"] == 500
        assert result["protein"] == 0.0

    async def test_local_day_boundaries(self, session: AsyncSession, test_user: User):
        # UTC+5: local Jun 10 is [Jun 9 19:00, Jun 10 19:00) UTC.
        session.add(make_food(test_user, utc(2026, 6, 9, 18), calories=100))  # Jun 9 23:00 local
        session.add(make_food(test_user, utc(2026, 6, 9, 20), calories=200))  # Jun 10 01:00 local
        session.add(make_food(test_user, utc(2026, 6, 10, 18), calories=300))  # Jun 10 23:00 local
        session.add(make_food(test_user, utc(2026, 6, 10, 19), calories=400))  # Jun 11 00:00 local
        await session.flush()

        result = await day_stats(session, test_user.id, _dt.date(2026, 6, 10), PLUS_5)
        assert result["calories"] == 500
        assert result["entries"] == 2

    async def test_other_users_food_excluded(
        self, session: AsyncSession, test_user: User, profiled_user: User
    ):
        session.add(make_food(profiled_user, utc(2026, 6, 1, 8), calories=999))
        await session.flush()
        result = await day_stats(session, test_user.id, _dt.date(2026, 6, 1), UTC)
        assert result["calories"] == 0


class TestDailyStats:
    async def test_days_with_gaps_keep_order(self, session: AsyncSession, test_user: User):
        base = _dt.date(2026, 6, 15)
        dates = [base - _dt.timedelta(days=i) for i in range(7)]
        session.add(make_food(test_user, utc(2026, 6, 15, 9), calories=400))
        session.add(make_food(test_user, utc(2026, 6, 12, 9), calories=600))
        await session.flush()

        result = await daily_stats(session, test_user.id, dates, UTC)
        assert len(result) == 7
        assert result[0]["calories"] == 400
        assert result[1]["calories"] == 0
        assert result[3]["calories"] == 600
        assert [r["date"] for r in result] == dates

    async def test_empty_dates(self, session: AsyncSession, test_user: User):
        assert await daily_stats(session, test_user.id, [], UTC) == []


# ---------------------------------------------------------------------------
# recalculate_fasting_summaries
# ---------------------------------------------------------------------------
class TestRecalculateFasting:
    NOW = utc(2026, 6, 4, 12)

    async def test_one_row_per_day_since_start(self, session: AsyncSession, profiled_user: User):
        session.add(make_food(profiled_user, utc(2026, 6, 2, 8)))
        session.add(make_food(profiled_user, utc(2026, 6, 3, 19)))
        await session.flush()

        rows = await recalculate_fasting_summaries(session, profiled_user, self.NOW)
        assert [r.date for r in rows] == ["2026-06-04", "2026-06-03", "2026-06-02", "2026-06-01"]
        assert rows[-1].autophagy_seconds == 0  # tracking-start day

    async def test_past_days_cover_whole_day(self, session: AsyncSession, profiled_user: User):
        session.add(make_food(profiled_user, utc(2026, 6, 2, 8)))
        await session.flush()

        rows = await recalculate_fasting_summaries(session, profiled_user, self.NOW)
        for row in rows[1:-1]:
            total = (
                row.fed_seconds
                + row.post_absorptive_seconds
                + row.fat_burning_seconds
                + row.deep_ketosis_seconds
                + row.autophagy_seconds
            )
            assert total == 24 * 3600

    async def test_rerun_is_idempotent(self, session: AsyncSession, profiled_user: User):
        session.add(make_food(profiled_user, utc(2026, 6, 2, 8)))
        session.add(make_food(profiled_user, utc(2026, 6, 3, 19)))
        await session.flush()

        first = _snapshot(await recalculate_fasting_summaries(session, profiled_user, self.NOW))
        second = _snapshot(await recalculate_fasting_summaries(session, profiled_user, self.NOW))
        assert first == second
        stored = await FastingSummaryRepo.list_since(session, profiled_user.id, "2000-01-01")
        assert _snapshot(stored) == first

    async def test_backfills_tracking_start(self, session: AsyncSession, test_user: User):
        session.add(make_food(test_user, utc(2026, 6, 3, 10)))
        await session.flush()

        first = _snapshot(await recalculate_fasting_summaries(session, test_user, self.NOW))
        await session.refresh(test_user)
        assert as_utc(test_user.fasting_tracking_start_date) == utc(2026, 6, 3)
        assert [row[0] for row in first] == ["2026-06-04", "2026-06-03"]

        second = _snapshot(await recalculate_fasting_summaries(session, test_user, self.NOW))
        assert second == first

    async def test_nothing_to_track(self, session: AsyncSession, test_user: User):
        assert await recalculate_fasting_summaries(session, test_user, self.NOW) == []
        await session.refresh(test_user)
        assert test_user.fasting_tracking_start_date is None

    async def test_expired_rows_pruned(self, session: AsyncSession, profiled_user: User):
        zeros = dict.fromkeys(
            (
                "fed_seconds",
                "post_absorptive_seconds",
                "fat_burning_seconds",
                "deep_ketosis_seconds",
                "autophagy_seconds",
            ),
            0,
        )
        await FastingSummaryRepo.upsert(session, profiled_user.id, "2026-01-01", **zeros)

        await recalculate_fasting_summaries(session, profiled_user, self.NOW)
        stored = await FastingSummaryRepo.list_since(session, profiled_user.id, "2000-01-01")
        assert "2026-01-01" not in {r.date for r in stored}

    async def test_local_zone_day_keys(self, session: AsyncSession, test_user: User):
        test_user.tz_offset_minutes = 300
        test_user.fasting_tracking_start_date = utc(2026, 6, 2, 19)  # Jun 3 00:00 local
        await session.flush()

        rows = await recalculate_fasting_summaries(session, test_user, utc(2026, 6, 3, 20))
        # 20:00 UTC is Jun 4 01:00 local.
        assert [r.date for r in rows] == ["2026-06-04", "2026-06-03"]
        assert rows[0].autophagy_seconds == 3600


class TestListFastingSummaries:
    async def test_days_back_newest_first(self, session: AsyncSession, profiled_user: User):
        now = utc(2026, 6, 4, 12)
        await recalculate_fasting_summaries(session, profiled_user, now)

        rows = await list_fasting_summaries(session, profiled_user, days_back=2, now=now)
        assert [r.date for r in rows] == ["2026-06-04", "2026-06-03"]

    async def test_one_day_back_is_today_only(self, session: AsyncSession, profiled_user: User):
        now = utc(2026, 6, 4, 12)
        await recalculate_fasting_summaries(session, profiled_user, now)
        rows = await list_fasting_summaries(session, profiled_user, days_back=1, now=now)
        assert [r.date for r in rows] == ["2026-06-04"]

    async def test_defaults_to_window(self, session: AsyncSession, profiled_user: User):
        now = utc(2026, 6, 4, 12)
        await recalculate_fasting_summaries(session, profiled_user, now)
        rows = await list_fasting_summaries(session, profiled_user, now=now)
        assert len(rows) == 4

    async def test_other_user_sees_nothing(self, session: AsyncSession, profiled_user: User):
        now = utc(2026, 6, 4, 12)
        await recalculate_fasting_summaries(session, profiled_user, now)
        stranger = User(id=uuid.uuid4(), tz_mode="offset", tz_offset_minutes=0)
        session.add(stranger)
        await session.flush()
        assert await list_fasting_summaries(session, stranger, now=now) == []
