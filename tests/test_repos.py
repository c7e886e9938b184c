"""DB integration tests for the repositories (in-memory SQLite)."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from fluxcal.core.time import as_utc
from fluxcal.db.models import User
from fluxcal.db.repos import FastingSummaryRepo, FoodRepo, UserRepo
from tests.conftest import count_food, make_food, utc


class TestUserRepo:
    async def test_create_and_get(self, session: AsyncSession) -> None:
        user = await UserRepo.create(session, email="a@example.com")
        fetched = await UserRepo.get(session, user.id)
        assert fetched is user
        assert fetched.cumulative_net_calories == 0.0

    async def test_get_missing(self, session: AsyncSession) -> None:
        assert await UserRepo.get(session, uuid.uuid4()) is None

    async def test_update_fields_partial(self, session: AsyncSession, test_user: User) -> None:
        updated = await UserRepo.update_fields(session, test_user.id, weight=80.0)
        assert updated is not None
        assert updated.weight == 80.0
        assert updated.tz_offset_minutes == 0

    async def test_update_fields_explicit_none_clears(self, session: AsyncSession, profiled_user: User) -> None:
        updated = await UserRepo.update_fields(session, profiled_user.id, weight=None)
        assert updated is not None
        assert updated.weight is None

    async def test_update_missing_user(self, session: AsyncSession) -> None:
        assert await UserRepo.update_fields(session, uuid.uuid4(), weight=1.0) is None

    async def test_balance_anchor(self, session: AsyncSession, test_user: User) -> None:
        await UserRepo.set_balance_anchor(session, test_user.id, -250.5, utc(2026, 6, 1, 8))
        user = await UserRepo.get(session, test_user.id)
        await session.refresh(user)
        assert user.cumulative_net_calories == -250.5
        assert as_utc(user.last_balance_update_date) == utc(2026, 6, 1, 8)

    async def test_balance_anchor_updates_loaded_user(self, session: AsyncSession, profiled_user: User) -> None:
        await UserRepo.set_balance_anchor(session, profiled_user.id, -600.0, utc(2026, 6, 2, 13))
        assert profiled_user.cumulative_net_calories == -600.0
        assert as_utc(profiled_user.last_balance_update_date) == utc(2026, 6, 2, 13)

    async def test_buffer_set_and_clear(self, session: AsyncSession, test_user: User) -> None:
        user = await UserRepo.set_buffer(session, test_user.id, 300, "2026-06-02")
        assert (user.buffer_amount, user.buffer_for_date) == (300, "2026-06-02")
        user = await UserRepo.clear_buffer(session, test_user.id)
        assert (user.buffer_amount, user.buffer_for_date) == (None, None)

    async def test_list_profiled(self, session: AsyncSession, test_user: User, profiled_user: User) -> None:
        assert [u.id for u in await UserRepo.list_profiled(session)] == [profiled_user.id]

    async def test_list_tracking_includes_food_only_users(
        self, session: AsyncSession, test_user: User, profiled_user: User
    ) -> None:
        assert {u.id for u in await UserRepo.list_tracking(session)} == {profiled_user.id}
        session.add(make_food(test_user, utc(2026, 6, 1, 9)))
        await session.flush()
        assert {u.id for u in await UserRepo.list_tracking(session)} == {
            test_user.id,
            profiled_user.id,
        }


class TestFoodRepo:
    async def test_create_assigns_id(self, session: AsyncSession, test_user: User) -> None:
        food = await FoodRepo.create(
            session, user_id=test_user.id, name="Oats", calories=350.0, timestamp=utc(2026, 6, 1, 8)
        )
        assert isinstance(food.id, int)

    async def test_list_in_range_half_open_and_ordered(self, session: AsyncSession, test_user: User) -> None:
        a = make_food(test_user, utc(2026, 6, 1, 0), name="midnight")
        b = make_food(test_user, utc(2026, 6, 1, 12), name="noon")
        c = make_food(test_user, utc(2026, 6, 1, 12), name="noon-2")
        d = make_food(test_user, utc(2026, 6, 2, 0), name="next-midnight")
        session.add_all([d, c, b, a])
        await session.flush()

        rows = await FoodRepo.list_in_range(session, test_user.id, utc(2026, 6, 1), utc(2026, 6, 2))
        assert [r.name for r in rows][0] == "midnight"
        assert {r.name for r in rows} == {"midnight", "noon", "noon-2"}
        noon_ids = [r.id for r in rows[1:]]
        assert noon_ids == sorted(noon_ids)

    async def test_scoped_to_owner(self, session: AsyncSession, test_user: User, profiled_user: User) -> None:
        food = make_food(test_user, utc(2026, 6, 1, 8))
        session.add(food)
        await session.flush()

        assert await FoodRepo.get_by_id(session, food.id, profiled_user.id) is None
        assert await FoodRepo.update(session, food.id, profiled_user.id, calories=1.0) is None
        assert await FoodRepo.delete(session, food.id, profiled_user.id) is False
        assert await FoodRepo.get_by_id(session, food.id, test_user.id) is not None

    async def test_update(self, session: AsyncSession, test_user: User) -> None:
        food = make_food(test_user, utc(2026, 6, 1, 8), calories=400)
        session.add(food)
        await session.flush()
        updated = await FoodRepo.update(session, food.id, test_user.id, calories=450.0, name="Bigger")
        assert updated is not None
        assert (updated.calories, updated.name) == (450.0, "Bigger")

    async def test_delete_and_delete_all(self, session: AsyncSession, test_user: User) -> None:
        foods = [make_food(test_user, utc(2026, 6, 1, h)) for h in (8, 12, 18)]
        session.add_all(foods)
        await session.flush()

        assert await FoodRepo.delete(session, foods[0].id, test_user.id) is True
        assert await count_food(session, test_user) == 2
        assert await FoodRepo.delete_all(session, test_user.id) == 2
        assert await count_food(session, test_user) == 0

    async def test_most_recent(self, session: AsyncSession, test_user: User) -> None:
        session.add_all(
            [
                make_food(test_user, utc(2026, 6, 1, 12), name="lunch"),
                make_food(test_user, utc(2026, 5, 30, 8), name="old"),
                make_food(test_user, utc(2026, 6, 1, 19), name="dinner"),
            ]
        )
        await session.flush()
        assert (await FoodRepo.most_recent(session, test_user.id)).name == "dinner"

    async def test_empty_log(self, session: AsyncSession, test_user: User) -> None:
        assert await FoodRepo.most_recent(session, test_user.id) is None


class TestFastingSummaryRepo:
    _ZERO = {
        "fed_seconds": 0,
        "post_absorptive_seconds": 0,
        "fat_burning_seconds": 0,
        "deep_ketosis_seconds": 0,
        "autophagy_seconds": 0,
    }

    async def test_upsert_overwrites(self, session: AsyncSession, test_user: User) -> None:
        first = await FastingSummaryRepo.upsert(session, test_user.id, "2026-06-01", **{**self._ZERO, "fed_seconds": 10})
        second = await FastingSummaryRepo.upsert(session, test_user.id, "2026-06-01", **{**self._ZERO, "fed_seconds": 20})
        assert second.id == first.id
        rows = await FastingSummaryRepo.list_since(session, test_user.id, "2026-01-01")
        assert len(rows) == 1
        assert rows[0].fed_seconds == 20

    async def test_list_since_newest_first(self, session: AsyncSession, test_user: User) -> None:
        for day in ("2026-06-01", "2026-06-03", "2026-06-02"):
            await FastingSummaryRepo.upsert(session, test_user.id, day, **self._ZERO)
        rows = await FastingSummaryRepo.list_since(session, test_user.id, "2026-06-02")
        assert [r.date for r in rows] == ["2026-06-03", "2026-06-02"]

    async def test_delete_before_is_strict(self, session: AsyncSession, test_user: User) -> None:
        for day in ("2026-05-31", "2026-06-01", "2026-06-02"):
            await FastingSummaryRepo.upsert(session, test_user.id, day, **self._ZERO)
        assert await FastingSummaryRepo.delete_before(session, test_user.id, "2026-06-01") == 1
        assert await FastingSummaryRepo.delete_all(session, test_user.id) == 2
