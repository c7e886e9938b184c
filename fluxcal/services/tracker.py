"""Tracker service: the operations the presentation layer calls.

Each function runs against one user inside the caller's session and
follows the single-writer-per-user model: read the row, compute with
the pure core, write back.

The energy-balance anchor lives in an in-process ``EnergyLedger``.  The
ledger copy is authoritative for display; the persisted copy on the
user row is written after every mutation and only read back (with burn
catch-up) when the ledger has nothing for that user.  A user with no
anchor anywhere starts at zero from midnight of the tracking-start day,
and that first anchor is persisted straight away.  Anchor writes run
in a SAVEPOINT and a failure there is logged, never rolled into the
in-memory state.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fluxcal.core.config import get_settings
from fluxcal.core.errors import InvalidInputError, NotFoundError
from fluxcal.core.time import (
    as_utc,
    date_key,
    day_bounds,
    local_date_from_utc,
    parse_date_key,
    start_of_local_day,
    trailing_days,
    user_timezone,
    utc_now,
)
from fluxcal.db.models import FastingStateSummary, FoodEntry, User
from fluxcal.db.repos import FastingSummaryRepo, FoodRepo, UserRepo
from fluxcal.reports import fasting as fasting_report
from fluxcal.reports.stats import DayStats, daily_stats, day_stats
from fluxcal.services import energy_balance as engine
from fluxcal.services.buffer import BufferDecision, active_buffer, compute_buffer, effective_allowance
from fluxcal.services.fasting import StageReading, classify_stage, hours_since
from fluxcal.services.metabolic import (
    ActivityLevel,
    Gender,
    GoalPlan,
    MetabolicRates,
    compute_bmr_tdee,
    missing_profile_fields,
    plan_goal,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Energy ledger
# ---------------------------------------------------------------------------


class EnergyLedger:
    """In-process registry of authoritative balance anchors.

    Keyed by user id.  In a multi-instance deployment each instance keeps
    its own ledger and falls back to the persisted anchor on a miss.
    """

    def __init__(self) -> None:
        self._anchors: dict[uuid.UUID, engine.BalanceAnchor] = {}

    def get(self, user_id: uuid.UUID) -> engine.BalanceAnchor | None:
        return self._anchors.get(user_id)

    def put(self, user_id: uuid.UUID, anchor: engine.BalanceAnchor) -> None:
        self._anchors[user_id] = anchor

    def drop(self, user_id: uuid.UUID) -> None:
        self._anchors.pop(user_id, None)

    def clear(self) -> None:
        self._anchors.clear()


@lru_cache(maxsize=1)
def get_ledger() -> EnergyLedger:
    """Return the process-wide ledger singleton."""
    return EnergyLedger()


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BalanceReading:
    """Everything the balance display needs at one instant."""

    balance: float
    cap: float
    buffer: int
    at_cap: bool
    rates: engine.BurnRates
    metabolic: MetabolicRates
    anchor: engine.BalanceAnchor
    seconds_to_zero: float | None
    daily_burn: engine.DailyBurn


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def user_tz(user: User) -> tzinfo:
    return user_timezone(user.tz_mode, user.tz_name, user.tz_offset_minutes)


def _now(now: datetime | None) -> datetime:
    return as_utc(now) if now is not None else utc_now()


def _buffer_date(user: User) -> date | None:
    if not user.buffer_for_date:
        return None
    try:
        return parse_date_key(user.buffer_for_date)
    except ValueError:
        logger.warning(
            "Ignoring malformed buffer date %r",
            user.buffer_for_date,
            extra={"event": "buffer_date_invalid", "user_id": str(user.id)},
        )
        return None


def _require_number(name: str, value: Any, *, minimum: float = 0.0, strict: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInputError(f"{name} must be a number")
    if value < minimum or (strict and value == minimum):
        op = ">" if strict else ">="
        raise InvalidInputError(f"{name} must be {op} {minimum:g}")
    return float(value)


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User:
    """Load a user or raise ``NotFoundError``."""
    user = await UserRepo.get(session, user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return user


def burn_rates(user: User) -> tuple[MetabolicRates, engine.BurnRates]:
    """Metabolic figures and the two named burn rates for *user*.

    Raises:
        ProfileIncompleteError: If onboarding is not finished.
    """
    rates = compute_bmr_tdee(user)
    return rates, engine.BurnRates.from_profile(rates.tdee, user.daily_goal_calories)


def _today_buffer(user: User, now: datetime) -> int:
    today = local_date_from_utc(now, user_tz(user))
    return active_buffer(user.buffer_amount, _buffer_date(user), today)


def _persisted_anchor(user: User, cap_basis: float) -> engine.BalanceAnchor | None:
    if user.last_balance_update_date is None:
        return None
    return engine.BalanceAnchor(
        value=float(user.cumulative_net_calories or 0.0),
        timestamp=as_utc(user.last_balance_update_date),
        cap_basis=cap_basis,
    )


def _balance_start(user: User, now: datetime) -> datetime:
    """Local midnight of the tracking-start day, or *now* without one."""
    if user.fasting_tracking_start_date is None:
        return now
    return start_of_local_day(user.fasting_tracking_start_date, user_tz(user))


async def _session_anchor(
    session: AsyncSession,
    user: User,
    ledger: EnergyLedger,
    cap_basis: float,
    now: datetime,
) -> engine.BalanceAnchor:
    local = ledger.get(user.id)
    persisted = _persisted_anchor(user, cap_basis)
    anchor = engine.reconcile(local, persisted, now, cap_basis, start=_balance_start(user, now))
    ledger.put(user.id, anchor)
    if local is None and persisted is None:
        # No anchor anywhere yet.
        await _persist_anchor(session, user.id, anchor)
    return anchor


async def _persist_anchor(session: AsyncSession, user_id: uuid.UUID, anchor: engine.BalanceAnchor) -> bool:
    """Best-effort write of the anchor; the ledger copy stays authoritative."""
    try:
        async with session.begin_nested():
            await UserRepo.set_balance_anchor(session, user_id, anchor.value, anchor.timestamp)
    except SQLAlchemyError:
        logger.warning(
            "Failed to persist balance anchor",
            exc_info=True,
            extra={"event": "balance_persist_failed", "user_id": str(user_id)},
        )
        return False
    return True


async def _apply_delta(
    session: AsyncSession,
    user: User,
    delta: float,
    now: datetime,
    ledger: EnergyLedger,
) -> engine.BalanceAnchor | None:
    if missing_profile_fields(user):
        # No burn rate yet; the balance starts once onboarding completes.
        return None
    _, rates = burn_rates(user)
    anchor = await _session_anchor(session, user, ledger, rates.budget, now)
    anchor = engine.apply_food_delta(anchor, delta, now, _today_buffer(user, now))
    ledger.put(user.id, anchor)
    await _persist_anchor(session, user.id, anchor)
    return anchor


def _check_not_before_tracking(user: User, timestamp: datetime) -> None:
    if user.fasting_tracking_start_date is None:
        return
    tz = user_tz(user)
    start_day = local_date_from_utc(user.fasting_tracking_start_date, tz)
    if local_date_from_utc(timestamp, tz) < start_day:
        raise InvalidInputError(
            f"Cannot add entries before your tracking start date ({start_day.isoformat()})"
        )


# ---------------------------------------------------------------------------
# Users and profile
# ---------------------------------------------------------------------------


async def create_user(session: AsyncSession, **fields: Any) -> User:
    """Create a user row (biometrics may be filled in later)."""
    user = await UserRepo.create(session, **fields)
    logger.info("User created", extra={"event": "user_created", "user_id": str(user.id)})
    return user


def _validate_profile(fields: dict[str, Any]) -> dict[str, Any]:
    clean: dict[str, Any] = {}
    for name in ("weight", "height", "age"):
        if name in fields:
            value = fields[name]
            clean[name] = None if value is None else _require_number(name, value, strict=True)
    if clean.get("age") is not None:
        clean["age"] = int(clean["age"])
    if "gender" in fields:
        value = fields["gender"]
        try:
            clean["gender"] = None if value is None else Gender(value).value
        except ValueError:
            raise InvalidInputError(f"Unknown gender: {value!r}") from None
    if "activity_level" in fields:
        value = fields["activity_level"]
        try:
            clean["activity_level"] = None if value is None else ActivityLevel(value).value
        except ValueError:
            raise InvalidInputError(f"Unknown activity level: {value!r}") from None
    if "tz_mode" in fields:
        if fields["tz_mode"] not in (None, "city", "offset"):
            raise InvalidInputError(f"Unknown tz_mode: {fields['tz_mode']!r}")
        clean["tz_mode"] = fields["tz_mode"]
    for name in ("tz_name", "tz_offset_minutes"):
        if name in fields:
            clean[name] = fields[name]
    return clean


async def update_profile(
    session: AsyncSession,
    user_id: uuid.UUID,
    fields: dict[str, Any],
    now: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> User:
    """Apply a partial profile update.

    ``fasting_tracking_start_date`` may be set or cleared explicitly;
    when it is absent from *fields* and the user has none yet, it is set
    to local midnight of today.  Once the profile is complete the balance
    anchor is established if the user has none.

    Raises:
        NotFoundError: Unknown user.
        InvalidInputError: Out-of-range or unknown field values.
    """
    now = _now(now)
    ledger = ledger or get_ledger()
    user = await get_user(session, user_id)
    values = _validate_profile(fields)

    if "fasting_tracking_start_date" in fields:
        start = fields["fasting_tracking_start_date"]
        values["fasting_tracking_start_date"] = as_utc(start) if start is not None else None
    elif user.fasting_tracking_start_date is None:
        tz = user_timezone(
            values.get("tz_mode", user.tz_mode),
            values.get("tz_name", user.tz_name),
            values.get("tz_offset_minutes", user.tz_offset_minutes),
        )
        values["fasting_tracking_start_date"] = start_of_local_day(now, tz)

    if values:
        user = await UserRepo.update_fields(session, user_id, **values) or user
    if not missing_profile_fields(user):
        _, rates = burn_rates(user)
        await _session_anchor(session, user, ledger, rates.budget, now)
    logger.info(
        "Profile updated",
        extra={"event": "profile_updated", "user_id": str(user_id)},
    )
    return user


async def set_goal(
    session: AsyncSession,
    user_id: uuid.UUID,
    target_weight: float,
    target_days: int,
    now: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> tuple[User, GoalPlan]:
    """Derive and store a goal plan, re-anchoring the balance at the new rate.

    Raises:
        NotFoundError: Unknown user.
        ProfileIncompleteError: Biometrics missing.
        InvalidInputError: Target not below current weight / bad days.
    """
    now = _now(now)
    ledger = ledger or get_ledger()
    user = await get_user(session, user_id)
    rates, old_rates = burn_rates(user)
    plan = plan_goal(
        user.weight,  # type: ignore[arg-type]
        target_weight,
        target_days,
        rates.bmr,
        user.gender,
        max_daily_deficit=get_settings().MAX_BALANCE_DAILY_DEFICIT,
        start=now,
    )

    anchor = await _session_anchor(session, user, ledger, old_rates.budget, now)
    buffer = _today_buffer(user, now)
    user = await UserRepo.update_fields(
        session,
        user_id,
        goal_weight=plan.goal_weight,
        goal_days=plan.goal_days,
        goal_start_date=now,
        daily_goal_calories=plan.daily_goal_calories,
        daily_deficit=plan.daily_deficit,
    ) or user

    anchor = engine.change_cap_basis(anchor, plan.daily_goal_calories, now, buffer)
    ledger.put(user_id, anchor)
    await _persist_anchor(session, user_id, anchor)
    logger.info(
        "Goal set: %d kcal/day (deficit %d)",
        plan.daily_goal_calories,
        plan.daily_deficit,
        extra={"event": "goal_set", "user_id": str(user_id)},
    )
    return user, plan


async def restart(
    session: AsyncSession,
    user_id: uuid.UUID,
    tracking_start: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> User:
    """Clear profile, goal, buffer and balance; optionally set a new tracking start."""
    ledger = ledger or get_ledger()
    await get_user(session, user_id)
    user = await UserRepo.update_fields(
        session,
        user_id,
        weight=None,
        height=None,
        age=None,
        gender=None,
        activity_level=None,
        goal_weight=None,
        goal_days=None,
        goal_start_date=None,
        daily_goal_calories=None,
        daily_deficit=None,
        cumulative_net_calories=0.0,
        last_balance_update_date=None,
        buffer_amount=None,
        buffer_for_date=None,
        fasting_tracking_start_date=as_utc(tracking_start) if tracking_start else None,
    )
    ledger.drop(user_id)
    logger.info("User restarted", extra={"event": "user_restarted", "user_id": str(user_id)})
    return user  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Energy balance
# ---------------------------------------------------------------------------


async def query_balance(
    session: AsyncSession,
    user_id: uuid.UUID,
    now: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> BalanceReading:
    """Live balance for display.

    Only writes when the user has no anchor anywhere yet; the balance
    then starts at zero from midnight of the tracking-start day.

    Raises:
        NotFoundError: Unknown user.
        ProfileIncompleteError: Biometrics missing.
    """
    now = _now(now)
    ledger = ledger or get_ledger()
    user = await get_user(session, user_id)
    metabolic, rates = burn_rates(user)
    anchor = await _session_anchor(session, user, ledger, rates.budget, now)
    buffer = _today_buffer(user, now)
    balance = engine.query(anchor, now, buffer)
    cap = effective_allowance(rates.budget, buffer)
    day_start = start_of_local_day(now, user_tz(user))
    return BalanceReading(
        balance=balance,
        cap=cap,
        buffer=buffer,
        at_cap=balance >= cap,
        rates=rates,
        metabolic=metabolic,
        anchor=anchor,
        seconds_to_zero=engine.seconds_to_zero(anchor, now),
        daily_burn=engine.daily_burn(day_start, now, rates.metabolic),
    )


async def reinitialize_balance(
    session: AsyncSession,
    user_id: uuid.UUID,
    now: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> engine.BalanceAnchor:
    """Restart the balance at zero from midnight of the tracking-start day.

    Without a tracking start the balance restarts from *now*.
    """
    now = _now(now)
    ledger = ledger or get_ledger()
    user = await get_user(session, user_id)
    _, rates = burn_rates(user)
    anchor = engine.reinitialize(_balance_start(user, now), rates.budget)
    ledger.put(user_id, anchor)
    await _persist_anchor(session, user_id, anchor)
    logger.info("Balance reinitialized", extra={"event": "balance_reinit", "user_id": str(user_id)})
    return anchor


# ---------------------------------------------------------------------------
# Food log
# ---------------------------------------------------------------------------


def _validate_food(
    name: Any = _UNSET,
    calories: Any = _UNSET,
    **macros: Any,
) -> dict[str, Any]:
    values: dict[str, Any] = {}
    if name is not _UNSET:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError("name must be a non-empty string")
        values["name"] = name.strip()
    if calories is not _UNSET:
        values["calories"] = _require_number("calories", calories)
    for key, value in macros.items():
        if value is not None:
            values[key] = _require_number(key, value)
    return values


async def log_food(
    session: AsyncSession,
    user_id: uuid.UUID,
    *,
    name: str,
    calories: float,
    timestamp: datetime | None = None,
    meal_type: str | None = None,
    protein: float | None = None,
    carbs: float | None = None,
    fat: float | None = None,
    now: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> FoodEntry:
    """Log a food entry and subtract it from the live balance.

    The first entry of a user without a tracking start sets it to the
    entry's exact timestamp.

    Raises:
        NotFoundError: Unknown user.
        InvalidInputError: Bad calories/macros, or a timestamp on a day
            before the tracking-start day.
    """
    now = _now(now)
    ledger = ledger or get_ledger()
    user = await get_user(session, user_id)
    values = _validate_food(name, calories, protein=protein, carbs=carbs, fat=fat)
    eaten_at = as_utc(timestamp) if timestamp is not None else now
    _check_not_before_tracking(user, eaten_at)

    food = await FoodRepo.create(
        session,
        user_id=user_id,
        timestamp=eaten_at,
        meal_type=meal_type or None,
        **values,
    )
    if user.fasting_tracking_start_date is None:
        user = await UserRepo.update_fields(session, user_id, fasting_tracking_start_date=eaten_at) or user

    await _apply_delta(session, user, food.calories, now, ledger)
    logger.info(
        "Food logged: %s (%.0f kcal)",
        food.name,
        food.calories,
        extra={"event": "food_logged", "user_id": str(user_id), "food_id": food.id},
    )
    return food


async def edit_food(
    session: AsyncSession,
    user_id: uuid.UUID,
    food_id: int,
    *,
    name: str | None = None,
    calories: float | None = None,
    timestamp: datetime | None = None,
    now: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> FoodEntry:
    """Edit an entry; a calorie change is applied to the balance as a delta.

    Raises:
        NotFoundError: Unknown user, or entry missing / not owned.
        InvalidInputError: Bad values.
    """
    now = _now(now)
    ledger = ledger or get_ledger()
    user = await get_user(session, user_id)
    existing = await FoodRepo.get_by_id(session, food_id, user_id)
    if existing is None:
        raise NotFoundError("food", food_id)
    old_calories = existing.calories

    values = _validate_food(
        **({"name": name} if name is not None else {}),
        **({"calories": calories} if calories is not None else {}),
    )
    if timestamp is not None:
        values["timestamp"] = as_utc(timestamp)
        _check_not_before_tracking(user, values["timestamp"])
    if not values:
        return existing

    updated = await FoodRepo.update(session, food_id, user_id, **values)
    if updated is None:
        raise NotFoundError("food", food_id)

    if "calories" in values and values["calories"] != old_calories:
        await _apply_delta(session, user, values["calories"] - old_calories, now, ledger)
    logger.info(
        "Food edited",
        extra={"event": "food_edited", "user_id": str(user_id), "food_id": food_id},
    )
    return updated


async def delete_food(
    session: AsyncSession,
    user_id: uuid.UUID,
    food_id: int,
    now: datetime | None = None,
    ledger: EnergyLedger | None = None,
) -> None:
    """Delete one entry and add its calories back to the balance.

    Raises:
        NotFoundError: Unknown user, or entry missing / not owned.
    """
    now = _now(now)
    ledger = ledger or get_ledger()
    user = await get_user(session, user_id)
    existing = await FoodRepo.get_by_id(session, food_id, user_id)
    if existing is None:
        raise NotFoundError("food", food_id)
    calories = existing.calories

    if not await FoodRepo.delete(session, food_id, user_id):
        raise NotFoundError("food", food_id)
    await _apply_delta(session, user, -calories, now, ledger)
    logger.info(
        "Food deleted",
        extra={"event": "food_deleted", "user_id": str(user_id), "food_id": food_id},
    )


async def delete_all_food(session: AsyncSession, user_id: uuid.UUID) -> int:
    """Wipe the food log, all fasting summaries and the tracking start."""
    await get_user(session, user_id)
    deleted = await FoodRepo.delete_all(session, user_id)
    await FastingSummaryRepo.delete_all(session, user_id)
    await UserRepo.update_fields(session, user_id, fasting_tracking_start_date=None)
    logger.info(
        "All food deleted",
        extra={"event": "food_deleted_all", "user_id": str(user_id), "count": deleted},
    )
    return deleted


async def food_for_day(session: AsyncSession, user_id: uuid.UUID, day: date) -> list[FoodEntry]:
    """Entries logged on a local calendar day, oldest first."""
    user = await get_user(session, user_id)
    start, end = day_bounds(day, user_tz(user))
    return await FoodRepo.list_in_range(session, user_id, start, end)


async def most_recent_food(session: AsyncSession, user_id: uuid.UUID) -> FoodEntry | None:
    await get_user(session, user_id)
    return await FoodRepo.most_recent(session, user_id)


@dataclass(frozen=True, slots=True)
class FoodDay:
    """One local day of the food log with totals and burn progress."""

    stats: DayStats
    entries: list[FoodEntry]
    burn_queue: dict[int, engine.BurnQueueItem]


async def food_day(
    session: AsyncSession,
    user_id: uuid.UUID,
    day: date,
    now: datetime | None = None,
) -> FoodDay:
    """Entries, totals and burn queue for a local day.

    The burn queue is empty until the profile is complete.
    """
    now = _now(now)
    user = await get_user(session, user_id)
    tz = user_tz(user)
    start, end = day_bounds(day, tz)
    entries = await FoodRepo.list_in_range(session, user_id, start, end)
    stats = await day_stats(session, user_id, day, tz)

    queue: dict[int, engine.BurnQueueItem] = {}
    if not missing_profile_fields(user):
        metabolic, _ = burn_rates(user)
        queue = engine.burn_queue(entries, now, metabolic.tdee)
    return FoodDay(stats=stats, entries=entries, burn_queue=queue)


async def recent_stats(
    session: AsyncSession,
    user_id: uuid.UUID,
    days: int = 7,
    now: datetime | None = None,
) -> list[DayStats]:
    """Intake totals for the last *days* local days, today first."""
    if days <= 0:
        raise InvalidInputError("days must be positive")
    user = await get_user(session, user_id)
    tz = user_tz(user)
    today = local_date_from_utc(_now(now), tz)
    return await daily_stats(session, user_id, trailing_days(today, days), tz)


# ---------------------------------------------------------------------------
# Buffer
# ---------------------------------------------------------------------------


async def run_day_end(
    session: AsyncSession,
    user_id: uuid.UUID,
    day: date | None = None,
    now: datetime | None = None,
) -> BufferDecision:
    """Compute the buffer earned on *day* (default: yesterday, local).

    Idempotent for the same day and food log.
    """
    now = _now(now)
    user = await get_user(session, user_id)
    metabolic, rates = burn_rates(user)
    tz = user_tz(user)
    if day is None:
        day = local_date_from_utc(now, tz) - timedelta(days=1)

    consumed = (await day_stats(session, user_id, day, tz))["calories"]
    tomorrow = day + timedelta(days=1)
    decision = compute_buffer(consumed, rates.budget, metabolic.tdee, tomorrow, _buffer_date(user))

    if decision.set:
        await UserRepo.set_buffer(session, user_id, decision.amount, date_key(tomorrow))  # type: ignore[arg-type]
    elif decision.cleared:
        await UserRepo.clear_buffer(session, user_id)

    logger.info(
        "Day-end buffer: set=%s amount=%s reason=%s cleared=%s",
        decision.set,
        decision.amount,
        decision.reason,
        decision.cleared,
        extra={"event": "buffer_computed", "user_id": str(user_id), "date": date_key(day)},
    )
    return decision


# ---------------------------------------------------------------------------
# Fasting
# ---------------------------------------------------------------------------


async def current_stage(
    session: AsyncSession,
    user_id: uuid.UUID,
    now: datetime | None = None,
) -> StageReading:
    """Live stage from the latest entry across the whole food log."""
    now = _now(now)
    await get_user(session, user_id)
    latest = await FoodRepo.most_recent(session, user_id)
    return classify_stage(hours_since(latest.timestamp if latest else None, now))


async def recalculate_fasting(
    session: AsyncSession,
    user_id: uuid.UUID,
    now: datetime | None = None,
) -> list[FastingStateSummary]:
    user = await get_user(session, user_id)
    return await fasting_report.recalculate_fasting_summaries(session, user, _now(now))


async def fasting_summaries(
    session: AsyncSession,
    user_id: uuid.UUID,
    days_back: int | None = None,
    now: datetime | None = None,
) -> list[FastingStateSummary]:
    if days_back is not None and days_back <= 0:
        raise InvalidInputError("days_back must be positive")
    user = await get_user(session, user_id)
    return await fasting_report.list_fasting_summaries(session, user, days_back, _now(now))


__all__ = [
    "BalanceReading",
    "EnergyLedger",
    "FoodDay",
    "burn_rates",
    "create_user",
    "current_stage",
    "delete_all_food",
    "delete_food",
    "edit_food",
    "fasting_summaries",
    "food_day",
    "food_for_day",
    "get_ledger",
    "get_user",
    "log_food",
    "most_recent_food",
    "query_balance",
    "recalculate_fasting",
    "recent_stats",
    "reinitialize_balance",
    "restart",
    "run_day_end",
    "set_goal",
    "update_profile",
]
