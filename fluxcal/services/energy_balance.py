"""Continuous energy-balance engine.

The balance is never stored as a ticking number.  It is an *anchor*:
a value that was true at a given instant, plus a burn rate derived
from the cap basis (daily goal, or TDEE when no goal is set).  The live
figure is a pure function of ``(anchor, now)``::

    balance(now) = min(value + max(0, now - timestamp) * cap / 86400, cap)

Positive balance means net deficit, negative means net surplus.  Only
the deficit side is capped.  Food events re-anchor from the live value
so that elapsed burn is never counted twice.

Two rates are kept apart on purpose:

* ``BurnRates.metabolic`` (TDEE) drives the daily burn bar and the
  food burn queue;
* ``BurnRates.budget`` (goal or TDEE) drives the balance ticker and cap.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, Protocol

from fluxcal.core.time import as_utc

SECONDS_PER_DAY = 86400


# ---------------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------------


def per_second(daily_kcal: float) -> float:
    """Convert kcal/day into kcal/second; non-positive rates burn nothing."""
    if daily_kcal <= 0:
        return 0.0
    return daily_kcal / SECONDS_PER_DAY


@dataclass(frozen=True, slots=True)
class BurnRates:
    """Daily rates (kcal/day) used by different parts of the display."""

    metabolic: float
    budget: float

    @classmethod
    def from_profile(cls, tdee: float, daily_goal_calories: float | None) -> BurnRates:
        """Budget falls back to TDEE when no goal is set."""
        return cls(metabolic=tdee, budget=daily_goal_calories or tdee)

    @property
    def metabolic_per_second(self) -> float:
        return per_second(self.metabolic)

    @property
    def budget_per_second(self) -> float:
        return per_second(self.budget)


# ---------------------------------------------------------------------------
# Anchor state and transitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BalanceAnchor:
    """The single engine state: ``value`` was exact at ``timestamp``.

    Attributes:
        value: Signed balance in kcal (positive = deficit).
        timestamp: Aware UTC instant the value was last true.
        cap_basis: kcal/day; sets both the accrual rate and the cap.
    """

    value: float
    timestamp: datetime
    cap_basis: float


def _cap(value: float, cap_basis: float, allowance: float) -> float:
    return min(value, cap_basis + allowance)


def elapsed_burn(anchor: BalanceAnchor, now: datetime, cap_basis: float | None = None) -> float:
    """kcal burned between the anchor and *now* (zero if *now* is earlier)."""
    rate = per_second(anchor.cap_basis if cap_basis is None else cap_basis)
    seconds = max(0.0, (now - anchor.timestamp).total_seconds())
    return seconds * rate


def query(anchor: BalanceAnchor, now: datetime, allowance: float = 0.0) -> float:
    """Live balance at *now*.

    Args:
        anchor: Current engine state.
        now: Query instant.
        allowance: Extra headroom above the cap (today's buffer, if any).
    """
    return _cap(anchor.value + elapsed_burn(anchor, now), anchor.cap_basis, allowance)


def apply_food_delta(
    anchor: BalanceAnchor,
    delta_calories: float,
    now: datetime,
    allowance: float = 0.0,
) -> BalanceAnchor:
    """Re-anchor after a food event.

    Positive *delta_calories* means food was added (balance drops),
    negative means food was removed.  The new value is computed from the
    live figure at *now*, never from a persisted copy.
    """
    live = query(anchor, now, allowance)
    return replace(anchor, value=live - delta_calories, timestamp=max(now, anchor.timestamp))


def apply_burn_catchup(
    anchor: BalanceAnchor,
    now: datetime,
    cap_basis: float,
    allowance: float = 0.0,
) -> BalanceAnchor:
    """Roll a restored anchor forward to *now* at *cap_basis*'s rate."""
    value = anchor.value + elapsed_burn(anchor, now, cap_basis)
    return BalanceAnchor(
        value=_cap(value, cap_basis, allowance),
        timestamp=max(now, anchor.timestamp),
        cap_basis=cap_basis,
    )


def reinitialize(start: datetime, cap_basis: float) -> BalanceAnchor:
    """Fresh anchor: zero balance accruing from *start*."""
    return BalanceAnchor(value=0.0, timestamp=start, cap_basis=cap_basis)


def change_cap_basis(
    anchor: BalanceAnchor,
    new_cap_basis: float,
    now: datetime,
    allowance: float = 0.0,
) -> BalanceAnchor:
    """Freeze the live value at *now* and continue at the new rate."""
    live = query(anchor, now, allowance)
    return BalanceAnchor(
        value=_cap(live, new_cap_basis, allowance),
        timestamp=max(now, anchor.timestamp),
        cap_basis=new_cap_basis,
    )


def reconcile(
    local: BalanceAnchor | None,
    remote: BalanceAnchor | None,
    now: datetime,
    cap_basis: float,
    start: datetime | None = None,
) -> BalanceAnchor:
    """Pick the authoritative anchor for this session.

    Synchronisation is one-directional:

    1. A local anchor always wins; it is only re-based if the cap basis
       changed underneath it.
    2. Without a local anchor, the persisted one is caught up to *now*.
    3. With neither, the balance starts at zero from *start*
       (default *now*).

    The persisted anchor is never merged into a local one, so no interval
    of elapsed burn is applied twice.
    """
    if local is not None:
        if local.cap_basis == cap_basis:
            return local
        return change_cap_basis(local, cap_basis, now)
    if remote is not None:
        return apply_burn_catchup(remote, now, cap_basis)
    return reinitialize(start if start is not None else now, cap_basis)


def seconds_to_zero(anchor: BalanceAnchor, now: datetime) -> float | None:
    """Seconds until a surplus burns back to zero, or ``None`` if not in surplus."""
    rate = per_second(anchor.cap_basis)
    balance = query(anchor, now)
    if balance >= 0 or rate == 0:
        return None
    return -balance / rate


# ---------------------------------------------------------------------------
# Daily burn and burn queue
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DailyBurn:
    burned: float
    progress_percent: float


def daily_burn(day_start: datetime, now: datetime, metabolic_rate: float) -> DailyBurn:
    """kcal burned since local midnight at the metabolic (TDEE) rate."""
    seconds = max(0.0, (now - day_start).total_seconds())
    burned = seconds * per_second(metabolic_rate)
    progress = (burned / metabolic_rate) * 100 if metabolic_rate > 0 else 0.0
    return DailyBurn(burned=burned, progress_percent=min(progress, 100.0))


class BurnStatus(str, enum.Enum):
    WAITING = "waiting"
    BURNING = "burning"
    BURNED = "burned"


class _Burnable(Protocol):
    id: int
    calories: float
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class BurnQueueItem:
    """Where one food entry sits in the sequential burn queue."""

    food_id: int
    burn_start: datetime
    burn_end: datetime
    fill_percent: float
    remaining_seconds: float
    burn_duration_seconds: float
    status: BurnStatus


def burn_queue(
    foods: Iterable[_Burnable],
    now: datetime,
    metabolic_rate: float,
) -> dict[int, BurnQueueItem]:
    """Burn foods oldest-first, one at a time, at the metabolic rate.

    Each entry starts burning at the later of its own timestamp and the
    moment the previous entry finished.  Waiting entries report their own
    burn duration as remaining time, not the cumulative queue wait.
    """
    rate = per_second(metabolic_rate)
    ordered = sorted((as_utc(f.timestamp), f.id, f.calories) for f in foods)
    if not ordered or rate == 0:
        return {}

    result: dict[int, BurnQueueItem] = {}
    next_start = ordered[0][0]
    for eaten_at, food_id, calories in ordered:
        start = max(eaten_at, next_start)
        duration = max(0.0, calories) / rate
        end = start + timedelta(seconds=duration)

        if now >= end:
            fill, remaining, status = 0.0, 0.0, BurnStatus.BURNED
        elif now >= start:
            progress = (now - start).total_seconds() / duration
            fill = max(0.0, (1 - progress) * 100)
            remaining = max(0.0, (end - now).total_seconds())
            status = BurnStatus.BURNING
        else:
            fill, remaining, status = 100.0, duration, BurnStatus.WAITING

        result[food_id] = BurnQueueItem(
            food_id=food_id,
            burn_start=start,
            burn_end=end,
            fill_percent=fill,
            remaining_seconds=remaining,
            burn_duration_seconds=duration,
            status=status,
        )
        next_start = end
    return result
