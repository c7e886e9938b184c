"""Fasting stages: live classification and per-day duration accounting.

A stage is a pure function of the hours since the last meal:

    [0, 4)   Fed
    [4, 8)   Post-Absorptive
    [8, 12)  Fat Burning
    [12, 16) Deep Ketosis
    [16, ∞)  Autophagy

Boundaries are closed on the left, so exactly 4.0 h is Post-Absorptive.

The day aggregator walks a meal timeline through one local calendar day
and splits the elapsed time into the five stage buckets.  Every meal
resets the fasting clock to Fed.
"""

from __future__ import annotations

import bisect
import enum
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Sequence

from fluxcal.core.time import (
    as_utc,
    day_bounds,
    local_date_from_utc,
    local_midnight,
    start_of_local_day,
    trailing_days,
)


class FastingStage(str, enum.Enum):
    AWAITING_ENTRY = "awaiting_entry"
    FED = "fed"
    POST_ABSORPTIVE = "post_absorptive"
    FAT_BURNING = "fat_burning"
    DEEP_KETOSIS = "deep_ketosis"
    AUTOPHAGY = "autophagy"

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]


STAGE_LABELS: dict[FastingStage, str] = {
    FastingStage.AWAITING_ENTRY: "Awaiting Entry",
    FastingStage.FED: "Fed",
    FastingStage.POST_ABSORPTIVE: "Post-Absorptive",
    FastingStage.FAT_BURNING: "Fat Burning",
    FastingStage.DEEP_KETOSIS: "Deep Ketosis",
    FastingStage.AUTOPHAGY: "Autophagy",
}

TRACKED_STAGES: tuple[FastingStage, ...] = (
    FastingStage.FED,
    FastingStage.POST_ABSORPTIVE,
    FastingStage.FAT_BURNING,
    FastingStage.DEEP_KETOSIS,
    FastingStage.AUTOPHAGY,
)
STAGE_BOUNDARIES_HOURS: tuple[float, ...] = (0, 4, 8, 12, 16, math.inf)

# Hours assumed since the last meal when no meal can be resolved at all.
ASSUMED_FASTING_HOURS = 24.0


# ---------------------------------------------------------------------------
# Live classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StageReading:
    """Live fasting state.

    Attributes:
        stage: Current stage.
        hours_since_last_meal: ``None`` when no meal is recorded.
        progress_percent: How far through the current 4-hour stage
            (100 for Autophagy, 0 while awaiting the first entry).
    """

    stage: FastingStage
    hours_since_last_meal: float | None
    progress_percent: float

    @property
    def label(self) -> str:
        return self.stage.label


def classify_stage(hours_since_last_meal: float | None) -> StageReading:
    """Map hours since the last meal to a stage (``None`` = no meal yet)."""
    if hours_since_last_meal is None:
        return StageReading(FastingStage.AWAITING_ENTRY, None, 0.0)

    hours = max(0.0, hours_since_last_meal)
    for stage, lower, upper in zip(
        TRACKED_STAGES, STAGE_BOUNDARIES_HOURS, STAGE_BOUNDARIES_HOURS[1:]
    ):
        if hours < upper:
            if math.isinf(upper):
                progress = 100.0
            else:
                progress = (hours - lower) / (upper - lower) * 100
            return StageReading(stage, hours_since_last_meal, progress)
    # Unreachable: the last boundary is infinite.
    return StageReading(FastingStage.AUTOPHAGY, hours_since_last_meal, 100.0)


def hours_since(last_meal: datetime | None, now: datetime) -> float | None:
    if last_meal is None:
        return None
    return (now - as_utc(last_meal)).total_seconds() / 3600


# ---------------------------------------------------------------------------
# Duration buckets
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class StageDurations:
    """Seconds spent in each tracked stage."""

    fed: float = 0.0
    post_absorptive: float = 0.0
    fat_burning: float = 0.0
    deep_ketosis: float = 0.0
    autophagy: float = 0.0

    def add(self, stage: FastingStage, seconds: float) -> None:
        setattr(self, stage.value, getattr(self, stage.value) + seconds)

    @property
    def total(self) -> float:
        return sum(getattr(self, stage.value) for stage in TRACKED_STAGES)


def allocate_window(
    last_meal: datetime | None,
    window_start: datetime,
    window_end: datetime,
    into: StageDurations | None = None,
) -> StageDurations:
    """Spread ``[window_start, window_end)`` across stage buckets.

    The window is positioned on the hours-since-meal axis relative to
    *last_meal*; each stage receives its overlap with the window.  With
    no known last meal the window is assumed to start 24 h into a fast.
    Empty or inverted windows contribute nothing.
    """
    result = into if into is not None else StageDurations()
    if window_end <= window_start:
        return result

    span_hours = (window_end - window_start).total_seconds() / 3600
    if last_meal is None:
        hours_start = ASSUMED_FASTING_HOURS
    else:
        hours_start = (window_start - last_meal).total_seconds() / 3600
    hours_end = hours_start + span_hours

    for stage, lower, upper in zip(
        TRACKED_STAGES, STAGE_BOUNDARIES_HOURS, STAGE_BOUNDARIES_HOURS[1:]
    ):
        overlap = min(hours_end, upper) - max(hours_start, lower)
        if overlap > 0:
            result.add(stage, overlap * 3600)
    return result


def durations_for_day(
    last_meal_before: datetime | None,
    day_meals: Sequence[datetime],
    day_start: datetime,
    day_end: datetime,
) -> StageDurations:
    """Walk the fasting clock from *day_start* to *day_end*.

    Each meal closes the running window and restarts the clock at Fed.
    Meals earlier than *day_start* only move the last-meal reference.
    """
    result = StageDurations()
    last_meal = last_meal_before
    clock = day_start
    for meal in sorted(day_meals):
        allocate_window(last_meal, clock, meal, into=result)
        last_meal = meal
        clock = max(clock, meal)
    allocate_window(last_meal, clock, day_end, into=result)
    return result


# ---------------------------------------------------------------------------
# Last-meal resolution
# ---------------------------------------------------------------------------


class LastMealSource(str, enum.Enum):
    FOOD_LOG = "food_log"
    TRACKING_START = "tracking_start"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class LastMealAnchor:
    """Resolved "last meal before the day" and where it came from.

    ``day_start`` is the effective start of accounting for the day; it
    moves forward when tracking began partway through the day.
    """

    source: LastMealSource
    instant: datetime | None
    day_start: datetime


def resolve_last_meal(
    meals: Sequence[datetime],
    day_start: datetime,
    day_end: datetime,
    tracking_start: datetime | None,
) -> LastMealAnchor:
    """Resolve the fasting reference point for one day.

    Precedence:

    1. the latest logged meal strictly before *day_start*;
    2. the tracking-start instant, if it precedes the day;
    3. the tracking-start instant, if it falls inside the day, which
       then also becomes the effective day start;
    4. nothing.

    Args:
        meals: All known meal instants, sorted ascending.
    """
    idx = bisect.bisect_left(meals, day_start)
    if idx > 0:
        return LastMealAnchor(LastMealSource.FOOD_LOG, meals[idx - 1], day_start)

    if tracking_start is not None:
        if tracking_start < day_start:
            return LastMealAnchor(LastMealSource.TRACKING_START, tracking_start, day_start)
        if tracking_start <= day_end:
            return LastMealAnchor(LastMealSource.TRACKING_START, tracking_start, tracking_start)

    return LastMealAnchor(LastMealSource.NONE, None, day_start)


# ---------------------------------------------------------------------------
# Trailing-window aggregation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FastingDay:
    """Whole-second stage totals for one local calendar day."""

    day: date
    fed_seconds: int
    post_absorptive_seconds: int
    fat_burning_seconds: int
    deep_ketosis_seconds: int
    autophagy_seconds: int

    @property
    def total_seconds(self) -> int:
        return (
            self.fed_seconds
            + self.post_absorptive_seconds
            + self.fat_burning_seconds
            + self.deep_ketosis_seconds
            + self.autophagy_seconds
        )

    def seconds(self) -> dict[str, int]:
        return {
            "fed_seconds": self.fed_seconds,
            "post_absorptive_seconds": self.post_absorptive_seconds,
            "fat_burning_seconds": self.fat_burning_seconds,
            "deep_ketosis_seconds": self.deep_ketosis_seconds,
            "autophagy_seconds": self.autophagy_seconds,
        }


@dataclass(slots=True)
class FastingWindow:
    """Result of a trailing-window pass.

    Attributes:
        days: Per-day totals, newest first.
        tracking_start_day: First day accounted for (``None`` if nothing).
        backfilled_start: Set when no tracking start was stored and one
            was derived from the food log; the caller should persist it.
    """

    days: list[FastingDay] = field(default_factory=list)
    tracking_start_day: date | None = None
    backfilled_start: datetime | None = None


def summarize_days(
    meal_times: Iterable[datetime],
    tracking_start: datetime | None,
    now: datetime,
    tz: tzinfo,
    window_days: int = 14,
) -> FastingWindow:
    """Compute stage totals for each local day in the trailing window.

    Days before the tracking-start day are skipped, not zero-filled.
    Today is only counted up to *now*; meals after *now* are ignored.
    When no tracking start is stored, it is backfilled as local midnight
    of the earliest meal in the window and used exactly as a stored one,
    so persisting it and re-running yields the same totals.  On the
    tracking-start day autophagy is always reported as zero.
    """
    now = as_utc(now)
    meals = sorted(m for m in (as_utc(t) for t in meal_times) if m <= now)
    start_instant = as_utc(tracking_start) if tracking_start is not None else None
    today = local_date_from_utc(now, tz)

    if not meals and start_instant is None:
        return FastingWindow()

    window = FastingWindow()
    if start_instant is None:
        window_start = local_midnight(today - timedelta(days=window_days - 1), tz)
        in_window = [m for m in meals if m >= window_start]
        if not in_window:
            return window
        start_instant = window.backfilled_start = start_of_local_day(in_window[0], tz)
    start_day = local_date_from_utc(start_instant, tz)
    window.tracking_start_day = start_day

    for day in trailing_days(today, window_days):
        if day < start_day:
            continue
        day_start, next_midnight = day_bounds(day, tz)
        day_end = now if day == today else next_midnight
        day_meals = [m for m in meals if day_start <= m < next_midnight]

        anchor = resolve_last_meal(meals, day_start, day_end, start_instant)
        durations = durations_for_day(anchor.instant, day_meals, anchor.day_start, day_end)
        window.days.append(
            FastingDay(
                day=day,
                fed_seconds=round(durations.fed),
                post_absorptive_seconds=round(durations.post_absorptive),
                fat_burning_seconds=round(durations.fat_burning),
                deep_ketosis_seconds=round(durations.deep_ketosis),
                autophagy_seconds=0 if day == start_day else round(durations.autophagy),
            )
        )
    return window
