"""Request and response bodies for the JSON API.

Request models only check shapes and types; ranges and cross-field rules
are enforced by the tracker service so that every caller gets the same
errors.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Users / profile
# ---------------------------------------------------------------------------


class ProfileFields(BaseModel):
    """Partial profile update; only fields present in the body are applied."""

    weight: float | None = None
    height: float | None = None
    age: int | None = None
    gender: str | None = None
    activity_level: str | None = None
    tz_mode: str | None = None
    tz_name: str | None = None
    tz_offset_minutes: int | None = None
    fasting_tracking_start_date: datetime | None = None


class UserCreate(ProfileFields):
    email: str | None = None
    display_name: str | None = None


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str | None = None
    display_name: str | None = None
    weight: float | None = None
    height: float | None = None
    age: int | None = None
    gender: str | None = None
    activity_level: str | None = None
    tz_mode: str | None = None
    tz_name: str | None = None
    tz_offset_minutes: int | None = None
    fasting_tracking_start_date: datetime | None = None
    goal_weight: float | None = None
    goal_days: int | None = None
    goal_start_date: datetime | None = None
    daily_goal_calories: int | None = None
    daily_deficit: int | None = None
    buffer_amount: int | None = None
    buffer_for_date: str | None = None
    bmr: int | None = None
    tdee: int | None = None
    missing_fields: list[str] = Field(default_factory=list)


class GoalIn(BaseModel):
    target_weight: float
    target_days: int


class GoalOut(BaseModel):
    goal_weight: float
    goal_days: int
    daily_goal_calories: int
    daily_deficit: int
    goal_start_date: datetime | None = None


class RestartIn(BaseModel):
    tracking_start: datetime | None = None


# ---------------------------------------------------------------------------
# Balance / buffer
# ---------------------------------------------------------------------------


class BalanceOut(BaseModel):
    balance: float
    cap: float
    buffer: int
    at_cap: bool
    bmr: int
    tdee: int
    metabolic_rate: float
    budget_rate: float
    anchor_value: float
    anchor_timestamp: datetime
    seconds_to_zero: float | None = None
    burned_today: float
    day_progress_percent: float


class DayEndIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date | None = Field(None, alias="date")


class BufferOut(BaseModel):
    set: bool
    amount: int | None = None
    for_date: date | None = None
    reason: str | None = None
    cleared: bool = False


# ---------------------------------------------------------------------------
# Food
# ---------------------------------------------------------------------------


class FoodIn(BaseModel):
    name: str
    calories: float
    timestamp: datetime | None = None
    meal_type: str | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None


class FoodUpdate(BaseModel):
    name: str | None = None
    calories: float | None = None
    timestamp: datetime | None = None


class FoodOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    calories: float
    timestamp: datetime
    meal_type: str | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None


class BurnOut(BaseModel):
    food_id: int
    status: str
    burn_start: datetime
    burn_end: datetime
    fill_percent: float
    remaining_seconds: float


class FoodDayOut(BaseModel):
    date: date
    entries: list[FoodOut]
    calories: float
    protein: float
    carbs: float
    fat: float
    burn_queue: list[BurnOut] = Field(default_factory=list)


class DayStatsOut(BaseModel):
    date: date
    calories: float
    protein: float
    carbs: float
    fat: float
    entries: int


class DeletedOut(BaseModel):
    deleted_count: int


# ---------------------------------------------------------------------------
# Fasting
# ---------------------------------------------------------------------------


class StageOut(BaseModel):
    stage: str
    label: str
    hours_since_last_meal: float | None = None
    progress_percent: float


class FastingDayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    fed_seconds: int
    post_absorptive_seconds: int
    fat_burning_seconds: int
    deep_ketosis_seconds: int
    autophagy_seconds: int


class TaskResult(BaseModel):
    status: str = "ok"
    processed: int = 0
    failed: int = 0
