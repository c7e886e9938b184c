"""Metabolic rate calculator: BMR, TDEE and weight-goal planning.

BMR uses the Mifflin-St Jeor equation; TDEE multiplies it by a
standard activity factor.  Everything here is pure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from fluxcal.core.errors import InvalidInputError, ProfileIncompleteError

# 1 kg of body fat ~ 7700 kcal.
KCAL_PER_KG = 7700
MAX_DAILY_DEFICIT = 1000


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class ActivityLevel(str, Enum):
    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


ACTIVITY_MULTIPLIERS: dict[str, float] = {
    ActivityLevel.SEDENTARY.value: 1.2,
    ActivityLevel.LIGHT.value: 1.375,
    ActivityLevel.MODERATE.value: 1.55,
    ActivityLevel.ACTIVE.value: 1.725,
    ActivityLevel.VERY_ACTIVE.value: 1.9,
}
DEFAULT_MULTIPLIER = 1.2

_PROFILE_FIELDS = ("weight", "height", "age", "gender", "activity_level")


@dataclass(frozen=True, slots=True)
class MetabolicRates:
    """Derived daily energy figures (kcal/day)."""

    bmr: int
    tdee: int


@dataclass(frozen=True, slots=True)
class GoalPlan:
    """Weight-loss plan derived once from the user's current state."""

    goal_weight: float
    goal_days: int
    daily_goal_calories: int
    daily_deficit: int
    goal_start_date: datetime | None = None


def _gender_value(gender: str | Gender | None) -> str:
    return gender.value if isinstance(gender, Gender) else (gender or "")


def _half_up(value: float) -> int:
    # Math.round semantics (0.5 rounds toward +inf), not banker's rounding.
    return math.floor(value + 0.5)


def bmr(weight: float, height: float, age: float, gender: str | Gender) -> int:
    """Basal metabolic rate in kcal/day (Mifflin-St Jeor).

    Args:
        weight: Body weight in kg.
        height: Height in cm.
        age: Age in years.
        gender: ``"male"`` or ``"female"``; anything but male uses the
            female constant.
    """
    base = 10 * weight + 6.25 * height - 5 * age
    base += 5 if _gender_value(gender) == Gender.MALE.value else -161
    return _half_up(base)


def activity_multiplier(activity_level: str | ActivityLevel | None) -> float:
    """Return the TDEE factor for *activity_level* (unknown → 1.2)."""
    if isinstance(activity_level, ActivityLevel):
        activity_level = activity_level.value
    return ACTIVITY_MULTIPLIERS.get(activity_level or "", DEFAULT_MULTIPLIER)


def tdee(bmr_kcal: float, activity_level: str | ActivityLevel | None) -> int:
    """Total daily energy expenditure: ``round(bmr * multiplier)``."""
    return _half_up(bmr_kcal * activity_multiplier(activity_level))


def missing_profile_fields(profile: object) -> list[str]:
    """Names of biometric attributes on *profile* that are still unset."""
    return [name for name in _PROFILE_FIELDS if getattr(profile, name, None) in (None, "")]


def compute_bmr_tdee(profile: object) -> MetabolicRates:
    """Compute BMR and TDEE from any object exposing the five profile fields.

    Raises:
        ProfileIncompleteError: If any biometric field is missing
            (the user still has to finish onboarding).
    """
    missing = missing_profile_fields(profile)
    if missing:
        raise ProfileIncompleteError(missing)
    rate = bmr(profile.weight, profile.height, profile.age, profile.gender)  # type: ignore[attr-defined]
    return MetabolicRates(bmr=rate, tdee=tdee(rate, profile.activity_level))  # type: ignore[attr-defined]


def minimum_daily_calories(gender: str | Gender | None) -> int:
    """Lowest daily goal a plan may set: 1200 for women, 1500 otherwise."""
    if _gender_value(gender) == Gender.FEMALE.value:
        return 1200
    return 1500


def plan_goal(
    current_weight: float,
    target_weight: float,
    target_days: int,
    bmr_kcal: int,
    gender: str | Gender | None = None,
    *,
    max_daily_deficit: int = MAX_DAILY_DEFICIT,
    start: datetime | None = None,
) -> GoalPlan:
    """Derive a daily calorie goal from a weight target.

    ``daily_deficit`` is the rounded per-day share of the total kcal to
    burn, capped at *max_daily_deficit*; the goal never drops below the
    gender floor.

    Raises:
        InvalidInputError: If the target is not below the current weight
            or *target_days* is not positive.
    """
    for name, value in (
        ("current_weight", current_weight),
        ("target_weight", target_weight),
        ("target_days", target_days),
    ):
        if value is None or not math.isfinite(value):
            raise InvalidInputError(f"{name} must be a finite number")
    if target_weight >= current_weight:
        raise InvalidInputError("Target weight must be less than current weight")
    if target_days <= 0:
        raise InvalidInputError("Target days must be positive")

    to_burn = (current_weight - target_weight) * KCAL_PER_KG
    deficit = min(_half_up(to_burn / target_days), max_daily_deficit)
    goal = max(bmr_kcal - deficit, minimum_daily_calories(gender))
    return GoalPlan(
        goal_weight=target_weight,
        goal_days=int(target_days),
        daily_goal_calories=goal,
        daily_deficit=deficit,
        goal_start_date=start,
    )
