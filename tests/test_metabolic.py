"""Tests for the metabolic rate calculator."""

from __future__ import annotations

import math
from types import SimpleNamespace

import pytest

from fluxcal.core.errors import InvalidInputError, ProfileIncompleteError
from fluxcal.services.metabolic import (
    ActivityLevel,
    Gender,
    activity_multiplier,
    bmr,
    compute_bmr_tdee,
    minimum_daily_calories,
    missing_profile_fields,
    plan_goal,
    tdee,
)


def _profile(**overrides: object) -> SimpleNamespace:
    base = {
        "weight": 75.0,
        "height": 175.0,
        "age": 30,
        "gender": "male",
        "activity_level": "light",
    }
    return SimpleNamespace(**{**base, **overrides})


class TestBmr:
    def test_male(self) -> None:
        # 750 + 1093.75 - 150 + 5 = 1698.75
        assert bmr(75, 175, 30, "male") == 1699

    def test_female(self) -> None:
        # 600 + 1031.25 - 125 - 161 = 1345.25
        assert bmr(60, 165, 25, Gender.FEMALE) == 1345

    def test_half_rounds_up(self) -> None:
        # 10*70 + 6.25*170 - 5*41 + 5 = 1562.5
        assert bmr(70, 170, 41, "male") == 1563

    def test_unknown_gender_uses_female_constant(self) -> None:
        assert bmr(75, 175, 30, "other") == bmr(75, 175, 30, "female")


class TestTdee:
    def test_light_activity(self) -> None:
        assert tdee(1680, "light") == 2310

    @pytest.mark.parametrize(
        ("level", "factor"),
        [
            (ActivityLevel.SEDENTARY, 1.2),
            (ActivityLevel.LIGHT, 1.375),
            (ActivityLevel.MODERATE, 1.55),
            (ActivityLevel.ACTIVE, 1.725),
            (ActivityLevel.VERY_ACTIVE, 1.9),
        ],
    )
    def test_multipliers(self, level: ActivityLevel, factor: float) -> None:
        assert activity_multiplier(level) == factor
        assert activity_multiplier(level.value) == factor

    def test_unknown_level_defaults_to_sedentary(self) -> None:
        assert activity_multiplier("couch") == 1.2
        assert activity_multiplier(None) == 1.2


class TestProfile:
    def test_complete_profile(self) -> None:
        rates = compute_bmr_tdee(_profile())
        assert rates.bmr == 1699
        assert rates.tdee == 2336  # 1699 * 1.375 = 2336.125

    def test_missing_fields_listed(self) -> None:
        profile = _profile(weight=None, activity_level="")
        assert missing_profile_fields(profile) == ["weight", "activity_level"]

    def test_incomplete_profile_raises(self) -> None:
        with pytest.raises(ProfileIncompleteError) as exc_info:
            compute_bmr_tdee(_profile(age=None))
        assert exc_info.value.missing == ["age"]


class TestPlanGoal:
    def test_deficit_from_weight_and_days(self) -> None:
        # 5 kg * 7700 / 70 days = 550 kcal/day
        plan = plan_goal(80, 75, 70, 1800, "male")
        assert plan.daily_deficit == 550
        assert plan.daily_goal_calories == 1500  # 1250 is below the male floor
        assert plan.goal_weight == 75
        assert plan.goal_days == 70

    def test_goal_above_floor(self) -> None:
        plan = plan_goal(80, 79, 70, 2000, "male")  # 7700 / 70 = 110
        assert plan.daily_deficit == 110
        assert plan.daily_goal_calories == 1890

    def test_deficit_capped(self) -> None:
        plan = plan_goal(100, 80, 30, 2500, "male")
        assert plan.daily_deficit == 1000
        assert plan.daily_goal_calories == 1500

    def test_custom_cap(self) -> None:
        plan = plan_goal(100, 80, 30, 2500, "male", max_daily_deficit=600)
        assert plan.daily_deficit == 600
        assert plan.daily_goal_calories == 1900

    def test_female_floor(self) -> None:
        plan = plan_goal(70, 60, 30, 1400, "female")
        assert plan.daily_goal_calories == 1200
        assert minimum_daily_calories("female") == 1200
        assert minimum_daily_calories(None) == 1500

    def test_target_not_below_current_rejected(self) -> None:
        with pytest.raises(InvalidInputError, match="less than current weight"):
            plan_goal(70, 70, 30, 1600, "male")

    @pytest.mark.parametrize("days", [0, -5])
    def test_non_positive_days_rejected(self, days: int) -> None:
        with pytest.raises(InvalidInputError, match="Target days must be positive"):
            plan_goal(80, 75, days, 1800, "male")

    def test_non_finite_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            plan_goal(math.nan, 75, 30, 1800, "male")
