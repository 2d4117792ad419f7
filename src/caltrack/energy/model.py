"""Energy expenditure and weight projection formulas.

Calculates BMR (Basal Metabolic Rate) with the Mifflin-St Jeor equation,
scales it to TDEE (Total Daily Energy Expenditure) with an activity
multiplier, and derives a daily calorie goal for a weight-change objective.

The goal is clamped to a calorie floor: never below the sex-specific
clinical minimum (1500 kcal men, 1200 kcal women) and never below the
person's own BMR.

Every function here is pure. Degenerate projections are returned as None,
never raised.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Type, TypeVar

# Approximate kcal energy in 1 kg of body fat
KCAL_PER_KG = 7700.0

# Weeks per display month in format_duration
WEEKS_PER_MONTH = 4

# Projection thresholds
AT_TARGET_TOLERANCE_KG = 0.1
MIN_MEANINGFUL_TREND_KG = 0.01

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _normalize(value: str) -> str:
    """Turn 'lightlyActive', 'Lightly-Active' or 'lightly_active' into one key."""
    value = _CAMEL_BOUNDARY.sub("_", value.strip())
    return value.replace("-", "_").replace(" ", "_").lower()


_E = TypeVar("_E", bound="_ParsableEnum")


class _ParsableEnum(Enum):
    @classmethod
    def parse(cls: Type[_E], value: str) -> _E:
        """Parse a stored or user-entered value into an enum member.

        Raises:
            ValueError: If the value does not name a member.
        """
        if isinstance(value, cls):
            return value
        key = _normalize(str(value))
        for member in cls:
            if member.value == key:
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid {cls.__name__} '{value}'. Valid: {valid}")


class BiologicalSex(_ParsableEnum):
    """Biological sex for BMR calculation."""
    MALE = "male"
    FEMALE = "female"

    @property
    def display_name(self) -> str:
        return SEX_DISPLAY_NAMES[self]

    @property
    def minimum_calories(self) -> float:
        return SEX_MINIMUM_KCAL[self]


class ActivityLevel(_ParsableEnum):
    """Activity level multipliers for TDEE calculation."""
    SEDENTARY = "sedentary"
    LIGHTLY_ACTIVE = "lightly_active"
    MODERATELY_ACTIVE = "moderately_active"
    VERY_ACTIVE = "very_active"
    EXTRA_ACTIVE = "extra_active"

    @property
    def multiplier(self) -> float:
        return ACTIVITY_MULTIPLIERS[self]

    @property
    def display_name(self) -> str:
        return ACTIVITY_DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        return ACTIVITY_DESCRIPTIONS[self]


class WeightGoal(_ParsableEnum):
    """Weight-change objective."""
    LOSE = "lose"
    MAINTAIN = "maintain"
    GAIN = "gain"

    @property
    def calorie_adjustment(self) -> int:
        return GOAL_ADJUSTMENTS[self]

    @property
    def display_name(self) -> str:
        return GOAL_DISPLAY_NAMES[self]

    @property
    def subtitle(self) -> str:
        return GOAL_SUBTITLES[self]


# Harris-Benedict activity factors
ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHTLY_ACTIVE: 1.375,
    ActivityLevel.MODERATELY_ACTIVE: 1.55,
    ActivityLevel.VERY_ACTIVE: 1.725,
    ActivityLevel.EXTRA_ACTIVE: 1.9,
}

# Daily calorie adjustment from TDEE (~0.5 kg/week either way)
GOAL_ADJUSTMENTS = {
    WeightGoal.LOSE: -500,
    WeightGoal.MAINTAIN: 0,
    WeightGoal.GAIN: 500,
}

# Never recommend less than this without medical supervision
SEX_MINIMUM_KCAL = {
    BiologicalSex.MALE: 1500.0,
    BiologicalSex.FEMALE: 1200.0,
}

# Mifflin-St Jeor sex offset
SEX_BMR_OFFSETS = {
    BiologicalSex.MALE: 5.0,
    BiologicalSex.FEMALE: -161.0,
}

SEX_DISPLAY_NAMES = {
    BiologicalSex.MALE: "Male",
    BiologicalSex.FEMALE: "Female",
}

ACTIVITY_DISPLAY_NAMES = {
    ActivityLevel.SEDENTARY: "Sedentary",
    ActivityLevel.LIGHTLY_ACTIVE: "Lightly Active",
    ActivityLevel.MODERATELY_ACTIVE: "Moderately Active",
    ActivityLevel.VERY_ACTIVE: "Very Active",
    ActivityLevel.EXTRA_ACTIVE: "Extra Active",
}

ACTIVITY_DESCRIPTIONS = {
    ActivityLevel.SEDENTARY: "Little or no exercise, desk job",
    ActivityLevel.LIGHTLY_ACTIVE: "Light exercise 1-3 days/week",
    ActivityLevel.MODERATELY_ACTIVE: "Moderate exercise 3-5 days/week",
    ActivityLevel.VERY_ACTIVE: "Hard exercise 6-7 days/week",
    ActivityLevel.EXTRA_ACTIVE: "Very hard exercise, physical job",
}

GOAL_DISPLAY_NAMES = {
    WeightGoal.LOSE: "Lose Weight",
    WeightGoal.MAINTAIN: "Maintain",
    WeightGoal.GAIN: "Gain Weight",
}

GOAL_SUBTITLES = {
    WeightGoal.LOSE: "~0.5 kg/week loss",
    WeightGoal.MAINTAIN: "Stay at current weight",
    WeightGoal.GAIN: "~0.5 kg/week gain",
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero.

    The built-in round() uses banker's rounding (round(2.5) == 2), which
    would shift calorie goals at .5 boundaries.
    """
    return int(Decimal(value).to_integral_value(rounding=ROUND_HALF_UP))


def calculate_bmr(
    sex: BiologicalSex,
    weight_kg: float,
    height_cm: float,
    age: int,
) -> float:
    """Calculate Basal Metabolic Rate using the Mifflin-St Jeor equation.

    Args:
        sex: Biological sex
        weight_kg: Weight in kilograms
        height_cm: Height in centimeters
        age: Age in years

    Returns:
        BMR in kcal per day, unrounded
    """
    base = (10.0 * weight_kg) + (6.25 * height_cm) - (5.0 * age)
    return base + SEX_BMR_OFFSETS[sex]


def calculate_tdee(
    sex: BiologicalSex,
    weight_kg: float,
    height_cm: float,
    age: int,
    activity: ActivityLevel,
) -> float:
    """Calculate Total Daily Energy Expenditure (BMR x activity multiplier)."""
    return calculate_bmr(sex, weight_kg, height_cm, age) * activity.multiplier


def safe_calorie_floor(sex: BiologicalSex, bmr: float) -> float:
    """Lowest daily target allowed: the sex minimum or the BMR, whichever is higher."""
    return max(sex.minimum_calories, bmr)


def calculate_daily_calorie_goal(
    sex: BiologicalSex,
    weight_kg: float,
    height_cm: float,
    age: int,
    activity: ActivityLevel,
    goal: WeightGoal,
) -> int:
    """Calculate a daily calorie goal clamped to the safe floor.

    The floor and the adjusted TDEE are rounded independently before taking
    the max, so the floor always wins over a lower adjusted target.

    Args:
        sex: Biological sex
        weight_kg: Weight in kilograms
        height_cm: Height in centimeters
        age: Age in years
        activity: Activity level
        goal: Weight-change objective

    Returns:
        Daily calorie goal in kcal
    """
    bmr = calculate_bmr(sex, weight_kg, height_cm, age)
    tdee = bmr * activity.multiplier
    adjusted = tdee + goal.calorie_adjustment

    safe_floor = safe_calorie_floor(sex, bmr)

    return max(round_half_up(safe_floor), round_half_up(adjusted))


def weekly_weight_change_kg(daily_calories: float, tdee: float) -> float:
    """Projected weekly weight change in kg (negative = loss)."""
    daily_surplus = daily_calories - tdee
    return (daily_surplus * 7.0) / KCAL_PER_KG


def weeks_to_target(
    current_kg: float,
    target_kg: float,
    weekly_change_kg: float,
) -> Optional[int]:
    """Weeks to reach the target weight.

    Returns None when already at the target, when there is no meaningful
    trend, or when the trend points away from the target.
    """
    diff = target_kg - current_kg
    if abs(diff) <= AT_TARGET_TOLERANCE_KG or abs(weekly_change_kg) <= MIN_MEANINGFUL_TREND_KG:
        return None

    # Losing needs a negative trend, gaining a positive one
    if (diff < 0) != (weekly_change_kg < 0):
        return None

    return max(1, math.ceil(diff / weekly_change_kg))


def format_duration(weeks: int) -> str:
    """Format a week count as a short approximate duration.

    Example:
        >>> format_duration(1)
        '~1 week'
        >>> format_duration(6)
        '~1 mo 2 wk'
    """
    if weeks < WEEKS_PER_MONTH:
        return "~1 week" if weeks == 1 else f"~{weeks} weeks"

    months = weeks // WEEKS_PER_MONTH
    remaining_weeks = weeks % WEEKS_PER_MONTH
    if remaining_weeks == 0:
        return "~1 month" if months == 1 else f"~{months} months"
    if months == 0:
        return f"~{remaining_weeks} weeks"
    return f"~{months} mo {remaining_weeks} wk"
