"""Energy expenditure model.

BMR/TDEE formulas, the floored daily calorie goal and weight projection
helpers. Everything in this package is a pure function of its inputs.
"""

from __future__ import annotations

from caltrack.energy.model import (
    ActivityLevel,
    BiologicalSex,
    WeightGoal,
    calculate_bmr,
    calculate_daily_calorie_goal,
    calculate_tdee,
    format_duration,
    weekly_weight_change_kg,
    weeks_to_target,
)
from caltrack.energy.report import (
    EnergyBreakdown,
    Projection,
    calculate_breakdown,
    project,
)

__all__ = [
    "ActivityLevel",
    "BiologicalSex",
    "EnergyBreakdown",
    "Projection",
    "WeightGoal",
    "calculate_bmr",
    "calculate_breakdown",
    "calculate_daily_calorie_goal",
    "calculate_tdee",
    "format_duration",
    "project",
    "weekly_weight_change_kg",
    "weeks_to_target",
]
