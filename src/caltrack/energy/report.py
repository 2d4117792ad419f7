"""Calorie goal breakdowns and weight projections for display."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from caltrack.energy.model import (
    AT_TARGET_TOLERANCE_KG,
    ActivityLevel,
    BiologicalSex,
    WeightGoal,
    calculate_bmr,
    calculate_daily_calorie_goal,
    format_duration,
    round_half_up,
    safe_calorie_floor,
    weekly_weight_change_kg,
    weeks_to_target,
)

# Below this weekly change the trend is shown as stable
STABLE_WEEKLY_CHANGE_KG = 0.05


@dataclass
class EnergyBreakdown:
    """How a daily calorie goal was derived from body metrics."""

    sex: BiologicalSex
    age: int
    height_cm: float
    weight_kg: float
    activity: ActivityLevel
    goal: WeightGoal

    bmr: float
    tdee: float
    adjusted_calories: float    # TDEE + goal adjustment, before the floor
    safe_floor: float
    daily_calorie_goal: int

    @property
    def floor_applied(self) -> bool:
        """Whether the safety floor overrode the goal adjustment."""
        return self.goal != WeightGoal.MAINTAIN and self.safe_floor > self.adjusted_calories

    @property
    def floor_reason(self) -> Optional[str]:
        """'bmr' or 'sex_minimum' when the floor was applied."""
        if not self.floor_applied:
            return None
        return "bmr" if self.safe_floor == self.bmr else "sex_minimum"

    def summary(self) -> str:
        """Human-readable summary of the breakdown."""
        lines = [
            f"Goal: {self.goal.display_name}",
            f"BMR: {round_half_up(self.bmr)} kcal/day",
            f"Activity: {self.activity.display_name} (x {self.activity.multiplier:g})",
            f"TDEE: {round_half_up(self.tdee)} kcal/day",
        ]

        if self.goal != WeightGoal.MAINTAIN:
            lines.append(f"Goal adjustment: {self.goal.calorie_adjustment:+d} kcal")

        if self.floor_applied:
            if self.floor_reason == "bmr":
                note = "never below your own BMR"
            else:
                note = f"recommended minimum for {'men' if self.sex == BiologicalSex.MALE else 'women'}"
            lines.append(f"Safety minimum applied: {round_half_up(self.safe_floor)} kcal ({note})")

        lines.append(f"Daily target: {self.daily_calorie_goal} kcal/day")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dict for JSON output."""
        return {
            "profile": {
                "sex": self.sex.value,
                "age": self.age,
                "height_cm": self.height_cm,
                "weight_kg": self.weight_kg,
                "activity": self.activity.value,
                "goal": self.goal.value,
            },
            "bmr": self.bmr,
            "activity_multiplier": self.activity.multiplier,
            "tdee": self.tdee,
            "goal_adjustment": self.goal.calorie_adjustment,
            "adjusted_calories": self.adjusted_calories,
            "safe_floor": self.safe_floor,
            "floor_applied": self.floor_applied,
            "floor_reason": self.floor_reason,
            "daily_calorie_goal": self.daily_calorie_goal,
        }


def calculate_breakdown(
    sex: BiologicalSex,
    weight_kg: float,
    height_cm: float,
    age: int,
    activity: ActivityLevel,
    goal: WeightGoal,
) -> EnergyBreakdown:
    """Calculate BMR, TDEE and the floored daily goal in one pass."""
    bmr = calculate_bmr(sex, weight_kg, height_cm, age)
    tdee = bmr * activity.multiplier

    return EnergyBreakdown(
        sex=sex,
        age=age,
        height_cm=height_cm,
        weight_kg=weight_kg,
        activity=activity,
        goal=goal,
        bmr=bmr,
        tdee=tdee,
        adjusted_calories=tdee + goal.calorie_adjustment,
        safe_floor=safe_calorie_floor(sex, bmr),
        daily_calorie_goal=calculate_daily_calorie_goal(
            sex, weight_kg, height_cm, age, activity, goal
        ),
    )


@dataclass
class Projection:
    """Weight trend implied by eating a given number of calories."""

    daily_calories: int
    tdee: float
    calorie_balance: int        # rounded TDEE minus intake; positive = deficit
    weekly_change_kg: float
    current_kg: Optional[float] = None
    target_kg: Optional[float] = None
    weeks: Optional[int] = None

    @property
    def is_stable(self) -> bool:
        return abs(self.weekly_change_kg) < STABLE_WEEKLY_CHANGE_KG

    @property
    def duration(self) -> Optional[str]:
        if self.weeks is None:
            return None
        return format_duration(self.weeks)

    @property
    def at_target(self) -> bool:
        if self.current_kg is None or self.target_kg is None:
            return False
        return abs(self.target_kg - self.current_kg) <= AT_TARGET_TOLERANCE_KG

    def balance_text(self) -> str:
        if self.calorie_balance > 0:
            return f"{self.calorie_balance} kcal deficit"
        if self.calorie_balance < 0:
            return f"{abs(self.calorie_balance)} kcal surplus"
        return "At maintenance"

    def weekly_change_text(self) -> str:
        if self.is_stable:
            return "Weight stable"
        return f"{self.weekly_change_kg:+.2f} kg / week"

    def outcome_text(self) -> Optional[str]:
        """Time to target, or the reason there is none.

        Returns None when no target weight was given.
        """
        if self.target_kg is None or self.current_kg is None:
            return None
        if self.weeks is not None:
            return f"{self.duration} to {self.target_kg:.1f} kg"
        if self.at_target:
            return "At goal"
        return "Adjust goal"

    def to_dict(self) -> dict:
        """Convert to dict for JSON output."""
        return {
            "daily_calories": self.daily_calories,
            "tdee": self.tdee,
            "calorie_balance": self.calorie_balance,
            "weekly_change_kg": self.weekly_change_kg,
            "is_stable": self.is_stable,
            "current_weight_kg": self.current_kg,
            "target_weight_kg": self.target_kg,
            "weeks_to_target": self.weeks,
            "duration": self.duration,
        }


def project(
    daily_calories: int,
    tdee: float,
    current_kg: Optional[float] = None,
    target_kg: Optional[float] = None,
) -> Projection:
    """Project the weekly trend and, given both weights, the time to target."""
    weekly = weekly_weight_change_kg(daily_calories, tdee)

    weeks = None
    if current_kg is not None and target_kg is not None:
        weeks = weeks_to_target(current_kg, target_kg, weekly)

    return Projection(
        daily_calories=daily_calories,
        tdee=tdee,
        calorie_balance=round_half_up(tdee) - daily_calories,
        weekly_change_kg=weekly,
        current_kg=current_kg,
        target_kg=target_kg,
        weeks=weeks,
    )


def weight_to_target_text(
    current_kg: float,
    target_kg: float,
    goal: WeightGoal,
) -> Optional[str]:
    """'4.5 kg to lose' style hint; None when maintaining."""
    if goal == WeightGoal.MAINTAIN:
        return None
    diff = abs(target_kg - current_kg)
    return f"{diff:.1f} kg {'to lose' if goal == WeightGoal.LOSE else 'to gain'}"
