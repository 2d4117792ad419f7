"""CLI interface using Typer."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from caltrack.config import SettingsError, get_settings, reload_settings, save_settings
from caltrack.config.settings import (
    AGE_RANGE,
    HEIGHT_CM_RANGE,
    RECENT_WEIGHT_ENTRIES,
    WEIGHT_KG_RANGE,
)
from caltrack.energy.model import (
    ActivityLevel,
    BiologicalSex,
    WeightGoal,
    calculate_bmr,
    calculate_tdee,
    round_half_up,
)
from caltrack.energy.report import (
    EnergyBreakdown,
    Projection,
    calculate_breakdown,
    project,
    weight_to_target_text,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Daily calorie goals and weight projections (Mifflin-St Jeor)",
    no_args_is_help=True,
)
console = Console()

profile_app = typer.Typer(help="Manage the stored profile and calorie goal")
app.add_typer(profile_app, name="profile")

# Per-invocation state set by the main callback
state: dict = {"settings_error": None}


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def use_json(command: str, json_output: bool) -> bool:
    """JSON if requested on the command line or set as the default format.

    Also reports a config file that failed to load in the callback, so the
    error honors --json.
    """
    if state["settings_error"] is not None:
        fail(command, str(state["settings_error"]), json_output)
    return json_output or get_settings().defaults.output_format == "json"


def fail(command: str, message: str, json_output: bool) -> NoReturn:
    """Report an error and exit with status 1."""
    if json_output:
        output_json({
            "success": False,
            "command": command,
            "errors": [message],
        })
    else:
        console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


def parse_body_enums(
    command: str,
    json_output: bool,
    sex: Optional[str] = None,
    activity: Optional[str] = None,
    goal: Optional[str] = None,
) -> tuple[Optional[BiologicalSex], Optional[ActivityLevel], Optional[WeightGoal]]:
    """Parse enum options, exiting with a friendly message on bad values."""
    try:
        return (
            BiologicalSex.parse(sex) if sex is not None else None,
            ActivityLevel.parse(activity) if activity is not None else None,
            WeightGoal.parse(goal) if goal is not None else None,
        )
    except ValueError as e:
        fail(command, str(e), json_output)


def print_breakdown(breakdown: EnergyBreakdown) -> None:
    """Render a goal breakdown as a rich table."""
    table = Table(title="Your Daily Goal")
    table.add_column("Step")
    table.add_column("Value", justify="right")
    table.add_column("Note", style="dim")

    table.add_row(
        "Basal Metabolic Rate",
        f"{round_half_up(breakdown.bmr)} kcal",
        "Calories your body burns at complete rest",
    )
    table.add_row(
        f"Activity ({breakdown.activity.display_name})",
        f"x {breakdown.activity.multiplier:g}",
        breakdown.activity.description,
    )
    table.add_row(
        "TDEE",
        f"{round_half_up(breakdown.tdee)} kcal",
        "Total daily calories burned including activity",
    )

    if breakdown.goal != WeightGoal.MAINTAIN:
        table.add_row(
            "Goal adjustment",
            f"{breakdown.goal.calorie_adjustment:+d} kcal",
            breakdown.goal.subtitle,
        )

    if breakdown.floor_applied:
        if breakdown.floor_reason == "bmr":
            note = "Never eat below your own BMR without medical supervision"
        else:
            note = f"Recommended minimum for {'men' if breakdown.sex == BiologicalSex.MALE else 'women'}"
        table.add_row(
            "[yellow]Safety minimum applied[/yellow]",
            f"[yellow]{round_half_up(breakdown.safe_floor)} kcal[/yellow]",
            note,
        )

    table.add_row("[bold]Daily Target[/bold]", f"[bold cyan]{breakdown.daily_calorie_goal} kcal[/bold cyan]", "")
    console.print(table)


def print_projection(projection: Projection) -> None:
    """Render a projection as a rich panel."""
    lines = [
        f"Intake: {projection.daily_calories} kcal/day (TDEE {round_half_up(projection.tdee)})",
        f"Balance: {projection.balance_text()}",
        f"Trend: {projection.weekly_change_text()}",
    ]
    outcome = projection.outcome_text()
    if outcome is not None:
        lines.append(f"Target: {outcome}")
    console.print(Panel("\n".join(lines), title="Projection"))


def format_change(change: Optional[float]) -> str:
    """Signed change in kg, or a dash when there is nothing to compare."""
    if change is None:
        return "-"
    return f"{change:+.1f} kg"


# ============================================================================
# Main callback
# ============================================================================


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to config.yaml (default: ~/.caltrack/config.yaml)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Daily calorie goals and weight projections."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )

    # Reported by the command itself, which knows whether --json was given
    state["settings_error"] = None
    try:
        reload_settings(config)
    except SettingsError as e:
        logger.debug("Config failed to load: %s", e)
        state["settings_error"] = e


# ============================================================================
# Calculator Commands
# ============================================================================


@app.command("bmr")
def bmr_command(
    sex: str = typer.Option(..., "--sex", help="Sex (male/female)"),
    age: int = typer.Option(..., "--age", min=AGE_RANGE[0], max=AGE_RANGE[1], help="Age in years"),
    height: float = typer.Option(
        ..., "--height", min=HEIGHT_CM_RANGE[0], max=HEIGHT_CM_RANGE[1], help="Height in cm"
    ),
    weight: float = typer.Option(
        ..., "--weight", min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Weight in kg"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Calculate Basal Metabolic Rate (Mifflin-St Jeor)."""
    json_output = use_json("bmr", json_output)
    sex_enum, _, _ = parse_body_enums("bmr", json_output, sex=sex)

    bmr = calculate_bmr(sex_enum, weight, height, age)

    if json_output:
        output_json({
            "success": True,
            "command": "bmr",
            "data": {"bmr": bmr},
            "human_summary": f"BMR: {round_half_up(bmr)} kcal/day",
        })
    else:
        console.print(f"BMR: [cyan]{round_half_up(bmr)}[/cyan] kcal/day")


@app.command("tdee")
def tdee_command(
    sex: str = typer.Option(..., "--sex", help="Sex (male/female)"),
    age: int = typer.Option(..., "--age", min=AGE_RANGE[0], max=AGE_RANGE[1], help="Age in years"),
    height: float = typer.Option(
        ..., "--height", min=HEIGHT_CM_RANGE[0], max=HEIGHT_CM_RANGE[1], help="Height in cm"
    ),
    weight: float = typer.Option(
        ..., "--weight", min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Weight in kg"
    ),
    activity: str = typer.Option(
        "moderately_active",
        "--activity",
        help="Activity level (sedentary/lightly_active/moderately_active/very_active/extra_active)",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Calculate Total Daily Energy Expenditure."""
    json_output = use_json("tdee", json_output)
    sex_enum, activity_enum, _ = parse_body_enums(
        "tdee", json_output, sex=sex, activity=activity
    )

    tdee = calculate_tdee(sex_enum, weight, height, age, activity_enum)

    if json_output:
        output_json({
            "success": True,
            "command": "tdee",
            "data": {
                "bmr": calculate_bmr(sex_enum, weight, height, age),
                "activity_multiplier": activity_enum.multiplier,
                "tdee": tdee,
            },
            "human_summary": f"TDEE: {round_half_up(tdee)} kcal/day",
        })
    else:
        console.print(
            f"TDEE: [cyan]{round_half_up(tdee)}[/cyan] kcal/day "
            f"({activity_enum.display_name}, x {activity_enum.multiplier:g})"
        )


@app.command("goal")
def goal_command(
    sex: str = typer.Option(..., "--sex", help="Sex (male/female)"),
    age: int = typer.Option(..., "--age", min=AGE_RANGE[0], max=AGE_RANGE[1], help="Age in years"),
    height: float = typer.Option(
        ..., "--height", min=HEIGHT_CM_RANGE[0], max=HEIGHT_CM_RANGE[1], help="Height in cm"
    ),
    weight: float = typer.Option(
        ..., "--weight", min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Weight in kg"
    ),
    activity: str = typer.Option(
        "moderately_active",
        "--activity",
        help="Activity level (sedentary/lightly_active/moderately_active/very_active/extra_active)",
    ),
    goal: str = typer.Option("maintain", "--goal", help="Weight goal (lose/maintain/gain)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Calculate a safe daily calorie goal with its breakdown."""
    json_output = use_json("goal", json_output)
    sex_enum, activity_enum, goal_enum = parse_body_enums(
        "goal", json_output, sex=sex, activity=activity, goal=goal
    )

    breakdown = calculate_breakdown(sex_enum, weight, height, age, activity_enum, goal_enum)

    if json_output:
        output_json({
            "success": True,
            "command": "goal",
            "data": breakdown.to_dict(),
            "human_summary": f"Daily goal: {breakdown.daily_calorie_goal} kcal/day",
        })
    else:
        print_breakdown(breakdown)


@app.command("project")
def project_command(
    calories: int = typer.Option(..., "--calories", min=0, help="Planned daily intake (kcal)"),
    tdee: float = typer.Option(..., "--tdee", min=0, help="TDEE (kcal/day)"),
    current: Optional[float] = typer.Option(
        None, "--current", min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Current weight in kg"
    ),
    target: Optional[float] = typer.Option(
        None, "--target", min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Target weight in kg"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Project weekly weight change and time to a target weight."""
    json_output = use_json("project", json_output)
    if (current is None) != (target is None):
        fail("project", "--current and --target must be given together", json_output)

    projection = project(calories, tdee, current, target)

    if json_output:
        output_json({
            "success": True,
            "command": "project",
            "data": projection.to_dict(),
            "human_summary": projection.outcome_text() or projection.weekly_change_text(),
        })
    else:
        print_projection(projection)


# ============================================================================
# Profile Commands
# ============================================================================


@profile_app.command("show")
def profile_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the stored profile."""
    json_output = use_json("profile show", json_output)
    profile = get_settings().profile

    if json_output:
        output_json({
            "success": True,
            "command": "profile show",
            "data": profile.to_dict(),
            "human_summary": (
                f"{profile.sex.value}, {profile.age}y, {profile.height_cm:g}cm, "
                f"{profile.weight_kg:g}kg, goal {profile.daily_calorie_goal} kcal"
            ),
        })
        return

    console.print("[bold]Profile[/bold]")
    if not profile.has_completed_onboarding:
        console.print("  [yellow]Defaults only. Set your details with: caltrack profile set[/yellow]")
    console.print(f"  Sex: {profile.sex.display_name}")
    console.print(f"  Age: {profile.age}")
    console.print(f"  Height: {profile.height_cm:g} cm")
    console.print(f"  Weight: {profile.weight_kg:g} kg")
    if profile.weight_log:
        latest = profile.weight_log[-1]
        console.print(
            f"  Last weigh-in: {latest.weight_kg:.1f} kg on {latest.timestamp:%Y-%m-%d}"
        )
    console.print(f"  Activity: {profile.activity.display_name}")
    console.print(f"  Goal: {profile.goal.display_name} ({profile.goal.subtitle})")
    console.print(f"  Target weight: {profile.target_weight_kg:.1f} kg")
    hint = weight_to_target_text(profile.weight_kg, profile.target_weight_kg, profile.goal)
    if hint:
        console.print(f"    [dim]{hint}[/dim]")
    console.print(f"  Daily calorie goal: [cyan]{profile.daily_calorie_goal}[/cyan] kcal")


@profile_app.command("set")
def profile_set(
    sex: Optional[str] = typer.Option(None, "--sex", help="Sex (male/female)"),
    age: Optional[int] = typer.Option(
        None, "--age", min=AGE_RANGE[0], max=AGE_RANGE[1], help="Age in years"
    ),
    height: Optional[float] = typer.Option(
        None, "--height", min=HEIGHT_CM_RANGE[0], max=HEIGHT_CM_RANGE[1], help="Height in cm"
    ),
    weight: Optional[float] = typer.Option(
        None, "--weight", min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Weight in kg"
    ),
    activity: Optional[str] = typer.Option(None, "--activity", help="Activity level"),
    goal: Optional[str] = typer.Option(None, "--goal", help="Weight goal (lose/maintain/gain)"),
    target: Optional[float] = typer.Option(
        None, "--target", min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Target weight in kg"
    ),
    calories: Optional[int] = typer.Option(
        None, "--calories", min=0, help="Set the daily calorie goal directly"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Update stored profile fields.

    Body or goal changes recalculate the daily calorie goal unless
    --calories is given.
    """
    json_output = use_json("profile set", json_output)
    sex_enum, activity_enum, goal_enum = parse_body_enums(
        "profile set", json_output, sex=sex, activity=activity, goal=goal
    )

    profile = get_settings().profile
    body_changed = False

    if sex_enum is not None:
        profile.sex = sex_enum
        body_changed = True
    if age is not None:
        profile.age = age
        body_changed = True
    if height is not None:
        profile.height_cm = height
        body_changed = True
    if weight is not None:
        profile.weight_kg = weight
        body_changed = True
    if activity_enum is not None:
        profile.activity = activity_enum
        body_changed = True
    if target is not None:
        profile.target_weight_kg = target
    if goal_enum is not None:
        profile.apply_goal(goal_enum)
        body_changed = True

    if calories is not None:
        profile.daily_calorie_goal = calories
    elif body_changed:
        profile.recalculate()

    save_settings()
    logger.debug("Profile saved: %s", profile.to_dict())

    if json_output:
        output_json({
            "success": True,
            "command": "profile set",
            "data": profile.to_dict(),
            "human_summary": f"Profile updated, daily goal {profile.daily_calorie_goal} kcal",
        })
    else:
        console.print(
            f"[green]Profile updated[/green] (daily goal: {profile.daily_calorie_goal} kcal)"
        )


@profile_app.command("recalculate")
def profile_recalculate(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Recalculate the daily calorie goal from the stored profile."""
    json_output = use_json("profile recalculate", json_output)
    profile = get_settings().profile

    breakdown = calculate_breakdown(
        profile.sex,
        profile.weight_kg,
        profile.height_cm,
        profile.age,
        profile.activity,
        profile.goal,
    )
    profile.recalculate()
    save_settings()

    if json_output:
        output_json({
            "success": True,
            "command": "profile recalculate",
            "data": breakdown.to_dict(),
            "human_summary": f"Daily goal updated to {profile.daily_calorie_goal} kcal",
        })
    else:
        print_breakdown(breakdown)
        console.print(f"[green]Daily goal updated to {profile.daily_calorie_goal} kcal[/green]")


@profile_app.command("projection")
def profile_projection(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Project weight change from the stored goal to the target weight.

    Starts from the latest logged weigh-in, or the profile weight if none.
    """
    json_output = use_json("profile projection", json_output)
    profile = get_settings().profile

    tdee = calculate_tdee(
        profile.sex, profile.weight_kg, profile.height_cm, profile.age, profile.activity
    )
    projection = project(
        profile.daily_calorie_goal, tdee, profile.current_weight_kg, profile.target_weight_kg
    )

    if json_output:
        output_json({
            "success": True,
            "command": "profile projection",
            "data": projection.to_dict(),
            "human_summary": projection.outcome_text() or projection.weekly_change_text(),
        })
    else:
        print_projection(projection)


@profile_app.command("log-weight")
def profile_log_weight(
    weight: float = typer.Argument(
        ..., min=WEIGHT_KG_RANGE[0], max=WEIGHT_KG_RANGE[1], help="Weight in kg"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Log a weigh-in for today."""
    json_output = use_json("profile log-weight", json_output)
    profile = get_settings().profile

    try:
        entry = profile.log_weight(weight)
    except ValueError as e:
        fail("profile log-weight", str(e), json_output)
    save_settings()

    change = profile.change_since_previous()
    if json_output:
        output_json({
            "success": True,
            "command": "profile log-weight",
            "data": {
                **entry.to_dict(),
                "change_since_previous_kg": change,
            },
            "human_summary": f"Logged {entry.weight_kg:.1f} kg",
        })
    else:
        message = f"[green]Logged {entry.weight_kg:.1f} kg[/green]"
        if change is not None:
            message += f" ({format_change(change)} since last)"
        console.print(message)


@profile_app.command("weights")
def profile_weights(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show logged weigh-ins and recent progress."""
    json_output = use_json("profile weights", json_output)
    profile = get_settings().profile
    log = profile.weight_log

    if json_output:
        output_json({
            "success": True,
            "command": "profile weights",
            "data": {
                "current_weight_kg": profile.current_weight_kg,
                "change_since_previous_kg": profile.change_since_previous(),
                "recent_change_kg": profile.recent_change(),
                "entries": [entry.to_dict() for entry in log],
            },
            "human_summary": f"{len(log)} weigh-ins",
        })
        return

    if not log:
        console.print("[yellow]No weigh-ins logged yet.[/yellow]")
        console.print("Use: caltrack profile log-weight <kg>")
        return

    table = Table(title="Weight Log")
    table.add_column("Date")
    table.add_column("Weight", justify="right")
    table.add_column("Change", justify="right")

    previous = None
    for entry in log[-RECENT_WEIGHT_ENTRIES:]:
        change = None if previous is None else entry.weight_kg - previous
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            f"{entry.weight_kg:.1f} kg",
            format_change(change),
        )
        previous = entry.weight_kg

    console.print(table)
    console.print(f"Since last weigh-in: {format_change(profile.change_since_previous())}")
    console.print(
        f"Last {min(len(log), RECENT_WEIGHT_ENTRIES)} weigh-ins: "
        f"{format_change(profile.recent_change())}"
    )


if __name__ == "__main__":
    app()
