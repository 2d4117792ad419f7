"""Tests for CLI commands."""

from __future__ import annotations

import json

from typer.testing import CliRunner

from caltrack.cli import app
from caltrack.config.settings import Settings

runner = CliRunner()

MALE_EXAMPLE = ["--sex", "male", "--age", "30", "--height", "180", "--weight", "80"]
FEMALE_EXAMPLE = ["--sex", "female", "--age", "25", "--height", "165", "--weight", "55"]


class TestMainCommands:
    """Tests for main CLI commands."""

    def test_help(self):
        """Test that --help works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "calorie" in result.output.lower()

    def test_bmr_json(self, config_home):
        result = runner.invoke(app, ["bmr", *MALE_EXAMPLE, "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["data"]["bmr"] == 1780.0

    def test_bmr_table(self, config_home):
        result = runner.invoke(app, ["bmr", *FEMALE_EXAMPLE])
        assert result.exit_code == 0
        assert "1295" in result.output

    def test_tdee_json(self, config_home):
        result = runner.invoke(
            app, ["tdee", *FEMALE_EXAMPLE, "--activity", "sedentary", "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["activity_multiplier"] == 1.2
        assert abs(data["data"]["tdee"] - 1554.3) < 1e-9

    def test_goal_male_example(self, config_home):
        result = runner.invoke(
            app,
            ["goal", *MALE_EXAMPLE, "--activity", "moderately_active", "--goal", "lose", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["daily_calorie_goal"] == 2259
        assert data["data"]["floor_applied"] is False

    def test_goal_female_floor(self, config_home):
        result = runner.invoke(
            app,
            ["goal", *FEMALE_EXAMPLE, "--activity", "sedentary", "--goal", "lose", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["daily_calorie_goal"] == 1295
        assert data["data"]["floor_reason"] == "bmr"

    def test_goal_table(self, config_home):
        result = runner.invoke(
            app, ["goal", *MALE_EXAMPLE, "--activity", "moderatelyActive", "--goal", "lose"]
        )
        assert result.exit_code == 0
        assert "2259" in result.output

    def test_goal_invalid_activity(self, config_home):
        result = runner.invoke(app, ["goal", *MALE_EXAMPLE, "--activity", "couch"])
        assert result.exit_code == 1
        assert "Invalid ActivityLevel" in result.output

    def test_goal_invalid_goal_json(self, config_home):
        result = runner.invoke(app, ["goal", *MALE_EXAMPLE, "--goal", "bulk", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["errors"]

    def test_age_out_of_range(self, config_home):
        """Ages outside 15-100 are rejected by option bounds."""
        result = runner.invoke(
            app, ["bmr", "--sex", "male", "--age", "12", "--height", "150", "--weight", "40"]
        )
        assert result.exit_code != 0

    def test_goal_requires_body_metrics(self, config_home):
        result = runner.invoke(app, ["goal"])
        assert result.exit_code != 0


class TestProjectCommand:
    """Tests for the project command."""

    def test_project_with_target(self, config_home):
        result = runner.invoke(
            app,
            ["project", "--calories", "2259", "--tdee", "2759",
             "--current", "80", "--target", "75.5", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["weeks_to_target"] == 10
        assert data["data"]["duration"] == "~2 mo 2 wk"

    def test_project_direction_mismatch(self, config_home):
        result = runner.invoke(
            app,
            ["project", "--calories", "3000", "--tdee", "2500",
             "--current", "70", "--target", "65", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["weeks_to_target"] is None
        assert data["human_summary"] == "Adjust goal"

    def test_project_panel(self, config_home):
        result = runner.invoke(app, ["project", "--calories", "2000", "--tdee", "2000"])
        assert result.exit_code == 0
        assert "At maintenance" in result.output
        assert "Weight stable" in result.output

    def test_project_requires_both_weights(self, config_home):
        result = runner.invoke(
            app, ["project", "--calories", "2000", "--tdee", "2500", "--current", "70"]
        )
        assert result.exit_code == 1


class TestProfileCommands:
    """Tests for profile subcommands."""

    def test_profile_help(self, config_home):
        """Test that profile --help works."""
        result = runner.invoke(app, ["profile", "--help"])
        assert result.exit_code == 0

    def test_show_defaults(self, config_home):
        result = runner.invoke(app, ["profile", "show", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["daily_calorie_goal"] == 2000
        assert data["data"]["has_completed_onboarding"] is False

    def test_set_recalculates_and_saves(self, config_home, config_path):
        result = runner.invoke(
            app,
            ["profile", "set", *MALE_EXAMPLE, "--activity", "moderately_active",
             "--goal", "lose", "--target", "75", "--json"],
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["daily_calorie_goal"] == 2259

        saved = Settings.load(config_path)
        assert saved.profile.daily_calorie_goal == 2259
        assert saved.profile.target_weight_kg == 75.0
        assert saved.profile.has_completed_onboarding is True

    def test_set_maintain_snaps_target(self, config_home, config_path):
        runner.invoke(app, ["profile", "set", "--weight", "82", "--target", "75", "--goal", "lose"])
        result = runner.invoke(app, ["profile", "set", "--goal", "maintain"])
        assert result.exit_code == 0
        assert Settings.load(config_path).profile.target_weight_kg == 82.0

    def test_set_calories_directly(self, config_home, config_path):
        result = runner.invoke(app, ["profile", "set", "--weight", "90", "--calories", "1800"])
        assert result.exit_code == 0
        saved = Settings.load(config_path)
        assert saved.profile.daily_calorie_goal == 1800
        assert saved.profile.weight_kg == 90.0

    def test_recalculate(self, config_home, config_path):
        Settings.load(config_path).save(config_path)
        result = runner.invoke(app, ["profile", "recalculate", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        # Defaults: male, 25y, 170cm, 70kg, moderately active, maintain
        assert data["data"]["daily_calorie_goal"] == 2546
        assert Settings.load(config_path).profile.daily_calorie_goal == 2546

    def test_projection(self, config_home):
        runner.invoke(
            app,
            ["profile", "set", *MALE_EXAMPLE, "--activity", "moderately_active",
             "--goal", "lose", "--target", "75.5"],
        )
        result = runner.invoke(app, ["profile", "projection", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["weeks_to_target"] == 10

    def test_json_default_output_format(self, config_home, config_path):
        config_path.write_text("defaults:\n  output_format: json\n")
        result = runner.invoke(app, ["profile", "show"])
        assert result.exit_code == 0
        assert json.loads(result.output)["success"] is True

    def test_bad_config_exits(self, config_home, config_path):
        config_path.write_text("profile:\n  activity: couch\n")
        result = runner.invoke(app, ["profile", "show"])
        assert result.exit_code == 1

    def test_bad_config_json_envelope(self, config_home, config_path):
        """A config load error still honors --json."""
        config_path.write_text("profile:\n  activity: couch\n")
        result = runner.invoke(app, ["profile", "show", "--json"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["command"] == "profile show"
        assert "Invalid ActivityLevel" in data["errors"][0]

    def test_scalar_section_reports_error(self, config_home, config_path):
        config_path.write_text("defaults: 5\n")
        result = runner.invoke(app, ["profile", "show"])
        assert result.exit_code == 1
        assert "Expected a mapping under 'defaults'" in result.output
        assert not isinstance(result.exception, TypeError)

    def test_explicit_config_path(self, config_home, tmp_path):
        other = tmp_path / "other.yaml"
        result = runner.invoke(app, ["--config", str(other), "profile", "set", "--age", "40"])
        assert result.exit_code == 0
        assert Settings.load(other).profile.age == 40


class TestWeightLogCommands:
    """Tests for profile log-weight and profile weights."""

    def test_log_weight_saves_rounded_entry(self, config_home, config_path):
        result = runner.invoke(app, ["profile", "log-weight", "80.25", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["weight_kg"] == 80.3
        assert data["data"]["change_since_previous_kg"] is None

        saved = Settings.load(config_path)
        assert [e.weight_kg for e in saved.profile.weight_log] == [80.3]
        # The profile weight used for TDEE is left alone
        assert saved.profile.weight_kg == 70.0

    def test_log_weight_shows_change(self, config_home):
        runner.invoke(app, ["profile", "log-weight", "82"])
        result = runner.invoke(app, ["profile", "log-weight", "81.5"])
        assert result.exit_code == 0
        assert "81.5 kg" in result.output
        assert "-0.5 kg" in result.output

    def test_log_weight_out_of_range(self, config_home, config_path):
        result = runner.invoke(app, ["profile", "log-weight", "25"])
        assert result.exit_code != 0
        assert not config_path.exists()

    def test_weights_empty(self, config_home):
        result = runner.invoke(app, ["profile", "weights"])
        assert result.exit_code == 0
        assert "No weigh-ins" in result.output

    def test_weights_table(self, config_home):
        for weight in ("82", "81.5", "81.2"):
            runner.invoke(app, ["profile", "log-weight", weight])
        result = runner.invoke(app, ["profile", "weights"])
        assert result.exit_code == 0
        assert "81.2 kg" in result.output
        assert "-0.3 kg" in result.output
        assert "-0.8 kg" in result.output

    def test_weights_json(self, config_home):
        runner.invoke(app, ["profile", "log-weight", "82"])
        runner.invoke(app, ["profile", "log-weight", "81"])
        result = runner.invoke(app, ["profile", "weights", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["current_weight_kg"] == 81.0
        assert data["change_since_previous_kg"] == -1.0
        assert data["recent_change_kg"] == -1.0
        assert len(data["entries"]) == 2

    def test_projection_starts_from_latest_weigh_in(self, config_home):
        runner.invoke(
            app,
            ["profile", "set", *MALE_EXAMPLE, "--activity", "moderately_active",
             "--goal", "lose", "--target", "75.5"],
        )
        runner.invoke(app, ["profile", "log-weight", "78.5"])
        result = runner.invoke(app, ["profile", "projection", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["current_weight_kg"] == 78.5
        # 500 kcal/day deficit is ~0.4545 kg/week: 3 kg takes 7 weeks
        assert data["data"]["weeks_to_target"] == 7
