"""Application settings and the stored user profile."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from caltrack.energy.model import (
    ActivityLevel,
    BiologicalSex,
    WeightGoal,
    calculate_daily_calorie_goal,
    round_half_up,
)

logger = logging.getLogger(__name__)

# Plausible input ranges accepted by the CLI
AGE_RANGE = (15, 100)
HEIGHT_CM_RANGE = (100.0, 250.0)
WEIGHT_KG_RANGE = (30.0, 300.0)

OUTPUT_FORMATS = ("table", "json")

# Weigh-ins covered by the progress change
RECENT_WEIGHT_ENTRIES = 30


class SettingsError(ValueError):
    """Raised when the config file cannot be read or holds invalid values."""


def _default_config_dir() -> Path:
    """Return the configuration directory, honoring CALTRACK_HOME."""
    override = os.environ.get("CALTRACK_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".caltrack"


def default_config_path() -> Path:
    """Return the default config.yaml path."""
    return _default_config_dir() / "config.yaml"


@dataclass
class WeightEntry:
    """A single logged weigh-in."""

    weight_kg: float
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "weight_kg": self.weight_kg,
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeightEntry":
        """Build an entry from stored values.

        YAML may hand back the timestamp already parsed as a datetime.
        """
        if not isinstance(data, dict):
            raise TypeError(f"weight_log entry must be a mapping, got {data!r}")
        timestamp = data["timestamp"]
        if not isinstance(timestamp, datetime):
            timestamp = datetime.fromisoformat(str(timestamp))
        return cls(weight_kg=float(data["weight_kg"]), timestamp=timestamp)


def _change(entries: list[WeightEntry]) -> Optional[float]:
    """Latest minus earliest weight, or None with fewer than two entries."""
    if len(entries) < 2:
        return None
    return entries[-1].weight_kg - entries[0].weight_kg


@dataclass
class ProfileSettings:
    """Key-value profile store, with first-launch defaults."""

    has_completed_onboarding: bool = False
    daily_calorie_goal: int = 2000
    sex: BiologicalSex = BiologicalSex.MALE
    age: int = 25
    height_cm: float = 170.0
    weight_kg: float = 70.0
    activity: ActivityLevel = ActivityLevel.MODERATELY_ACTIVE
    goal: WeightGoal = WeightGoal.MAINTAIN
    target_weight_kg: float = 70.0
    weight_log: list[WeightEntry] = field(default_factory=list)  # oldest first

    @property
    def current_weight_kg(self) -> float:
        """Latest logged weight, falling back to the profile weight."""
        if self.weight_log:
            return self.weight_log[-1].weight_kg
        return self.weight_kg

    def log_weight(
        self,
        weight_kg: float,
        timestamp: Optional[datetime] = None,
    ) -> WeightEntry:
        """Record a weigh-in, rounded to 0.1 kg.

        Raises:
            ValueError: If the weight is outside the plausible range
        """
        low, high = WEIGHT_KG_RANGE
        if not low <= weight_kg <= high:
            raise ValueError(f"Weight must be between {low:g} and {high:g} kg, got {weight_kg:g}")

        entry = WeightEntry(
            weight_kg=round_half_up(weight_kg * 10) / 10,
            timestamp=timestamp or datetime.now(),
        )
        self.weight_log.append(entry)
        self.weight_log.sort(key=lambda e: e.timestamp)
        logger.debug("Logged weight %.1f kg at %s", entry.weight_kg, entry.timestamp)
        return entry

    def change_since_previous(self) -> Optional[float]:
        """Latest weigh-in minus the one before it."""
        return _change(self.weight_log[-2:])

    def recent_change(self) -> Optional[float]:
        """Change across the last RECENT_WEIGHT_ENTRIES weigh-ins."""
        return _change(self.weight_log[-RECENT_WEIGHT_ENTRIES:])

    def apply_goal(self, goal: WeightGoal) -> None:
        """Set the weight goal; maintaining snaps the target to current weight."""
        self.goal = goal
        if goal == WeightGoal.MAINTAIN:
            self.target_weight_kg = self.weight_kg

    def recalculate(self) -> int:
        """Recompute and store the daily calorie goal from the profile.

        Returns:
            The new daily calorie goal
        """
        self.daily_calorie_goal = calculate_daily_calorie_goal(
            self.sex,
            self.weight_kg,
            self.height_cm,
            self.age,
            self.activity,
            self.goal,
        )
        self.has_completed_onboarding = True
        logger.debug("Recalculated daily calorie goal: %d kcal", self.daily_calorie_goal)
        return self.daily_calorie_goal

    def to_dict(self) -> dict:
        return {
            "has_completed_onboarding": self.has_completed_onboarding,
            "daily_calorie_goal": self.daily_calorie_goal,
            "sex": self.sex.value,
            "age": self.age,
            "height_cm": self.height_cm,
            "weight_kg": self.weight_kg,
            "activity": self.activity.value,
            "goal": self.goal.value,
            "target_weight_kg": self.target_weight_kg,
            "weight_log": [entry.to_dict() for entry in self.weight_log],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProfileSettings":
        """Build a profile from stored values, keeping defaults for missing keys.

        Raises:
            SettingsError: If a stored value has the wrong type or an unknown name
        """
        profile = cls()
        try:
            if "has_completed_onboarding" in data:
                onboarded = data["has_completed_onboarding"]
                if not isinstance(onboarded, bool):
                    raise TypeError(
                        f"has_completed_onboarding must be true or false, got {onboarded!r}"
                    )
                profile.has_completed_onboarding = onboarded
            if "daily_calorie_goal" in data:
                profile.daily_calorie_goal = int(data["daily_calorie_goal"])
            if "sex" in data:
                profile.sex = BiologicalSex.parse(data["sex"])
            if "age" in data:
                profile.age = int(data["age"])
            if "height_cm" in data:
                profile.height_cm = float(data["height_cm"])
            if "weight_kg" in data:
                profile.weight_kg = float(data["weight_kg"])
            if "activity" in data:
                profile.activity = ActivityLevel.parse(data["activity"])
            if "goal" in data:
                profile.goal = WeightGoal.parse(data["goal"])
            if "target_weight_kg" in data:
                profile.target_weight_kg = float(data["target_weight_kg"])
            if data.get("weight_log"):
                profile.weight_log = sorted(
                    (WeightEntry.from_dict(entry) for entry in data["weight_log"]),
                    key=lambda e: e.timestamp,
                )
        except (KeyError, TypeError, ValueError) as e:
            raise SettingsError(f"Invalid profile setting: {e}") from e
        return profile


@dataclass
class DefaultsConfig:
    """Default values for various operations."""

    output_format: str = "table"  # "table" or "json"


@dataclass
class Settings:
    """Main application settings."""

    profile: ProfileSettings = field(default_factory=ProfileSettings)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.caltrack/config.yaml

        Returns:
            Settings instance

        Raises:
            SettingsError: If the file is not valid YAML or holds invalid values
        """
        if config_path is None:
            config_path = default_config_path()

        if not config_path.exists():
            logger.debug("No config at %s, using defaults", config_path)
            return cls()

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise SettingsError(f"Could not parse {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise SettingsError(f"Expected a mapping in {config_path}")

        for key in ("profile", "defaults"):
            if key in data and not isinstance(data[key] or {}, dict):
                raise SettingsError(f"Expected a mapping under '{key}' in {config_path}")

        settings = cls()

        if "profile" in data:
            settings.profile = ProfileSettings.from_dict(data["profile"] or {})

        if "defaults" in data:
            def_data = data["defaults"] or {}
            if "output_format" in def_data:
                output_format = def_data["output_format"]
                if output_format not in OUTPUT_FORMATS:
                    raise SettingsError(
                        f"Invalid output_format '{output_format}'. "
                        f"Valid: {', '.join(OUTPUT_FORMATS)}"
                    )
                settings.defaults.output_format = output_format

        logger.debug("Loaded settings from %s", config_path)
        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.caltrack/config.yaml
        """
        if config_path is None:
            config_path = default_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "profile": self.profile.to_dict(),
            "defaults": {
                "output_format": self.defaults.output_format,
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        logger.debug("Saved settings to %s", config_path)


# Global settings instance (lazy loaded) and the file it came from
_settings: Optional[Settings] = None
_settings_path: Optional[Path] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load(_settings_path)
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk.

    Args:
        config_path: Alternate config.yaml; later save_settings() calls write here
    """
    global _settings, _settings_path
    _settings_path = config_path
    _settings = Settings.load(config_path)
    return _settings


def save_settings() -> None:
    """Write the global settings back to the file they were loaded from."""
    get_settings().save(_settings_path)
