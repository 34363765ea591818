"""
ETV Configuration Settings

Thresholds and defaults for a single analysis run.
Values are loaded from the "options" section of config.yaml, then
overridden by ETV_* environment variables (a .env file is honoured).
"""

import logging
import os
import re
from dataclasses import dataclass, fields
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import find_dotenv, load_dotenv

from . import filters
from .activity_log import DEFAULT_MIN_LOG_HOURS_PER_DAY
from .bulk_energy import DEFAULT_MIDNIGHT_TOLERANCE_MINUTES, DEFAULT_NB_TIMEZONE
from .exceptions import ConfigurationError
from .hdd import DEFAULT_BASE_TEMPERATURE
from .regression import DEFAULT_REFERENCE_HDD

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


@dataclass(frozen=True)
class ETVSettings:
    """Configuration for one ETV run."""

    time_zone: str = DEFAULT_NB_TIMEZONE  # Local zone of the bulk energy and HDD data
    hdd_base_temperature: float = DEFAULT_BASE_TEMPERATURE  # °C
    midnight_tolerance_minutes: int = DEFAULT_MIDNIGHT_TOLERANCE_MINUTES

    # Basic result quality gate
    min_days: int = filters.MIN_DAYS
    min_r2: float = filters.MIN_R2
    min_slope: float = filters.MIN_SLOPE  # Exclusive
    max_slope: float = filters.MAX_SLOPE  # kWh/HDD
    min_baseline: float = filters.MIN_BASELINE  # kWh/day
    max_baseline: float = filters.MAX_BASELINE

    # Segmentation
    min_control_and_normal_days: int = filters.MIN_CONTROL_AND_NORMAL_DAYS
    min_log_hours_per_day: int = DEFAULT_MIN_LOG_HOURS_PER_DAY
    reference_hdd: float = DEFAULT_REFERENCE_HDD

    max_workers: int = 1

    @property
    def zone_info(self) -> ZoneInfo:
        """Time zone as a ZoneInfo."""
        return ZoneInfo(self.time_zone)

    @classmethod
    def from_dict(cls, data: dict) -> "ETVSettings":
        """Create from dictionary (camelCase or snake_case keys)."""
        converted = {_camel_to_snake(k): v for k, v in data.items()}

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(converted) - known)
        if unknown:
            raise ConfigurationError(f"Unknown settings: {unknown}")

        settings = cls(**converted)
        settings.validate()
        return settings

    def validate(self):
        """Check values are usable, raising ConfigurationError if not."""
        try:
            ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Unknown time zone: {self.time_zone}") from e

        for name in ("min_days", "min_control_and_normal_days", "min_log_hours_per_day", "max_workers"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1")

        if not 1 <= self.midnight_tolerance_minutes <= 24 * 60:
            raise ConfigurationError("midnight_tolerance_minutes must be between 1 and 1440")
        if self.min_log_hours_per_day > 24:
            raise ConfigurationError("min_log_hours_per_day cannot exceed 24")
        if self.min_slope >= self.max_slope:
            raise ConfigurationError("min_slope must be below max_slope")
        if self.min_baseline > self.max_baseline:
            raise ConfigurationError("min_baseline must not exceed max_baseline")


# Environment variable -> (setting name, type)
_ENV_OVERRIDES = {
    "ETV_TIME_ZONE": ("time_zone", str),
    "ETV_HDD_BASE_TEMPERATURE": ("hdd_base_temperature", float),
    "ETV_MAX_WORKERS": ("max_workers", int),
    "ETV_REFERENCE_HDD": ("reference_hdd", float),
}


def load_settings(config_path: str | None = None) -> ETVSettings:
    """Load settings from config.yaml (if present) and environment.

    Args:
        config_path: YAML file to read; defaults to ./config.yaml when it exists

    Returns:
        Validated ETVSettings
    """
    options = {}

    path = config_path or DEFAULT_CONFIG_PATH
    if os.path.exists(path):
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        options = dict(config.get("options", {}) or {})
        logger.debug(f"Loaded settings from {path}")
    elif config_path:
        raise ConfigurationError(f"Config file not found: {config_path}")

    load_dotenv(find_dotenv(usecwd=True))
    for env_name, (setting, cast) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or value == "":
            continue
        try:
            options[setting] = cast(value)
        except ValueError as e:
            raise ConfigurationError(f"Bad value for {env_name}: {value!r}") from e
        logger.debug(f"Setting {setting} overridden from {env_name}")

    return ETVSettings.from_dict(options)
