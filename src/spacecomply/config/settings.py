"""
Configuration settings management for SpaceComply.

This module handles loading, validating, and saving configuration settings
from YAML files with support for environment variable overrides.

Configuration is loaded from ~/.spacecomply/config.yaml by default, with the
path overridable via the SPACECOMPLY_CONFIG environment variable.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".spacecomply"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"


@dataclass
class ScoringSettings:
    """Scoring settings."""

    # Score reported when no applicable requirement carries weight
    empty_score: int = 100
    partial_credit: float = 0.5


@dataclass
class AnalysisSettings:
    """Gap analysis settings."""

    max_top_recommendations: int = 10


@dataclass
class ReportingConfig:
    """Reporting settings."""

    organization: str = ""
    output_dir: str = str(DEFAULT_CONFIG_DIR / "reports")


@dataclass
class Settings:
    """
    Complete SpaceComply configuration settings.

    Settings are loaded from a YAML configuration file and can be overridden
    by environment variables prefixed with SPACECOMPLY_.

    Attributes:
        data_dir: Directory for the assessment database.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        scoring: Score calculation settings.
        analysis: Gap analysis settings.
        reporting: Report generation settings.
    """

    data_dir: str = str(DEFAULT_CONFIG_DIR / "data")
    log_level: str = "INFO"

    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from SPACECOMPLY_CONFIG environment variable if set,
    otherwise returns the default path (~/.spacecomply/config.yaml).

    Returns:
        Path to the configuration file.
    """
    env_path = os.environ.get("SPACECOMPLY_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(config_path: Path | None = None) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, and validates the configuration.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses SPACECOMPLY_CONFIG environment variable or default path.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        settings = _apply_config_data(settings, config_data)

    try:
        settings = _apply_environment_overrides(settings)
    except ValueError as e:
        raise ConfigurationError(f"Invalid environment override: {e}") from e

    _validate_config(settings)

    return settings


def save_config(settings: Settings, config_path: Path | None = None) -> None:
    """
    Save configuration to YAML file.

    Args:
        settings: Settings instance to save.
        config_path: Optional path to configuration file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_data = _settings_to_dict(settings)

    try:
        with open(config_path, "w") as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Cannot write config file: {e}") from e


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    main_data = data.get("spacecomply") or {}

    if "data_dir" in main_data:
        settings.data_dir = str(main_data["data_dir"])
    if "log_level" in main_data:
        settings.log_level = str(main_data["log_level"]).upper()

    scoring = data.get("scoring") or {}
    try:
        if "empty_score" in scoring:
            settings.scoring.empty_score = int(scoring["empty_score"])
        if "partial_credit" in scoring:
            settings.scoring.partial_credit = float(scoring["partial_credit"])
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid scoring settings: {e}") from e

    analysis = data.get("analysis") or {}
    if "max_top_recommendations" in analysis:
        try:
            settings.analysis.max_top_recommendations = int(
                analysis["max_top_recommendations"]
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid analysis settings: {e}") from e

    reporting = data.get("reporting") or {}
    if "organization" in reporting:
        settings.reporting.organization = str(reporting["organization"] or "")
    if "output_dir" in reporting:
        settings.reporting.output_dir = str(reporting["output_dir"])

    return settings


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "SPACECOMPLY_DATA_DIR": ("data_dir", str),
        "SPACECOMPLY_LOG_LEVEL": ("log_level", lambda x: x.upper()),
        "SPACECOMPLY_EMPTY_SCORE": ("scoring.empty_score", int),
        "SPACECOMPLY_ORGANIZATION": ("reporting.organization", str),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested_attr(settings, attr_path, converter(value))

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if settings.log_level not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(valid_log_levels))}"
        )

    if not 0 <= settings.scoring.empty_score <= 100:
        raise ConfigurationError("empty_score must be between 0 and 100")

    if not 0.0 <= settings.scoring.partial_credit <= 1.0:
        raise ConfigurationError("partial_credit must be between 0.0 and 1.0")

    if settings.analysis.max_top_recommendations < 1:
        raise ConfigurationError("max_top_recommendations must be at least 1")


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings instance to dictionary for YAML serialization."""
    return {
        "spacecomply": {
            "data_dir": settings.data_dir,
            "log_level": settings.log_level,
        },
        "scoring": {
            "empty_score": settings.scoring.empty_score,
            "partial_credit": settings.scoring.partial_credit,
        },
        "analysis": {
            "max_top_recommendations": settings.analysis.max_top_recommendations,
        },
        "reporting": {
            "organization": settings.reporting.organization,
            "output_dir": settings.reporting.output_dir,
        },
    }
