"""
Configuration loading and validation.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from riskpulse.scoring.types import INDICATOR_CATALOG


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: str = "data/riskpulse.db"


@dataclass
class ScoringConfig:
    """Composite score configuration."""

    weights: dict[str, float] = field(default_factory=lambda: dict(INDICATOR_CATALOG))
    source_timeout_seconds: float = 10.0


@dataclass
class AnomalyConfig:
    """Z-score detector configuration."""

    extreme_threshold: float = 2.0
    window: Optional[int] = None
    min_history: int = 1
    history_days: int = 365


@dataclass
class RiskConfig:
    """Risk category boundaries."""

    low_upper: float = 40.0
    high_lower: float = 70.0


@dataclass
class AutomationConfig:
    """Trigger engine configuration."""

    fetch_timeout_seconds: float = 10.0
    max_concurrency: int = 8


@dataclass
class ProviderConfig:
    """Risk level provider configuration."""

    type: str = "static"  # "static" or "http"
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = 10.0
    static_scores: dict[str, float] = field(default_factory=dict)


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"
    quote_currency: str = "USD"


@dataclass
class AppConfig:
    """Main application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    anomaly: AnomalyConfig = field(default_factory=AnomalyConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    automation: AutomationConfig = field(default_factory=AutomationConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _validate_weights(weights: dict[str, Any]) -> None:
    """Validate indicator weights."""
    for name, weight in weights.items():
        if not isinstance(weight, (int, float)) or weight < 0:
            raise ConfigValidationError(f"Invalid weight for {name}: {weight!r}")
    if weights and sum(weights.values()) == 0:
        raise ConfigValidationError("Indicator weights must not all be zero")


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    db_config = config_dict.get("database") or {}
    db_path = db_config.get("path", DatabaseConfig.path)
    if not db_path:
        raise ConfigValidationError("Database path is required")

    path = Path(db_path)
    parent = path.parent
    if db_path != ":memory:" and parent.exists() and not os.access(parent, os.W_OK):
        raise ConfigValidationError(f"Database path not writable: {parent}")

    scoring = config_dict.get("scoring") or {}
    _validate_weights(scoring.get("weights") or {})

    risk = config_dict.get("risk") or {}
    low_upper = risk.get("low_upper", RiskConfig.low_upper)
    high_lower = risk.get("high_lower", RiskConfig.high_lower)
    if not 0 <= low_upper <= high_lower <= 100:
        raise ConfigValidationError(
            f"Risk boundaries must satisfy 0 <= low_upper <= high_lower <= 100 "
            f"(got {low_upper}, {high_lower})"
        )

    anomaly = config_dict.get("anomaly") or {}
    if anomaly.get("extreme_threshold", 2.0) <= 0:
        raise ConfigValidationError("anomaly.extreme_threshold must be positive")

    provider = config_dict.get("provider") or {}
    provider_type = provider.get("type", "static")
    if provider_type not in ("static", "http"):
        raise ConfigValidationError(f"Unknown provider type: {provider_type}")
    if provider_type == "http" and not provider.get("base_url"):
        raise ConfigValidationError("provider.base_url is required for http provider")

    advanced = config_dict.get("advanced") or {}
    log_level = str(advanced.get("log_level", "INFO")).upper()
    if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigValidationError(f"Invalid log level: {log_level}")


def load_config(config_path: str) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    # Substitute environment variables
    config_dict = _substitute_env_vars(raw_config)

    # Validate
    _validate_config(config_dict)

    try:
        scoring_dict = dict(config_dict.get("scoring") or {})
        weights = scoring_dict.pop("weights", None) or dict(INDICATOR_CATALOG)
        scoring = ScoringConfig(weights={k: float(v) for k, v in weights.items()}, **scoring_dict)

        provider_dict = dict(config_dict.get("provider") or {})
        static_scores = provider_dict.pop("static_scores", None) or {}
        provider = ProviderConfig(
            static_scores={str(k).upper(): float(v) for k, v in static_scores.items()},
            **provider_dict,
        )

        return AppConfig(
            database=DatabaseConfig(**(config_dict.get("database") or {})),
            scoring=scoring,
            anomaly=AnomalyConfig(**(config_dict.get("anomaly") or {})),
            risk=RiskConfig(**(config_dict.get("risk") or {})),
            automation=AutomationConfig(**(config_dict.get("automation") or {})),
            provider=provider,
            advanced=AdvancedConfig(**(config_dict.get("advanced") or {})),
        )
    except TypeError as e:
        # Unknown keys in a section
        raise ConfigValidationError(f"Invalid configuration: {e}") from e
