"""
Charlottesville Crime - Configuration Loader

Pydantic-based configuration management with:
- Environment-based configuration (dev/prod)
- YAML file loading with inheritance
- Environment variable overrides for secrets
- Type validation via Pydantic

Usage:
    from cville_crime.shared.config import get_config

    config = get_config()  # Uses CC_ENVIRONMENT env var
    config = get_config("dev")  # Explicit environment

    # Access config values
    limit = config.geocoding.daily_limit
    cache = get_data_path("cache", config)
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = "cville-crime"
    version: str = "0.1.0"
    description: str = "Geocoded crime incident data for Charlottesville, VA"


class StorageConfig(BaseModel):
    """Local storage configuration."""

    data_dir: str = "data"
    raw: str = "raw"
    processed: str = "processed"
    cache_file: str = "geocode_cache.csv"
    output_file: str = "crime_geocoded.csv"


class CrimeSourceConfig(BaseModel):
    """Crime dataset source configuration."""

    source_url: str = (
        "https://opendata.arcgis.com/datasets/d1877e350fad45d192d233d2b2600156_7.geojson"
    )
    timeout_seconds: int = 120
    default_block_number: int = 100


class GeocodingConfig(BaseModel):
    """Geocoding service configuration."""

    provider: str = "google"
    base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    locality: str = "Charlottesville VA"
    timeout_seconds: float = 10.0
    daily_limit: int = Field(default=2500, gt=0)
    batch_size: int = Field(default=1250, gt=0)
    on_quota_exhausted: Literal["fail", "pause"] = "fail"
    request_interval_seconds: float = Field(default=0.0, ge=0.0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "text"


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Main configuration class for the crime geocoding pipeline.

    Loads configuration from:
    1. YAML files in configs/environments/
    2. Environment variables (for secrets)

    Environment variables take precedence over YAML values.
    """

    model_config = SettingsConfigDict(
        env_prefix="CC_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Literal["dev", "prod"] = "dev"

    # Configuration sections
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    crime: CrimeSourceConfig = Field(default_factory=CrimeSourceConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Secrets (from environment variables only)
    google_maps_api_key: str | None = Field(default=None, alias="GOOGLE_MAPS_API_KEY")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"dev", "prod"}
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _get_config_dir() -> Path:
    """Get the configuration directory path."""
    # Try relative path from project root
    config_dir = Path(__file__).parent.parent.parent / "configs"
    if config_dir.exists():
        return config_dir

    # Try from current working directory
    config_dir = Path.cwd() / "configs"
    if config_dir.exists():
        return config_dir

    raise FileNotFoundError(
        "Could not find configs directory. Ensure you're running from the project root."
    )


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_for_environment(environment: str) -> dict[str, Any]:
    """Load and merge configuration for a specific environment."""
    env_dir = _get_config_dir() / "environments"

    base_config = _load_yaml_file(env_dir / "base.yaml")
    env_config = _load_yaml_file(env_dir / f"{environment}.yaml")

    # Remove inheritance marker if present
    env_config.pop("_inherit", None)

    merged = _deep_merge(base_config, env_config)
    merged["environment"] = environment

    return merged


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for the specified environment.

    Args:
        environment: Environment name (dev, prod).
                    If None, uses CC_ENVIRONMENT env var, defaulting to "dev".

    Returns:
        Settings: Validated configuration object.
    """
    if environment is None:
        environment = os.getenv("CC_ENVIRONMENT", "dev")

    yaml_config = _load_config_for_environment(environment)

    # Create Settings object (also loads env vars)
    return Settings(**yaml_config)


def reload_config(environment: str | None = None) -> Settings:
    """
    Reload configuration, clearing the cache.

    Useful for testing or when config files have changed.
    """
    get_config.cache_clear()
    return get_config(environment)


@lru_cache(maxsize=16)
def get_dataset_config(dataset: str) -> dict[str, Any]:
    """
    Load the per-dataset settings from configs/datasets/<dataset>.yaml.

    Returns an empty dict when the file does not exist so module-level
    lookups can fall back to their defaults.
    """
    try:
        config_dir = _get_config_dir()
    except FileNotFoundError:
        return {}
    return _load_yaml_file(config_dir / "datasets" / f"{dataset}.yaml")


# =============================================================================
# Convenience Functions
# =============================================================================


def get_data_path(kind: str, config: Settings | None = None) -> Path:
    """
    Resolve a storage location.

    Args:
        kind: One of "raw", "processed", "cache", "output"
        config: Optional config object (uses default if not provided)

    Returns:
        Path under the configured data directory
    """
    if config is None:
        config = get_config()

    storage = config.storage
    root = Path(storage.data_dir)
    if kind == "cache":
        return root / storage.processed / storage.cache_file
    if kind == "output":
        return root / storage.processed / storage.output_file
    if kind in ("raw", "processed"):
        return root / getattr(storage, kind)
    raise ValueError(f"Unknown storage kind: {kind}")
