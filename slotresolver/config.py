"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfoNotFoundError

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

API_KEY_ENV_VAR = "SLOTRESOLVER_API_KEY"


class DefaultsConfig(BaseModel):
    """Default settings for slot resolution."""
    horizon_days: int = 14
    granularity_minutes: int = 30
    session_minutes: Optional[int] = None

    @field_validator("horizon_days")
    @classmethod
    def validate_horizon(cls, value: int) -> int:
        """Ensure the horizon covers at least one day."""
        if value <= 0:
            raise ValueError("horizon_days must be greater than zero")
        return value

    @field_validator("granularity_minutes")
    @classmethod
    def validate_granularity(cls, value: int) -> int:
        """Granularity must be positive and split a day evenly."""
        if value <= 0 or (24 * 60) % value != 0:
            raise ValueError(f"granularity_minutes must divide 1440, got {value}")
        return value

    @field_validator("session_minutes")
    @classmethod
    def validate_session(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("session_minutes must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    backend_url: str = ""
    api_key: str = ""
    availability_table: str = "provider_availability"
    bookings_table: str = "bookings"
    timezone: str = "UTC"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except (ValueError, ZoneInfoNotFoundError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("backend_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def get_rest_url(self) -> str:
        """Get the base URL of the backend's REST table API."""
        return f"{self.backend_url}/rest/v1"

    def resolve_api_key(self) -> str:
        """Return the API key, preferring the environment over the file."""
        return os.environ.get(API_KEY_ENV_VAR) or self.api_key

    def has_backend(self) -> bool:
        return bool(self.backend_url and self.resolve_api_key())

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotresolver/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load the configuration, falling back to defaults when no file exists.

    An explicitly given path must exist.
    """
    if config_path is not None:
        return AppConfig.load_from_yaml(config_path)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()
