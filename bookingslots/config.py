"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Literal, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import OCCUPYING_STATUSES, BookingStatus, SchedulingPolicy


class PolicyConfig(BaseModel):
    """Scheduling policy constants."""
    slot_interval_minutes: int = 30
    buffer_minutes: int = 15
    min_lead_time_hours: int = 12
    default_duration_minutes: int = 30
    occupying_statuses: List[str] = Field(
        default_factory=lambda: sorted(OCCUPYING_STATUSES)
    )

    @field_validator("slot_interval_minutes", "default_duration_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure step and duration are positive."""
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator("buffer_minutes", "min_lead_time_hours")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"Value must not be negative, got {value}")
        return value

    @field_validator("occupying_statuses")
    @classmethod
    def validate_statuses(cls, value: List[str]) -> List[str]:
        """Ensure every status is a known booking status."""
        known = {status.value for status in BookingStatus}
        unknown = [status for status in value if status not in known]
        if unknown:
            raise ValueError(f"Unknown booking status(es): {', '.join(unknown)}")
        return value


class StoreConfig(BaseModel):
    """Where schedule data is read from."""
    backend: Literal["json", "rest"] = "json"
    data_file: Path = Path("schedule.json")
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = 10.0

    @model_validator(mode="after")
    def validate_rest_settings(self) -> "StoreConfig":
        """The REST backend needs both a URL and a key."""
        if self.backend == "rest" and not (self.base_url and self.api_key):
            raise ValueError("The rest store backend requires base_url and api_key")
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "America/Chicago"
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the business timezone is a known IANA zone."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def get_policy(self) -> SchedulingPolicy:
        """Build the domain policy from configuration."""
        return SchedulingPolicy(
            timezone=self.timezone,
            slot_interval_minutes=self.policy.slot_interval_minutes,
            buffer_minutes=self.policy.buffer_minutes,
            min_lead_time_hours=self.policy.min_lead_time_hours,
            occupying_statuses=frozenset(self.policy.occupying_statuses)
        )

    def resolve_data_file(self, config_path: Optional[Path] = None) -> Path:
        """
        Resolve the JSON data file, relative to the config file if given.
        """
        data_file = self.store.data_file
        if data_file.is_absolute() or config_path is None:
            return data_file
        return config_path.parent / data_file

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
        # Try in the project root (parent of bookingslots/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
