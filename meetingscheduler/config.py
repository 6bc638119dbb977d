"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.constraints import ConstraintValidator


class ProviderConfig(BaseModel):
    """Remote calendar provider settings."""
    base_url: str = "http://localhost:8083"
    enabled: bool = True
    timeout_seconds: float = 10.0
    max_attempts: int = 3
    initial_delay_seconds: float = 1.0
    multiplier: float = 2.0

    @field_validator("timeout_seconds", "multiplier")
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"max_attempts must be at least 1, got {value}")
        return value

    @field_validator("initial_delay_seconds")
    @classmethod
    def validate_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"initial_delay_seconds must not be negative, got {value}")
        return value

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class RetryConfig(BaseModel):
    """Optimistic-lock retry settings for mutating operations."""
    max_attempts: int = 3
    initial_delay_seconds: float = 0.5
    multiplier: float = 2.0

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"max_attempts must be at least 1, got {value}")
        return value

    @field_validator("initial_delay_seconds")
    @classmethod
    def validate_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"initial_delay_seconds must not be negative, got {value}")
        return value

    @field_validator("multiplier")
    @classmethod
    def validate_multiplier(cls, value: float) -> float:
        if value < 1:
            raise ValueError(f"multiplier must be at least 1, got {value}")
        return value


class ConstraintsConfig(BaseModel):
    """Limits applied to every scheduling request."""
    max_range_days: int = 7
    min_slot_minutes: int = 15
    max_slot_minutes: int = 480
    max_meeting_minutes: int = 480

    @field_validator(
        "max_range_days", "min_slot_minutes", "max_slot_minutes", "max_meeting_minutes"
    )
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"Value must be greater than zero, got {value}")
        return value

    @model_validator(mode="after")
    def validate_slot_bounds(self) -> "ConstraintsConfig":
        """Ensure the slot window is not inverted."""
        if self.max_slot_minutes < self.min_slot_minutes:
            raise ValueError("max_slot_minutes must not be lower than min_slot_minutes")
        return self

    def build_validator(self) -> ConstraintValidator:
        return ConstraintValidator(
            max_range_days=self.max_range_days,
            min_slot_minutes=self.min_slot_minutes,
            max_slot_minutes=self.max_slot_minutes,
            max_meeting_minutes=self.max_meeting_minutes,
        )


class StoreConfig(BaseModel):
    """Local meeting store settings."""
    path: Path = Path("meetings.db")


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "UTC"
    default_page_size: int = 10
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    constraints: ConstraintsConfig = Field(default_factory=ConstraintsConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("default_page_size")
    @classmethod
    def validate_page_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"default_page_size must be at least 1, got {value}")
        return value

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
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
