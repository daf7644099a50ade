"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import time
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import InvalidInterval
from .domain.models import SlotWindow, parse_time


class SlotDefaults(BaseModel):
    """Bookable day window and slot granularity."""
    day_start: str = "08:00"
    day_end: str = "20:00"
    step_minutes: int = 60

    @field_validator("day_start", "day_end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Ensure times use the HH:MM format."""
        try:
            parse_time(value)
        except InvalidInterval as exc:
            raise ValueError(exc.message) from exc
        return value

    @field_validator("step_minutes")
    @classmethod
    def validate_step(cls, value: int) -> int:
        """Ensure slot granularity is positive."""
        if value <= 0:
            raise ValueError("step_minutes must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_window_order(self) -> "SlotDefaults":
        """Ensure the configured window opens before it closes."""
        if parse_time(self.day_end) <= parse_time(self.day_start):
            raise ValueError("day_end must be later than day_start")
        return self

    def get_start_time(self) -> time:
        return parse_time(self.day_start)

    def get_end_time(self) -> time:
        return parse_time(self.day_end)

    def to_window(self, step_minutes: Optional[int] = None) -> SlotWindow:
        """Build the domain window, optionally with a different step."""
        return SlotWindow(
            day_start=self.get_start_time(),
            day_end=self.get_end_time(),
            step_minutes=step_minutes if step_minutes is not None else self.step_minutes,
        )


class StorageConfig(BaseModel):
    """Where reservations are kept."""
    backend: Literal["yaml", "memory", "api"] = "yaml"
    data_dir: Path = Path("data")
    api_url: Optional[str] = None
    api_token: Optional[str] = None
    timeout_seconds: float = 30

    @model_validator(mode="after")
    def validate_api_url(self) -> "StorageConfig":
        """The api backend needs a URL."""
        if self.backend == "api" and not self.api_url:
            raise ValueError("storage.api_url is required when backend is 'api'")
        return self


class AuthConfig(BaseModel):
    """Session storage settings."""
    use_keyring: bool = True
    session_file: Optional[Path] = None


class AppConfig(BaseModel):
    """Application configuration."""
    slots: SlotDefaults = Field(default_factory=SlotDefaults)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    cache_ttl_seconds: float = 60
    timezone: Optional[str] = None

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, value: float) -> float:
        if value < 0:
            raise ValueError("cache_ttl_seconds must not be negative")
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

    @classmethod
    def load_or_default(cls, config_path: Optional[Path] = None) -> "AppConfig":
        """Load the config file if there is one, otherwise use defaults."""
        path = config_path or get_default_config_path()
        if config_path is None and not path.exists():
            return cls()
        return cls.load_from_yaml(path)


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
