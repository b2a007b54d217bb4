"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DefaultsConfig(BaseModel):
    """Default settings for slot searches."""
    duration_minutes: int = 60
    horizon_days: int = 14
    block_minutes: int = 60
    max_blocks: int = 3
    recommend_days: int = 7
    max_recommendations: int = 9

    @field_validator("duration_minutes", "block_minutes")
    @classmethod
    def validate_minutes(cls, value: int) -> int:
        """Ensure durations are positive."""
        if value <= 0:
            raise ValueError("durations must be greater than zero minutes")
        return value

    @field_validator("horizon_days", "max_blocks", "recommend_days", "max_recommendations")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure counts are at least one."""
        if value < 1:
            raise ValueError(f"must be at least 1, got {value}")
        return value

    @model_validator(mode="after")
    def validate_block_fits_horizon(self) -> "DefaultsConfig":
        """A suggested block must fit into the search horizon."""
        if self.block_minutes > self.horizon_days * 24 * 60:
            raise ValueError("block_minutes must fit within horizon_days")
        return self


class AppConfig(BaseModel):
    """Application configuration."""
    user_id: str
    store_path: Path = Path("schedule.json")
    timezone: str = "UTC"
    log_level: str = "WARNING"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the logging level name."""
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value}")
        return level

    def resolve_store_path(self, config_dir: Path) -> Path:
        """Resolve a relative store path against the config file's directory."""
        if self.store_path.is_absolute():
            return self.store_path
        return config_dir / self.store_path

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
