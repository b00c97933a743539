"""
Application Settings and Configuration Management

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ml.optimization.appliance_models import OptimizationConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Household Energy Scheduler"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False, validation_alias="DEBUG")

    # Locale
    local_timezone: str = Field(default="Asia/Colombo", validation_alias="LOCAL_TIMEZONE")

    # Optimizer
    search_granularity_minutes: int = Field(default=5, validation_alias="SEARCH_GRANULARITY_MINUTES")
    max_candidates_per_task: int = Field(default=1440, validation_alias="MAX_CANDIDATES_PER_TASK")
    optimizer_max_workers: int = Field(default=4, validation_alias="OPTIMIZER_MAX_WORKERS")
    co2_to_lkr_weight: float = Field(default=50.0, validation_alias="CO2_TO_LKR_WEIGHT")
    balanced_alpha: float = Field(default=0.5, validation_alias="BALANCED_ALPHA")

    # Billing
    tree_absorption_kg_per_year: float = Field(default=22.0, validation_alias="TREE_ABSORPTION_KG_PER_YEAR")
    default_carbon_kg_per_kwh: float = Field(default=0.53, validation_alias="DEFAULT_CARBON_KG_PER_KWH")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid"""
        allowed = ["development", "staging", "production", "test"]
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("local_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone is a known IANA name"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone '{v}'")
        return v

    @field_validator("search_granularity_minutes", "optimizer_max_workers")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("max_candidates_per_task")
    @classmethod
    def validate_max_candidates(cls, v: int) -> int:
        if v < 2:
            raise ValueError("must allow at least 2 candidates")
        return v

    @field_validator("co2_to_lkr_weight", "tree_absorption_kg_per_year", "default_carbon_kg_per_kwh")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Conversion constants must be positive"""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("balanced_alpha")
    @classmethod
    def validate_alpha(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("must be between 0 and 1")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.environment == "development"

    def to_optimization_config(self) -> OptimizationConfig:
        """Build the optimizer configuration the core consumes."""
        return OptimizationConfig(
            granularity_minutes=self.search_granularity_minutes,
            max_candidates_per_task=self.max_candidates_per_task,
            co2_to_lkr_weight=self.co2_to_lkr_weight,
            max_workers=self.optimizer_max_workers,
            timezone=self.local_timezone,
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
