"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Reporting conventions (week start, windows) are configuration, not code
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

WeekStart = Literal["monday", "sunday"]


class ReportingConfig(BaseModel):
    """Conventions used by completion and trend reports."""

    week_start: WeekStart = Field(
        default="monday", description="First day of a reporting week"
    )
    weekly_series_weeks: int = Field(
        default=4, gt=0, le=52, description="Number of weeks in the weekly completion series"
    )
    category_window_days: int = Field(
        default=30, gt=0, description="Trailing window for the category distribution"
    )
    upcoming_window_days: int = Field(
        default=7, ge=0, description="How far ahead upcoming schedules are listed"
    )
    recent_activity_limit: int = Field(
        default=10, gt=0, description="Number of completed records in recent activity"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _week_start(val: str) -> WeekStart:
        v = val.strip().lower()
        if v in {"sun", "sunday"}:
            return "sunday"
        if v in {"mon", "monday"}:
            return "monday"
        raise ValueError(f"WEEK_START must be 'monday' or 'sunday', got {val!r}")

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    reporting_config = ReportingConfig(
        week_start=_week_start(os.getenv("WEEK_START", "monday")),
        weekly_series_weeks=int(os.getenv("WEEKLY_SERIES_WEEKS", "4")),
        category_window_days=int(os.getenv("CATEGORY_WINDOW_DAYS", "30")),
        upcoming_window_days=int(os.getenv("UPCOMING_WINDOW_DAYS", "7")),
        recent_activity_limit=int(os.getenv("RECENT_ACTIVITY_LIMIT", "10")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        reporting=reporting_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n📊 REPORTING CONFIGURATION")
    print(f"Week Start: {config.reporting.week_start}")
    print(f"Weekly Series: {config.reporting.weekly_series_weeks} weeks")
    print(f"Category Window: {config.reporting.category_window_days} days")
    print(f"Upcoming Window: {config.reporting.upcoming_window_days} days")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
