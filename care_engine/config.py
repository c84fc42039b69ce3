"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class DashboardConfig(BaseModel):
    """How much of today's plan the dashboard previews."""

    upcoming_appointments_limit: int = Field(
        default=3, gt=0, description="Upcoming appointments shown on the dashboard"
    )
    pending_preview_limit: int = Field(
        default=2, ge=0, description="Pending doses previewed before 'view more'"
    )


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)

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

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return cast(LogLevel, v)
        return "INFO"

    def _format_to_literal(val: str | None, debug: bool) -> Literal["json", "console"]:
        if val is not None and val.strip().lower() in {"json", "console"}:
            return cast(Literal["json", "console"], val.strip().lower())
        return "console" if debug else "json"

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format=_format_to_literal(os.getenv("LOG_FORMAT"), debug),
    )

    dashboard_config = DashboardConfig(
        upcoming_appointments_limit=int(os.getenv("DASHBOARD_UPCOMING_LIMIT", "3")),
        pending_preview_limit=int(os.getenv("DASHBOARD_PENDING_PREVIEW", "2")),
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        logging=logging_config,
        dashboard=dashboard_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")
    print(f"Log Format: {config.logging.format}")

    print("\nDASHBOARD")
    print(f"Upcoming appointments shown: {config.dashboard.upcoming_appointments_limit}")
    print(f"Pending doses previewed: {config.dashboard.pending_preview_limit}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()
