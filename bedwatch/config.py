"""
Configuration management with environment variable support and validation.

Design principles:
- Every tunable of the movement engine lives in a config model, never a module constant
- Validation at startup (fail fast)
- Type safety with Pydantic
- Environment-specific defaults (dev, staging, prod)
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class PostureAnalysisConfig(BaseModel):
    """Thresholds used by the movement confirmation engine and the classifier."""

    change_threshold: float = Field(
        default=0.10, gt=0.0, le=1.0, description="Relative change that counts as deviation"
    )
    stability_threshold: float = Field(
        default=0.05, ge=0.0, le=1.0, description="Relative change treated as back at baseline"
    )
    confirmation_count: int = Field(
        default=3, ge=1, description="Deviating snapshots needed to confirm a movement"
    )
    confirmation_window_minutes: float = Field(
        default=15.0, gt=0.0, description="Time budget for collecting confirmations"
    )

    # Classifier thresholds
    caution_after_minutes: float = Field(
        default=60.0, gt=0.0, description="Minutes without movement before level 1"
    )
    risk_after_minutes: float = Field(
        default=120.0, gt=0.0, description="Minutes without movement before level 2"
    )

    @model_validator(mode="after")
    def check_threshold_ordering(self) -> "PostureAnalysisConfig":
        if self.stability_threshold >= self.change_threshold:
            raise ValueError("stability_threshold must be lower than change_threshold")
        if self.risk_after_minutes <= self.caution_after_minutes:
            raise ValueError("risk_after_minutes must be greater than caution_after_minutes")
        return self


class SchedulerConfig(BaseModel):
    """Sweep cadence and per-patient evaluation limits."""

    sweep_interval_seconds: float = Field(
        default=300.0, gt=0.0, description="Interval between roster sweeps"
    )
    lookback_minutes: float = Field(
        default=120.0, gt=0.0, description="Window of samples fetched before the anchor"
    )
    max_concurrent_evaluations: int = Field(
        default=5, gt=0, description="Maximum number of patients evaluated at once"
    )
    evaluation_timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Timeout for one patient evaluation"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    posture: PostureAnalysisConfig = Field(default_factory=PostureAnalysisConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
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

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    posture_config = PostureAnalysisConfig(
        change_threshold=float(os.getenv("CHANGE_THRESHOLD", "0.10")),
        stability_threshold=float(os.getenv("STABILITY_THRESHOLD", "0.05")),
        confirmation_count=int(os.getenv("CONFIRMATION_COUNT", "3")),
        confirmation_window_minutes=float(os.getenv("CONFIRMATION_WINDOW_MINUTES", "15")),
        caution_after_minutes=float(os.getenv("CAUTION_AFTER_MINUTES", "60")),
        risk_after_minutes=float(os.getenv("RISK_AFTER_MINUTES", "120")),
    )

    scheduler_config = SchedulerConfig(
        sweep_interval_seconds=float(os.getenv("SWEEP_INTERVAL_SECONDS", "300")),
        lookback_minutes=float(os.getenv("LOOKBACK_MINUTES", "120")),
        max_concurrent_evaluations=int(os.getenv("MAX_CONCURRENT_EVALUATIONS", "5")),
        evaluation_timeout_seconds=float(os.getenv("EVALUATION_TIMEOUT_SECONDS", "30")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        posture=posture_config,
        scheduler=scheduler_config,
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
        print(f"Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nPOSTURE ANALYSIS")
    print(f"Change Threshold: {config.posture.change_threshold:.0%}")
    print(f"Stability Threshold: {config.posture.stability_threshold:.0%}")
    print(
        f"Confirmation: {config.posture.confirmation_count} snapshots "
        f"within {config.posture.confirmation_window_minutes:g}m"
    )
    print(
        f"Warning Levels: caution >= {config.posture.caution_after_minutes:g}m, "
        f"risk >= {config.posture.risk_after_minutes:g}m"
    )

    print("\nSCHEDULER")
    print(f"Sweep Interval: {config.scheduler.sweep_interval_seconds:g}s")
    print(f"Lookback Window: {config.scheduler.lookback_minutes:g}m")
    print(f"Max Concurrent Evaluations: {config.scheduler.max_concurrent_evaluations}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
