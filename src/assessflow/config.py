"""
Application Configuration

Uses Pydantic Settings for type-safe environment variable management.
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # ========================================================================
    # APPLICATION
    # ========================================================================

    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    DEBUG: bool = False

    # ========================================================================
    # MANIFEST REGISTRY
    # ========================================================================

    REGISTRY_DEV_MODE: bool | None = Field(
        default=None,
        description="Allow overwriting a registered (id, version). Defaults to on for local.",
    )

    # ========================================================================
    # FLOW RUNTIME
    # ========================================================================

    ATTEMPTS_BEFORE_REPAIR: int = Field(
        default=1,
        ge=1,
        description="Incorrect submissions on a stage before its repair edge is taken",
    )

    # ========================================================================
    # ANALYTICS HEURISTICS
    # ========================================================================

    ANOMALY_THRESHOLD_MS: int = Field(default=100, ge=0)
    DEFAULT_EXPECTED_DURATION_MS: int = Field(default=10_000, gt=0)
    SPACED_REPETITION_INTERVAL_MS: int = Field(default=86_400_000, gt=0)

    @model_validator(mode="after")
    def resolve_registry_mode(self) -> Settings:
        """Default REGISTRY_DEV_MODE from the environment when unset."""
        if self.REGISTRY_DEV_MODE is None:
            self.REGISTRY_DEV_MODE = self.ENVIRONMENT == "local" or self.DEBUG
        return self

    # ========================================================================
    # COMPUTED PROPERTIES
    # ========================================================================

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    @property
    def is_local(self) -> bool:
        """Check if running locally."""
        return self.ENVIRONMENT == "local"


# Global settings instance
settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the package.

    Args:
        level: Log level name. Defaults to settings.LOG_LEVEL
    """
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
