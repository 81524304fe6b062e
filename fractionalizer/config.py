"""
NFT Fractionalizer Configuration

This module defines the configuration settings for the fractionalization
workflow: token split bounds, default pricing, simulation pacing and the
wallet balance presentation rules.

Configuration is loaded from environment variables with sensible defaults
matching the reference behaviour of the workflow.
"""

import logging
from decimal import Decimal
from typing import Literal

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class FractionalizerSettings(BaseSettings):
    """
    Main configuration class for the fractionalization workflow.

    All settings can be overridden via environment variables prefixed with
    FRACTIONALIZER_. For example, FRACTIONALIZER_TICK_STEP sets tick_step.
    """

    model_config = SettingsConfigDict(
        env_prefix="FRACTIONALIZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Token split configuration
    default_token_count: int = Field(
        default=100, description="Token count proposed when configuration starts"
    )
    min_token_count: int = Field(default=10, ge=1, description="Lowest selectable token count")
    max_token_count: int = Field(
        default=1000, ge=1, description="Highest selectable token count"
    )
    default_unit_price: Decimal = Field(
        default=Decimal("0.005"), gt=0, description="Price of one unit token in native currency"
    )
    symbol_prefix: str = Field(default="NFT-", min_length=1, description="Token symbol prefix")
    symbol_space: int = Field(
        default=1000, ge=2, description="Symbol suffixes are drawn from [0, symbol_space)"
    )

    # Simulation pacing
    tick_interval_seconds: float = Field(
        default=0.15, ge=0, description="Delay between two simulated progress ticks"
    )
    tick_step: int = Field(default=5, ge=1, le=100, description="Progress added per tick")

    # Wallet presentation
    balance_decimals: int = Field(
        default=4, ge=0, le=18, description="Decimal places kept when converting wei balances"
    )
    secondary_placeholder_balance: Decimal = Field(
        default=Decimal("0.1"),
        ge=0,
        description="Approximate balance reported for providers without a balance query",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    json_logs: bool = Field(default=False, description="Render logs as JSON lines")

    @field_validator("max_token_count")
    @classmethod
    def validate_count_bounds(cls, v: int, info: ValidationInfo) -> int:
        """Ensure the token count range is not empty."""
        minimum = info.data.get("min_token_count", 10)
        if v < minimum:
            raise ValueError("max_token_count must be >= min_token_count")
        return v

    @model_validator(mode="after")
    def validate_default_count(self) -> "FractionalizerSettings":
        """Ensure the default token count lies inside the selectable range."""
        if not self.min_token_count <= self.default_token_count <= self.max_token_count:
            raise ValueError(
                f"default_token_count {self.default_token_count} outside "
                f"[{self.min_token_count}, {self.max_token_count}]"
            )
        return self


# Singleton instance for global access
_settings: FractionalizerSettings | None = None


def get_settings() -> FractionalizerSettings:
    """
    Get the global fractionalizer settings instance.

    Settings are loaded lazily from the environment on first access.
    """
    global _settings
    if _settings is None:
        _settings = FractionalizerSettings()
        logger.debug("Fractionalizer settings loaded from environment")
    return _settings


def configure_settings(settings: FractionalizerSettings) -> None:
    """
    Set a custom settings instance.

    Useful for testing or when configuration needs to be loaded
    from a non-standard source.
    """
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Drop the cached settings so the next access reloads them."""
    global _settings
    _settings = None
