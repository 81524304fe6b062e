"""
Tokenization Models

This module defines the token split configuration chosen by the user
before an NFT is fractionalized, and the holdings snapshot exposed once
the fractionalization has completed.
"""

import random
from decimal import ROUND_HALF_UP, Decimal

from pydantic import Field, ValidationInfo, computed_field, field_validator

from ..config import FractionalizerSettings, get_settings
from .base import FractionalizerModel

MIN_TOKEN_COUNT = 10
MAX_TOKEN_COUNT = 1000


class OutOfRangeError(ValueError):
    """Raised when a token count falls outside the selectable range."""

    def __init__(self, value: int, minimum: int, maximum: int):
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(f"Token count {value} must be between {minimum} and {maximum}")


def generate_symbol(
    prefix: str | None = None,
    space: int | None = None,
    rng: random.Random | None = None,
    settings: FractionalizerSettings | None = None,
) -> str:
    """
    Generate a token symbol such as NFT-417.

    Args:
        prefix: Symbol prefix (defaults to settings.symbol_prefix)
        space: Suffixes are drawn uniformly from [0, space)
        rng: Optional random source, for reproducible symbols
        settings: Settings supplying the defaults (global settings when omitted)

    Returns:
        The generated symbol
    """
    settings = settings or get_settings()
    prefix = settings.symbol_prefix if prefix is None else prefix
    space = settings.symbol_space if space is None else space
    source = rng or random
    return f"{prefix}{source.randrange(space)}"


class TokenConfiguration(FractionalizerModel):
    """
    Parameters of a token split.

    Only the count is adjustable after creation, and only within
    [min_count, max_count]. set_count() is the supported way to change it.
    """

    symbol: str = Field(frozen=True, min_length=1, description="Ticker of the unit token")
    min_count: int = Field(default=MIN_TOKEN_COUNT, frozen=True, ge=1, description="Lowest allowed count")
    max_count: int = Field(default=MAX_TOKEN_COUNT, frozen=True, ge=1, description="Highest allowed count")
    count: int = Field(description="Number of unit tokens to mint")
    unit_price: Decimal = Field(frozen=True, gt=0, description="Price per unit token")

    @field_validator("count")
    @classmethod
    def validate_count(cls, v: int, info: ValidationInfo) -> int:
        """Keep the count inside the configured bounds, on creation and on assignment."""
        minimum = info.data.get("min_count", MIN_TOKEN_COUNT)
        maximum = info.data.get("max_count", MAX_TOKEN_COUNT)
        if v < minimum or v > maximum:
            raise ValueError(f"Token count {v} must be between {minimum} and {maximum}")
        return v

    @classmethod
    def create(
        cls,
        default_count: int | None = None,
        default_unit_price: Decimal | float | str | None = None,
        symbol: str | None = None,
        rng: random.Random | None = None,
        settings: FractionalizerSettings | None = None,
    ) -> "TokenConfiguration":
        """
        Create a configuration with defaults taken from settings.

        Args:
            default_count: Initial token count (settings.default_token_count)
            default_unit_price: Price per token (settings.default_unit_price)
            symbol: Fixed symbol; a fresh one is generated when omitted
            rng: Random source used for symbol generation
            settings: Settings supplying the defaults (global settings when omitted)

        Raises:
            OutOfRangeError: If the initial count is outside the allowed range
        """
        settings = settings or get_settings()
        count = settings.default_token_count if default_count is None else default_count
        price = settings.default_unit_price if default_unit_price is None else default_unit_price
        if isinstance(price, float):
            price = Decimal(str(price))

        _check_count(count, settings.min_token_count, settings.max_token_count)

        return cls(
            symbol=symbol or generate_symbol(rng=rng, settings=settings),
            min_count=settings.min_token_count,
            max_count=settings.max_token_count,
            count=count,
            unit_price=Decimal(price),
        )

    @property
    def count_range(self) -> tuple[int, int]:
        """Inclusive bounds accepted by set_count()."""
        return self.min_count, self.max_count

    def set_count(self, n: int) -> None:
        """
        Update the token count.

        Raises:
            OutOfRangeError: If n is outside the allowed range; count is unchanged
        """
        _check_count(n, self.min_count, self.max_count)
        self.count = n

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_value(self) -> Decimal:
        """Value of the whole split: count * unit_price."""
        return self.count * self.unit_price

    def formatted_total_value(self, places: int = 2) -> str:
        """Total value rounded for display."""
        quantum = Decimal(1).scaleb(-places)
        return str(self.total_value.quantize(quantum, rounding=ROUND_HALF_UP))


class ManagedTokens(FractionalizerModel):
    """Snapshot of the fractionalized holdings shown in the manage dialog."""

    symbol: str
    available_tokens: int
    unit_price: Decimal
    total_value: Decimal

    @classmethod
    def from_configuration(cls, config: TokenConfiguration) -> "ManagedTokens":
        return cls(
            symbol=config.symbol,
            available_tokens=config.count,
            unit_price=config.unit_price,
            total_value=config.total_value,
        )


def _check_count(n: int, minimum: int, maximum: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"Token count must be an integer, got {type(n).__name__}")
    if n < minimum or n > maximum:
        raise OutOfRangeError(n, minimum, maximum)
