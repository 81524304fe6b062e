"""
Wallet Models

Session and provider descriptions for the wallet connection step.
"""

from decimal import Decimal
from enum import Enum

from pydantic import ConfigDict, Field, model_validator

from .base import FractionalizerModel, ProviderKind


class ProviderDescriptor(FractionalizerModel):
    """A wallet provider the user can pick from."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Display name of the wallet")
    kind: ProviderKind


class WalletSession(FractionalizerModel):
    """
    The locally held view of a connected wallet.

    A session is connected exactly when it carries an address. Providers
    that cannot report a balance yield an approximate placeholder, flagged
    with balance_approximate.
    """

    address: str = Field(default="", description="Active account address")
    balance_native: Decimal = Field(
        default=Decimal("0"), ge=0, description="Balance in native currency (ether)"
    )
    provider_kind: ProviderKind | None = None
    connected: bool = False
    balance_approximate: bool = Field(
        default=False, description="True when balance_native is a placeholder"
    )

    @model_validator(mode="after")
    def validate_connected_has_address(self) -> "WalletSession":
        """A session is connected if and only if it has an address."""
        if self.connected != bool(self.address):
            raise ValueError("connected must be True exactly when address is set")
        return self

    @classmethod
    def disconnected(cls) -> "WalletSession":
        """Build the empty session used whenever no wallet is connected."""
        return cls()

    @property
    def short_address(self) -> str:
        """Address shortened for display, e.g. 0x1234...abcd."""
        if not self.address:
            return ""
        if len(self.address) <= 10:
            return self.address
        return f"{self.address[:6]}...{self.address[-4:]}"


class ConnectStatus(str, Enum):
    """Non-error outcomes of a connection attempt."""

    CONNECTED = "connected"
    NOT_IMPLEMENTED = "not_implemented"  # Provider kind is recognised but unsupported
    SUPERSEDED = "superseded"  # Attempt resolved after the user disconnected


class ConnectOutcome(FractionalizerModel):
    """Result of WalletConnector.connect() when no error was raised."""

    status: ConnectStatus
    kind: ProviderKind
    session: WalletSession | None = None
    message: str | None = None

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectStatus.CONNECTED
