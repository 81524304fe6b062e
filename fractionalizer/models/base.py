"""
Base Models for the Fractionalization Workflow

This module defines the enumerations and the shared model base used
throughout the workflow: wallet provider kinds, workflow steps, simulation
status and notification severities.
"""

from enum import Enum, IntEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict


def generate_id() -> str:
    """Generate a unique identifier."""
    return str(uuid4())


class FractionalizerModel(BaseModel):
    """Base model for all workflow entities with common configuration."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class ProviderKind(str, Enum):
    """Kinds of wallet providers the workflow can connect to."""

    PRIMARY_INJECTED = "primary_injected"  # Browser-injected wallet (MetaMask)
    SECONDARY_INJECTED = "secondary_injected"  # Alternate extension (Coinbase Wallet)
    REMOTE_PROTOCOL = "remote_protocol"  # Handshake protocol (WalletConnect)

    @property
    def is_injected(self) -> bool:
        """Whether the provider is an object exposed by the host environment."""
        return self is not ProviderKind.REMOTE_PROTOCOL


class ConnectionState(str, Enum):
    """
    Wallet connection states.

    DISCONNECTED -> CONNECTING -> {CONNECTED, DISCONNECTED}
    CONNECTED -> DISCONNECTED
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class WorkflowStep(IntEnum):
    """The four mutually exclusive phases of the fractionalization workflow."""

    AWAITING_WALLET = 0
    AWAITING_ASSET = 1
    CONFIGURING = 2
    SIMULATING = 3

    @property
    def label(self) -> str:
        """Get display label for step."""
        labels = {
            WorkflowStep.AWAITING_WALLET: "Connect Wallet",
            WorkflowStep.AWAITING_ASSET: "Upload NFT",
            WorkflowStep.CONFIGURING: "Configure Tokens",
            WorkflowStep.SIMULATING: "Fractionalize",
        }
        return labels.get(self, self.name)


class SimulationStatus(str, Enum):
    """Lifecycle of a simulated fractionalization run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"


class Severity(str, Enum):
    """Severity of a user-visible notification."""

    SUCCESS = "success"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
