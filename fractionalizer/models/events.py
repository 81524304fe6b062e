"""
Event Models

Events emitted by the workflow for the presentation layer. Each event may
carry a notification describing the toast the presentation should show.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import Field

from .base import FractionalizerModel, Severity, generate_id

# Default notification lifetimes in milliseconds
SHORT_LIFE_MS = 3000
LONG_LIFE_MS = 5000


class WorkflowEventType(str, Enum):
    """Types of events emitted by the workflow controller."""

    # Wallet Events
    WALLET_CONNECTED = "wallet.connected"
    WALLET_FAILED = "wallet.failed"
    WALLET_UNSUPPORTED = "wallet.unsupported"
    WALLET_ACCOUNT_CHANGED = "wallet.account_changed"
    WALLET_DISCONNECTED = "wallet.disconnected"

    # Asset Events
    ASSET_ACCEPTED = "asset.accepted"

    # Configuration Events
    CONFIG_UPDATED = "config.updated"
    CONFIG_REJECTED = "config.rejected"
    CONFIG_CONFIRMED = "config.confirmed"

    # Simulation Events
    SIMULATION_PROGRESS = "simulation.progress"
    SIMULATION_COMPLETE = "simulation.complete"

    # Manage Dialog Events
    MANAGE_DIALOG_OPENED = "manage.opened"
    MANAGE_DIALOG_CLOSED = "manage.closed"


class Notification(FractionalizerModel):
    """A user-visible message; rendering is left to the presentation layer."""

    severity: Severity
    summary: str
    detail: str = ""
    life_ms: int = Field(default=SHORT_LIFE_MS, ge=0)


class WorkflowEvent(FractionalizerModel):
    """An event in the workflow's outbound stream."""

    id: str = Field(default_factory=generate_id, description="Unique event ID")
    type: WorkflowEventType
    source: str = Field(default="workflow", description="Emitting component")
    payload: dict[str, Any] = Field(default_factory=dict)
    notification: Notification | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
