"""
Data Models for the Fractionalization Workflow

Re-exports the models used across the wallet, configuration, simulation
and workflow packages.
"""

from .asset import AssetReference
from .base import (
    ConnectionState,
    FractionalizerModel,
    ProviderKind,
    Severity,
    SimulationStatus,
    WorkflowStep,
    generate_id,
)
from .events import Notification, WorkflowEvent, WorkflowEventType
from .simulation import PROGRESS_COMPLETE, SimulationRun
from .tokenization import (
    MAX_TOKEN_COUNT,
    MIN_TOKEN_COUNT,
    ManagedTokens,
    OutOfRangeError,
    TokenConfiguration,
    generate_symbol,
)
from .wallet import ConnectOutcome, ConnectStatus, ProviderDescriptor, WalletSession

__all__ = [
    # Base
    "FractionalizerModel",
    "generate_id",
    "ProviderKind",
    "ConnectionState",
    "WorkflowStep",
    "SimulationStatus",
    "Severity",
    # Wallet
    "ProviderDescriptor",
    "WalletSession",
    "ConnectStatus",
    "ConnectOutcome",
    # Asset
    "AssetReference",
    # Tokenization
    "MIN_TOKEN_COUNT",
    "MAX_TOKEN_COUNT",
    "OutOfRangeError",
    "TokenConfiguration",
    "ManagedTokens",
    "generate_symbol",
    # Simulation
    "PROGRESS_COMPLETE",
    "SimulationRun",
    # Events
    "Notification",
    "WorkflowEvent",
    "WorkflowEventType",
]
