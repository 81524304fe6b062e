"""
NFT Fractionalizer

Client-side workflow that connects a wallet, accepts an uploaded NFT image,
configures a token split and runs a simulated fractionalization ending in a
manageable token balance.

Components:
- wallet: connection lifecycle against a host-supplied wallet provider
- models: wallet session, token configuration, simulation and event models
- simulation: cancelable, time-driven fractionalization progress
- workflow: the state machine and its outbound event stream
"""

from .config import (
    FractionalizerSettings,
    configure_settings,
    get_settings,
    reset_settings,
)
from .models import (
    AssetReference,
    ManagedTokens,
    Notification,
    OutOfRangeError,
    ProviderKind,
    Severity,
    SimulationRun,
    SimulationStatus,
    TokenConfiguration,
    WalletSession,
    WorkflowEvent,
    WorkflowEventType,
    WorkflowStep,
)
from .simulation import TokenizationSimulator
from .wallet import (
    AlreadyConnectingError,
    ConnectionRejectedError,
    InjectedProviders,
    ProviderError,
    ProviderNotFoundError,
    ProviderRpcError,
    WalletConnector,
    WalletConnectorError,
)
from .workflow import EventBus, WorkflowController, WorkflowStateError

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "FractionalizerSettings",
    "get_settings",
    "configure_settings",
    "reset_settings",
    # Models
    "AssetReference",
    "ManagedTokens",
    "Notification",
    "OutOfRangeError",
    "ProviderKind",
    "Severity",
    "SimulationRun",
    "SimulationStatus",
    "TokenConfiguration",
    "WalletSession",
    "WorkflowEvent",
    "WorkflowEventType",
    "WorkflowStep",
    # Components
    "WalletConnector",
    "InjectedProviders",
    "TokenizationSimulator",
    "EventBus",
    "WorkflowController",
    # Errors
    "WalletConnectorError",
    "ProviderNotFoundError",
    "ConnectionRejectedError",
    "ProviderError",
    "AlreadyConnectingError",
    "ProviderRpcError",
    "WorkflowStateError",
]
