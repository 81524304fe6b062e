"""
Wallet Package

Connects the workflow to a wallet provider supplied by the host
environment.

Usage:
    from fractionalizer.models import ProviderKind
    from fractionalizer.wallet import InjectedProviders, WalletConnector

    async def example(injected_wallet):
        environment = InjectedProviders({ProviderKind.PRIMARY_INJECTED: injected_wallet})
        connector = WalletConnector(environment)

        outcome = await connector.connect(ProviderKind.PRIMARY_INJECTED)
        print(outcome.session.balance_native)
"""

from .connector import (
    AlreadyConnectingError,
    ConnectionRejectedError,
    ProviderError,
    ProviderNotFoundError,
    WalletConnector,
    WalletConnectorError,
    wei_to_native,
)
from .providers import (
    ACCOUNTS_CHANGED,
    PROVIDERS,
    USER_REJECTED_REQUEST,
    HostEnvironment,
    InjectedProviders,
    ProviderRpcError,
    WalletProvider,
)

__all__ = [
    # Connector and exceptions
    "WalletConnector",
    "WalletConnectorError",
    "ProviderNotFoundError",
    "ConnectionRejectedError",
    "ProviderError",
    "AlreadyConnectingError",
    "wei_to_native",
    # Provider interfaces
    "ACCOUNTS_CHANGED",
    "PROVIDERS",
    "USER_REJECTED_REQUEST",
    "HostEnvironment",
    "InjectedProviders",
    "ProviderRpcError",
    "WalletProvider",
]
