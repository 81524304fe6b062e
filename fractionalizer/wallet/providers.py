"""
Protocol Definitions for Wallet Providers

Wallet providers are owned by the host environment (a browser extension,
an embedding application), not by this package. This module defines the
interfaces the connector relies on, so that any object with the right shape
can be used, including test doubles:

1. WalletProvider: an EIP-1193 style request/event interface
2. HostEnvironment: where providers are looked up at call time
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from ..models import ProviderDescriptor, ProviderKind

# EIP-1193 error codes
USER_REJECTED_REQUEST = 4001
UNAUTHORIZED = 4100

ACCOUNTS_CHANGED = "accountsChanged"

AccountsChangedHandler = Callable[[list[str]], None]


# Static catalogue of wallets offered to the user
PROVIDERS: tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(name="MetaMask", kind=ProviderKind.PRIMARY_INJECTED),
    ProviderDescriptor(name="Coinbase Wallet", kind=ProviderKind.SECONDARY_INJECTED),
    ProviderDescriptor(name="WalletConnect", kind=ProviderKind.REMOTE_PROTOCOL),
)


class ProviderRpcError(Exception):
    """Error raised by a wallet provider while serving a request."""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)

    @property
    def is_user_rejection(self) -> bool:
        return self.code in (USER_REJECTED_REQUEST, UNAUTHORIZED)


@runtime_checkable
class WalletProvider(Protocol):
    """Protocol for an injected wallet provider."""

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Send a JSON-RPC style request to the wallet."""
        ...

    def on(self, event: str, handler: AccountsChangedHandler) -> None:
        """Register a handler for a provider event."""
        ...

    def remove_listener(self, event: str, handler: AccountsChangedHandler) -> None:
        """Unregister a handler previously passed to on()."""
        ...


class HostEnvironment(Protocol):
    """Protocol for the environment exposing injected providers."""

    def get_provider(self, kind: ProviderKind) -> WalletProvider | None:
        """Return the provider object for kind, or None when it is absent."""
        ...


class InjectedProviders:
    """
    Host environment backed by a mapping of provider kind to provider.

    The mapping is read on every lookup, so providers injected or removed
    after construction are picked up.
    """

    def __init__(self, providers: Mapping[ProviderKind, WalletProvider] | None = None):
        self._providers: dict[ProviderKind, WalletProvider] = dict(providers or {})

    def get_provider(self, kind: ProviderKind) -> WalletProvider | None:
        return self._providers.get(kind)

    def inject(self, kind: ProviderKind, provider: WalletProvider) -> None:
        self._providers[kind] = provider

    def remove(self, kind: ProviderKind) -> None:
        self._providers.pop(kind, None)
