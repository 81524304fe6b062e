"""
Wallet Connector

Manages the connection lifecycle between the workflow and an external
wallet provider:

- Provider discovery in the host environment
- Account access and balance queries
- Conversion of wei balances to native currency
- Tracking of account changes reported by the wallet

There is no provider-side disconnect primitive; disconnecting clears the
local session and drops the account-change subscription.
"""

from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog
from web3 import Web3

from ..config import FractionalizerSettings, get_settings
from ..models import (
    ConnectionState,
    ConnectOutcome,
    ConnectStatus,
    ProviderDescriptor,
    ProviderKind,
    WalletSession,
)
from ..monitoring.logging import log_duration
from .providers import (
    ACCOUNTS_CHANGED,
    PROVIDERS,
    HostEnvironment,
    ProviderRpcError,
    WalletProvider,
)

logger = structlog.get_logger(__name__)

REMOTE_PROTOCOL_MESSAGE = "WalletConnect integration requires additional setup"


class WalletConnectorError(Exception):
    """Base exception for wallet connection errors."""
    pass


class ProviderNotFoundError(WalletConnectorError):
    """Raised when the requested wallet is not installed in the host environment."""

    def __init__(self, kind: ProviderKind, name: str | None = None):
        self.kind = kind
        self.name = name or kind.value
        super().__init__(f"{self.name} is not installed. Please install it first.")


class ConnectionRejectedError(WalletConnectorError):
    """Raised when the user declines the wallet's approval prompt."""
    pass


class ProviderError(WalletConnectorError):
    """Raised on any other provider fault; keeps the provider's message."""

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


class AlreadyConnectingError(WalletConnectorError):
    """Raised when connect() is called while another attempt is in flight."""
    pass


def wei_to_native(raw_balance: str | int, places: int = 4) -> Decimal:
    """
    Convert a wei balance to native currency.

    Args:
        raw_balance: Balance in wei, as an integer or a hex/decimal string
        places: Number of decimal places to keep (rounded half up)

    Returns:
        Balance in ether, e.g. Decimal("2.0000") for 2 * 10**18 wei
    """
    if isinstance(raw_balance, int):
        wei = raw_balance
    elif raw_balance.startswith(("0x", "0X")):
        wei = Web3.to_int(hexstr=raw_balance)
    else:
        wei = Web3.to_int(text=raw_balance)

    ether = Decimal(Web3.from_wei(wei, "ether"))
    return ether.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


class WalletConnector:
    """
    Connection lifecycle for a single wallet.

    Providers are looked up in the host environment at call time, never
    cached across sessions. At most one connect() may be in flight.

    Callbacks:
        on_session_ended: the wallet reported an empty account list
        on_account_changed: the wallet switched to another account (new address)
        on_disconnected: disconnect() cleared the session
    """

    def __init__(
        self,
        environment: HostEnvironment,
        settings: FractionalizerSettings | None = None,
        on_session_ended: Callable[[], None] | None = None,
        on_account_changed: Callable[[str], None] | None = None,
        on_disconnected: Callable[[], None] | None = None,
    ) -> None:
        self._environment = environment
        self.settings = settings or get_settings()
        self.on_session_ended = on_session_ended
        self.on_account_changed = on_account_changed
        self.on_disconnected = on_disconnected

        self._state = ConnectionState.DISCONNECTED
        self._session = WalletSession.disconnected()
        self._provider: WalletProvider | None = None
        self._in_flight = False
        # Bumped by disconnect(); a connect resolving under an older epoch is stale
        self._epoch = 0
        self._accounts_handler = self._handle_accounts_changed

    # ==================== State ====================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def session(self) -> WalletSession:
        """Read-only copy of the current session."""
        return self._session.model_copy()

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self._in_flight

    # ==================== Discovery ====================

    def list_providers(self) -> tuple[ProviderDescriptor, ...]:
        """Wallets offered to the user."""
        return PROVIDERS

    def describe(self, kind: ProviderKind) -> ProviderDescriptor:
        for descriptor in PROVIDERS:
            if descriptor.kind is kind:
                return descriptor
        raise KeyError(kind)

    def is_provider_available(self, kind: ProviderKind) -> bool:
        """
        Check whether a provider can be used.

        Injected providers must be present in the host environment. The
        remote protocol is a handshake, not an installable extension, so it
        is always available.
        """
        if not kind.is_injected:
            return True
        return self._environment.get_provider(kind) is not None

    # ==================== Connection ====================

    async def connect(self, kind: ProviderKind) -> ConnectOutcome:
        """
        Connect to a wallet provider.

        Suspends while the wallet shows its approval prompt.

        Args:
            kind: The provider to connect to

        Returns:
            ConnectOutcome with status CONNECTED and the new session,
            NOT_IMPLEMENTED for the remote protocol, or SUPERSEDED when
            disconnect() was called before the attempt resolved

        Raises:
            AlreadyConnectingError: Another connect() is in flight
            ProviderNotFoundError: The provider is not installed
            ConnectionRejectedError: The user declined the request
            ProviderError: Any other provider fault
        """
        if self._in_flight:
            raise AlreadyConnectingError("A wallet connection is already in progress")

        name = self.describe(kind).name
        if not self.is_provider_available(kind):
            logger.warning("wallet_provider_not_found", kind=kind.value)
            raise ProviderNotFoundError(kind, name)

        if kind is ProviderKind.REMOTE_PROTOCOL:
            logger.info("wallet_provider_not_implemented", kind=kind.value)
            return ConnectOutcome(
                status=ConnectStatus.NOT_IMPLEMENTED,
                kind=kind,
                message=REMOTE_PROTOCOL_MESSAGE,
            )

        if self.is_connected:
            self._release_session()

        provider = self._environment.get_provider(kind)
        if provider is None:
            raise ProviderNotFoundError(kind, name)

        epoch = self._epoch
        self._in_flight = True
        self._state = ConnectionState.CONNECTING
        try:
            with log_duration(logger, "wallet_connect", kind=kind.value):
                session = await self._open_session(kind, provider)
        except WalletConnectorError:
            if epoch != self._epoch:
                return self._superseded(kind)
            self._state = ConnectionState.DISCONNECTED
            raise
        finally:
            # An abandoned attempt must not clear the flag of a newer one
            if epoch == self._epoch:
                self._in_flight = False

        if epoch != self._epoch:
            return self._superseded(kind)

        self._session = session
        self._provider = provider
        self._state = ConnectionState.CONNECTED
        provider.on(ACCOUNTS_CHANGED, self._accounts_handler)

        logger.info(
            "wallet_connected",
            kind=kind.value,
            address=session.short_address,
            balance=str(session.balance_native),
            approximate=session.balance_approximate,
        )
        return ConnectOutcome(
            status=ConnectStatus.CONNECTED,
            kind=kind,
            session=session.model_copy(),
            message=f"Connected to {name}",
        )

    def disconnect(self) -> bool:
        """
        Clear the local session.

        Always succeeds. An attempt still in flight is abandoned and its
        eventual result discarded.

        Returns:
            True if a session or a pending attempt was cleared
        """
        cleared = self.is_connected or self._in_flight
        if self._in_flight:
            self._epoch += 1
            self._in_flight = False
        self._release_session()

        logger.info("wallet_disconnected", cleared=cleared)
        if self.on_disconnected:
            self.on_disconnected()
        return cleared

    # ==================== Internals ====================

    async def _open_session(
        self,
        kind: ProviderKind,
        provider: WalletProvider,
    ) -> WalletSession:
        accounts = await self._request(provider, "eth_requestAccounts")
        if not accounts or not accounts[0]:
            raise ProviderError("No accounts returned by wallet")
        account = str(accounts[0])

        if kind is ProviderKind.PRIMARY_INJECTED:
            raw_balance = await self._request(provider, "eth_getBalance", [account, "latest"])
            try:
                balance = wei_to_native(raw_balance, self.settings.balance_decimals)
            except (TypeError, ValueError, AttributeError) as e:
                raise ProviderError(f"Invalid balance returned by wallet: {raw_balance!r}") from e
            approximate = False
        else:
            # No direct balance query for this provider; report the placeholder
            balance = self.settings.secondary_placeholder_balance
            approximate = True

        return WalletSession(
            address=account,
            balance_native=balance,
            provider_kind=kind,
            connected=True,
            balance_approximate=approximate,
        )

    async def _request(
        self,
        provider: WalletProvider,
        method: str,
        params: list[Any] | None = None,
    ) -> Any:
        try:
            return await provider.request(method, params)
        except ProviderRpcError as e:
            if e.is_user_rejection:
                raise ConnectionRejectedError(e.message or "User rejected the request") from e
            raise ProviderError(e.message, code=e.code) from e
        except Exception as e:
            raise ProviderError(str(e) or type(e).__name__) from e

    def _handle_accounts_changed(self, accounts: list[str]) -> None:
        if not self.is_connected:
            return

        if not accounts:
            logger.info("wallet_session_ended", address=self._session.short_address)
            self._release_session()
            if self.on_session_ended:
                self.on_session_ended()
            return

        address = str(accounts[0])
        if address != self._session.address:
            self._session.address = address
            logger.info("wallet_account_changed", address=self._session.short_address)
            if self.on_account_changed:
                self.on_account_changed(address)

    def _release_session(self) -> None:
        if self._provider is not None:
            try:
                self._provider.remove_listener(ACCOUNTS_CHANGED, self._accounts_handler)
            except Exception as e:
                logger.warning("wallet_unsubscribe_failed", error=str(e))
        self._provider = None
        self._session = WalletSession.disconnected()
        self._state = ConnectionState.DISCONNECTED

    def _superseded(self, kind: ProviderKind) -> ConnectOutcome:
        logger.info("wallet_connect_superseded", kind=kind.value)
        return ConnectOutcome(
            status=ConnectStatus.SUPERSEDED,
            kind=kind,
            message="Connection attempt abandoned after disconnect",
        )
