"""
Tests for the Wallet Connector

Tests cover:
- Provider discovery and availability
- Wei to native currency conversion
- Connecting to each provider kind
- Error mapping for rejected requests and provider faults
- Concurrent connect rejection
- Account change subscription
- Disconnect and late resolution handling
"""

import asyncio
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from fractionalizer.models import ConnectionState, ConnectStatus, ProviderKind
from fractionalizer.wallet import (
    ACCOUNTS_CHANGED,
    PROVIDERS,
    AlreadyConnectingError,
    ConnectionRejectedError,
    InjectedProviders,
    ProviderError,
    ProviderNotFoundError,
    ProviderRpcError,
    WalletConnector,
    WalletConnectorError,
    WalletProvider,
    wei_to_native,
)

from tests.conftest import ADDRESS, OTHER_ADDRESS, FakeWalletProvider


# =============================================================================
# Balance Conversion
# =============================================================================


class TestWeiToNative:
    """Tests for wei_to_native()."""

    def test_two_ether_hex(self):
        """Test that 2 * 10**18 wei converts to 2.0000."""
        assert wei_to_native("0x1bc16d674ec80000") == Decimal("2.0000")
        assert str(wei_to_native("0x1bc16d674ec80000")) == "2.0000"

    def test_integer_input(self):
        assert wei_to_native(2 * 10**18) == Decimal("2.0000")

    def test_decimal_string_input(self):
        assert wei_to_native("1500000000000000000") == Decimal("1.5000")

    def test_zero(self):
        assert wei_to_native("0x0") == Decimal("0.0000")

    def test_rounds_to_four_places(self):
        """Test rounding of sub-1e-4 amounts."""
        assert wei_to_native(123_456_789_000_000_000) == Decimal("0.1235")
        assert wei_to_native(123_440_000_000_000_000) == Decimal("0.1234")

    def test_custom_places(self):
        assert wei_to_native(10**18 + 5 * 10**15, places=2) == Decimal("1.01")

    def test_invalid_hex(self):
        with pytest.raises(ValueError):
            wei_to_native("0xnothex")


# =============================================================================
# Discovery
# =============================================================================


class TestDiscovery:
    """Tests for provider listing and availability."""

    def test_list_providers(self, connector: WalletConnector):
        providers = connector.list_providers()

        assert providers == PROVIDERS
        assert [p.kind for p in providers] == [
            ProviderKind.PRIMARY_INJECTED,
            ProviderKind.SECONDARY_INJECTED,
            ProviderKind.REMOTE_PROTOCOL,
        ]
        assert [p.name for p in providers] == ["MetaMask", "Coinbase Wallet", "WalletConnect"]

    def test_list_providers_is_restartable(self, connector: WalletConnector):
        assert list(connector.list_providers()) == list(connector.list_providers())

    def test_injected_available_when_present(self, connector: WalletConnector):
        assert connector.is_provider_available(ProviderKind.PRIMARY_INJECTED) is True
        assert connector.is_provider_available(ProviderKind.SECONDARY_INJECTED) is True

    def test_injected_unavailable_when_absent(self, empty_environment: InjectedProviders):
        connector = WalletConnector(empty_environment)

        assert connector.is_provider_available(ProviderKind.PRIMARY_INJECTED) is False
        assert connector.is_provider_available(ProviderKind.SECONDARY_INJECTED) is False

    def test_remote_protocol_always_available(self, empty_environment: InjectedProviders):
        connector = WalletConnector(empty_environment)

        assert connector.is_provider_available(ProviderKind.REMOTE_PROTOCOL) is True

    def test_environment_queried_at_call_time(self, empty_environment: InjectedProviders):
        """Test that providers injected after construction are found."""
        connector = WalletConnector(empty_environment)
        assert connector.is_provider_available(ProviderKind.PRIMARY_INJECTED) is False

        empty_environment.inject(ProviderKind.PRIMARY_INJECTED, FakeWalletProvider())

        assert connector.is_provider_available(ProviderKind.PRIMARY_INJECTED) is True

    def test_fake_provider_satisfies_protocol(self):
        assert isinstance(FakeWalletProvider(), WalletProvider)


# =============================================================================
# Connect
# =============================================================================


class TestConnectPrimary:
    """Tests for connecting the primary injected provider."""

    @pytest.mark.asyncio
    async def test_connect_success(
        self, connector: WalletConnector, primary_provider: FakeWalletProvider
    ):
        outcome = await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert outcome.status is ConnectStatus.CONNECTED
        assert outcome.session is not None
        assert outcome.session.address == ADDRESS
        assert outcome.session.balance_native == Decimal("2.0000")
        assert outcome.session.provider_kind is ProviderKind.PRIMARY_INJECTED
        assert outcome.session.connected is True
        assert outcome.session.balance_approximate is False
        assert outcome.message == "Connected to MetaMask"
        assert connector.state is ConnectionState.CONNECTED
        assert connector.is_connected

    @pytest.mark.asyncio
    async def test_requests_accounts_then_balance(
        self, connector: WalletConnector, primary_provider: FakeWalletProvider
    ):
        await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert primary_provider.requests == [
            ("eth_requestAccounts", None),
            ("eth_getBalance", [ADDRESS, "latest"]),
        ]

    @pytest.mark.asyncio
    async def test_subscribes_to_account_changes(
        self, connector: WalletConnector, primary_provider: FakeWalletProvider
    ):
        await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert primary_provider.listener_count(ACCOUNTS_CHANGED) == 1

    @pytest.mark.asyncio
    async def test_session_is_a_copy(self, connector: WalletConnector):
        await connector.connect(ProviderKind.PRIMARY_INJECTED)

        snapshot = connector.session
        snapshot.address = "0xchanged"

        assert connector.session.address == ADDRESS

    @pytest.mark.asyncio
    async def test_user_rejection(self, primary_provider: FakeWalletProvider, connector: WalletConnector):
        primary_provider.accounts_error = ProviderRpcError(4001, "User rejected the request.")

        with pytest.raises(ConnectionRejectedError) as exc_info:
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert "User rejected" in str(exc_info.value)
        assert connector.state is ConnectionState.DISCONNECTED
        assert not connector.is_connecting

    @pytest.mark.asyncio
    async def test_unauthorized_is_rejection(
        self, primary_provider: FakeWalletProvider, connector: WalletConnector
    ):
        primary_provider.accounts_error = ProviderRpcError(4100, "The requested account has not been authorized.")

        with pytest.raises(ConnectionRejectedError):
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

    @pytest.mark.asyncio
    async def test_unsupported_method_is_provider_error(
        self, primary_provider: FakeWalletProvider, connector: WalletConnector
    ):
        primary_provider.accounts_error = ProviderRpcError(4200, "Unsupported method")

        with pytest.raises(ProviderError) as exc_info:
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert exc_info.value.code == 4200

    @pytest.mark.asyncio
    async def test_provider_rpc_error_message_preserved(
        self, primary_provider: FakeWalletProvider, connector: WalletConnector
    ):
        primary_provider.accounts_error = ProviderRpcError(-32002, "Request already pending")

        with pytest.raises(ProviderError) as exc_info:
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert exc_info.value.message == "Request already pending"
        assert exc_info.value.code == -32002
        assert str(exc_info.value) == "Request already pending"

    @pytest.mark.asyncio
    async def test_arbitrary_fault_message_preserved(
        self, primary_provider: FakeWalletProvider, connector: WalletConnector
    ):
        primary_provider.balance_error = RuntimeError("RPC node unreachable")

        with pytest.raises(ProviderError) as exc_info:
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert exc_info.value.message == "RPC node unreachable"
        assert connector.state is ConnectionState.DISCONNECTED
        assert primary_provider.listener_count(ACCOUNTS_CHANGED) == 0

    @pytest.mark.asyncio
    async def test_invalid_balance(self, primary_provider: FakeWalletProvider, connector: WalletConnector):
        primary_provider.balance = "0xzz"

        with pytest.raises(ProviderError):
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

    @pytest.mark.asyncio
    async def test_no_accounts(self, primary_provider: FakeWalletProvider, connector: WalletConnector):
        primary_provider.accounts = []

        with pytest.raises(ProviderError, match="No accounts"):
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, primary_provider: FakeWalletProvider, connector: WalletConnector):
        primary_provider.accounts_error = ProviderRpcError(4001, "User rejected the request.")
        with pytest.raises(ConnectionRejectedError):
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

        primary_provider.accounts_error = None
        outcome = await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert outcome.is_connected


class TestConnectOtherKinds:
    """Tests for the secondary provider and the remote protocol."""

    @pytest.mark.asyncio
    async def test_secondary_uses_approximate_balance(
        self, connector: WalletConnector, secondary_provider: FakeWalletProvider
    ):
        outcome = await connector.connect(ProviderKind.SECONDARY_INJECTED)

        assert outcome.is_connected
        assert outcome.session.address == OTHER_ADDRESS
        assert outcome.session.balance_native == Decimal("0.1")
        assert outcome.session.balance_approximate is True
        assert secondary_provider.methods == ["eth_requestAccounts"]

    @pytest.mark.asyncio
    async def test_secondary_rejection(
        self, connector: WalletConnector, secondary_provider: FakeWalletProvider
    ):
        secondary_provider.accounts_error = ProviderRpcError(4001, "denied")

        with pytest.raises(ConnectionRejectedError):
            await connector.connect(ProviderKind.SECONDARY_INJECTED)

    @pytest.mark.asyncio
    async def test_remote_protocol_not_implemented(self, connector: WalletConnector):
        outcome = await connector.connect(ProviderKind.REMOTE_PROTOCOL)

        assert outcome.status is ConnectStatus.NOT_IMPLEMENTED
        assert outcome.session is None
        assert "WalletConnect" in outcome.message
        assert connector.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_missing_provider(self, empty_environment: InjectedProviders):
        connector = WalletConnector(empty_environment)

        with pytest.raises(ProviderNotFoundError) as exc_info:
            await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert exc_info.value.kind is ProviderKind.PRIMARY_INJECTED
        assert "MetaMask is not installed" in str(exc_info.value)
        assert isinstance(exc_info.value, WalletConnectorError)

    @pytest.mark.asyncio
    async def test_reconnect_replaces_subscription(
        self,
        connector: WalletConnector,
        primary_provider: FakeWalletProvider,
        secondary_provider: FakeWalletProvider,
    ):
        await connector.connect(ProviderKind.PRIMARY_INJECTED)
        await connector.connect(ProviderKind.SECONDARY_INJECTED)

        assert primary_provider.listener_count(ACCOUNTS_CHANGED) == 0
        assert secondary_provider.listener_count(ACCOUNTS_CHANGED) == 1
        assert connector.session.provider_kind is ProviderKind.SECONDARY_INJECTED


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentConnect:
    """Tests for the single in-flight connect rule."""

    @pytest.mark.asyncio
    async def test_second_connect_rejected(
        self, connector: WalletConnector, primary_provider: FakeWalletProvider
    ):
        primary_provider.gate = asyncio.Event()
        first = asyncio.create_task(connector.connect(ProviderKind.PRIMARY_INJECTED))
        await asyncio.sleep(0)

        assert connector.state is ConnectionState.CONNECTING
        assert connector.is_connecting
        with pytest.raises(AlreadyConnectingError):
            await connector.connect(ProviderKind.SECONDARY_INJECTED)

        primary_provider.gate.set()
        outcome = await first

        assert outcome.is_connected
        assert not connector.is_connecting

    @pytest.mark.asyncio
    async def test_disconnect_during_connect_supersedes(
        self, connector: WalletConnector, primary_provider: FakeWalletProvider
    ):
        primary_provider.gate = asyncio.Event()
        pending = asyncio.create_task(connector.connect(ProviderKind.PRIMARY_INJECTED))
        await asyncio.sleep(0)

        assert connector.disconnect() is True
        assert connector.state is ConnectionState.DISCONNECTED

        primary_provider.gate.set()
        outcome = await pending

        assert outcome.status is ConnectStatus.SUPERSEDED
        assert outcome.session is None
        assert connector.state is ConnectionState.DISCONNECTED
        assert connector.session.connected is False
        assert primary_provider.listener_count(ACCOUNTS_CHANGED) == 0

    @pytest.mark.asyncio
    async def test_late_failure_after_disconnect_is_superseded(
        self, connector: WalletConnector, primary_provider: FakeWalletProvider
    ):
        primary_provider.gate = asyncio.Event()
        primary_provider.accounts_error = ProviderRpcError(4001, "denied")
        pending = asyncio.create_task(connector.connect(ProviderKind.PRIMARY_INJECTED))
        await asyncio.sleep(0)

        connector.disconnect()
        primary_provider.gate.set()
        outcome = await pending

        assert outcome.status is ConnectStatus.SUPERSEDED

    @pytest.mark.asyncio
    async def test_retry_allowed_after_abandoned_connect(
        self,
        connector: WalletConnector,
        primary_provider: FakeWalletProvider,
        secondary_provider: FakeWalletProvider,
    ):
        """Test that a prompt left open does not block a new connect."""
        primary_provider.gate = asyncio.Event()
        pending = asyncio.create_task(connector.connect(ProviderKind.PRIMARY_INJECTED))
        await asyncio.sleep(0)

        connector.disconnect()

        assert connector.is_connecting is False
        outcome = await connector.connect(ProviderKind.SECONDARY_INJECTED)
        assert outcome.is_connected

        primary_provider.gate.set()
        stale = await pending

        assert stale.status is ConnectStatus.SUPERSEDED
        assert connector.state is ConnectionState.CONNECTED
        assert connector.session.provider_kind is ProviderKind.SECONDARY_INJECTED
        assert primary_provider.listener_count(ACCOUNTS_CHANGED) == 0
        assert secondary_provider.listener_count(ACCOUNTS_CHANGED) == 1

    @pytest.mark.asyncio
    async def test_abandoned_connect_does_not_clear_newer_attempt(
        self,
        connector: WalletConnector,
        primary_provider: FakeWalletProvider,
        secondary_provider: FakeWalletProvider,
    ):
        primary_provider.gate = asyncio.Event()
        secondary_provider.gate = asyncio.Event()
        abandoned = asyncio.create_task(connector.connect(ProviderKind.PRIMARY_INJECTED))
        await asyncio.sleep(0)
        connector.disconnect()
        current = asyncio.create_task(connector.connect(ProviderKind.SECONDARY_INJECTED))
        await asyncio.sleep(0)

        primary_provider.gate.set()
        await abandoned

        assert connector.is_connecting is True
        assert connector.state is ConnectionState.CONNECTING

        secondary_provider.gate.set()
        outcome = await current

        assert outcome.is_connected
        assert connector.is_connecting is False


# =============================================================================
# Account Changes and Disconnect
# =============================================================================


class TestAccountChanges:
    """Tests for the accountsChanged subscription."""

    @pytest.mark.asyncio
    async def test_account_switch_updates_address(
        self, environment: InjectedProviders, primary_provider: FakeWalletProvider
    ):
        on_changed = MagicMock()
        connector = WalletConnector(environment, on_account_changed=on_changed)
        await connector.connect(ProviderKind.PRIMARY_INJECTED)

        primary_provider.emit(ACCOUNTS_CHANGED, [OTHER_ADDRESS])

        assert connector.session.address == OTHER_ADDRESS
        assert connector.session.connected is True
        assert connector.session.balance_native == Decimal("2.0000")
        on_changed.assert_called_once_with(OTHER_ADDRESS)

    @pytest.mark.asyncio
    async def test_same_account_is_ignored(
        self, environment: InjectedProviders, primary_provider: FakeWalletProvider
    ):
        on_changed = MagicMock()
        connector = WalletConnector(environment, on_account_changed=on_changed)
        await connector.connect(ProviderKind.PRIMARY_INJECTED)

        primary_provider.emit(ACCOUNTS_CHANGED, [ADDRESS])

        on_changed.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_accounts_ends_session(
        self, environment: InjectedProviders, primary_provider: FakeWalletProvider
    ):
        on_ended = MagicMock()
        connector = WalletConnector(environment, on_session_ended=on_ended)
        await connector.connect(ProviderKind.PRIMARY_INJECTED)

        primary_provider.emit(ACCOUNTS_CHANGED, [])

        on_ended.assert_called_once_with()
        assert connector.state is ConnectionState.DISCONNECTED
        assert connector.session.connected is False
        assert connector.session.address == ""
        assert primary_provider.listener_count(ACCOUNTS_CHANGED) == 0


class TestDisconnect:
    """Tests for WalletConnector.disconnect()."""

    @pytest.mark.asyncio
    async def test_disconnect_clears_session(
        self, environment: InjectedProviders, primary_provider: FakeWalletProvider
    ):
        on_disconnected = MagicMock()
        connector = WalletConnector(environment, on_disconnected=on_disconnected)
        await connector.connect(ProviderKind.PRIMARY_INJECTED)

        assert connector.disconnect() is True

        on_disconnected.assert_called_once_with()
        assert connector.session.connected is False
        assert connector.session.balance_native == Decimal("0")
        assert primary_provider.listener_count(ACCOUNTS_CHANGED) == 0

    def test_disconnect_when_disconnected(self, connector: WalletConnector):
        """Test that disconnect always succeeds."""
        assert connector.disconnect() is False
        assert connector.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_stale_notification_after_disconnect(
        self, environment: InjectedProviders, primary_provider: FakeWalletProvider
    ):
        """Test that a handler kept by the wallet no longer affects the connector."""
        on_ended = MagicMock()
        connector = WalletConnector(environment, on_session_ended=on_ended)
        await connector.connect(ProviderKind.PRIMARY_INJECTED)
        handler = primary_provider.listeners[ACCOUNTS_CHANGED][0]

        connector.disconnect()
        handler([])

        on_ended.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsubscribe_failure_does_not_block_disconnect(
        self, connector: WalletConnector, primary_provider: FakeWalletProvider
    ):
        await connector.connect(ProviderKind.PRIMARY_INJECTED)
        primary_provider.listeners.clear()

        assert connector.disconnect() is True
        assert connector.state is ConnectionState.DISCONNECTED
