"""
NFT Fractionalizer - Test Fixtures

Shared pytest fixtures for all test modules, including an in-memory
wallet provider that stands in for the browser-injected wallet.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Generator
from typing import Any

import pytest

from fractionalizer.config import (
    FractionalizerSettings,
    configure_settings,
    reset_settings,
)
from fractionalizer.models import ProviderKind
from fractionalizer.simulation import TokenizationSimulator
from fractionalizer.wallet import InjectedProviders, ProviderRpcError, WalletConnector
from fractionalizer.workflow import EventBus, WorkflowController

ADDRESS = "0x71C7656EC7ab88b098defB751B7401B5f6d8976F"
OTHER_ADDRESS = "0x2B5AD5c4795c026514f8317c7a215E218DcCD6cF"
TWO_ETHER_HEX = "0x1bc16d674ec80000"  # 2 * 10**18 wei


# =============================================================================
# Wallet Provider Test Double
# =============================================================================


class FakeWalletProvider:
    """In-memory wallet provider following the EIP-1193 request/event shape."""

    def __init__(
        self,
        accounts: list[str] | None = None,
        balance: Any = TWO_ETHER_HEX,
        accounts_error: Exception | None = None,
        balance_error: Exception | None = None,
    ) -> None:
        self.accounts = [ADDRESS] if accounts is None else accounts
        self.balance = balance
        self.accounts_error = accounts_error
        self.balance_error = balance_error
        self.requests: list[tuple[str, list[Any] | None]] = []
        self.listeners: dict[str, list[Any]] = {}
        # When set, requests block until the gate is opened
        self.gate: asyncio.Event | None = None

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        self.requests.append((method, params))
        if self.gate is not None:
            await self.gate.wait()

        if method == "eth_requestAccounts":
            if self.accounts_error:
                raise self.accounts_error
            return list(self.accounts)
        if method == "eth_getBalance":
            if self.balance_error:
                raise self.balance_error
            return self.balance
        raise ProviderRpcError(4200, f"Unsupported method: {method}")

    def on(self, event: str, handler: Any) -> None:
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: str, handler: Any) -> None:
        self.listeners.get(event, []).remove(handler)

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self.listeners.get(event, [])):
            handler(*args)

    def listener_count(self, event: str) -> int:
        return len(self.listeners.get(event, []))

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.requests]


# =============================================================================
# Settings Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def settings() -> Generator[FractionalizerSettings, None, None]:
    """Install default settings, ignoring any .env file, for every test."""
    test_settings = FractionalizerSettings(_env_file=None)
    configure_settings(test_settings)
    yield test_settings
    reset_settings()


@pytest.fixture
def fast_settings(settings: FractionalizerSettings) -> FractionalizerSettings:
    """Settings with a near-zero tick interval."""
    fast = settings.model_copy(update={"tick_interval_seconds": 0.001})
    configure_settings(fast)
    return fast


# =============================================================================
# Wallet Fixtures
# =============================================================================


@pytest.fixture
def primary_provider() -> FakeWalletProvider:
    return FakeWalletProvider()


@pytest.fixture
def secondary_provider() -> FakeWalletProvider:
    return FakeWalletProvider(accounts=[OTHER_ADDRESS], balance=None)


@pytest.fixture
def environment(
    primary_provider: FakeWalletProvider,
    secondary_provider: FakeWalletProvider,
) -> InjectedProviders:
    return InjectedProviders({
        ProviderKind.PRIMARY_INJECTED: primary_provider,
        ProviderKind.SECONDARY_INJECTED: secondary_provider,
    })


@pytest.fixture
def empty_environment() -> InjectedProviders:
    return InjectedProviders()


@pytest.fixture
def connector(environment: InjectedProviders) -> WalletConnector:
    return WalletConnector(environment)


# =============================================================================
# Workflow Fixtures
# =============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(history_size=100)


@pytest.fixture
def manual_simulator() -> TokenizationSimulator:
    """Simulator advanced only by explicit tick() calls."""
    return TokenizationSimulator(auto_tick=False)


@pytest.fixture
def workflow(
    environment: InjectedProviders,
    manual_simulator: TokenizationSimulator,
    event_bus: EventBus,
) -> WorkflowController:
    """Workflow with a manually ticked simulator."""
    return WorkflowController(
        environment,
        simulator=manual_simulator,
        event_bus=event_bus,
        rng=random.Random(7),
    )


@pytest.fixture
async def timed_workflow(
    environment: InjectedProviders,
    fast_settings: FractionalizerSettings,
    event_bus: EventBus,
):
    """Workflow whose simulator ticks on the event loop."""
    controller = WorkflowController(environment, settings=fast_settings, event_bus=event_bus)
    yield controller
    await controller.aclose()
