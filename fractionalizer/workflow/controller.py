"""
Workflow Controller

The top-level state machine of the fractionalization workflow. It moves a
user through four steps:

    AWAITING_WALLET -> AWAITING_ASSET -> CONFIGURING -> SIMULATING

and back to AWAITING_WALLET from any step when the wallet disconnects.

The controller never renders anything. Commands come in from the
presentation layer; outcomes go out as events on the EventBus, each
optionally carrying a notification for the user. Connection and
configuration errors are recovered here and reported as events; only
commands issued in the wrong step raise.
"""

import random
from decimal import Decimal

import structlog

from ..config import FractionalizerSettings, get_settings
from ..models import (
    AssetReference,
    ConnectOutcome,
    ConnectStatus,
    ManagedTokens,
    Notification,
    OutOfRangeError,
    ProviderDescriptor,
    ProviderKind,
    Severity,
    SimulationRun,
    TokenConfiguration,
    WalletSession,
    WorkflowEventType,
    WorkflowStep,
    generate_id,
    generate_symbol,
)
from ..models.events import LONG_LIFE_MS, SHORT_LIFE_MS
from ..simulation import TokenizationSimulator
from ..wallet import (
    AlreadyConnectingError,
    HostEnvironment,
    ProviderNotFoundError,
    WalletConnector,
    WalletConnectorError,
)
from .events import EventBus, EventHandler

logger = structlog.get_logger(__name__)


class WorkflowStateError(Exception):
    """Raised when a command is issued in a step that does not accept it."""

    def __init__(self, action: str, step: WorkflowStep):
        self.action = action
        self.step = step
        super().__init__(f"Cannot {action} while in step {step.name}")


class WorkflowController:
    """
    State machine sequencing wallet connection, asset upload, token
    configuration and the simulated fractionalization.

    The controller owns the current step. It holds the wallet session
    (owned by the connector), the asset reference, the token configuration
    and the simulation run (owned by the simulator), and exposes copies of
    them for display.
    """

    def __init__(
        self,
        environment: HostEnvironment | None = None,
        *,
        connector: WalletConnector | None = None,
        simulator: TokenizationSimulator | None = None,
        settings: FractionalizerSettings | None = None,
        event_bus: EventBus | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize the workflow.

        Args:
            environment: Host environment exposing wallet providers; required
                unless a connector is given
            connector: Pre-built wallet connector
            simulator: Pre-built simulator (auto-ticking one by default)
            settings: Settings override
            event_bus: Bus receiving the workflow's events
            rng: Random source for the token symbol
        """
        if connector is None and environment is None:
            raise ValueError("Either environment or connector is required")

        self.settings = settings or get_settings()
        self.events = event_bus or EventBus()
        self.workflow_id = generate_id()
        self._logger = logger.bind(workflow_id=self.workflow_id)

        self._connector = connector or WalletConnector(environment, settings=self.settings)
        self._connector.on_session_ended = self._handle_session_ended
        self._connector.on_account_changed = self._handle_account_changed

        self._simulator = simulator or TokenizationSimulator(settings=self.settings)
        self._simulator.on_progress = self._handle_progress
        self._simulator.on_complete = self._handle_complete

        # Generated once per workflow, kept across resets
        self._symbol = generate_symbol(rng=rng, settings=self.settings)

        self._step = WorkflowStep.AWAITING_WALLET
        self._asset: AssetReference | None = None
        self._configuration: TokenConfiguration | None = None
        self._manage_dialog_open = False

    async def __aenter__(self) -> "WorkflowController":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ==================== Read-only State ====================

    @property
    def step(self) -> WorkflowStep:
        return self._step

    @property
    def manage_dialog_open(self) -> bool:
        return self._manage_dialog_open

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def wallet_session(self) -> WalletSession:
        return self._connector.session

    @property
    def asset(self) -> AssetReference | None:
        return self._asset

    @property
    def token_configuration(self) -> TokenConfiguration | None:
        return self._configuration.model_copy() if self._configuration else None

    @property
    def simulation_run(self) -> SimulationRun | None:
        return self._simulator.run

    @property
    def can_manage_tokens(self) -> bool:
        run = self._simulator.run
        return self._step is WorkflowStep.SIMULATING and run is not None and run.is_complete

    @property
    def managed_tokens(self) -> ManagedTokens | None:
        """Holdings snapshot, available once fractionalization is complete."""
        if not self.can_manage_tokens or self._configuration is None:
            return None
        return ManagedTokens.from_configuration(self._configuration)

    def list_providers(self) -> tuple[ProviderDescriptor, ...]:
        return self._connector.list_providers()

    def is_provider_available(self, kind: ProviderKind) -> bool:
        return self._connector.is_provider_available(kind)

    # ==================== Event Stream ====================

    def subscribe(
        self,
        handler: EventHandler,
        event_types: set[WorkflowEventType] | None = None,
    ) -> str:
        """Subscribe the presentation layer to workflow events."""
        return self.events.subscribe(handler, event_types)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self.events.unsubscribe(subscription_id)

    # ==================== Commands ====================

    async def select_provider(self, kind: ProviderKind) -> ConnectOutcome | None:
        """
        Connect the wallet the user picked.

        Failures are reported as WALLET_FAILED events and return None; the
        user may retry. The remote protocol yields WALLET_UNSUPPORTED.

        Returns:
            The connection outcome, or None if the attempt failed
        """
        self._require_step(WorkflowStep.AWAITING_WALLET, "select a wallet")
        descriptor = self._connector.describe(kind)

        try:
            outcome = await self._connector.connect(kind)
        except AlreadyConnectingError as e:
            self._wallet_failed(kind, e, Severity.WARN, "Connection In Progress", str(e))
            return None
        except ProviderNotFoundError as e:
            self._wallet_failed(kind, e, Severity.ERROR, "Wallet Not Found", str(e))
            return None
        except WalletConnectorError as e:
            detail = str(e) or "Failed to connect to wallet"
            self._wallet_failed(kind, e, Severity.ERROR, "Connection Failed", detail)
            return None

        if outcome.status is ConnectStatus.NOT_IMPLEMENTED:
            self.events.publish(
                WorkflowEventType.WALLET_UNSUPPORTED,
                payload={"kind": kind.value, "name": descriptor.name},
                notification=Notification(
                    severity=Severity.INFO,
                    summary="Not Implemented",
                    detail=outcome.message or "",
                    life_ms=SHORT_LIFE_MS,
                ),
                source="wallet",
            )
            return outcome

        if outcome.status is ConnectStatus.SUPERSEDED or self._step is not WorkflowStep.AWAITING_WALLET:
            self._logger.info("late_connection_ignored", kind=kind.value)
            return outcome

        session = outcome.session
        self._transition(WorkflowStep.AWAITING_ASSET)
        self.events.publish(
            WorkflowEventType.WALLET_CONNECTED,
            payload={
                "kind": kind.value,
                "address": session.address if session else "",
                "balance": str(session.balance_native) if session else "0",
                "balance_approximate": session.balance_approximate if session else False,
            },
            notification=Notification(
                severity=Severity.SUCCESS,
                summary="Wallet Connected",
                detail=f"Connected to {descriptor.name}",
                life_ms=SHORT_LIFE_MS,
            ),
            source="wallet",
        )
        return outcome

    def submit_asset(self, reference: AssetReference | str, name: str | None = None) -> AssetReference:
        """
        Accept the uploaded image and move on to configuration.

        Args:
            reference: Asset reference, or a bare content locator
            name: Original file name when a bare locator is given
        """
        self._require_step(WorkflowStep.AWAITING_ASSET, "submit an asset")
        if isinstance(reference, AssetReference):
            asset = reference
        else:
            asset = AssetReference(locator=reference, name=name)

        self._asset = asset
        self._transition(WorkflowStep.CONFIGURING)
        self._configuration = TokenConfiguration.create(symbol=self._symbol, settings=self.settings)

        self.events.publish(
            WorkflowEventType.ASSET_ACCEPTED,
            payload={"locator": asset.locator, "name": asset.name},
            notification=Notification(
                severity=Severity.INFO,
                summary="NFT Uploaded",
                detail="Configure your token distribution",
                life_ms=SHORT_LIFE_MS,
            ),
            source="asset",
        )
        return asset

    def set_token_count(self, n: int) -> bool:
        """
        Change the number of tokens to mint.

        Out-of-range values are reported as CONFIG_REJECTED and leave the
        count unchanged.

        Returns:
            True if the count was updated
        """
        self._require_step(WorkflowStep.CONFIGURING, "change the token count")
        config = self._require_configuration()

        try:
            config.set_count(n)
        except OutOfRangeError as e:
            self._logger.info("token_count_rejected", value=n)
            self.events.publish(
                WorkflowEventType.CONFIG_REJECTED,
                payload={"value": n, "minimum": e.minimum, "maximum": e.maximum},
                notification=Notification(
                    severity=Severity.WARN,
                    summary="Invalid Token Count",
                    detail=str(e),
                    life_ms=LONG_LIFE_MS,
                ),
                source="configuration",
            )
            return False

        self.events.publish(
            WorkflowEventType.CONFIG_UPDATED,
            payload=self._configuration_payload(config),
            source="configuration",
        )
        return True

    def confirm_configuration(self) -> SimulationRun:
        """Lock in the configuration and start the simulated fractionalization."""
        self._require_step(WorkflowStep.CONFIGURING, "confirm the configuration")
        config = self._require_configuration()

        # Start first: a failed start leaves the workflow in CONFIGURING
        run = self._simulator.start()
        self._transition(WorkflowStep.SIMULATING)
        self.events.publish(
            WorkflowEventType.CONFIG_CONFIRMED,
            payload=self._configuration_payload(config),
            source="configuration",
        )
        return run

    def open_manage_dialog(self) -> ManagedTokens:
        """
        Open the token management view.

        Raises:
            WorkflowStateError: Fractionalization has not completed
        """
        tokens = self.managed_tokens
        if tokens is None:
            raise WorkflowStateError("manage tokens before fractionalization completes", self._step)

        if not self._manage_dialog_open:
            self._manage_dialog_open = True
            self.events.publish(
                WorkflowEventType.MANAGE_DIALOG_OPENED,
                payload=tokens.model_dump(mode="json"),
                source="manage",
            )
        return tokens

    def close_manage_dialog(self) -> bool:
        """Close the token management view; returns False if it was not open."""
        if not self._manage_dialog_open:
            return False
        self._manage_dialog_open = False
        self.events.publish(WorkflowEventType.MANAGE_DIALOG_CLOSED, source="manage")
        return True

    def disconnect_wallet(self) -> bool:
        """
        Disconnect the wallet and reset the workflow.

        Cancels a running simulation. Does nothing when already waiting
        for a wallet with no connection pending.

        Returns:
            True if the workflow was reset
        """
        if (
            self._step is WorkflowStep.AWAITING_WALLET
            and not self._connector.is_connected
            and not self._connector.is_connecting
        ):
            return False

        self._connector.disconnect()
        self._reset(reason="user")
        return True

    async def aclose(self) -> None:
        """Release the tick task of an active simulation."""
        await self._simulator.aclose()

    # ==================== Callbacks ====================

    def _handle_session_ended(self) -> None:
        self._reset(reason="session_ended")

    def _handle_account_changed(self, address: str) -> None:
        self.events.publish(
            WorkflowEventType.WALLET_ACCOUNT_CHANGED,
            payload={"address": address},
            source="wallet",
        )

    def _handle_progress(self, progress: int) -> None:
        if self._step is not WorkflowStep.SIMULATING:
            return
        self.events.publish(
            WorkflowEventType.SIMULATION_PROGRESS,
            payload={"progress": progress},
            source="simulation",
        )

    def _handle_complete(self) -> None:
        if self._step is not WorkflowStep.SIMULATING:
            return
        config = self._require_configuration()
        self._logger.info("fractionalization_complete", symbol=config.symbol, count=config.count)
        self.events.publish(
            WorkflowEventType.SIMULATION_COMPLETE,
            payload=self._configuration_payload(config),
            notification=Notification(
                severity=Severity.SUCCESS,
                summary="Success",
                detail="NFT Fractionalization Complete",
                life_ms=SHORT_LIFE_MS,
            ),
            source="simulation",
        )

    # ==================== Internals ====================

    def _reset(self, reason: str) -> None:
        previous = self._step
        self._simulator.reset()
        self._asset = None
        self._configuration = None
        self._manage_dialog_open = False
        self._transition(WorkflowStep.AWAITING_WALLET)

        self._logger.info("workflow_reset", reason=reason, from_step=previous.name)
        self.events.publish(
            WorkflowEventType.WALLET_DISCONNECTED,
            payload={"reason": reason, "from_step": previous.name},
            notification=Notification(
                severity=Severity.INFO,
                summary="Wallet Disconnected",
                detail="Your wallet has been disconnected",
                life_ms=SHORT_LIFE_MS,
            ),
            source="wallet",
        )

    def _transition(self, step: WorkflowStep) -> None:
        if step is not self._step:
            self._logger.info("workflow_step_changed", from_step=self._step.name, to_step=step.name)
        self._step = step

    def _require_step(self, step: WorkflowStep, action: str) -> None:
        if self._step is not step:
            raise WorkflowStateError(action, self._step)

    def _require_configuration(self) -> TokenConfiguration:
        if self._configuration is None:
            raise WorkflowStateError("use the token configuration", self._step)
        return self._configuration

    def _wallet_failed(
        self,
        kind: ProviderKind,
        error: WalletConnectorError,
        severity: Severity,
        summary: str,
        detail: str,
    ) -> None:
        self._logger.warning("wallet_connection_failed", kind=kind.value, error=detail)
        self.events.publish(
            WorkflowEventType.WALLET_FAILED,
            payload={"kind": kind.value, "error": type(error).__name__, "message": detail},
            notification=Notification(
                severity=severity,
                summary=summary,
                detail=detail,
                life_ms=LONG_LIFE_MS,
            ),
            source="wallet",
        )

    @staticmethod
    def _configuration_payload(config: TokenConfiguration) -> dict[str, str | int]:
        total: Decimal = config.total_value
        return {
            "symbol": config.symbol,
            "count": config.count,
            "unit_price": str(config.unit_price),
            "total_value": str(total),
        }
