"""
Event System for the Fractionalization Workflow

Pub/sub event stream between the workflow controller and the presentation
layer. Delivery is synchronous: every command runs on the single event loop
thread and its events are handed to subscribers before the command returns.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from ..models import Notification, WorkflowEvent, WorkflowEventType, generate_id

logger = structlog.get_logger(__name__)


# Type alias for event handlers
EventHandler = Callable[[WorkflowEvent], None]


@dataclass
class Subscription:
    """Represents an event subscription."""

    id: str
    handler: EventHandler
    event_types: set[WorkflowEventType]
    filter_func: Callable[[WorkflowEvent], bool] | None = None

    def matches(self, event: WorkflowEvent) -> bool:
        """Check if this subscription matches an event."""
        if event.type not in self.event_types:
            return False

        if self.filter_func and not self.filter_func(event):
            return False

        return True


@dataclass
class EventMetrics:
    """Metrics for event stream monitoring."""

    events_published: int = 0
    events_delivered: int = 0
    events_failed: int = 0
    published_by_type: dict[str, int] = field(default_factory=dict)

    def record_publish(self, event_type: WorkflowEventType) -> None:
        self.events_published += 1
        self.published_by_type[event_type.value] = (
            self.published_by_type.get(event_type.value, 0) + 1
        )


class EventBus:
    """
    Synchronous event bus for workflow events.

    Features:
    - Per-type subscriptions with optional filters
    - Bounded history of published events
    - Handler failures are logged and counted, never propagated
    """

    def __init__(self, history_size: int = 500) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._history: deque[WorkflowEvent] = deque(maxlen=history_size)
        self._metrics = EventMetrics()

    # =========================================================================
    # Subscription Management
    # =========================================================================

    def subscribe(
        self,
        handler: EventHandler,
        event_types: set[WorkflowEventType] | None = None,
        filter_func: Callable[[WorkflowEvent], bool] | None = None,
    ) -> str:
        """
        Subscribe to events.

        Args:
            handler: Function called with each matching event
            event_types: Event types to receive (all types when None)
            filter_func: Optional additional filter

        Returns:
            Subscription ID for unsubscribing
        """
        sub_id = generate_id()
        types = set(event_types) if event_types else set(WorkflowEventType)

        self._subscriptions[sub_id] = Subscription(
            id=sub_id,
            handler=handler,
            event_types=types,
            filter_func=filter_func,
        )

        logger.debug(
            "event_subscription_created",
            subscription_id=sub_id,
            event_types=sorted(t.value for t in types),
        )
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Unsubscribe from events.

        Returns:
            True if unsubscribed, False if not found
        """
        if self._subscriptions.pop(subscription_id, None) is None:
            return False
        logger.debug("event_subscription_removed", subscription_id=subscription_id)
        return True

    # =========================================================================
    # Event Publishing
    # =========================================================================

    def publish(
        self,
        event_type: WorkflowEventType,
        payload: dict[str, Any] | None = None,
        notification: Notification | None = None,
        source: str = "workflow",
    ) -> WorkflowEvent:
        """
        Publish an event to all matching subscribers.

        Args:
            event_type: Type of event
            payload: Event data
            notification: Optional user-visible message
            source: Emitting component

        Returns:
            The published event
        """
        event = WorkflowEvent(
            type=event_type,
            source=source,
            payload=payload or {},
            notification=notification,
        )
        self._history.append(event)
        self._metrics.record_publish(event_type)

        logger.debug("event_published", event_id=event.id, event_type=event_type.value)

        for subscription in list(self._subscriptions.values()):
            if not subscription.matches(event):
                continue
            try:
                subscription.handler(event)
                self._metrics.events_delivered += 1
            except Exception as e:
                self._metrics.events_failed += 1
                logger.error(
                    "event_handler_failed",
                    subscription_id=subscription.id,
                    event_type=event_type.value,
                    error=str(e),
                )

        return event

    # =========================================================================
    # Introspection
    # =========================================================================

    def history(self, event_type: WorkflowEventType | None = None) -> list[WorkflowEvent]:
        """Published events, oldest first, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type is event_type]

    def count(self, event_type: WorkflowEventType) -> int:
        """Number of events of a type published since the bus was created."""
        return self._metrics.published_by_type.get(event_type.value, 0)

    @property
    def metrics(self) -> EventMetrics:
        return self._metrics

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
