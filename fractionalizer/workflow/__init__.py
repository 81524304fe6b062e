"""
Workflow Package

The fractionalization state machine and the event stream it publishes to
the presentation layer.

Usage:
    from fractionalizer.models import ProviderKind
    from fractionalizer.workflow import WorkflowController

    async def example(environment):
        async with WorkflowController(environment) as workflow:
            workflow.subscribe(print)
            await workflow.select_provider(ProviderKind.PRIMARY_INJECTED)
            workflow.submit_asset("blob:img-1")
            workflow.confirm_configuration()
"""

from .controller import WorkflowController, WorkflowStateError
from .events import EventBus, EventHandler, EventMetrics, Subscription

__all__ = [
    "WorkflowController",
    "WorkflowStateError",
    "EventBus",
    "EventHandler",
    "EventMetrics",
    "Subscription",
]
