"""Node lifecycle workflows built on the CSM services."""

from .confirmation import (
    AssumeYesProvider,
    ConfirmationGate,
    ConfirmationProvider,
    ConsoleConfirmationProvider,
)
from .node_power import NodePowerWorkflow, PowerCommand, PowerResult
from .node_update import NodeUpdateRequest, NodeUpdateResult, NodeUpdateWorkflow
from .state import RunState

__all__ = [
    "AssumeYesProvider",
    "ConfirmationGate",
    "ConfirmationProvider",
    "ConsoleConfirmationProvider",
    "NodePowerWorkflow",
    "NodeUpdateRequest",
    "NodeUpdateResult",
    "NodeUpdateWorkflow",
    "PowerCommand",
    "PowerResult",
    "RunState",
]
