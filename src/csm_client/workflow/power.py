"""Serialized power operations for node sets."""

import logging
from typing import TYPE_CHECKING, List

from ..models import PowerAction, PowerOperation

if TYPE_CHECKING:
    from ..services import CAPMCService

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Update node boot params and/or desired configuration"


class PowerCycleController:
    """Issues shutdown and start operations, never overlapping for one node set."""

    def __init__(self, capmc: "CAPMCService"):
        self.capmc = capmc
        self.issued: List[PowerOperation] = []

    def power_off(self, nodes: List[str], reason: str = DEFAULT_REASON, force: bool = False) -> PowerOperation:
        """
        Shut nodes down and wait until they report off.

        The operation is recorded as issued as soon as the power controller
        accepts it, before the wait.
        """
        operation = PowerOperation(
            action=PowerAction.SHUTDOWN,
            nodes=nodes,
            reason=reason,
            synchronous=True,
            force=force,
        )
        logger.info("Powering off %s", nodes)
        self.capmc.shutdown(operation, wait=False)
        self.issued.append(operation)
        self.capmc.wait_until_off(nodes)
        return operation

    def power_on(self, nodes: List[str], reason: str = DEFAULT_REASON) -> PowerOperation:
        """Start nodes without waiting for them to boot."""
        operation = PowerOperation(
            action=PowerAction.START,
            nodes=nodes,
            reason=reason,
            synchronous=False,
        )
        logger.info("Powering on %s", nodes)
        self.capmc.start(operation)
        self.issued.append(operation)
        return operation

    def power_cycle(
        self, nodes: List[str], reason: str = DEFAULT_REASON, force: bool = False
    ) -> List[PowerOperation]:
        """
        Restart nodes as shutdown followed by start.

        The start is only sent after the shutdown completed; if the shutdown
        fails the nodes are left as they are and the error propagates.
        """
        logger.info("Restarting nodes")
        shutdown = self.power_off(nodes, reason=reason, force=force)
        start = self.power_on(nodes, reason=reason)
        return [shutdown, start]
