"""Desired configuration assignment."""

import logging
from typing import TYPE_CHECKING, List

from ..models import DesiredConfigurationAssignment

if TYPE_CHECKING:
    from ..services import CFSService

logger = logging.getLogger(__name__)


class DesiredStateUpdater:
    """Pushes the desired configuration for a node set in a single write."""

    def __init__(self, cfs: "CFSService"):
        self.cfs = cfs

    def apply(
        self, nodes: List[str], configuration: str, needs_restart: bool
    ) -> DesiredConfigurationAssignment:
        """
        Assign ``configuration`` to ``nodes``.

        Nodes about to reboot get the configuration with apply-now disabled;
        it is applied once they come back up.

        Raises:
            UpstreamError: If the component registry rejects the update
        """
        assignment = DesiredConfigurationAssignment(
            nodes=nodes,
            configuration=configuration,
            apply_now=not needs_restart,
        )
        self.cfs.update_desired_configuration(assignment)
        return assignment
