"""Configuration registry and component registry (CFS) operations."""

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from ..exceptions import UpstreamError
from ..models import Configuration, DesiredConfigurationAssignment, parse_model_list

if TYPE_CHECKING:
    from ..client import CSMClient

logger = logging.getLogger(__name__)

SERVICE = "cfs"


class CFSService:
    """Service class for configurations and per-node desired state."""

    def __init__(self, client: "CSMClient"):
        """Initialize CFS service."""
        self.client = client

    def get_configurations(
        self,
        name: Optional[str] = None,
        limit: Optional[int] = None,
        hsm_groups: Optional[Sequence[str]] = None,
    ) -> List[Configuration]:
        """
        List configurations, optionally filtered.

        Args:
            name: Keep only configurations whose name contains this string
            limit: Keep only the N most recently updated matches
            hsm_groups: Keep only configurations whose name contains one of
                these HSM group labels

        Returns:
            Matching configurations in registry order
        """
        try:
            payload = self.client.get("/cfs/v2/configurations", service=SERVICE)
        except UpstreamError as e:
            logger.error(f"Failed to list CFS configurations: {e}")
            raise

        configurations = parse_model_list(Configuration, payload or [], SERVICE)
        if name:
            configurations = [cfg for cfg in configurations if name in cfg.name]

        if hsm_groups:
            configurations = [
                cfg for cfg in configurations if any(label in cfg.name for label in hsm_groups)
            ]

        if limit is not None:
            configurations = sorted(configurations, key=lambda cfg: cfg.last_updated or "")
            configurations = configurations[-limit:] if limit > 0 else []

        logger.debug("Found %d CFS configuration(s) matching '%s'", len(configurations), name)
        return configurations

    def update_desired_configuration(self, assignment: DesiredConfigurationAssignment) -> Any:
        """Set desired configuration and the enabled flag for every node in one call."""
        try:
            response = self.client.patch(
                "/cfs/v2/components",
                service=SERVICE,
                json=assignment.to_component_patches(),
            )
        except UpstreamError as e:
            logger.error(
                f"Failed to set desired configuration {assignment.configuration} "
                f"on {assignment.nodes}: {e}"
            )
            raise

        logger.info(
            "Desired configuration '%s' set on %s (enabled=%s)",
            assignment.configuration,
            assignment.nodes,
            assignment.apply_now,
        )
        return response
