"""Membership directory (hardware state manager) operations."""

import logging
from typing import TYPE_CHECKING, List, Optional

from ..exceptions import NotFoundError, UpstreamError
from ..models import HSMGroup, parse_model, parse_model_list

if TYPE_CHECKING:
    from ..client import CSMClient

logger = logging.getLogger(__name__)

SERVICE = "hsm"


class HSMService:
    """Service class for resource group lookups."""

    def __init__(self, client: "CSMClient"):
        """Initialize HSM service."""
        self.client = client

    def list_groups(self, label_filter: Optional[str] = None) -> List[HSMGroup]:
        """
        List resource groups.

        Args:
            label_filter: Keep only groups whose label contains this string

        Returns:
            List of groups with their member node ids
        """
        try:
            payload = self.client.get("/smd/hsm/v2/groups", service=SERVICE)
        except UpstreamError as e:
            logger.error(f"Failed to list HSM groups: {e}")
            raise

        groups = parse_model_list(HSMGroup, payload or [], SERVICE)
        if label_filter:
            groups = [group for group in groups if label_filter in group.label]
        return groups

    def get_group(self, label: str) -> HSMGroup:
        """Get a single group by label."""
        try:
            payload = self.client.get(f"/smd/hsm/v2/groups/{label}", service=SERVICE)
        except UpstreamError as e:
            if e.status_code == 404:
                raise NotFoundError(f"HSM group '{label}' not found") from e
            logger.error(f"Failed to get HSM group {label}: {e}")
            raise

        return parse_model(HSMGroup, payload, SERVICE)
