"""Boot parameter store (BSS) operations."""

import logging
from typing import TYPE_CHECKING, Any, List, Sequence

from ..exceptions import UpstreamError, ValidationError
from ..models import BootParameters, parse_model_list

if TYPE_CHECKING:
    from ..client import CSMClient

logger = logging.getLogger(__name__)

SERVICE = "bss"


class BSSService:
    """Service class for node boot parameters."""

    def __init__(self, client: "CSMClient"):
        """Initialize BSS service."""
        self.client = client

    def get_boot_parameters(self, nodes: Sequence[str]) -> List[BootParameters]:
        """Get boot parameter records covering the given nodes."""
        if not nodes or any(not node for node in nodes):
            raise ValidationError("Boot parameters need a non-empty list of node ids", nodes)

        try:
            payload = self.client.get(
                "/bss/boot/v1/bootparameters",
                service=SERVICE,
                params={"name": ",".join(nodes)},
            )
        except UpstreamError as e:
            logger.error(f"Failed to get boot parameters for {list(nodes)}: {e}")
            raise

        return parse_model_list(BootParameters, payload or [], SERVICE)

    def patch_boot_parameters(self, boot_parameters: BootParameters) -> Any:
        """Write an updated boot parameter record."""
        if not boot_parameters.hosts:
            raise ValidationError("Boot parameters to patch have no hosts")

        try:
            response = self.client.patch(
                "/bss/boot/v1/bootparameters",
                service=SERVICE,
                json=boot_parameters.to_payload(),
            )
        except UpstreamError as e:
            logger.error(f"Failed to patch boot parameters for {boot_parameters.hosts}: {e}")
            raise

        logger.debug("Boot parameters response: %s", response)
        return response
