"""Decides whether nodes must reboot and prepares their new boot parameters."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from ..exceptions import NotFoundError
from ..models import BootParameters, Image

if TYPE_CHECKING:
    from ..services import BSSService

logger = logging.getLogger(__name__)


@dataclass
class BootPlan:
    """Outcome of comparing the stored boot image against the target one."""

    nodes: List[str]
    current: BootParameters
    current_image_id: Optional[str]
    target_image: Image
    updated: Optional[BootParameters] = None

    @property
    def needs_restart(self) -> bool:
        return self.current_image_id != self.target_image.id


class BootParameterPlanner:
    """Read-only planning step; the workflow applies the plan after confirmation."""

    def __init__(self, bss: "BSSService"):
        self.bss = bss

    def plan(self, nodes: List[str], target_image: Image) -> BootPlan:
        """
        Build the boot plan for ``nodes``.

        Raises:
            NotFoundError: If the store has no boot parameters for the nodes
            MalformedResponseError: If the target image has no usable storage link
        """
        records = self.bss.get_boot_parameters(nodes)
        if not records:
            raise NotFoundError(f"No boot parameters found for nodes {nodes}")

        # the store may batch hosts differently than requested
        current = records[0]
        current_image_id = current.get_boot_image()

        plan = BootPlan(
            nodes=nodes,
            current=current,
            current_image_id=current_image_id,
            target_image=target_image,
        )

        if not plan.needs_restart:
            logger.info("Boot image does not change. No need to reboot.")
            return plan

        logger.info(
            "Boot image changes from '%s' to '%s'", current_image_id, target_image.id
        )
        updated = current.with_boot_image(target_image.locator(), target_image.etag)
        # patch only the requested hosts even if the stored record covers more
        plan.updated = updated.model_copy(update={"hosts": list(nodes), "macs": None, "nids": None})
        return plan
