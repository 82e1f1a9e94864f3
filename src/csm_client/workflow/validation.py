"""Target node validation against a resource group."""

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional

from ..exceptions import ValidationError

if TYPE_CHECKING:
    from ..services import HSMService

logger = logging.getLogger(__name__)


def normalize_nodes(nodes: Iterable[str]) -> List[str]:
    """
    Strip and de-duplicate node ids, keeping request order.

    Raises:
        ValidationError: If the list is empty or contains blank ids
    """
    normalized: List[str] = []
    for node in nodes:
        node = (node or "").strip()
        if not node:
            raise ValidationError("Node identifiers must be non-empty")
        if node not in normalized:
            normalized.append(node)

    if not normalized:
        raise ValidationError("No target nodes given")
    return normalized


def validate_membership(
    hsm: "HSMService", group_name: Optional[str], nodes: List[str]
) -> List[str]:
    """
    Check every target node belongs to ``group_name``.

    Without a group the nodes are accepted as given.

    Returns:
        The normalized node list

    Raises:
        ValidationError: Naming every node outside the group
        NotFoundError: If the group does not exist
    """
    nodes = normalize_nodes(nodes)
    if not group_name:
        return nodes

    group = hsm.get_group(group_name)
    members = group.member_ids
    outside = [node for node in nodes if node not in members]
    if outside:
        raise ValidationError(
            f"Node(s) {', '.join(outside)} not in HSM group '{group_name}'", outside
        )

    logger.info("All %d node(s) belong to HSM group '%s'", len(nodes), group_name)
    return nodes
