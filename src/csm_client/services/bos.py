"""Deployment template (BOS session template) operations."""

import logging
from typing import TYPE_CHECKING, List

from ..exceptions import UpstreamError
from ..models import SessionTemplate, parse_model_list

if TYPE_CHECKING:
    from ..client import CSMClient

logger = logging.getLogger(__name__)

SERVICE = "bos"


class BOSService:
    """Service class for session templates."""

    def __init__(self, client: "CSMClient"):
        """Initialize BOS service."""
        self.client = client

    def list_session_templates(self) -> List[SessionTemplate]:
        """List every session template."""
        try:
            payload = self.client.get("/bos/v1/sessiontemplate", service=SERVICE)
        except UpstreamError as e:
            logger.error(f"Failed to list BOS session templates: {e}")
            raise

        return parse_model_list(SessionTemplate, payload or [], SERVICE)
