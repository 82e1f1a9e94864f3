"""Image registry (IMS) operations."""

import logging
from typing import TYPE_CHECKING, List, Optional

from ..exceptions import UpstreamError
from ..models import Image, parse_model, parse_model_list

if TYPE_CHECKING:
    from ..client import CSMClient

logger = logging.getLogger(__name__)

SERVICE = "ims"


class IMSService:
    """Service class for boot image records."""

    def __init__(self, client: "CSMClient"):
        """Initialize IMS service."""
        self.client = client

    def get_images(self, image_id: Optional[str] = None) -> List[Image]:
        """
        Get image records.

        Args:
            image_id: Only return this image; an unknown id yields an empty list

        Returns:
            List of images
        """
        if image_id:
            image = self.get_image(image_id)
            return [image] if image else []

        try:
            payload = self.client.get("/ims/v3/images", service=SERVICE)
        except UpstreamError as e:
            logger.error(f"Failed to list IMS images: {e}")
            raise

        return parse_model_list(Image, payload or [], SERVICE)

    def get_image(self, image_id: str) -> Optional[Image]:
        """Get a single image, or None if the registry does not know it."""
        try:
            payload = self.client.get(f"/ims/v3/images/{image_id}", service=SERVICE)
        except UpstreamError as e:
            if e.status_code == 404:
                logger.debug("Image %s not found in IMS", image_id)
                return None
            logger.error(f"Failed to get IMS image {image_id}: {e}")
            raise

        return parse_model(Image, payload, SERVICE)

    def find_images_by_name(self, name: str) -> List[Image]:
        """Images labelled with the given name, most recently created first."""
        images = [image for image in self.get_images() if image.name == name]
        return sorted(images, key=lambda image: image.created or "", reverse=True)
