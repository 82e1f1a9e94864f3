"""Configuration and boot image resolution."""

import logging
from typing import TYPE_CHECKING, Dict, Optional

from ..exceptions import NotFoundError, StoragePathError
from ..models import Configuration, Image, parse_manifest_path

if TYPE_CHECKING:
    from ..services import BOSService, CFSService, IMSService

logger = logging.getLogger(__name__)


class ConfigurationResolver:
    """Confirms a configuration exists and returns its registry record."""

    def __init__(self, cfs: "CFSService"):
        self.cfs = cfs

    def resolve(self, name: str) -> Configuration:
        """
        Look a configuration up by name.

        The registry matches on substrings, so an exact name wins over the
        first match.

        Raises:
            NotFoundError: If no configuration matches
        """
        matches = self.cfs.get_configurations(name=name)
        if not matches:
            raise NotFoundError(f"Configuration '{name}' does not exist")

        for configuration in matches:
            if configuration.name == name:
                break
        else:
            configuration = matches[0]
            logger.warning(
                "No exact match for configuration '%s'; using '%s'", name, configuration.name
            )

        logger.info("Configuration '%s' exists", configuration.name)
        return configuration


class ImageResolver:
    """
    Maps a configuration name to a boot image.

    Images are looked up by name first; when none is labelled with the
    configuration, the session templates referencing it are used to find
    the image through their boot set paths. Results are memoised so a name
    resolves to the same image for the lifetime of the resolver.
    """

    def __init__(self, ims: "IMSService", bos: "BOSService"):
        self.ims = ims
        self.bos = bos
        self._resolved: Dict[str, Image] = {}

    def resolve(self, configuration_name: str) -> Image:
        """
        Resolve the boot image built from ``configuration_name``.

        Raises:
            NotFoundError: If neither strategy finds a registered image
        """
        if configuration_name in self._resolved:
            return self._resolved[configuration_name]

        image = self.resolve_direct(configuration_name)
        if image is None:
            image = self.resolve_from_templates(configuration_name)
        if image is None:
            raise NotFoundError(
                f"Image ID related to configuration '{configuration_name}' not found"
            )

        logger.info("Boot image '%s' resolved for configuration '%s'", image.id, configuration_name)
        self._resolved[configuration_name] = image
        return image

    def resolve_direct(self, configuration_name: str) -> Optional[Image]:
        """First image labelled with the configuration name, if any."""
        images = self.ims.find_images_by_name(configuration_name)
        if not images:
            logger.debug("No image named after configuration '%s'", configuration_name)
            return None
        return images[0]

    def resolve_from_templates(self, configuration_name: str) -> Optional[Image]:
        """First registered image referenced by a session template using the configuration."""
        templates = [
            template
            for template in self.bos.list_session_templates()
            if template.configuration == configuration_name
        ]
        logger.debug(
            "%d session template(s) reference configuration '%s'",
            len(templates),
            configuration_name,
        )

        for template in templates:
            for boot_set_name, boot_set in template.boot_sets.items():
                if not boot_set.path:
                    continue

                try:
                    image_id = parse_manifest_path(boot_set.path).image_id
                except StoragePathError as e:
                    logger.warning(
                        "Skipping boot set %s of session template %s: %s",
                        boot_set_name,
                        template.name,
                        e,
                    )
                    continue

                logger.info("Get image details for ID %s", image_id)
                image = self.ims.get_image(image_id)
                if image is not None:
                    logger.info(
                        "Image ID found related to session template %s is %s",
                        template.name,
                        image.id,
                    )
                    return image

        return None

    def confirm_image(self, image_id: str) -> Image:
        """Return a registered image by id; used when the operator names the image directly."""
        image = self.ims.get_image(image_id)
        if image is None:
            raise NotFoundError(f"Image ID '{image_id}' not found in IMS")
        return image
