"""Record builders and fakes shared by the test modules."""

from typing import List, Sequence, Tuple
from unittest.mock import Mock

from csm_client.models import (
    BootParameters,
    Configuration,
    CSMConfig,
    HSMGroup,
    HSMGroupMembers,
    Image,
    ImageLink,
)

NODE = "x1000c0s0b0n0"


def make_config(**overrides) -> CSMConfig:
    settings = {
        "site": "alps",
        "base_url": "https://api.alps.example.com/apis",
        "token": "secret-token",
        "power_poll_seconds": 0.0,
    }
    settings.update(overrides)
    return CSMConfig(**settings)


def make_image(image_id: str, name: str = None, created: str = None) -> Image:
    return Image(
        id=image_id,
        name=name,
        created=created,
        link=ImageLink(
            path=f"s3://boot-images/{image_id}/manifest.json",
            etag=f"etag-{image_id}",
            type="s3",
        ),
    )


def root_params(image_id: str) -> str:
    return (
        "console=ttyS0,115200 "
        f"root=craycps-s3:s3://boot-images/{image_id}/rootfs:etag-{image_id}"
        ":dvs:api-gw-service-nmn.local:300:nmn0 "
        f"nmd_data=url=s3://boot-images/{image_id}/rootfs,etag=etag-{image_id} quiet"
    )


def make_boot_parameters(hosts: List[str], image_id: str) -> BootParameters:
    return BootParameters(
        hosts=hosts,
        macs=["b4:2e:99:be:1a:37"],
        params=root_params(image_id),
        kernel=f"s3://boot-images/{image_id}/kernel",
        initrd=f"s3://boot-images/{image_id}/initrd",
    )


def make_group(label: str, members: Sequence[str]) -> HSMGroup:
    return HSMGroup(label=label, members=HSMGroupMembers(ids=list(members)))


class FixedConfirmation:
    """Confirmation provider answering with a fixed decision."""

    def __init__(self, answer: bool):
        self.answer = answer
        self.calls: List[Tuple[List[str], str]] = []

    def confirm(self, nodes, action) -> bool:
        self.calls.append((list(nodes), action))
        return self.answer


def make_fake_client(current_image: str = "img-111", target_image: str = "img-222") -> Mock:
    """
    Client whose services answer like a cluster where NODE boots
    ``current_image`` and configuration compute-v3 builds ``target_image``.
    """
    client = Mock()
    client.hsm.get_group.return_value = make_group("nodes-hsm1", [NODE, "x1000c0s0b0n1"])
    client.cfs.get_configurations.return_value = [
        Configuration(name="compute-v3", lastUpdated="2024-03-01T10:00:00Z")
    ]
    client.ims.find_images_by_name.return_value = [make_image(target_image, name="compute-v3")]
    client.ims.get_image.side_effect = lambda image_id: make_image(image_id)
    client.bos.list_session_templates.return_value = []
    client.bss.get_boot_parameters.return_value = [make_boot_parameters([NODE], current_image)]
    return client


def call_names(mock: Mock) -> List[str]:
    return [name for name, _args, _kwargs in mock.mock_calls]
