"""Data models for the CSM client."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import MalformedResponseError, StoragePathError

BOOT_IMAGES_BUCKET = "boot-images"

# Baseline kernel command line used when a node has no stored parameters.
# The root filesystem arguments are appended from ROOT_PARAM_TEMPLATE and
# NMD_DATA_TEMPLATE once the target image is known.
DEFAULT_KERNEL_PARAMS = (
    "console=ttyS0,115200 bad_page=panic crashkernel=360M hugepagelist=2m-2g "
    "intel_iommu=off intel_pstate=disable iommu.passthrough=on "
    "numa_interleave_omit=headless oops=panic pageblock_order=14 rd.neednet=1 "
    "rd.retry=10 rd.shell split_lock_detect=off systemd.unified_cgroup_hierarchy=1 "
    "ip=nmn0:dhcp quiet spire_join_token=${SPIRE_JOIN_TOKEN}"
)
ROOT_PARAM_TEMPLATE = "root=craycps-s3:{rootfs}:{etag}:dvs:api-gw-service-nmn.local:300:nmn0"
NMD_DATA_TEMPLATE = "nmd_data=url={rootfs},etag={etag}"

_ROOTFS_PATH_RE = re.compile(r"s3://[^/\s,:]+/[^/\s,:]+/rootfs")
_S3_PATH_RE = re.compile(r"^s3://(?P<bucket>[^/\s]+)/(?P<prefix>[^/\s]+)/(?P<artifact>[^/\s]+)$")

ModelT = TypeVar("ModelT", bound=BaseModel)


class PowerAction(str, Enum):
    """Power operations understood by the power controller."""
    SHUTDOWN = "shutdown"
    START = "start"


class StorageLocator(BaseModel):
    """Bucket/prefix pair identifying the artifacts of one boot image."""
    model_config = ConfigDict(frozen=True)

    bucket: str
    prefix: str

    @property
    def image_id(self) -> str:
        return self.prefix

    def artifact(self, name: str) -> str:
        return f"s3://{self.bucket}/{self.prefix}/{name}"

    @property
    def manifest(self) -> str:
        return self.artifact("manifest.json")

    @property
    def kernel(self) -> str:
        return self.artifact("kernel")

    @property
    def initrd(self) -> str:
        return self.artifact("initrd")

    @property
    def rootfs(self) -> str:
        return self.artifact("rootfs")


def parse_storage_path(
    path: Optional[str],
    artifact: Optional[str] = None,
    bucket: Optional[str] = BOOT_IMAGES_BUCKET,
) -> StorageLocator:
    """
    Decompose an ``s3://<bucket>/<image id>/<artifact>`` path.

    Args:
        path: Object storage path, e.g. ``s3://boot-images/<id>/manifest.json``
        artifact: Expected trailing artifact name, or None to accept any
        bucket: Expected bucket name, or None to accept any

    Returns:
        StorageLocator: bucket and prefix (the image id) of the path

    Raises:
        StoragePathError: If the path does not follow the expected layout
    """
    if not path:
        raise StoragePathError(str(path), "path is empty")

    match = _S3_PATH_RE.match(path.strip())
    if not match:
        raise StoragePathError(path, "expected s3://<bucket>/<image id>/<artifact>")

    if bucket is not None and match.group("bucket") != bucket:
        raise StoragePathError(
            path, f"bucket '{match.group('bucket')}' is not '{bucket}'"
        )
    if artifact is not None and match.group("artifact") != artifact:
        raise StoragePathError(
            path, f"artifact '{match.group('artifact')}' is not '{artifact}'"
        )

    return StorageLocator(bucket=match.group("bucket"), prefix=match.group("prefix"))


def parse_manifest_path(path: Optional[str]) -> StorageLocator:
    """Recover the image locator from a boot image manifest path."""
    return parse_storage_path(path, artifact="manifest.json")


def parse_model(model_cls: Type[ModelT], payload: Any, service: str) -> ModelT:
    """Validate a backend payload into a typed record."""
    try:
        return model_cls.model_validate(payload)
    except PydanticValidationError as e:
        raise MalformedResponseError(
            f"Unexpected {model_cls.__name__} payload from {service}",
            detail=str(e),
            service=service,
        ) from e


def parse_model_list(model_cls: Type[ModelT], payload: Any, service: str) -> List[ModelT]:
    """Validate a JSON array of backend records."""
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"Expected a list of {model_cls.__name__} records from {service}",
            detail=f"got {type(payload).__name__}",
            service=service,
        )
    return [parse_model(model_cls, item, service) for item in payload]


# ----------------------------------------------------------------------
# Membership directory (HSM)
# ----------------------------------------------------------------------
class HSMGroupMembers(BaseModel):
    ids: List[str] = Field(default_factory=list)


class HSMGroup(BaseModel):
    """Resource group from the hardware state manager."""
    model_config = ConfigDict(populate_by_name=True)

    label: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    exclusive_group: Optional[str] = Field(default=None, alias="exclusiveGroup")
    members: HSMGroupMembers = Field(default_factory=HSMGroupMembers)

    @property
    def member_ids(self) -> Set[str]:
        return set(self.members.ids)


# ----------------------------------------------------------------------
# Configuration registry (CFS)
# ----------------------------------------------------------------------
class ConfigurationLayer(BaseModel):
    """One provisioning layer of a configuration; order is significant."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    clone_url: str = Field(alias="cloneUrl")
    commit: Optional[str] = None
    branch: Optional[str] = None
    playbook: Optional[str] = None
    author: Optional[str] = None
    timestamp: Optional[str] = None


class Configuration(BaseModel):
    """Named, ordered set of configuration layers."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")
    layers: List[ConfigurationLayer] = Field(default_factory=list)


class DesiredConfigurationAssignment(BaseModel):
    """Desired configuration for a node set plus the apply-now flag."""

    nodes: List[str] = Field(min_length=1)
    configuration: str = Field(min_length=1)
    apply_now: bool

    @field_validator("nodes")
    @classmethod
    def _nodes_not_blank(cls, nodes: List[str]) -> List[str]:
        if any(not node or not node.strip() for node in nodes):
            raise ValueError("node identifiers must be non-empty")
        return nodes

    def to_component_patches(self) -> List[Dict[str, Any]]:
        """Render the component registry bulk patch body."""
        return [
            {"id": node, "desiredConfig": self.configuration, "enabled": self.apply_now}
            for node in self.nodes
        ]


# ----------------------------------------------------------------------
# Image registry (IMS) and deployment templates (BOS)
# ----------------------------------------------------------------------
class ImageLink(BaseModel):
    path: str
    etag: Optional[str] = None
    type: Optional[str] = None


class Image(BaseModel):
    """Boot image record."""

    id: str
    name: Optional[str] = None
    created: Optional[str] = None
    arch: Optional[str] = None
    link: Optional[ImageLink] = None

    @property
    def etag(self) -> Optional[str]:
        return self.link.etag if self.link else None

    def locator(self) -> StorageLocator:
        """Storage locator of the image artifacts, derived from its manifest link."""
        if self.link is None:
            raise MalformedResponseError(
                f"Image '{self.id}' has no storage link", service="ims"
            )
        try:
            return parse_manifest_path(self.link.path)
        except StoragePathError as e:
            raise MalformedResponseError(
                f"Image '{self.id}' has an unexpected storage link", detail=str(e), service="ims"
            ) from e


class BootSet(BaseModel):
    path: Optional[str] = None
    type: Optional[str] = None
    etag: Optional[str] = None
    kernel_parameters: Optional[str] = None
    node_list: List[str] = Field(default_factory=list)
    node_groups: List[str] = Field(default_factory=list)
    rootfs_provider: Optional[str] = None
    rootfs_provider_passthrough: Optional[str] = None


class SessionTemplateCFS(BaseModel):
    configuration: Optional[str] = None


class SessionTemplate(BaseModel):
    """Deployment template linking a configuration to boot image paths."""

    name: str
    description: Optional[str] = None
    enable_cfs: Optional[bool] = None
    cfs: Optional[SessionTemplateCFS] = None
    boot_sets: Dict[str, BootSet] = Field(default_factory=dict)

    @property
    def configuration(self) -> Optional[str]:
        return self.cfs.configuration if self.cfs else None


# ----------------------------------------------------------------------
# Boot parameter store (BSS)
# ----------------------------------------------------------------------
class BootParameters(BaseModel):
    """Kernel, initrd and command line for a set of hosts."""
    model_config = ConfigDict(populate_by_name=True)

    hosts: List[str] = Field(default_factory=list)
    macs: Optional[List[str]] = None
    nids: Optional[List[int]] = None
    params: str = ""
    kernel: str = ""
    initrd: str = ""
    cloud_init: Optional[Dict[str, Any]] = Field(default=None, alias="cloud-init")

    def get_boot_image(self) -> Optional[str]:
        """Image id referenced by the root parameter, falling back to the kernel path."""
        for token in self.params.split():
            if token.startswith("root="):
                match = _ROOTFS_PATH_RE.search(token)
                if match:
                    return parse_storage_path(match.group(0), bucket=None).image_id
        try:
            return parse_storage_path(self.kernel, artifact="kernel", bucket=None).image_id
        except StoragePathError:
            return None

    def with_boot_image(self, locator: StorageLocator, etag: Optional[str]) -> "BootParameters":
        """
        Return a copy pointing at another image.

        Kernel and initrd are rebuilt from the locator, the root filesystem
        references in the command line are substituted and every other kernel
        parameter is kept verbatim. An empty command line starts from
        DEFAULT_KERNEL_PARAMS.
        """
        etag = etag or ""
        base = self.params.strip() or DEFAULT_KERNEL_PARAMS
        root_param = ROOT_PARAM_TEMPLATE.format(rootfs=locator.rootfs, etag=etag)

        tokens: List[str] = []
        seen_root = False
        seen_nmd = False
        for token in base.split():
            if token.startswith("root="):
                seen_root = True
                if _ROOTFS_PATH_RE.search(token):
                    token = _substitute_root(token, locator.rootfs, etag)
                else:
                    token = root_param
            elif token.startswith("nmd_data="):
                seen_nmd = True
                token = _ROOTFS_PATH_RE.sub(locator.rootfs, token)
                token = re.sub(r"etag=[^,\s]*", f"etag={etag}", token)
            tokens.append(token)

        if not seen_root:
            tokens.append(root_param)
        if not seen_nmd:
            tokens.append(NMD_DATA_TEMPLATE.format(rootfs=locator.rootfs, etag=etag))

        return self.model_copy(
            update={
                "kernel": locator.kernel,
                "initrd": locator.initrd,
                "params": " ".join(tokens),
            }
        )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _substitute_root(token: str, rootfs: str, etag: str) -> str:
    # root=<provider>:s3://<bucket>/<id>/rootfs:<etag>:<rest>
    match = _ROOTFS_PATH_RE.search(token)
    head = token[: match.start()]
    tail = token[match.end():]
    if tail.startswith(":"):
        rest = tail[1:].split(":", 1)
        tail = f":{etag}" + (f":{rest[1]}" if len(rest) > 1 else "")
    return f"{head}{rootfs}{tail}"


# ----------------------------------------------------------------------
# Power controller (CAPMC)
# ----------------------------------------------------------------------
class PowerOperation(BaseModel):
    """Shutdown or start request for a node set."""

    action: PowerAction
    nodes: List[str] = Field(min_length=1)
    reason: str = ""
    synchronous: bool = False
    force: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"xnames": list(self.nodes), "reason": self.reason}
        if self.action == PowerAction.SHUTDOWN:
            payload["force"] = self.force
        return payload


class PowerStatus(BaseModel):
    """Node power status buckets returned by the power controller."""

    on: List[str] = Field(default_factory=list)
    off: List[str] = Field(default_factory=list)
    undefined: List[str] = Field(default_factory=list)

    def all_off(self, nodes: List[str]) -> bool:
        return set(nodes).issubset(self.off)


# ----------------------------------------------------------------------
# Client configuration
# ----------------------------------------------------------------------
class CSMConfig(BaseModel):
    """Connection settings for one CSM site, threaded into every service."""
    model_config = ConfigDict(validate_assignment=True)

    site: str = "default"
    base_url: str
    token: str = Field(min_length=1)
    root_cert: Optional[str] = None
    socks5_proxy: Optional[str] = None
    timeout: Optional[float] = None
    power_poll_seconds: float = 5.0
    power_off_timeout: Optional[float] = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def has_proxy(self) -> bool:
        """Check if requests should go through a SOCKS proxy."""
        return bool(self.socks5_proxy)

    @property
    def proxies(self) -> Dict[str, str]:
        if not self.socks5_proxy:
            return {}
        return {"http": self.socks5_proxy, "https": self.socks5_proxy}


@dataclass
class CommittedEffect:
    """A write already accepted by a backend during the current run."""
    stage: str
    description: str
    nodes: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.stage}: {self.description}"
