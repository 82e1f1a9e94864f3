"""Move nodes to a new boot image and/or desired configuration."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..exceptions import ValidationError
from ..models import CommittedEffect, Configuration, Image, PowerOperation
from .base import NodeWorkflow
from .confirmation import ConfirmationProvider
from .planner import BootParameterPlanner, BootPlan
from .power import DEFAULT_REASON
from .resolvers import ConfigurationResolver, ImageResolver
from .state import RunState
from .updater import DesiredStateUpdater
from .validation import validate_membership

logger = logging.getLogger(__name__)


@dataclass
class NodeUpdateRequest:
    """What the operator asked for."""

    nodes: List[str]
    hsm_group: Optional[str] = None
    boot_image_configuration: Optional[str] = None
    boot_image_id: Optional[str] = None
    desired_configuration: Optional[str] = None
    reason: str = DEFAULT_REASON

    @property
    def changes_boot_image(self) -> bool:
        return bool(self.boot_image_configuration or self.boot_image_id)


@dataclass
class NodeUpdateResult:
    """Outcome of a completed update run."""

    nodes: List[str]
    state: RunState
    needs_restart: bool = False
    current_image_id: Optional[str] = None
    target_image_id: Optional[str] = None
    desired_configuration: Optional[str] = None
    apply_now: Optional[bool] = None
    power_operations: List[PowerOperation] = field(default_factory=list)
    committed: List[CommittedEffect] = field(default_factory=list)


class NodeUpdateWorkflow(NodeWorkflow):
    """
    Update node boot image and desired configuration as one transition.

    Stages run strictly in order: validate the node set, resolve the
    configurations, resolve the boot image and plan the boot parameters,
    confirm if a reboot is implied, write boot parameters and desired
    configuration, then power cycle. Every read happens before the
    confirmation prompt so declining costs nothing.
    """

    def __init__(self, client: Any, confirmation: ConfirmationProvider):
        super().__init__(client, confirmation)
        self.config_resolver = ConfigurationResolver(client.cfs)
        self.image_resolver = ImageResolver(client.ims, client.bos)
        self.planner = BootParameterPlanner(client.bss)
        self.updater = DesiredStateUpdater(client.cfs)

    def run(self, request: NodeUpdateRequest) -> NodeUpdateResult:
        """
        Execute the update.

        Raises:
            ValidationError: Bad node set or nothing to update
            NotFoundError: Group, configuration, image or boot parameters missing
            ConfirmationDeclined: Operator said no; nothing was written
            UpstreamError: A backend call failed before any write
            PartialApplyError: A backend call failed after earlier writes
        """
        return self.execute(lambda: self._run(request))

    def _run(self, request: NodeUpdateRequest) -> NodeUpdateResult:
        self.machine.advance(RunState.VALIDATING)
        if not request.changes_boot_image and not request.desired_configuration:
            raise ValidationError(
                "Nothing to update: give a boot image, a boot image configuration "
                "or a desired configuration"
            )
        nodes = validate_membership(self.client.hsm, request.hsm_group, request.nodes)

        self.machine.advance(RunState.CONFIG_RESOLVING)
        desired: Optional[Configuration] = None
        if request.desired_configuration:
            desired = self.config_resolver.resolve(request.desired_configuration)
        if request.boot_image_configuration:
            self.config_resolver.resolve(request.boot_image_configuration)

        plan: Optional[BootPlan] = None
        if request.changes_boot_image:
            self.machine.advance(RunState.IMAGE_RESOLVING)
            image = self._resolve_image(request)

            self.machine.advance(RunState.BOOT_PLANNING)
            plan = self.planner.plan(nodes, image)

        needs_restart = plan is not None and plan.needs_restart
        result = NodeUpdateResult(
            nodes=nodes,
            state=self.state,
            needs_restart=needs_restart,
            current_image_id=plan.current_image_id if plan else None,
            target_image_id=plan.target_image.id if plan else None,
        )

        if needs_restart:
            self.machine.advance(RunState.CONFIRM_PENDING)
            self.gate.require(
                nodes,
                f"This operation will reboot the following nodes into image "
                f"'{result.target_image_id}':",
            )

        self.machine.advance(RunState.UPDATING)
        if needs_restart and plan is not None and plan.updated is not None:
            logger.info("Updating boot image to '%s'", result.target_image_id)
            self.client.bss.patch_boot_parameters(plan.updated)
            self.commit("boot parameters", f"boot image {result.target_image_id}", nodes)
            logger.info("Boot params for nodes %s updated", nodes)

        if desired is not None:
            logger.info("Updating desired configuration to '%s'", desired.name)
            assignment = self.updater.apply(nodes, desired.name, needs_restart)
            self.commit(
                "desired configuration",
                f"{assignment.configuration} (apply now: {assignment.apply_now})",
                nodes,
            )
            result.desired_configuration = assignment.configuration
            result.apply_now = assignment.apply_now

        if needs_restart:
            self.machine.advance(RunState.POWER_CYCLING)
            result.power_operations = self.power.power_cycle(nodes, reason=request.reason)

        self.machine.advance(RunState.DONE)
        result.state = self.state
        result.committed = self.committed_effects()
        return result

    def _resolve_image(self, request: NodeUpdateRequest) -> Image:
        if request.boot_image_id:
            return self.image_resolver.confirm_image(request.boot_image_id)
        if request.boot_image_configuration:
            return self.image_resolver.resolve(request.boot_image_configuration)
        raise ValidationError("No boot image or boot image configuration given")
