"""Power nodes on, off or reset them."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..models import CommittedEffect, PowerOperation
from .base import NodeWorkflow
from .state import RunState
from .validation import validate_membership

logger = logging.getLogger(__name__)


class PowerCommand(str, Enum):
    ON = "on"
    OFF = "off"
    RESET = "reset"


_PROMPTS = {
    PowerCommand.OFF: "This operation will power off the following nodes:",
    PowerCommand.RESET: "This operation will reboot the following nodes:",
}


@dataclass
class PowerResult:
    nodes: List[str]
    command: PowerCommand
    state: RunState
    power_operations: List[PowerOperation] = field(default_factory=list)
    committed: List[CommittedEffect] = field(default_factory=list)


class NodePowerWorkflow(NodeWorkflow):
    """Membership check, confirmation for disruptive commands, then power operations."""

    def run(
        self,
        command: PowerCommand,
        nodes: List[str],
        hsm_group: Optional[str] = None,
        reason: str = "",
        force: bool = False,
    ) -> PowerResult:
        return self.execute(lambda: self._run(command, nodes, hsm_group, reason, force))

    def _run(
        self,
        command: PowerCommand,
        nodes: List[str],
        hsm_group: Optional[str],
        reason: str,
        force: bool,
    ) -> PowerResult:
        self.machine.advance(RunState.VALIDATING)
        nodes = validate_membership(self.client.hsm, hsm_group, nodes)
        reason = reason or f"Power {command.value} requested by operator"

        if command in _PROMPTS:
            self.machine.advance(RunState.CONFIRM_PENDING)
            self.gate.require(nodes, _PROMPTS[command])

        self.machine.advance(RunState.POWER_CYCLING)
        if command == PowerCommand.ON:
            operations = [self.power.power_on(nodes, reason=reason)]
        elif command == PowerCommand.OFF:
            operations = [self.power.power_off(nodes, reason=reason, force=force)]
        else:
            operations = self.power.power_cycle(nodes, reason=reason, force=force)

        self.machine.advance(RunState.DONE)
        return PowerResult(
            nodes=nodes,
            command=command,
            state=self.state,
            power_operations=operations,
            committed=self.committed_effects(),
        )
