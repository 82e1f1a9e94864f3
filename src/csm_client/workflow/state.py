"""Forward-only state machine shared by the node workflows."""

import logging
from enum import Enum
from typing import List, Tuple

from ..exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Stages of one workflow run, in execution order."""
    IDLE = "idle"
    VALIDATING = "validating"
    CONFIG_RESOLVING = "config_resolving"
    IMAGE_RESOLVING = "image_resolving"
    BOOT_PLANNING = "boot_planning"
    CONFIRM_PENDING = "confirm_pending"
    UPDATING = "updating"
    POWER_CYCLING = "power_cycling"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"


_ORDER = [
    RunState.IDLE,
    RunState.VALIDATING,
    RunState.CONFIG_RESOLVING,
    RunState.IMAGE_RESOLVING,
    RunState.BOOT_PLANNING,
    RunState.CONFIRM_PENDING,
    RunState.UPDATING,
    RunState.POWER_CYCLING,
    RunState.DONE,
]
_RANK = {state: rank for rank, state in enumerate(_ORDER)}

TERMINAL_STATES = {RunState.DONE, RunState.ABORTED, RunState.FAILED}


class RunStateMachine:
    """Tracks the current stage; optional stages may be skipped, never revisited."""

    def __init__(self) -> None:
        self.state = RunState.IDLE
        self.history: List[Tuple[RunState, RunState]] = []

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def can_transition(self, target: RunState) -> bool:
        """Return True if moving to ``target`` keeps the run strictly forward."""
        if self.is_terminal:
            return False
        if target in (RunState.ABORTED, RunState.FAILED):
            return True
        return _RANK[target] > _RANK[self.state]

    def advance(self, target: RunState) -> None:
        """Move to ``target`` or raise InvalidTransitionError."""
        if not self.can_transition(target):
            raise InvalidTransitionError(
                f"Invalid transition: {self.state.value} -> {target.value}"
            )
        logger.debug("Workflow state %s -> %s", self.state.value, target.value)
        self.history.append((self.state, target))
        self.state = target
