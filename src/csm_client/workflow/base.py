"""Shared run bookkeeping for the node workflows."""

import logging
from typing import Any, Callable, List, TypeVar

from ..exceptions import (
    ConfirmationDeclined,
    CSMError,
    NotFoundError,
    PartialApplyError,
    UpstreamError,
    ValidationError,
)
from ..models import CommittedEffect
from .confirmation import ConfirmationGate, ConfirmationProvider
from .power import PowerCycleController
from .state import RunState, RunStateMachine

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class NodeWorkflow:
    """
    Base class for one-shot workflows against a node set.

    Subclasses implement ``_run``; ``execute`` maps failures onto the
    terminal states and wraps upstream errors that happen after a write
    into PartialApplyError so the caller can report what is still in effect.
    """

    def __init__(self, client: Any, confirmation: ConfirmationProvider):
        self.client = client
        self.gate = ConfirmationGate(confirmation)
        self.machine = RunStateMachine()
        self.power = PowerCycleController(client.capmc)
        self.committed: List[CommittedEffect] = []

    @property
    def state(self) -> RunState:
        return self.machine.state

    def commit(self, stage: str, description: str, nodes: List[str]) -> None:
        """Record a write the backend has accepted."""
        effect = CommittedEffect(stage=stage, description=description, nodes=list(nodes))
        logger.info("Committed %s", effect)
        self.committed.append(effect)

    def committed_effects(self) -> List[CommittedEffect]:
        """Committed writes including power operations already accepted."""
        effects = list(self.committed)
        recorded = {(effect.stage, effect.description) for effect in effects}
        for operation in self.power.issued:
            effect = CommittedEffect(
                stage="power",
                description=operation.action.value,
                nodes=list(operation.nodes),
            )
            if (effect.stage, effect.description) not in recorded:
                effects.append(effect)
        return effects

    def execute(self, run: Callable[[], ResultT]) -> ResultT:
        try:
            return run()
        except (ConfirmationDeclined, ValidationError, NotFoundError):
            self.machine.advance(RunState.ABORTED)
            raise
        except UpstreamError as e:
            self.machine.advance(RunState.FAILED)
            effects = self.committed_effects()
            if effects:
                raise PartialApplyError(e, [str(effect) for effect in effects]) from e
            raise
        except CSMError:
            self.machine.advance(RunState.FAILED)
            raise
