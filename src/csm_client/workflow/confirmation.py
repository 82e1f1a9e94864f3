"""Operator confirmation before disruptive operations."""

import logging
from typing import List, Optional, Protocol, Sequence

from rich.console import Console
from rich.prompt import Confirm

from ..exceptions import ConfirmationDeclined

logger = logging.getLogger(__name__)


class ConfirmationProvider(Protocol):
    """Anything that can answer yes or no for an action on a node set."""

    def confirm(self, nodes: Sequence[str], action: str) -> bool:
        ...


class ConsoleConfirmationProvider:
    """Asks on the terminal through rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def confirm(self, nodes: Sequence[str], action: str) -> bool:
        self.console.print(f"[bold yellow]{action}[/bold yellow]")
        for node in nodes:
            self.console.print(f"  • [cyan]{node}[/cyan]")
        return Confirm.ask("Do you want to continue?", console=self.console, default=False)


class AssumeYesProvider:
    """Non-interactive provider for ``--assume-yes`` runs."""

    def confirm(self, nodes: Sequence[str], action: str) -> bool:
        logger.info("Assuming yes for: %s %s", action, list(nodes))
        return True


class ConfirmationGate:
    """Blocks the workflow until the provider approves the action."""

    def __init__(self, provider: ConfirmationProvider):
        self.provider = provider
        self.asked: List[str] = []

    def require(self, nodes: Sequence[str], action: str) -> None:
        """
        Ask for approval.

        Raises:
            ConfirmationDeclined: If the provider answers no
        """
        self.asked.append(action)
        if not self.provider.confirm(nodes, action):
            logger.info("Cancelled by user. Aborting.")
            raise ConfirmationDeclined(f"Operator declined: {action}")
        logger.info("Continue")
