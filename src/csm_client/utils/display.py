"""
Display utilities for presenting node update runs and CSM resources.
"""

import json
from typing import List, Sequence

from rich.console import Console
from rich.table import Table

from ..models import Configuration
from ..workflow import NodeUpdateResult, PowerResult

console = Console()


def display_node_list(nodes: Sequence[str]) -> None:
    """Display the affected nodes as a bullet list."""
    for node in nodes:
        console.print(f"  • [cyan]{node}[/cyan]")


def display_update_result(result: NodeUpdateResult) -> None:
    """Display the outcome of a node update run."""
    console.print(f"\n[bold green]✅ Update finished for {len(result.nodes)} node(s)[/bold green]")

    table = Table(title="Node Update")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("Nodes", ", ".join(result.nodes))
    table.add_row("Current image", result.current_image_id or "N/A")
    table.add_row("Target image", result.target_image_id or "N/A")
    table.add_row("Restart", "yes" if result.needs_restart else "no")
    table.add_row("Desired configuration", result.desired_configuration or "unchanged")
    if result.apply_now is not None:
        table.add_row("Apply now", "yes" if result.apply_now else "no (on next boot)")
    for operation in result.power_operations:
        table.add_row("Power", f"{operation.action.value} ({operation.reason})")

    console.print(table)


def display_power_result(result: PowerResult) -> None:
    """Display the outcome of a power command."""
    console.print(
        f"\n[bold green]✅ Power {result.command.value} sent to {len(result.nodes)} node(s)[/bold green]"
    )
    for operation in result.power_operations:
        console.print(f"  • {operation.action.value}: {', '.join(operation.nodes)}")


def display_committed_effects(effects: Sequence[str]) -> None:
    """Display writes that stay in effect after a failed run."""
    if not effects:
        return
    console.print("[yellow]The following changes were applied and are still in effect:[/yellow]")
    for effect in effects:
        console.print(f"  • [yellow]{effect}[/yellow]")


def display_configurations(configurations: List[Configuration], output: str = "table") -> None:
    """Display configurations as a table or as JSON."""
    if output == "json":
        payload = [c.model_dump(by_alias=True, exclude_none=True) for c in configurations]
        console.print_json(json.dumps(payload))
        return

    if not configurations:
        console.print("[dim]No configurations found[/dim]")
        return

    if len(configurations) == 1:
        display_configuration_layers(configurations[0])
        return

    table = Table(title="CFS Configurations")
    table.add_column("Name", style="cyan")
    table.add_column("Last Updated", style="green")
    table.add_column("Layers", style="yellow")
    table.add_column("Commits", style="magenta")

    for configuration in configurations:
        commits = ", ".join((layer.commit or "N/A")[:8] for layer in configuration.layers)
        table.add_row(
            configuration.name,
            configuration.last_updated or "N/A",
            str(len(configuration.layers)),
            commits or "N/A",
        )

    console.print(table)


def display_configuration_layers(configuration: Configuration) -> None:
    """Display one configuration with a row per layer, in layer order."""
    console.print(f"[bold]Configuration:[/bold] [cyan]{configuration.name}[/cyan]")
    console.print(f"  • Last Updated: {configuration.last_updated or 'N/A'}")

    table = Table(title=f"Layers - {configuration.name}")
    table.add_column("Name", style="cyan")
    table.add_column("Clone URL", style="green")
    table.add_column("Commit", style="magenta")
    table.add_column("Branch", style="yellow")
    table.add_column("Playbook", style="blue")

    for layer in configuration.layers:
        table.add_row(
            layer.name or "N/A",
            layer.clone_url,
            layer.commit or "N/A",
            layer.branch or "N/A",
            layer.playbook or "N/A",
        )

    console.print(table)


def display_error(message: str) -> None:
    """Display an error message."""
    console.print(f"[red]{message}[/red]")


def display_warning(message: str) -> None:
    """Display a warning message."""
    console.print(f"[yellow]{message}[/yellow]")


def display_success(message: str) -> None:
    """Display a success message."""
    console.print(f"[green]{message}[/green]")
