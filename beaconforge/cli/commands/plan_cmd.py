"""``beaconforge plan PLAN``: preview seed and full-node startup configs.

Validator configs need the ceremony's deposit data, so they are listed
without being assembled.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from beaconforge import catalog
from beaconforge.config import settings
from beaconforge.core.node_config import NodeConfigAssembler
from beaconforge.models.plan import NetworkPlan

console = Console()


def plan_cmd(
    plan_file: Path = typer.Argument(..., help="Network plan JSON file."),
    expose_ports: bool = typer.Option(
        settings.expose_ports,
        "--expose-ports/--no-expose-ports",
        help="Publish catalog ports.",
    ),
    show_commands: bool = typer.Option(
        False, "--commands", "-c", help="Print each node's startup command."
    ),
) -> None:
    """Show every node of a plan and the config it will start with."""
    plan = NetworkPlan.from_file(plan_file)
    assembler = NodeConfigAssembler(expose_ports=expose_ports)

    table = Table(title=f"Network plan: {plan.name}")
    table.add_column("Service", style="cyan")
    table.add_column("Role")
    table.add_column("Image", style="dim")
    table.add_column("Ports", justify="right")
    table.add_column("Mounts")

    commands: list[tuple[str, str]] = []
    for node in plan.validators:
        table.add_row(
            node.service_name, node.role.value, node.image,
            str(len(catalog.exposed_ports(expose_ports))),
            "[yellow]after ceremony[/yellow]",
        )
    for node in plan.seeds + plan.full_nodes:
        config = assembler.assemble(node, plan.engine_dial_url, plan.chain)
        table.add_row(
            config.service_name, config.role.value, config.image,
            str(len(config.ports)), ", ".join(sorted(config.files.values())),
        )
        commands.append((config.service_name, config.command.render()))

    console.print(table)
    if show_commands:
        for name, command in commands:
            console.print(f"\n[bold]{name}[/bold]")
            console.print(command, markup=False, highlight=False)
