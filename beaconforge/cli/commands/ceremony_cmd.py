"""``beaconforge ceremony PLAN``: run the genesis ceremony in Docker."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from beaconforge.config import NetworkSettings
from beaconforge.core.orchestrator import NetworkOrchestrator
from beaconforge.models.plan import NetworkPlan

console = Console()


def ceremony_cmd(
    plan_file: Path = typer.Argument(..., help="Network plan JSON file."),
    run_id: str = typer.Option(None, "--run-id", help="Explicit run id."),
) -> None:
    """Collect, merge, and read back the genesis deposit data."""
    plan = NetworkPlan.from_file(plan_file)
    orchestrator = NetworkOrchestrator(plan, settings=NetworkSettings(), run_id=run_id)
    orchestrator.start_run()
    result = orchestrator.run_ceremony()

    console.print(
        Panel(
            "\n".join([
                "[bold green]Genesis ceremony complete[/bold green]",
                "",
                f"[bold]Run ID:[/bold]         {orchestrator.run_id}",
                f"[bold]Validators:[/bold]     {len(result.validator_artifacts)}",
                f"[bold]Deposit count:[/bold]  {result.deposit.deposit_count}",
                f"[bold]Deposit root:[/bold]   {result.deposit.deposit_root}",
                f"[bold]Genesis:[/bold]        {result.genesis_artifact}",
            ]),
            title="[bold]beaconforge[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print(f"[bold]{orchestrator.run_id}[/bold]")
