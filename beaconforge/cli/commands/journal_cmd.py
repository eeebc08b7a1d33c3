"""``beaconforge journal [RUN_ID]``: show the step journal of a run."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from beaconforge.config import settings
from beaconforge.core.journal import JournalIntegrityError, StepJournal

console = Console()


def journal_cmd(
    run_id: str = typer.Argument(None, help="Run id; lists runs when omitted."),
    journal_db: Path = typer.Option(
        settings.ledger_path, "--journal", "-j", help="Journal database."
    ),
    verify_chain: bool = typer.Option(
        False, "--verify-chain", "-V", help="Verify the hash chain first."
    ),
) -> None:
    """List runs, or print every step transition of one run."""
    if not journal_db.exists():
        console.print(f"[bold red]Journal not found:[/bold red] {journal_db}")
        raise typer.Exit(code=1)
    journal = StepJournal(journal_db)

    if run_id is None:
        for rid in journal.get_all_run_ids():
            console.print(rid)
        return

    if verify_chain:
        try:
            journal.verify_chain(run_id)
            console.print("[green]Hash chain intact[/green]")
        except JournalIntegrityError as exc:
            console.print(f"[bold red]Hash chain broken:[/bold red] {exc}")
            raise typer.Exit(code=1)

    table = Table(title=f"Run {run_id}")
    table.add_column("Time (UTC)", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Transition")
    table.add_column("Detail")
    for entry in journal.get_run_entries(run_id):
        table.add_row(
            entry.timestamp_utc.strftime("%H:%M:%S"),
            entry.step_id,
            entry.state_transition,
            entry.detail,
        )
    console.print(table)
