"""Main Typer application: imports and registers all CLI commands.

Entry point: ``beaconforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from beaconforge.cli.commands.ceremony_cmd import ceremony_cmd
from beaconforge.cli.commands.dial_cmd import dial_cmd
from beaconforge.cli.commands.journal_cmd import journal_cmd
from beaconforge.cli.commands.plan_cmd import plan_cmd
from beaconforge.config import settings

app = typer.Typer(
    name="beaconforge",
    help="beaconforge: genesis ceremony and peer bootstrap for BeaconKit test networks.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=settings.debug)],
    )


@app.callback()
def _main(
    log_level: str = typer.Option(
        settings.log_level, "--log-level", help="Logging level."
    ),
) -> None:
    configure_logging(log_level)


app.command(name="plan", help="Preview node startup configs.")(plan_cmd)
app.command(name="ceremony", help="Run the genesis ceremony.")(ceremony_cmd)
app.command(name="dial", help="Dial peers into a running seed.")(dial_cmd)
app.command(name="journal", help="Show the step journal of a run.")(journal_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
