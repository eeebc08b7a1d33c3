"""beaconforge CLI: Typer-based command-line interface.

Provides the ``beaconforge`` command with subcommands for previewing node
configs, running the genesis ceremony, dialing peers into a seed, and
reading the step journal. All output uses Rich.
"""
