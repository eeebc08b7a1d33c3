"""``beaconforge dial SEED_IP PEER...``: dial peers into a running seed."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from beaconforge.config import NetworkSettings
from beaconforge.core.peers import PeerMeshBuilder
from beaconforge.core.registry import ServiceRegistry
from beaconforge.models.nodes import NodeRole

console = Console()


def _parse_peer(spec: str) -> tuple[str, str, str]:
    """``name=node_id@ip`` -> (name, node_id, ip)."""
    name, sep, rest = spec.partition("=")
    node_id, at, ip = rest.partition("@")
    if not (sep and at and name and node_id and ip):
        raise typer.BadParameter(f"expected name=node_id@ip, got {spec!r}")
    return name, node_id, ip


def dial_cmd(
    seed_ip: str = typer.Argument(..., help="Runtime IP of the seed node."),
    peers: list[str] = typer.Argument(..., help="Peers as name=node_id@ip."),
    batch_size: int = typer.Option(None, "--batch-size", "-b", help="Peers per call."),
) -> None:
    """Issue batched, non-persistent dial_peers calls against a seed."""
    settings = NetworkSettings()
    registry = ServiceRegistry()
    seed = registry.register(NodeRole.SEED, 0, "cl-seed-beaconkit-0", seed_ip)

    node_ids: dict[str, str] = {}
    for ordinal, spec in enumerate(peers):
        name, node_id, ip = _parse_peer(spec)
        registry.register(NodeRole.FULL, ordinal, name, ip)
        node_ids[name] = node_id

    mesh = PeerMeshBuilder(
        registry,
        batch_size=batch_size or settings.dial_batch_size,
        p2p_port=settings.p2p_port,
        rpc_port=settings.rpc_port,
        timeout=settings.http_timeout_seconds,
    )
    report = mesh.dial_peers(seed, node_ids)

    table = Table(title=f"Dial batches -> {seed_ip}")
    table.add_column("#", justify="right")
    table.add_column("Peers", justify="right")
    table.add_column("Result")
    for batch in report.batches:
        result = "[green]ok[/green]" if batch.ok else f"[red]{batch.error}[/red]"
        table.add_row(str(batch.index), str(len(batch.peers)), result)
    console.print(table)

    if report.failed:
        raise typer.Exit(code=1)
