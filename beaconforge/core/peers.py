"""Peer Mesh Builder.

Two independent mechanisms:

- static: bootstrap node ids resolved against the seed service at the same
  ordinal, rendered as a persistent-peers string for node startup.
- dynamic: connection strings dialed into a live seed node through its
  ``dial_peers`` control endpoint, in batches of at most ``batch_size``.

Both are safe to re-run. Dynamic dialing is best-effort discovery: a
failed batch is reported, never retried, and does not stop later batches.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import TypeVar

import requests

from beaconforge.catalog import P2P_PORT, RPC_PORT
from beaconforge.core.registry import PeerResolutionError, ServiceHandle, ServiceRegistry
from beaconforge.models.nodes import NodeRole
from beaconforge.models.peers import (
    DialBatchResult,
    DialReport,
    PeerDescriptor,
    PersistentPeerSet,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_SIZE = 20


class PeerDialError(RuntimeError):
    """Raised by ``raise_for_failures`` when any dial batch failed."""

    def __init__(self, report: DialReport) -> None:
        self.report = report
        failed = ", ".join(f"#{b.index}: {b.error}" for b in report.failed)
        super().__init__(
            f"{len(report.failed)}/{len(report.batches)} dial batches to "
            f"{report.seed} failed ({failed})"
        )


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    """Split *items* left to right into lists of at most *size*."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def resolve_persistent_peers(
    bootstrap_ids: Sequence[str],
    registry: ServiceRegistry,
    *,
    port: int = P2P_PORT,
) -> PersistentPeerSet:
    """Pair bootstrap id *i* with the runtime address of seed *i*."""
    peers = []
    for ordinal, node_id in enumerate(bootstrap_ids):
        if not node_id:
            raise PeerResolutionError(f"Empty node id for seed {ordinal}")
        handle = registry.resolve(NodeRole.SEED, ordinal)
        peers.append(
            PeerDescriptor(node_id=node_id, p2p_address=f"{handle.ip_address}:{port}")
        )
    return PersistentPeerSet(peers=peers)


def dial_query(batch: Sequence[str]) -> dict[str, str]:
    """Query parameters for one dial_peers call.

    The peer list is a JSON array of quoted connection strings; requests
    URL-encodes the brackets and quotes.
    """
    return {
        "peers": "[" + ",".join(json.dumps(p) for p in batch) + "]",
        "persistent": "false",
    }


class NodeStatusClient:
    """Reads a running node's identity from its RPC ``/status`` endpoint."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        rpc_port: int = RPC_PORT,
        timeout: float = 10.0,
    ) -> None:
        self._session = session or requests.Session()
        self._rpc_port = rpc_port
        self._timeout = timeout

    def node_id(self, handle: ServiceHandle) -> str:
        if not handle.ip_address:
            raise PeerResolutionError(f"Service {handle.name} has no runtime address yet")
        r = self._session.get(
            f"http://{handle.ip_address}:{self._rpc_port}/status",
            timeout=self._timeout,
        )
        r.raise_for_status()
        node_id = r.json()["result"]["node_info"]["id"]
        if not node_id:
            raise PeerResolutionError(f"Service {handle.name} reported an empty node id")
        return node_id


class PeerMeshBuilder:
    """Issues batched dynamic dials against a seed node.

    Parameters
    ----------
    registry:
        Runtime addresses of every scheduled service.
    session:
        HTTP session used for the control API.
    batch_size:
        Maximum connection strings per dial_peers call.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        session: requests.Session | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        p2p_port: int = P2P_PORT,
        rpc_port: int = RPC_PORT,
        timeout: float = 10.0,
    ) -> None:
        self._registry = registry
        self._session = session or requests.Session()
        self._batch_size = batch_size
        self._p2p_port = p2p_port
        self._rpc_port = rpc_port
        self._timeout = timeout

    def connection_strings(self, node_ids: Mapping[str, str]) -> list[str]:
        """``node_id@ip:port`` for each service name -> node id entry."""
        result = []
        for service_name, node_id in node_ids.items():
            handle = self._registry.by_name(service_name)
            if not handle.ip_address:
                raise PeerResolutionError(
                    f"Service {service_name} has no runtime address yet"
                )
            peer = PeerDescriptor(
                node_id=node_id, p2p_address=f"{handle.ip_address}:{self._p2p_port}"
            )
            result.append(peer.connection_string)
        return result

    def dial_peers(self, seed: ServiceHandle, node_ids: Mapping[str, str]) -> DialReport:
        """Dial every peer into *seed*, one sequential call per batch."""
        if not seed.ip_address:
            raise PeerResolutionError(f"Seed {seed.name} has no runtime address yet")
        peers = self.connection_strings(node_ids)
        url = f"http://{seed.ip_address}:{self._rpc_port}/dial_peers"
        batches = []
        for index, batch in enumerate(chunk(peers, self._batch_size)):
            batches.append(self._dial_batch(url, index, batch))
        report = DialReport(seed=seed.name, batches=batches)
        logger.info(
            "Dialed %d/%d peers into %s in %d batches",
            report.dialed, len(peers), seed.name, len(batches),
        )
        return report

    def _dial_batch(self, url: str, index: int, batch: list[str]) -> DialBatchResult:
        logger.info("Dial batch %d: %d peers -> %s", index, len(batch), url)
        try:
            r = self._session.get(url, params=dial_query(batch), timeout=self._timeout)
            r.raise_for_status()
        except requests.RequestException as exc:
            status = getattr(getattr(exc, "response", None), "status_code", None)
            logger.warning("Dial batch %d to %s failed: %s", index, url, exc)
            return DialBatchResult(
                index=index, peers=batch, ok=False, status_code=status, error=str(exc)
            )
        return DialBatchResult(index=index, peers=batch, ok=True, status_code=r.status_code)


def raise_for_failures(report: DialReport) -> DialReport:
    """Return *report* unchanged, or raise PeerDialError if any batch failed."""
    if report.failed:
        raise PeerDialError(report)
    return report
