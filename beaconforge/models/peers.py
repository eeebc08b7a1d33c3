"""Peer descriptors and the persistent-peer connection string."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PeerDescriptor(BaseModel):
    """A dialable peer: CometBFT node id plus its ``host:port`` address.

    Only valid for the lifetime of the node it identifies.
    """

    model_config = ConfigDict(frozen=True)

    node_id: str
    p2p_address: str  # "host:port"

    @property
    def connection_string(self) -> str:
        return f"{self.node_id}@{self.p2p_address}"


class PersistentPeerSet(BaseModel):
    """Ordered peers rendered as a comma-joined connection string.

    Order only affects initial dial priority.
    """

    model_config = ConfigDict(frozen=True)

    peers: list[PeerDescriptor] = Field(default_factory=list)

    def render(self) -> str:
        return ",".join(p.connection_string for p in self.peers)

    def __len__(self) -> int:
        return len(self.peers)


class DialBatchResult(BaseModel):
    """Outcome of one dial_peers call."""

    model_config = ConfigDict(frozen=True)

    index: int
    peers: list[str]
    ok: bool
    status_code: int | None = None
    error: str = ""


class DialReport(BaseModel):
    """All batch outcomes of one dynamic dial, in issue order."""

    model_config = ConfigDict(frozen=True)

    seed: str
    batches: list[DialBatchResult] = Field(default_factory=list)

    @property
    def failed(self) -> list[DialBatchResult]:
        return [b for b in self.batches if not b.ok]

    @property
    def dialed(self) -> int:
        return sum(len(b.peers) for b in self.batches if b.ok)
