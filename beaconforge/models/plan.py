"""Network plan: per-network inputs loaded from a JSON file."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from beaconforge.models.genesis import ChainParams
from beaconforge.models.nodes import NodeDescriptor, NodeRole, ResourceLimits


class NodeGroup(BaseModel):
    """``count`` nodes of one role sharing an image and limits."""

    model_config = ConfigDict(frozen=True)

    role: NodeRole
    count: int = Field(default=1, ge=0)
    image: str = "ghcr.io/berachain/beacon-kit:latest"
    resources: ResourceLimits = ResourceLimits()
    labels: dict[str, str] = Field(default_factory=dict)
    node_selectors: dict[str, str] = Field(default_factory=dict)


class CeremonyScripts(BaseModel):
    """Local paths of the black-box shell scripts the ceremony uploads."""

    model_config = ConfigDict(frozen=True)

    collect: Path = Path("scripts/multiple-premined-deposits-multiple-keys.sh")
    merge: Path = Path("scripts/modify-genesis-with-deposit-contract.sh")


class NetworkPlan(BaseModel):
    """Everything one bootstrap run needs besides runtime addresses."""

    model_config = ConfigDict(frozen=True)

    name: str = "beaconkit-devnet"
    chain: ChainParams = ChainParams()
    nodes: list[NodeGroup] = Field(default_factory=list)
    scripts: CeremonyScripts = CeremonyScripts()
    jwt_file: Path = Path("files/jwt.hex")
    trusted_setup_file: Path = Path("files/kzg-trusted-setup.json")
    eth_genesis_file: Path = Path("files/eth-genesis.json")
    engine_dial_url: str = "http://el-full-0:8551"

    @classmethod
    def from_file(cls, path: Path) -> NetworkPlan:
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))

    def descriptors(self, role: NodeRole | None = None) -> list[NodeDescriptor]:
        """Expand node groups into descriptors, ordinals counted per role."""
        counters: dict[NodeRole, int] = {}
        result: list[NodeDescriptor] = []
        for group in self.nodes:
            for _ in range(group.count):
                ordinal = counters.get(group.role, 0)
                counters[group.role] = ordinal + 1
                if role is not None and group.role != role:
                    continue
                result.append(
                    NodeDescriptor(
                        role=group.role,
                        ordinal=ordinal,
                        image=group.image,
                        resources=group.resources,
                        labels=dict(group.labels),
                        node_selectors=dict(group.node_selectors),
                    )
                )
        return result

    @property
    def validators(self) -> list[NodeDescriptor]:
        return self.descriptors(NodeRole.VALIDATOR)

    @property
    def seeds(self) -> list[NodeDescriptor]:
        return self.descriptors(NodeRole.SEED)

    @property
    def full_nodes(self) -> list[NodeDescriptor]:
        return self.descriptors(NodeRole.FULL)
