"""Node descriptor models: the immutable per-node deployment plan."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NodeRole(str, Enum):
    """Role a consensus node plays in the test network."""

    VALIDATOR = "validator"
    SEED = "seed"
    FULL = "full"


class ResourceLimits(BaseModel):
    """CPU (millicores) and memory (MB) bounds for a node's service."""

    model_config = ConfigDict(frozen=True)

    min_cpu: int = 0
    max_cpu: int = 0
    min_memory: int = 0
    max_memory: int = 0


class NodeDescriptor(BaseModel):
    """One node of the deployment plan.

    Immutable once constructed for a run. Validators must carry an
    ordinal; seeds and full nodes use it only to name their service.
    """

    model_config = ConfigDict(frozen=True)

    role: NodeRole
    ordinal: int | None = None
    image: str
    resources: ResourceLimits = ResourceLimits()
    labels: dict[str, str] = Field(default_factory=dict)
    node_selectors: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_ordinal(self) -> NodeDescriptor:
        if self.role == NodeRole.VALIDATOR and self.ordinal is None:
            raise ValueError("validator nodes require an ordinal index")
        if self.ordinal is not None and self.ordinal < 0:
            raise ValueError(f"ordinal must be >= 0, got {self.ordinal}")
        return self

    @property
    def is_validator(self) -> bool:
        return self.role == NodeRole.VALIDATOR

    @property
    def service_name(self) -> str:
        """Conventional service name, e.g. ``cl-validator-beaconkit-0``."""
        return f"cl-{self.role.value}-beaconkit-{self.ordinal or 0}"
