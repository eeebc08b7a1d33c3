"""Assembled node startup configuration and its typed command."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from beaconforge.catalog import PortSpec
from beaconforge.models.nodes import NodeRole, ResourceLimits


class InitStep(BaseModel):
    """Initialize local node state unless ``genesis_file`` already exists."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["init"] = "init"
    genesis_file: str
    args: list[str]

    def render(self) -> str:
        return f"if [ ! -f {self.genesis_file} ]; then {' '.join(self.args)}; fi"


class CopyStep(BaseModel):
    """Copy a mounted file, or a directory's contents, into place."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["copy"] = "copy"
    src: str
    dest: str
    recursive: bool = False

    def render(self) -> str:
        if self.recursive:
            return f"mkdir -p {self.dest} && cp -r {self.src}/. {self.dest}"
        return f"cp {self.src} {self.dest}"


class StartStep(BaseModel):
    """Start the node process."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["start"] = "start"
    args: list[str]

    def render(self) -> str:
        return " ".join(self.args)


class StartupCommand(BaseModel):
    """Ordered sub-steps of a node's entrypoint, joined with ``&&``."""

    model_config = ConfigDict(frozen=True)

    role: NodeRole
    steps: list[Annotated[InitStep | CopyStep | StartStep, Field(discriminator="kind")]]

    @property
    def initializes(self) -> bool:
        return any(isinstance(s, InitStep) for s in self.steps)

    def render(self) -> str:
        return " && ".join(s.render() for s in self.steps)


class NodeStartupConfig(BaseModel):
    """Everything needed to schedule one node's service."""

    model_config = ConfigDict(frozen=True)

    service_name: str
    role: NodeRole
    image: str
    command: StartupCommand
    files: dict[str, str]  # mount path -> artifact name
    ports: dict[str, PortSpec] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)
    resources: ResourceLimits = ResourceLimits()
    node_selectors: dict[str, str] = Field(default_factory=dict)

    @property
    def entrypoint(self) -> list[str]:
        return ["bash", "-c"]

    @property
    def cmd(self) -> list[str]:
        return [self.command.render()]
