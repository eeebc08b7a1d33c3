"""beaconforge data models: all Pydantic v2, all frozen (immutable)."""

from beaconforge.models.artifacts import ArtifactSlot, StoredArtifact
from beaconforge.models.execution import ExecRequest, ExecResult, StoreSpec
from beaconforge.models.genesis import ChainParams, DepositDataError, GenesisDepositData
from beaconforge.models.journal import JournalEntry
from beaconforge.models.nodes import NodeDescriptor, NodeRole, ResourceLimits
from beaconforge.models.peers import (
    DialBatchResult,
    DialReport,
    PeerDescriptor,
    PersistentPeerSet,
)
from beaconforge.models.plan import CeremonyScripts, NetworkPlan, NodeGroup
from beaconforge.models.startup import (
    CopyStep,
    InitStep,
    NodeStartupConfig,
    StartStep,
    StartupCommand,
)
from beaconforge.models.steps import (
    BOOTSTRAP_STEPS,
    VALID_TRANSITIONS,
    StepDefinition,
    StepState,
)

__all__ = [
    # nodes
    "NodeRole",
    "ResourceLimits",
    "NodeDescriptor",
    # artifacts
    "ArtifactSlot",
    "StoredArtifact",
    # genesis
    "ChainParams",
    "DepositDataError",
    "GenesisDepositData",
    # peers
    "PeerDescriptor",
    "PersistentPeerSet",
    "DialBatchResult",
    "DialReport",
    # execution
    "StoreSpec",
    "ExecRequest",
    "ExecResult",
    # startup
    "InitStep",
    "CopyStep",
    "StartStep",
    "StartupCommand",
    "NodeStartupConfig",
    # steps
    "StepState",
    "StepDefinition",
    "VALID_TRANSITIONS",
    "BOOTSTRAP_STEPS",
    # journal
    "JournalEntry",
    # plan
    "NodeGroup",
    "CeremonyScripts",
    "NetworkPlan",
]
