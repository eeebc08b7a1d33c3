"""Network orchestrator: the central coordinator of one bootstrap run.

Wires the artifact store, step journal, step machine, ceremony, config
assembler, service registry and peer mesh builder together, and enforces
the run's ordering: ceremony before validator configs, validator configs
before dynamic dialing. Seed and full-node configs need no deposit data
and can be assembled at any time.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

import requests

from beaconforge import catalog
from beaconforge.config import NetworkSettings
from beaconforge.core.artifact_store import NamedArtifactStore
from beaconforge.core.ceremony import CeremonyResult, GenesisCeremony
from beaconforge.core.executor import DockerExecutor, RemoteExecutor
from beaconforge.core.journal import StepJournal
from beaconforge.core.node_config import (
    NodeConfigAssembler,
    NodeConfigError,
    check_required_artifacts,
)
from beaconforge.core.peers import PeerMeshBuilder, resolve_persistent_peers
from beaconforge.core.prerequisite_graph import PrerequisiteGraph
from beaconforge.core.registry import ServiceRegistry
from beaconforge.core.step_machine import StepMachine
from beaconforge.models.journal import JournalEntry
from beaconforge.models.nodes import NodeDescriptor, NodeRole
from beaconforge.models.peers import DialReport
from beaconforge.models.plan import NetworkPlan
from beaconforge.models.startup import NodeStartupConfig
from beaconforge.models.steps import (
    ASSEMBLE_VALIDATORS,
    BOOTSTRAP_STEPS,
    DIAL_PEERS,
    RESOLVE_PERSISTENT_PEERS,
    StepState,
)

logger = logging.getLogger(__name__)


class NetworkOrchestrator:
    """Runs the bootstrap of one test network.

    Parameters
    ----------
    plan:
        The network plan.
    executor:
        Remote execution backend. A ``DockerExecutor`` when omitted.
    settings:
        Runtime settings. Defaults are read from the environment.
    run_id:
        Resume an existing run by id. A new id is generated if None.
    registry:
        Runtime addresses of scheduled services.
    session:
        HTTP session for the node control API.
    """

    def __init__(
        self,
        plan: NetworkPlan,
        executor: RemoteExecutor | None = None,
        *,
        settings: NetworkSettings | None = None,
        run_id: str | None = None,
        registry: ServiceRegistry | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.plan = plan
        self.settings = settings or NetworkSettings()

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"bf-{ts}-{uuid.uuid4().hex[:3]}"

        self.store = NamedArtifactStore(
            self.settings.artifact_store_path, namespace=self.run_id
        )
        self.journal = StepJournal(self.settings.ledger_path)
        self.graph = PrerequisiteGraph(BOOTSTRAP_STEPS)
        self.machine = StepMachine(self.journal, self.graph)
        self.registry = registry or ServiceRegistry()
        self.executor = executor or DockerExecutor(
            self.store, timeout=self.settings.executor_timeout_seconds
        )
        self.assembler = NodeConfigAssembler(expose_ports=self.settings.expose_ports)
        self.ceremony = GenesisCeremony(
            self.executor,
            self.store,
            self.machine,
            run_id=self.run_id,
            chain=plan.chain,
            scripts=plan.scripts,
        )
        self.mesh = PeerMeshBuilder(
            self.registry,
            session,
            batch_size=self.settings.dial_batch_size,
            p2p_port=self.settings.p2p_port,
            rpc_port=self.settings.rpc_port,
            timeout=self.settings.http_timeout_seconds,
        )
        self.ceremony_result: CeremonyResult | None = None

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_run(self) -> dict[str, StepState]:
        """Initialize step states and upload the plan's input files."""
        states = self.machine.initialize_run(self.run_id)
        uploads = (
            (self.plan.jwt_file, catalog.JWT_ARTIFACT, "jwt-secret.hex"),
            (self.plan.trusted_setup_file, catalog.TRUSTED_SETUP_ARTIFACT,
             "kzg-trusted-setup.json"),
            (self.plan.eth_genesis_file, catalog.ETH_GENESIS_ARTIFACT, "genesis.json"),
        )
        missing = [str(path) for path, _, _ in uploads if not path.is_file()]
        if missing:
            raise NodeConfigError(f"Required files not found: {', '.join(missing)}")
        for path, name, filename in uploads:
            if not self.store.exists(name):
                self.store.upload_file(path, name, filename=filename)
        logger.info("Started bootstrap run %s for %s", self.run_id, self.plan.name)
        return states

    def run_ceremony(self) -> CeremonyResult:
        """Run the genesis ceremony, or recover it if this run already did."""
        check_required_artifacts(self.store)
        self.ceremony_result = self.ceremony.recover(self.plan.validators)
        if self.ceremony_result is None:
            self.ceremony_result = self.ceremony.run(self.plan.validators)
        return self.ceremony_result

    # ------------------------------------------------------------------
    # Config assembly
    # ------------------------------------------------------------------

    def assemble_node(
        self, node: NodeDescriptor, *, persistent_peers: str = ""
    ) -> NodeStartupConfig:
        deposit = None
        if node.is_validator:
            if self.ceremony_result is None:
                self.ceremony_result = self.ceremony.recover(self.plan.validators)
            if self.ceremony_result is None:
                raise NodeConfigError(
                    f"{node.service_name}: run the genesis ceremony before "
                    "assembling validator configs"
                )
            deposit = self.ceremony_result.deposit
        return self.assembler.assemble(
            node,
            self.plan.engine_dial_url,
            self.plan.chain,
            persistent_peers=persistent_peers,
            deposit=deposit,
        )

    def assemble_validators(self, *, persistent_peers: str = "") -> list[NodeStartupConfig]:
        """Validator configs; only valid once the ceremony has completed."""
        check_required_artifacts(self.store)
        return self.machine.run(
            self.run_id,
            ASSEMBLE_VALIDATORS,
            lambda: [
                self.assemble_node(v, persistent_peers=persistent_peers)
                for v in self.plan.validators
            ],
            payload={"validators": len(self.plan.validators)},
        )

    def assemble_others(self, *, persistent_peers: str = "") -> list[NodeStartupConfig]:
        """Seed and full-node configs, independent of the ceremony."""
        check_required_artifacts(self.store)
        nodes = self.plan.seeds + self.plan.full_nodes
        return [self.assemble_node(n, persistent_peers=persistent_peers) for n in nodes]

    # ------------------------------------------------------------------
    # Peers
    # ------------------------------------------------------------------

    def persistent_peers(self, bootstrap_ids: Sequence[str]) -> str:
        """Comma-joined persistent peers for the seeds' bootstrap ids."""
        def _resolve() -> str:
            return resolve_persistent_peers(
                bootstrap_ids, self.registry, port=self.settings.p2p_port
            ).render()

        return self.machine.run(
            self.run_id, RESOLVE_PERSISTENT_PEERS, _resolve,
            payload={"bootstrap_ids": list(bootstrap_ids)},
        )

    def dial_peers(self, node_ids: Mapping[str, str], *, seed_ordinal: int = 0) -> DialReport:
        """Dynamically dial *node_ids* (service name -> node id) into a seed.

        Both peer steps may be re-run, after a failure or a pass.
        """
        def _dial() -> DialReport:
            seed = self.registry.resolve(NodeRole.SEED, seed_ordinal)
            return self.mesh.dial_peers(seed, node_ids)

        return self.machine.run(
            self.run_id, DIAL_PEERS, _dial,
            payload={"seed_ordinal": seed_ordinal, "peers": sorted(node_ids)},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_states(self) -> dict[str, StepState]:
        return self.machine.get_all_states(self.run_id)

    def get_run_entries(self) -> list[JournalEntry]:
        return self.journal.get_run_entries(self.run_id)

    def verify_journal(self) -> bool:
        return self.journal.verify_chain(self.run_id)
