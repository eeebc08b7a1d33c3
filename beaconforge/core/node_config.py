"""Node Config Assembler: turns a NodeDescriptor into a NodeStartupConfig.

Pure: no network or file I/O. The role decides the startup command:

- seed: init if the genesis file is absent, place final genesis, start in
  seed mode.
- validator: restore the ceremony's per-index config, place final
  genesis, start. Never initializes.
- full: init if absent, place final genesis, start.
"""

from __future__ import annotations

from beaconforge import catalog
from beaconforge.core.artifact_store import NamedArtifactStore
from beaconforge.models.genesis import ChainParams, GenesisDepositData
from beaconforge.models.nodes import NodeDescriptor, NodeRole
from beaconforge.models.startup import (
    CopyStep,
    InitStep,
    NodeStartupConfig,
    StartStep,
    StartupCommand,
)

BEACOND_BIN = "/usr/bin/beacond"
GENESIS_MOUNT_DIR = "/root/.tmp_genesis"


class NodeConfigError(ValueError):
    """Raised for caller-detectable configuration errors."""


def check_required_artifacts(store: NamedArtifactStore) -> None:
    """Fail fast if the JWT or trusted-setup artifact is missing."""
    missing = [
        name
        for name in (catalog.JWT_ARTIFACT, catalog.TRUSTED_SETUP_ARTIFACT)
        if not store.exists(name)
    ]
    if missing:
        raise NodeConfigError(f"Required artifacts missing: {', '.join(missing)}")


def build_command(
    role: NodeRole,
    *,
    validator_index: int | None = None,
    kzg_implementation: str = "crate-crypto/go-kzg-4844",
) -> StartupCommand:
    """Ordered startup sub-steps for *role*."""
    if role == NodeRole.VALIDATOR and validator_index is None:
        raise NodeConfigError("validator startup requires a validator index")

    steps: list[InitStep | CopyStep | StartStep] = []
    if role == NodeRole.VALIDATOR:
        # The index picks the keyring the collect step generated for this
        # validator; start then runs from that restored home.
        steps.append(
            CopyStep(
                src=f"{catalog.VALIDATOR_CONFIG_DIR}/config{validator_index}/.beacond",
                dest=catalog.NODE_HOME,
                recursive=True,
            )
        )
    else:
        steps.append(
            InitStep(
                genesis_file=catalog.GENESIS_FILE,
                args=[
                    BEACOND_BIN, "init", f"${catalog.ENV_MONIKER}",
                    "--chain-id", f"${catalog.ENV_CHAIN_ID}",
                    "--home", f"${catalog.ENV_HOME}",
                ],
            )
        )
    steps.append(
        CopyStep(src=f"{GENESIS_MOUNT_DIR}/genesis.json", dest=catalog.GENESIS_FILE)
    )

    start = [
        BEACOND_BIN, "start",
        "--home", f"${catalog.ENV_HOME}",
        f"--beacon-kit.engine.jwt-secret-path={catalog.JWT_FILE}",
        f"--beacon-kit.kzg.implementation={kzg_implementation}",
        f"--beacon-kit.kzg.trusted-setup-path={catalog.TRUSTED_SETUP_FILE}",
        "--beacon-kit.engine.rpc-dial-url", f"${catalog.ENV_ENGINE_DIAL_URL}",
        "--p2p.persistent_peers", f"\"${catalog.ENV_PERSISTENT_PEERS}\"",
    ]
    if role == NodeRole.SEED:
        start.append("--p2p.seed_mode=true")
    steps.append(StartStep(args=start))
    return StartupCommand(role=role, steps=steps)


class NodeConfigAssembler:
    """Builds startup configs for every role.

    Parameters
    ----------
    expose_ports:
        Publish every enabled catalog port, or none at all.
    """

    def __init__(self, *, expose_ports: bool = True) -> None:
        self._expose_ports = expose_ports

    def environment(
        self,
        node: NodeDescriptor,
        engine_dial_url: str,
        chain: ChainParams,
        *,
        persistent_peers: str = "",
        deposit: GenesisDepositData | None = None,
    ) -> dict[str, str]:
        env = dict(catalog.ROLE_ENVIRONMENT.get(node.role.value, {}))
        env.update({
            catalog.ENV_MONIKER: node.service_name,
            catalog.ENV_NET: chain.network,
            catalog.ENV_HOME: catalog.NODE_HOME,
            catalog.ENV_CHAIN_ID: chain.chain_id,
            catalog.ENV_ETH_CHAIN_ID: chain.eth_chain_id,
            catalog.ENV_KEYRING_BACKEND: chain.keyring_backend,
            catalog.ENV_MINIMUM_GAS_PRICE: chain.minimum_gas_price,
            catalog.ENV_ENGINE_DIAL_URL: engine_dial_url,
            catalog.ENV_PERSISTENT_PEERS: persistent_peers,
            catalog.ENV_CHAIN_SPEC: chain.chain_spec,
            catalog.ENV_WITHDRAWAL_ADDRESS: chain.withdrawal_address,
            catalog.ENV_DEPOSIT_AMOUNT: chain.deposit_amount,
        })
        if deposit is not None:
            env.update(deposit.as_env())
        return env

    def assemble(
        self,
        node: NodeDescriptor,
        engine_dial_url: str,
        chain: ChainParams,
        *,
        persistent_peers: str = "",
        deposit: GenesisDepositData | None = None,
    ) -> NodeStartupConfig:
        """Return the complete startup config for *node*.

        Validators need *deposit*: their config must not exist before the
        ceremony has produced it.
        """
        if node.is_validator and deposit is None:
            raise NodeConfigError(
                f"{node.service_name}: validator config requires genesis deposit data"
            )

        files = {
            catalog.JWT_DIR: catalog.JWT_ARTIFACT,
            catalog.TRUSTED_SETUP_DIR: catalog.TRUSTED_SETUP_ARTIFACT,
            GENESIS_MOUNT_DIR: catalog.FINAL_GENESIS_ARTIFACT,
        }
        if node.is_validator:
            files[catalog.VALIDATOR_CONFIG_DIR] = catalog.validator_artifact(node.ordinal)

        labels = {"node_type": node.role.value, **node.labels}
        if node.ordinal is not None:
            labels.setdefault("ordinal", str(node.ordinal))

        return NodeStartupConfig(
            service_name=node.service_name,
            role=node.role,
            image=node.image,
            command=build_command(
                node.role,
                validator_index=node.ordinal if node.is_validator else None,
                kzg_implementation=chain.kzg_implementation,
            ),
            files=files,
            ports=catalog.exposed_ports(self._expose_ports),
            env=self.environment(
                node, engine_dial_url, chain,
                persistent_peers=persistent_peers,
                deposit=deposit if node.is_validator else None,
            ),
            labels=labels,
            resources=node.resources,
            node_selectors=dict(node.node_selectors),
        )
