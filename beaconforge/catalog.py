"""Static catalog of node ports, environment keys, and mount paths.

Pure data. Nothing here imports from the rest of the package.
"""

from __future__ import annotations

from typing import NamedTuple


class PortSpec(NamedTuple):
    name: str
    number: int
    transport: str = "TCP"
    enabled: bool = True


# Disabled entries are kept for reference but never published.
PORT_CATALOG: tuple[PortSpec, ...] = (
    PortSpec("cometbft-rpc", 26657),
    PortSpec("cometbft-p2p", 26656),
    PortSpec("cometbft-grpc", 9090, enabled=False),
    PortSpec("cometbft-rest", 1317, enabled=False),
    PortSpec("prometheus", 26660),
    PortSpec("engine-rpc", 8551, enabled=False),
    PortSpec("node-api", 3500),
)

P2P_PORT = 26656
RPC_PORT = 26657


def exposed_ports(expose: bool) -> dict[str, PortSpec]:
    """Ports to publish for a node; all-or-nothing on *expose*."""
    if not expose:
        return {}
    return {p.name: p for p in PORT_CATALOG if p.enabled}


# ---------------------------------------------------------------------------
# Environment keys of the node startup contract
# ---------------------------------------------------------------------------

ENV_MONIKER = "BEACOND_MONIKER"
ENV_NET = "BEACOND_NET"
ENV_HOME = "BEACOND_HOME"
ENV_CHAIN_ID = "BEACOND_CHAIN_ID"
ENV_ETH_CHAIN_ID = "BEACOND_ETH_CHAIN_ID"
ENV_KEYRING_BACKEND = "BEACOND_KEYRING_BACKEND"
ENV_MINIMUM_GAS_PRICE = "BEACOND_MINIMUM_GAS_PRICE"
ENV_ENGINE_DIAL_URL = "BEACOND_ENGINE_DIAL_URL"
ENV_PERSISTENT_PEERS = "BEACOND_PERSISTENT_PEERS"
ENV_CHAIN_SPEC = "CHAIN_SPEC"
ENV_WITHDRAWAL_ADDRESS = "WITHDRAWAL_ADDRESS"
ENV_DEPOSIT_AMOUNT = "DEPOSIT_AMOUNT"
ENV_DEPOSIT_COUNT = "DEPOSIT_COUNT"
ENV_DEPOSIT_ROOT = "DEPOSIT_ROOT"
ENV_NUM_VALS = "NUM_VALS"
ENV_ETH_GENESIS = "ETH_GENESIS"

# Keyed by NodeRole value.
ROLE_ENVIRONMENT: dict[str, dict[str, str]] = {
    "validator": {"BEACOND_ENABLE_PROMETHEUS": "true"},
    "seed": {"BEACOND_ENABLE_PROMETHEUS": "true", "BEACOND_SEED_MODE": "true"},
    "full": {"BEACOND_ENABLE_PROMETHEUS": "true"},
}

# ---------------------------------------------------------------------------
# Fixed paths inside a node's filesystem
# ---------------------------------------------------------------------------

NODE_HOME = "/root/.beacond"
GENESIS_CONFIG_DIR = f"{NODE_HOME}/config"
GENESIS_FILE = f"{GENESIS_CONFIG_DIR}/genesis.json"
JWT_DIR = "/root/jwt"
JWT_FILE = f"{JWT_DIR}/jwt-secret.hex"
TRUSTED_SETUP_DIR = "/root/app"
TRUSTED_SETUP_FILE = f"{TRUSTED_SETUP_DIR}/kzg-trusted-setup.json"
VALIDATOR_CONFIG_DIR = "/root/config"

# Artifact names shared by the ceremony, the assembler, and the orchestrator
JWT_ARTIFACT = "jwt_file"
TRUSTED_SETUP_ARTIFACT = "kzg_trusted_setup"
ETH_GENESIS_ARTIFACT = "eth-genesis"
COLLECTED_GENESIS_ARTIFACT = "cosmos-genesis-0"
FINAL_GENESIS_ARTIFACT = "cosmos-genesis-final"
DEPOSIT_COUNT_ARTIFACT = "deposit-count"
DEPOSIT_ROOT_ARTIFACT = "deposit-root"


def validator_artifact(index: int) -> str:
    """Artifact name holding validator *index*'s keyring and config."""
    return f"node-beacond-config-{index}"
