"""Tests for the node config assembler: role-specific commands, mounts, env, ports."""

from __future__ import annotations

import pytest

from beaconforge import catalog
from beaconforge.core.artifact_store import NamedArtifactStore
from beaconforge.core.node_config import (
    GENESIS_MOUNT_DIR,
    NodeConfigAssembler,
    NodeConfigError,
    build_command,
    check_required_artifacts,
)
from beaconforge.models.genesis import ChainParams, GenesisDepositData
from beaconforge.models.nodes import NodeDescriptor, NodeRole
from beaconforge.models.startup import CopyStep, InitStep, StartStep

ENGINE_URL = "http://el-full-0:8551"
DEPOSIT = GenesisDepositData(deposit_count="0x2a", deposit_root="0xdeadbeef")


@pytest.fixture
def assembler() -> NodeConfigAssembler:
    return NodeConfigAssembler()


def _node(role: NodeRole, ordinal: int = 0) -> NodeDescriptor:
    return NodeDescriptor(role=role, ordinal=ordinal, image="beacond:test")


class TestBuildCommand:
    def test_validator_never_initializes(self):
        command = build_command(NodeRole.VALIDATOR, validator_index=3)
        assert not command.initializes
        assert "beacond init" not in command.render()
        restore = command.steps[0]
        assert isinstance(restore, CopyStep)
        assert restore.src == "/root/config/config3/.beacond"
        assert restore.dest == catalog.NODE_HOME
        assert restore.recursive

    @pytest.mark.parametrize("role", [NodeRole.SEED, NodeRole.FULL])
    def test_seed_and_full_initialize_only_without_genesis(self, role: NodeRole):
        command = build_command(role)
        init = command.steps[0]
        assert isinstance(init, InitStep)
        assert init.render().startswith(
            "if [ ! -f /root/.beacond/config/genesis.json ]; then /usr/bin/beacond init"
        )

    @pytest.mark.parametrize("role", list(NodeRole))
    def test_final_genesis_placed_then_started(self, role: NodeRole):
        command = build_command(role, validator_index=0)
        place, start = command.steps[-2], command.steps[-1]
        assert place == CopyStep(
            src=f"{GENESIS_MOUNT_DIR}/genesis.json", dest=catalog.GENESIS_FILE
        )
        assert isinstance(start, StartStep)
        assert start.args[:2] == ["/usr/bin/beacond", "start"]

    def test_only_seed_runs_in_seed_mode(self):
        assert "--p2p.seed_mode=true" in build_command(NodeRole.SEED).render()
        assert "--p2p.seed_mode=true" not in build_command(NodeRole.FULL).render()
        assert "--p2p.seed_mode=true" not in build_command(
            NodeRole.VALIDATOR, validator_index=0
        ).render()

    def test_start_flags(self):
        rendered = build_command(NodeRole.FULL, kzg_implementation="ethereum/c-kzg-4844")
        text = rendered.render()
        assert "--beacon-kit.engine.jwt-secret-path=/root/jwt/jwt-secret.hex" in text
        assert "--beacon-kit.kzg.implementation=ethereum/c-kzg-4844" in text
        assert "--beacon-kit.kzg.trusted-setup-path=/root/app/kzg-trusted-setup.json" in text
        assert '--p2p.persistent_peers "$BEACOND_PERSISTENT_PEERS"' in text

    def test_validator_needs_index(self):
        with pytest.raises(NodeConfigError):
            build_command(NodeRole.VALIDATOR)


class TestNodeConfigAssembler:
    def test_validator_config(self, assembler: NodeConfigAssembler):
        config = assembler.assemble(
            _node(NodeRole.VALIDATOR, 1), ENGINE_URL, ChainParams(), deposit=DEPOSIT
        )
        assert config.service_name == "cl-validator-beaconkit-1"
        assert config.files == {
            "/root/jwt": "jwt_file",
            "/root/app": "kzg_trusted_setup",
            GENESIS_MOUNT_DIR: "cosmos-genesis-final",
            "/root/config": "node-beacond-config-1",
        }
        assert config.env["DEPOSIT_COUNT"] == "0x2a"
        assert config.env["DEPOSIT_ROOT"] == "0xdeadbeef"
        assert config.labels == {"node_type": "validator", "ordinal": "1"}
        assert config.entrypoint == ["bash", "-c"]
        assert config.cmd == [config.command.render()]

    def test_validator_starts_from_its_own_keyring(self, assembler: NodeConfigAssembler):
        config = assembler.assemble(
            _node(NodeRole.VALIDATOR, 2), ENGINE_URL, ChainParams(), deposit=DEPOSIT
        )
        restore, _, start = config.command.steps
        assert restore.src == "/root/config/config2/.beacond"
        assert config.files["/root/config"] == catalog.validator_artifact(2)
        assert isinstance(start, StartStep)
        home = start.args[start.args.index("--home") + 1]
        assert home == f"${catalog.ENV_HOME}"
        assert config.env[catalog.ENV_HOME] == restore.dest

    def test_validator_without_deposit_rejected(self, assembler: NodeConfigAssembler):
        with pytest.raises(NodeConfigError, match="deposit"):
            assembler.assemble(_node(NodeRole.VALIDATOR), ENGINE_URL, ChainParams())

    def test_seed_config(self, assembler: NodeConfigAssembler):
        config = assembler.assemble(
            _node(NodeRole.SEED), ENGINE_URL, ChainParams(),
            persistent_peers="abc@10.0.0.1:26656",
        )
        assert "/root/config" not in config.files
        assert config.env["BEACOND_SEED_MODE"] == "true"
        assert config.env["BEACOND_ENABLE_PROMETHEUS"] == "true"
        assert config.env["BEACOND_PERSISTENT_PEERS"] == "abc@10.0.0.1:26656"
        assert config.env["BEACOND_MONIKER"] == "cl-seed-beaconkit-0"
        assert config.env["BEACOND_ENGINE_DIAL_URL"] == ENGINE_URL
        assert "DEPOSIT_COUNT" not in config.env

    def test_deposit_never_reaches_non_validators(self, assembler: NodeConfigAssembler):
        config = assembler.assemble(
            _node(NodeRole.FULL), ENGINE_URL, ChainParams(), deposit=DEPOSIT
        )
        assert "DEPOSIT_ROOT" not in config.env
        assert "BEACOND_SEED_MODE" not in config.env

    def test_chain_params_in_env(self, assembler: NodeConfigAssembler):
        chain = ChainParams(chain_id="beacon-test", eth_chain_id="1337")
        env = assembler.assemble(_node(NodeRole.FULL), ENGINE_URL, chain).env
        assert env["BEACOND_CHAIN_ID"] == "beacon-test"
        assert env["BEACOND_ETH_CHAIN_ID"] == "1337"
        assert env["BEACOND_HOME"] == "/root/.beacond"

    def test_ports_all_or_nothing(self):
        exposed = NodeConfigAssembler(expose_ports=True).assemble(
            _node(NodeRole.FULL), ENGINE_URL, ChainParams()
        )
        hidden = NodeConfigAssembler(expose_ports=False).assemble(
            _node(NodeRole.FULL), ENGINE_URL, ChainParams()
        )
        assert set(exposed.ports) == {
            "cometbft-rpc", "cometbft-p2p", "prometheus", "node-api"
        }
        assert exposed.ports["cometbft-p2p"].number == 26656
        assert hidden.ports == {}

    def test_resources_and_selectors_carried(self, assembler: NodeConfigAssembler):
        node = NodeDescriptor(
            role=NodeRole.FULL, ordinal=0, image="beacond:test",
            resources={"min_cpu": 500, "max_memory": 4096},
            node_selectors={"pool": "beacon"},
            labels={"team": "infra"},
        )
        config = assembler.assemble(node, ENGINE_URL, ChainParams())
        assert config.resources.min_cpu == 500
        assert config.node_selectors == {"pool": "beacon"}
        assert config.labels["team"] == "infra"


class TestRequiredArtifacts:
    def test_missing_reported(self, store: NamedArtifactStore):
        with pytest.raises(NodeConfigError, match="jwt_file, kzg_trusted_setup"):
            check_required_artifacts(store)

    def test_present(self, store: NamedArtifactStore, upload_inputs: None):
        check_required_artifacts(store)
