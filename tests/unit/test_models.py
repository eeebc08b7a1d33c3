"""Tests for the pydantic models: descriptors, deposit data, peers, startup, plan."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from beaconforge.models import (
    CopyStep,
    DialBatchResult,
    DialReport,
    GenesisDepositData,
    InitStep,
    NetworkPlan,
    NodeDescriptor,
    NodeGroup,
    NodeRole,
    PeerDescriptor,
    PersistentPeerSet,
    StartStep,
    StartupCommand,
)
from beaconforge.models.genesis import DepositDataError


class TestNodeDescriptor:
    def test_validator_requires_ordinal(self):
        with pytest.raises(ValidationError, match="ordinal"):
            NodeDescriptor(role=NodeRole.VALIDATOR, image="beacond:test")

    def test_negative_ordinal_rejected(self):
        with pytest.raises(ValidationError):
            NodeDescriptor(role=NodeRole.SEED, ordinal=-1, image="beacond:test")

    def test_service_names(self):
        assert NodeDescriptor(
            role=NodeRole.VALIDATOR, ordinal=2, image="i"
        ).service_name == "cl-validator-beaconkit-2"
        assert NodeDescriptor(role=NodeRole.FULL, image="i").service_name == (
            "cl-full-beaconkit-0"
        )

    def test_frozen(self):
        node = NodeDescriptor(role=NodeRole.SEED, ordinal=0, image="i")
        with pytest.raises(ValidationError):
            node.image = "other"


class TestGenesisDepositData:
    def test_from_outputs_strips_whitespace(self):
        deposit = GenesisDepositData.from_outputs("0x2a\n", "  0xdeadbeef\r\n")
        assert deposit.deposit_count == "0x2a"
        assert deposit.deposit_root == "0xdeadbeef"
        assert deposit.count == 42

    @pytest.mark.parametrize(
        "count, root, match",
        [
            ("", "0xdeadbeef", "deposit_count is empty"),
            ("\n", "0xdeadbeef", "deposit_count is empty"),
            ("42", "0xdeadbeef", "deposit_count is not 0x-prefixed hex"),
            ("0x2a", "0xnothex", "deposit_root is not 0x-prefixed hex"),
            ("0x2a", "0x", "deposit_root is not 0x-prefixed hex"),
        ],
    )
    def test_from_outputs_rejects(self, count: str, root: str, match: str):
        with pytest.raises(DepositDataError, match=match):
            GenesisDepositData.from_outputs(count, root)

    def test_direct_construction_validates(self):
        with pytest.raises(ValidationError):
            GenesisDepositData(deposit_count="", deposit_root="0x1")

    def test_as_env(self):
        deposit = GenesisDepositData(deposit_count="0x2a", deposit_root="0xdeadbeef")
        assert deposit.as_env() == {"DEPOSIT_COUNT": "0x2a", "DEPOSIT_ROOT": "0xdeadbeef"}


class TestPeers:
    def test_render_persistent_peers(self):
        peers = PersistentPeerSet(peers=[
            PeerDescriptor(node_id="abc", p2p_address="10.0.0.1:26656"),
            PeerDescriptor(node_id="def", p2p_address="10.0.0.2:26656"),
        ])
        assert peers.render() == "abc@10.0.0.1:26656,def@10.0.0.2:26656"
        assert len(peers) == 2

    def test_empty_peer_set_renders_empty(self):
        assert PersistentPeerSet().render() == ""

    def test_dial_report_counts(self):
        report = DialReport(seed="cl-seed-beaconkit-0", batches=[
            DialBatchResult(index=0, peers=["a", "b"], ok=True, status_code=200),
            DialBatchResult(index=1, peers=["c"], ok=False, status_code=500, error="500"),
        ])
        assert report.dialed == 2
        assert [b.index for b in report.failed] == [1]


class TestStartupCommand:
    def test_render_joins_steps(self):
        command = StartupCommand(role=NodeRole.FULL, steps=[
            InitStep(genesis_file="/g.json", args=["beacond", "init"]),
            CopyStep(src="/tmp/g.json", dest="/g.json"),
            StartStep(args=["beacond", "start"]),
        ])
        assert command.initializes
        assert command.render() == (
            "if [ ! -f /g.json ]; then beacond init; fi"
            " && cp /tmp/g.json /g.json"
            " && beacond start"
        )

    def test_recursive_copy(self):
        step = CopyStep(src="/root/config/config0/.beacond", dest="/root/.beacond",
                        recursive=True)
        assert step.render() == (
            "mkdir -p /root/.beacond && cp -r /root/config/config0/.beacond/. /root/.beacond"
        )

    def test_round_trips_through_json(self):
        command = StartupCommand(role=NodeRole.SEED, steps=[
            CopyStep(src="a", dest="b"), StartStep(args=["go"])
        ])
        restored = StartupCommand.model_validate_json(command.model_dump_json())
        assert restored == command
        assert isinstance(restored.steps[0], CopyStep)


class TestNetworkPlan:
    def test_ordinals_counted_per_role(self):
        plan = NetworkPlan(nodes=[
            NodeGroup(role=NodeRole.VALIDATOR, count=2),
            NodeGroup(role=NodeRole.SEED, count=1),
            NodeGroup(role=NodeRole.VALIDATOR, count=1, image="other:tag"),
        ])
        assert [v.ordinal for v in plan.validators] == [0, 1, 2]
        assert plan.validators[2].image == "other:tag"
        assert [s.service_name for s in plan.seeds] == ["cl-seed-beaconkit-0"]
        assert plan.full_nodes == []

    def test_from_file(self, tmp_dir: Path):
        path = tmp_dir / "plan.json"
        path.write_text(
            '{"name": "net", "chain": {"chain_id": "beacon-test"},'
            ' "nodes": [{"role": "validator", "count": 4}]}'
        )
        plan = NetworkPlan.from_file(path)
        assert plan.chain.chain_id == "beacon-test"
        assert plan.chain.eth_chain_id == "80087"
        assert len(plan.validators) == 4

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            NodeGroup(role=NodeRole.SEED, count=-1)
