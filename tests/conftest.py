"""Shared test fixtures for beaconforge."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import Any

import pytest
import requests

from beaconforge import catalog
from beaconforge.config import NetworkSettings
from beaconforge.core.artifact_store import NamedArtifactStore
from beaconforge.core.journal import StepJournal
from beaconforge.core.prerequisite_graph import PrerequisiteGraph
from beaconforge.core.step_machine import StepMachine
from beaconforge.models.execution import ExecRequest, ExecResult
from beaconforge.models.genesis import ChainParams
from beaconforge.models.nodes import NodeDescriptor, NodeRole
from beaconforge.models.plan import CeremonyScripts, NetworkPlan, NodeGroup
from beaconforge.models.steps import BOOTSTRAP_STEPS

READ_OUTPUTS = {
    "Reading deposit count": "0x2a\n",
    "Reading deposit root": "0xdeadbeef\n",
}

# What the merge step leaves in its deposit slots
STORED_CONTENTS = {
    catalog.DEPOSIT_COUNT_ARTIFACT: b"0x2a\n",
    catalog.DEPOSIT_ROOT_ARTIFACT: b"0xdeadbeef\n",
}


class FakeExecutor:
    """Records every request and produces its declared store slots.

    ``outputs`` maps a step description to its stdout; ``failures`` maps a
    description to a non-zero exit code.
    """

    def __init__(
        self,
        store: NamedArtifactStore,
        outputs: dict[str, str] | None = None,
        failures: dict[str, int] | None = None,
    ) -> None:
        self.store = store
        self.outputs = dict(READ_OUTPUTS if outputs is None else outputs)
        self.failures = failures or {}
        self.produce = True
        self.requests: list[ExecRequest] = []

    def run(self, request: ExecRequest) -> ExecResult:
        self.requests.append(request)
        code = self.failures.get(request.description, 0)
        if code:
            return ExecResult(exit_code=code, output="script exploded\n")
        if self.produce:
            for spec in request.store:
                filename = PurePosixPath(spec.src).name
                default = f"{spec.name} from {request.description}".encode()
                self.store.put(
                    spec.name,
                    {filename: STORED_CONTENTS.get(spec.name, default)},
                    producer=request.description,
                )
        return ExecResult(exit_code=0, output=self.outputs.get(request.description, ""))

    def descriptions(self) -> list[str]:
        return [r.description for r in self.requests]


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: dict[str, Any] | None = None):
        self.status_code = status_code
        self._payload = payload or {}

    def json(self) -> dict[str, Any]:
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session; records GETs.

    ``fail_calls`` holds the zero-based call indexes that return HTTP 500;
    ``error_calls`` those that raise a connection error.
    """

    def __init__(
        self,
        fail_calls: set[int] | None = None,
        error_calls: set[int] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self.fail_calls = fail_calls or set()
        self.error_calls = error_calls or set()
        self.payload = payload or {}
        self.calls: list[tuple[str, dict[str, str] | None]] = []

    def get(self, url: str, params: dict[str, str] | None = None, timeout: float | None = None):
        index = len(self.calls)
        self.calls.append((url, params))
        if index in self.error_calls:
            raise requests.ConnectionError("connection refused")
        if index in self.fail_calls:
            return FakeResponse(500)
        return FakeResponse(200, self.payload)


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def run_id() -> str:
    return "bf-test-run-001"


@pytest.fixture
def store(tmp_dir: Path, run_id: str) -> NamedArtifactStore:
    """A fresh NamedArtifactStore scoped to the test run."""
    return NamedArtifactStore(tmp_dir / "artifacts", namespace=run_id)


@pytest.fixture
def journal(tmp_dir: Path) -> StepJournal:
    return StepJournal(tmp_dir / "journal.db")


@pytest.fixture
def graph() -> PrerequisiteGraph:
    return PrerequisiteGraph(BOOTSTRAP_STEPS)


@pytest.fixture
def machine(journal: StepJournal, graph: PrerequisiteGraph) -> StepMachine:
    return StepMachine(journal, graph)


@pytest.fixture
def fake_executor(store: NamedArtifactStore) -> FakeExecutor:
    return FakeExecutor(store)


@pytest.fixture
def chain() -> ChainParams:
    return ChainParams()


@pytest.fixture
def scripts(tmp_dir: Path) -> CeremonyScripts:
    """Collect and merge scripts written to disk (contents are opaque)."""
    script_dir = tmp_dir / "scripts"
    script_dir.mkdir()
    collect = script_dir / "multiple-premined-deposits-multiple-keys.sh"
    merge = script_dir / "modify-genesis-with-deposit-contract.sh"
    collect.write_text("#!/usr/bin/env bash\necho collect\n")
    merge.write_text("#!/usr/bin/env bash\necho merge\n")
    return CeremonyScripts(collect=collect, merge=merge)


@pytest.fixture
def make_validators() -> Callable[..., list[NodeDescriptor]]:
    """Factory fixture: ``count`` validators with ordinals 0..count-1."""

    def _factory(count: int = 3, image: str = "beacond:test") -> list[NodeDescriptor]:
        return [
            NodeDescriptor(role=NodeRole.VALIDATOR, ordinal=i, image=image)
            for i in range(count)
        ]

    return _factory


@pytest.fixture
def plan_files(tmp_dir: Path) -> dict[str, Path]:
    files_dir = tmp_dir / "files"
    files_dir.mkdir()
    paths = {
        "jwt": files_dir / "jwt.hex",
        "kzg": files_dir / "kzg-trusted-setup.json",
        "eth_genesis": files_dir / "eth-genesis.json",
    }
    paths["jwt"].write_text("0x" + "ab" * 32)
    paths["kzg"].write_text('{"g1_lagrange": []}')
    paths["eth_genesis"].write_text('{"config": {"chainId": 80087}}')
    return paths


@pytest.fixture
def plan(plan_files: dict[str, Path], scripts: CeremonyScripts) -> NetworkPlan:
    """Three validators, two seeds, one full node."""
    return NetworkPlan(
        name="test-net",
        nodes=[
            NodeGroup(role=NodeRole.VALIDATOR, count=3, image="beacond:test"),
            NodeGroup(role=NodeRole.SEED, count=2, image="beacond:test"),
            NodeGroup(role=NodeRole.FULL, count=1, image="beacond:test"),
        ],
        scripts=scripts,
        jwt_file=plan_files["jwt"],
        trusted_setup_file=plan_files["kzg"],
        eth_genesis_file=plan_files["eth_genesis"],
        engine_dial_url="http://el-full-0:8551",
    )


@pytest.fixture
def settings(tmp_dir: Path) -> NetworkSettings:
    return NetworkSettings(
        artifact_store_path=tmp_dir / "artifacts",
        ledger_path=tmp_dir / "journal.db",
    )


@pytest.fixture
def upload_inputs(store: NamedArtifactStore, plan_files: dict[str, Path]) -> None:
    """Put the JWT, trusted setup, and EL genesis into the store."""
    store.upload_file(plan_files["jwt"], catalog.JWT_ARTIFACT, filename="jwt-secret.hex")
    store.upload_file(
        plan_files["kzg"], catalog.TRUSTED_SETUP_ARTIFACT,
        filename="kzg-trusted-setup.json",
    )
    store.upload_file(
        plan_files["eth_genesis"], catalog.ETH_GENESIS_ARTIFACT, filename="genesis.json"
    )


@pytest.fixture
def make_executor(store: NamedArtifactStore) -> Callable[..., FakeExecutor]:
    """Factory fixture: a FakeExecutor with scripted outputs or failures."""

    def _factory(
        outputs: dict[str, str] | None = None,
        failures: dict[str, int] | None = None,
    ) -> FakeExecutor:
        return FakeExecutor(store, outputs=outputs, failures=failures)

    return _factory


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """Factory fixture: a FakeSession failing or erroring on chosen calls."""

    def _factory(
        fail_calls: set[int] | None = None,
        error_calls: set[int] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> FakeSession:
        return FakeSession(fail_calls=fail_calls, error_calls=error_calls, payload=payload)

    return _factory
