"""Genesis Ceremony Coordinator.

Two-phase aggregation across N validators, run as strictly ordered steps:

1. collect: one remote run of the collect script against validator 0's
   image generates every validator's keyring/config plus a working
   genesis (N + 1 artifacts).
2. merge: one remote run folds the premined deposits and the
   execution-layer genesis into the final genesis, emitting the deposit
   count and root.
3. read: two remote reads print the deposit count and root; each is
   stripped and validated before it can reach any validator's env.

A failing step is fatal; nothing is retried and no partial genesis is
ever returned.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from beaconforge import catalog
from beaconforge.core.artifact_store import NamedArtifactStore
from beaconforge.core.executor import RemoteExecutor, execute
from beaconforge.core.node_config import NodeConfigError
from beaconforge.core.step_machine import StepMachine
from beaconforge.models.execution import ExecRequest, StoreSpec
from beaconforge.models.genesis import ChainParams, GenesisDepositData, check_hex
from beaconforge.models.nodes import NodeDescriptor
from beaconforge.models.plan import CeremonyScripts
from beaconforge.models.steps import (
    COLLECT_GENESIS,
    MERGE_GENESIS,
    READ_DEPOSIT_COUNT,
    READ_DEPOSIT_ROOT,
    StepState,
)

logger = logging.getLogger(__name__)

SCRIPTS_DIR = "/app/scripts"
ETH_GENESIS_DIR = "/root/eth_genesis"
CEREMONY_HOME = "/tmp/config_genesis/.beacond"
CEREMONY_GENESIS_DIR = f"{CEREMONY_HOME}/config"
CEREMONY_GENESIS_FILE = f"{CEREMONY_GENESIS_DIR}/genesis.json"
DEPOSIT_DIR = "/tmp/deposit"

COLLECT_SCRIPT_ARTIFACT = "multiple-premined-deposits"
MERGE_SCRIPT_ARTIFACT = "modify-genesis-with-deposit-contract"

COLLECT_DESCRIPTION = "Collecting beacond genesis files"
MERGE_DESCRIPTION = "Merging deposits into beacond genesis"
READ_COUNT_DESCRIPTION = "Reading deposit count"
READ_ROOT_DESCRIPTION = "Reading deposit root"


class MissingArtifactError(RuntimeError):
    """Raised when a step exited 0 without producing its declared artifacts."""

    def __init__(self, description: str, missing: list[str]) -> None:
        self.description = description
        self.missing = missing
        super().__init__(
            f"Step '{description}' did not produce: {', '.join(missing)}"
        )


class CeremonyResult(BaseModel):
    """What the ceremony hands to validator config assembly."""

    model_config = ConfigDict(frozen=True)

    deposit: GenesisDepositData
    validator_artifacts: list[str]
    genesis_artifact: str
    env: dict[str, str]


class GenesisCeremony:
    """Drives collect -> merge -> read count -> read root for one run.

    Parameters
    ----------
    executor:
        Remote execution backend.
    store:
        Artifact store holding uploads and every produced slot.
    machine:
        Step machine enforcing order and journaling each step.
    run_id:
        The bootstrap run these steps belong to.
    chain:
        Chain parameters injected into the scripts' environment.
    scripts:
        Local paths of the collect and merge scripts.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        store: NamedArtifactStore,
        machine: StepMachine,
        *,
        run_id: str,
        chain: ChainParams,
        scripts: CeremonyScripts,
    ) -> None:
        self._executor = executor
        self._store = store
        self._machine = machine
        self._run_id = run_id
        self._chain = chain
        self._scripts = scripts

    def chain_env(self) -> dict[str, str]:
        """Chain parameters as script/startup environment."""
        return {
            catalog.ENV_CHAIN_ID: self._chain.chain_id,
            catalog.ENV_ETH_CHAIN_ID: self._chain.eth_chain_id,
            catalog.ENV_KEYRING_BACKEND: self._chain.keyring_backend,
            catalog.ENV_CHAIN_SPEC: self._chain.chain_spec,
            catalog.ENV_WITHDRAWAL_ADDRESS: self._chain.withdrawal_address,
            catalog.ENV_DEPOSIT_AMOUNT: self._chain.deposit_amount,
        }

    @staticmethod
    def _script_command(script_name: str) -> str:
        path = f"{SCRIPTS_DIR}/{script_name}"
        return f"chmod +x {path} && {path}"

    # ------------------------------------------------------------------
    # Phase 1: collect
    # ------------------------------------------------------------------

    def collect(self, validators: list[NodeDescriptor]) -> list[str]:
        """Generate every validator's config in one remote run.

        Returns the per-validator artifact names, in ordinal order.
        """
        check_ordinals(validators)
        count = len(validators)
        image = validators[0].image
        names = [catalog.validator_artifact(v.ordinal) for v in validators]

        def _collect() -> list[str]:
            store_specs = [
                StoreSpec(src=f"/tmp/config{i}", name=name)
                for i, name in enumerate(names)
            ]
            store_specs.append(
                StoreSpec(
                    src=CEREMONY_GENESIS_FILE,
                    name=catalog.COLLECTED_GENESIS_ARTIFACT,
                )
            )
            for spec in store_specs:
                self._store.reserve(spec.name, COLLECT_DESCRIPTION)
            self._store.upload_file(self._scripts.collect, COLLECT_SCRIPT_ARTIFACT)

            execute(
                self._executor,
                ExecRequest(
                    description=COLLECT_DESCRIPTION,
                    image=image,
                    command=self._script_command(self._scripts.collect.name),
                    files={SCRIPTS_DIR: COLLECT_SCRIPT_ARTIFACT},
                    env={
                        catalog.ENV_NUM_VALS: str(count),
                        catalog.ENV_HOME: CEREMONY_HOME,
                        **self.chain_env(),
                    },
                    store=store_specs,
                ),
            )
            self._require_produced([s.name for s in store_specs], COLLECT_DESCRIPTION)
            return names

        return self._machine.run(
            self._run_id, COLLECT_GENESIS, _collect,
            payload={"validators": count, "image": image},
            artifact_references=names + [catalog.COLLECTED_GENESIS_ARTIFACT],
        )

    # ------------------------------------------------------------------
    # Phase 2: merge & finalize
    # ------------------------------------------------------------------

    def merge(self, image: str) -> str:
        """Fold deposits and the EL genesis into the final genesis artifact."""
        outputs = [
            StoreSpec(src=f"{DEPOSIT_DIR}/count", name=catalog.DEPOSIT_COUNT_ARTIFACT),
            StoreSpec(src=f"{DEPOSIT_DIR}/root", name=catalog.DEPOSIT_ROOT_ARTIFACT),
            StoreSpec(src=CEREMONY_GENESIS_FILE, name=catalog.FINAL_GENESIS_ARTIFACT),
        ]

        def _merge() -> str:
            for spec in outputs:
                self._store.reserve(spec.name, MERGE_DESCRIPTION)
            self._store.upload_file(self._scripts.merge, MERGE_SCRIPT_ARTIFACT)
            execute(
                self._executor,
                ExecRequest(
                    description=MERGE_DESCRIPTION,
                    image=image,
                    command=self._script_command(self._scripts.merge.name),
                    files={
                        SCRIPTS_DIR: MERGE_SCRIPT_ARTIFACT,
                        CEREMONY_GENESIS_DIR: catalog.COLLECTED_GENESIS_ARTIFACT,
                        ETH_GENESIS_DIR: catalog.ETH_GENESIS_ARTIFACT,
                    },
                    env={
                        catalog.ENV_HOME: CEREMONY_HOME,
                        catalog.ENV_ETH_GENESIS: f"{ETH_GENESIS_DIR}/genesis.json",
                        "DEPOSIT_DIR": DEPOSIT_DIR,
                        **self.chain_env(),
                    },
                    store=outputs,
                ),
            )
            self._require_produced([s.name for s in outputs], MERGE_DESCRIPTION)
            return catalog.FINAL_GENESIS_ARTIFACT

        return self._machine.run(
            self._run_id, MERGE_GENESIS, _merge,
            payload={"image": image},
            artifact_references=[s.name for s in outputs],
        )

    # ------------------------------------------------------------------
    # Phase 2: reads
    # ------------------------------------------------------------------

    def _read_scalar(
        self, step_id: str, description: str, artifact: str, field: str, image: str
    ) -> str:
        mount = f"/tmp/{artifact}"

        def _read() -> str:
            # Everything the artifact holds is printed; it holds one file
            result = execute(
                self._executor,
                ExecRequest(
                    description=description,
                    image=image,
                    command=f"cat {mount}/*",
                    files={mount: artifact},
                ),
            )
            return check_hex(field, result.output.strip())

        return self._machine.run(
            self._run_id, step_id, _read, payload={"artifact": artifact}
        )

    def read_deposit_data(self, image: str) -> GenesisDepositData:
        count = self._read_scalar(
            READ_DEPOSIT_COUNT, READ_COUNT_DESCRIPTION,
            catalog.DEPOSIT_COUNT_ARTIFACT, "deposit_count", image,
        )
        root = self._read_scalar(
            READ_DEPOSIT_ROOT, READ_ROOT_DESCRIPTION,
            catalog.DEPOSIT_ROOT_ARTIFACT, "deposit_root", image,
        )
        deposit = GenesisDepositData.from_outputs(count, root)
        logger.info(
            "Genesis deposits: count=%s root=%s", deposit.deposit_count, deposit.deposit_root
        )
        return deposit

    # ------------------------------------------------------------------
    # Whole ceremony
    # ------------------------------------------------------------------

    def run(self, validators: list[NodeDescriptor]) -> CeremonyResult:
        """Run every phase in order and return the validated result."""
        if not self._store.exists(catalog.ETH_GENESIS_ARTIFACT):
            raise NodeConfigError(
                f"Execution-layer genesis artifact '{catalog.ETH_GENESIS_ARTIFACT}' "
                "must be uploaded before the ceremony"
            )
        ordered = sorted(validators, key=lambda v: v.ordinal)
        check_ordinals(ordered)
        logger.info("Starting genesis ceremony for %d validators", len(ordered))
        artifacts = self.collect(ordered)
        image = ordered[0].image
        genesis = self.merge(image)
        deposit = self.read_deposit_data(image)
        return self._result(deposit, artifacts, genesis)

    def recover(self, validators: list[NodeDescriptor]) -> CeremonyResult | None:
        """Rebuild the result of a ceremony this run already completed.

        Returns None unless the deposit root read has passed. The deposit
        values are re-read from the stored merge outputs.
        """
        if self._machine.get_state(self._run_id, READ_DEPOSIT_ROOT) != StepState.PASSED:
            return None
        deposit = GenesisDepositData.from_outputs(
            self._stored_text(catalog.DEPOSIT_COUNT_ARTIFACT),
            self._stored_text(catalog.DEPOSIT_ROOT_ARTIFACT),
        )
        ordered = sorted(validators, key=lambda v: v.ordinal)
        logger.info("Recovered genesis ceremony of run %s", self._run_id)
        return self._result(
            deposit,
            [catalog.validator_artifact(v.ordinal) for v in ordered],
            catalog.FINAL_GENESIS_ARTIFACT,
        )

    def _result(
        self, deposit: GenesisDepositData, artifacts: list[str], genesis: str
    ) -> CeremonyResult:
        return CeremonyResult(
            deposit=deposit,
            validator_artifacts=artifacts,
            genesis_artifact=genesis,
            env={**self.chain_env(), **deposit.as_env()},
        )

    def _stored_text(self, name: str) -> str:
        files = self._store.read(name)
        return "".join(data.decode() for _, data in sorted(files.items()))

    def _require_produced(self, names: list[str], description: str) -> None:
        missing = [n for n in names if not self._store.exists(n)]
        if missing:
            raise MissingArtifactError(description, missing)



def check_ordinals(validators: list[NodeDescriptor]) -> None:
    """Require validator ordinals to be exactly 0..N-1.

    Validator *i* mounts the config artifact the collect step names after
    *i*, so a gap or duplicate would leave a node without its keyring.
    """
    if not validators:
        raise NodeConfigError("the genesis ceremony needs at least one validator")
    ordinals = sorted(v.ordinal for v in validators)
    if ordinals != list(range(len(validators))):
        raise NodeConfigError(
            f"validator ordinals must be 0..{len(validators) - 1}, got {ordinals}"
        )
