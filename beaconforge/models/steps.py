"""Bootstrap step models: the ordering graph of the genesis ceremony."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StepState(str, Enum):
    """State of one bootstrap step within a run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    BLOCKED = "blocked"
    FAILED = "failed"
    PASSED = "passed"


# PASSED is terminal: a produced artifact is never re-produced in a run.
VALID_TRANSITIONS: dict[StepState, set[StepState]] = {
    StepState.NOT_STARTED: {StepState.RUNNING, StepState.BLOCKED},
    StepState.RUNNING: {StepState.PASSED, StepState.FAILED},
    StepState.BLOCKED: {StepState.NOT_STARTED},
    StepState.FAILED: set(),
    StepState.PASSED: set(),
}

# Recomputable steps produce no artifacts and may run again once finished.
RERUN_TRANSITIONS: dict[StepState, set[StepState]] = {
    StepState.FAILED: {StepState.RUNNING},
    StepState.PASSED: {StepState.RUNNING},
}


class StepDefinition(BaseModel):
    """A bootstrap step and the steps that must pass before it runs."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    display_name: str
    ordinal: int
    prerequisites: list[str] = []
    recomputable: bool = False


COLLECT_GENESIS = "collect_genesis"
MERGE_GENESIS = "merge_genesis"
READ_DEPOSIT_COUNT = "read_deposit_count"
READ_DEPOSIT_ROOT = "read_deposit_root"
ASSEMBLE_VALIDATORS = "assemble_validators"
RESOLVE_PERSISTENT_PEERS = "resolve_persistent_peers"
DIAL_PEERS = "dial_peers"

BOOTSTRAP_STEPS: list[StepDefinition] = [
    StepDefinition(
        step_id=COLLECT_GENESIS,
        display_name="Collect validator configs",
        ordinal=0,
    ),
    StepDefinition(
        step_id=MERGE_GENESIS,
        display_name="Merge deposits into genesis",
        ordinal=1,
        prerequisites=[COLLECT_GENESIS],
    ),
    StepDefinition(
        step_id=READ_DEPOSIT_COUNT,
        display_name="Read deposit count",
        ordinal=2,
        prerequisites=[MERGE_GENESIS],
    ),
    StepDefinition(
        step_id=READ_DEPOSIT_ROOT,
        display_name="Read deposit root",
        ordinal=3,
        prerequisites=[READ_DEPOSIT_COUNT],
    ),
    StepDefinition(
        step_id=ASSEMBLE_VALIDATORS,
        display_name="Assemble validator configs",
        ordinal=4,
        prerequisites=[READ_DEPOSIT_ROOT],
    ),
    StepDefinition(
        step_id=RESOLVE_PERSISTENT_PEERS,
        display_name="Resolve persistent peers",
        ordinal=5,
        recomputable=True,
    ),
    StepDefinition(
        step_id=DIAL_PEERS,
        display_name="Dial peers",
        ordinal=6,
        prerequisites=[ASSEMBLE_VALIDATORS],
        recomputable=True,
    ),
]
