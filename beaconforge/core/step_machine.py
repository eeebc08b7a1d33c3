"""Bootstrap step state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table, plus
  RERUN_TRANSITIONS for recomputable steps)
- Prerequisites checked before RUNNING
- Cascade blocking on failure
- Every transition recorded in the step journal
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel

from beaconforge.core.hasher import compute_step_hash
from beaconforge.core.journal import StepJournal
from beaconforge.core.prerequisite_graph import PrerequisiteGraph, PrerequisiteNotMetError
from beaconforge.models.journal import JournalEntry
from beaconforge.models.steps import RERUN_TRANSITIONS, VALID_TRANSITIONS, StepState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class StepMachine:
    """Tracks step states per run and journals every transition.

    Parameters
    ----------
    journal:
        Where transitions are recorded.
    graph:
        The prerequisite graph for dependency checking.
    """

    def __init__(self, journal: StepJournal, graph: PrerequisiteGraph) -> None:
        self._journal = journal
        self._graph = graph
        # run_id -> {step_id -> StepState}
        self._states: dict[str, dict[str, StepState]] = {}

    @property
    def journal(self) -> StepJournal:
        return self._journal

    def initialize_run(self, run_id: str) -> dict[str, StepState]:
        """Start tracking *run_id*. A run already in the journal resumes."""
        if self._journal.get_run_entries(run_id):
            self._rebuild_state(run_id)
        else:
            self._states[run_id] = {
                sid: StepState.NOT_STARTED for sid in self._graph.step_ids
            }
        return dict(self._states[run_id])

    def _run_states(self, run_id: str) -> dict[str, StepState]:
        if run_id not in self._states:
            self._rebuild_state(run_id)
        return self._states[run_id]

    def _rebuild_state(self, run_id: str) -> None:
        """Replay the journal to recover states of an existing run."""
        states = {sid: StepState.NOT_STARTED for sid in self._graph.step_ids}
        for entry in self._journal.get_run_entries(run_id):
            _, _, to_state = entry.state_transition.partition("->")
            if entry.step_id in states and to_state:
                states[entry.step_id] = StepState(to_state)
        self._states[run_id] = states

    def get_state(self, run_id: str, step_id: str) -> StepState:
        return self._run_states(run_id).get(step_id, StepState.NOT_STARTED)

    def get_all_states(self, run_id: str) -> dict[str, StepState]:
        return dict(self._run_states(run_id))

    def transition(
        self,
        run_id: str,
        step_id: str,
        target_state: StepState,
        *,
        detail: str = "",
        input_hash: str = "",
        output_hash: str = "",
        artifact_references: list[str] | None = None,
    ) -> JournalEntry:
        """Move *step_id* to *target_state* and return the sealed entry."""
        states = self._run_states(run_id)
        if step_id not in states:
            raise KeyError(f"Unknown step: {step_id}")
        current = states[step_id]

        allowed = VALID_TRANSITIONS.get(current, set())
        if self._graph.get_definition(step_id).recomputable:
            allowed = allowed | RERUN_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {step_id} from {current.value} to "
                f"{target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == StepState.RUNNING and not self._graph.are_prerequisites_met(
            step_id, states
        ):
            reasons = self._graph.get_blocking_reasons(step_id, states)
            raise PrerequisiteNotMetError(
                f"Cannot start {step_id}: prerequisites not met. "
                f"Blocked by: {'; '.join(reasons)}"
            )

        sealed = self._journal.append(
            JournalEntry(
                run_id=run_id,
                step_id=step_id,
                state_transition=f"{current.value}->{target_state.value}",
                detail=detail,
                input_hash=input_hash,
                output_hash=output_hash,
                artifact_references=artifact_references or [],
            )
        )
        states[step_id] = target_state

        if target_state == StepState.FAILED:
            for blocked_id in self._graph.cascade_block(step_id, states):
                logger.warning("Step %s blocked by failure of %s", blocked_id, step_id)
                self._journal.append(
                    JournalEntry(
                        run_id=run_id,
                        step_id=blocked_id,
                        state_transition=(
                            f"{StepState.NOT_STARTED.value}->{StepState.BLOCKED.value}"
                        ),
                        detail=f"upstream {step_id} failed",
                    )
                )
        return sealed

    def can_start(self, run_id: str, step_id: str) -> tuple[bool, list[str]]:
        """Return (can_start, blocking_reasons)."""
        states = self._run_states(run_id)
        current = states.get(step_id, StepState.NOT_STARTED)
        rerunnable = (
            self._graph.get_definition(step_id).recomputable
            and current in RERUN_TRANSITIONS
        )
        if current != StepState.NOT_STARTED and not rerunnable:
            return False, [f"Step is currently {current.value}, not not_started"]
        reasons = self._graph.get_blocking_reasons(step_id, states)
        return not reasons, reasons

    def run(
        self,
        run_id: str,
        step_id: str,
        action: Callable[[], T],
        *,
        payload: dict[str, Any] | None = None,
        artifact_references: list[str] | None = None,
    ) -> T:
        """Run *action* as step *step_id*: RUNNING, then PASSED or FAILED.

        The exception of a failing action is re-raised after the FAILED
        transition is journaled.
        """
        input_hash = compute_step_hash(step_id, payload or {})
        self.transition(run_id, step_id, StepState.RUNNING, input_hash=input_hash)
        try:
            result = action()
        except Exception as exc:
            self.transition(
                run_id, step_id, StepState.FAILED,
                detail=str(exc), input_hash=input_hash,
            )
            raise
        self.transition(
            run_id, step_id, StepState.PASSED,
            input_hash=input_hash,
            output_hash=compute_step_hash(step_id, {"result": _summarize(result)}),
            artifact_references=artifact_references,
        )
        return result


def _summarize(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, dict):
        return {str(k): _summarize(v) for k, v in result.items()}
    if isinstance(result, (list, tuple)):
        return [_summarize(v) for v in result]
    if isinstance(result, (str, int, float, bool)) or result is None:
        return result
    return repr(result)
