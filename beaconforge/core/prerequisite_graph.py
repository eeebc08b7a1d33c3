"""Prerequisite DAG over bootstrap steps with cascade blocking.

- No step runs unless all its prerequisites have PASSED.
- When a step fails, all transitive dependents are BLOCKED.
"""

from __future__ import annotations

from collections import deque

from beaconforge.models.steps import StepDefinition, StepState


class PrerequisiteNotMetError(RuntimeError):
    """Raised when a step cannot run because prerequisites are not met."""


class CyclicDependencyError(ValueError):
    """Raised when the prerequisite graph contains a cycle."""


class PrerequisiteGraph:
    """Directed acyclic graph of step prerequisites."""

    def __init__(self, step_definitions: list[StepDefinition]) -> None:
        self._steps: dict[str, StepDefinition] = {
            sd.step_id: sd for sd in step_definitions
        }
        self._prerequisites: dict[str, list[str]] = {
            sd.step_id: list(sd.prerequisites) for sd in step_definitions
        }
        # Reverse edges: step_id -> steps that depend on it
        self._dependents: dict[str, list[str]] = {
            sd.step_id: [] for sd in step_definitions
        }
        for sd in step_definitions:
            for prereq in sd.prerequisites:
                if prereq not in self._steps:
                    raise ValueError(
                        f"Step {sd.step_id} depends on unknown step {prereq}"
                    )
                self._dependents[prereq].append(sd.step_id)

        self._order = self._topological_order()

    def _topological_order(self) -> list[str]:
        """Kahn's algorithm, ties broken by ordinal."""
        in_degree = {sid: len(p) for sid, p in self._prerequisites.items()}
        ready = sorted(
            (sid for sid, deg in in_degree.items() if deg == 0),
            key=lambda s: self._steps[s].ordinal,
        )
        queue = deque(ready)
        result: list[str] = []
        while queue:
            node = queue.popleft()
            result.append(node)
            for dep in sorted(self._dependents[node], key=lambda s: self._steps[s].ordinal):
                in_degree[dep] -= 1
                if in_degree[dep] == 0:
                    queue.append(dep)

        if len(result) != len(self._steps):
            raise CyclicDependencyError(
                f"Cycle among bootstrap steps: "
                f"{sorted(set(self._steps) - set(result))} never become ready."
            )
        return result

    @property
    def step_ids(self) -> list[str]:
        """All step ids in topological order."""
        return list(self._order)

    def get_definition(self, step_id: str) -> StepDefinition:
        return self._steps[step_id]

    def get_prerequisites(self, step_id: str) -> list[str]:
        return list(self._prerequisites.get(step_id, []))

    def get_dependents(self, step_id: str) -> list[str]:
        """All transitive dependents of *step_id*, in topological order."""
        reached: set[str] = set()
        stack = list(self._dependents.get(step_id, []))
        while stack:
            current = stack.pop()
            if current not in reached:
                reached.add(current)
                stack.extend(self._dependents[current])
        return [sid for sid in self._order if sid in reached]

    def get_blocking_reasons(
        self, step_id: str, states: dict[str, StepState]
    ) -> list[str]:
        return [
            f"{prereq} is {states.get(prereq, StepState.NOT_STARTED).value}"
            for prereq in self._prerequisites.get(step_id, [])
            if states.get(prereq, StepState.NOT_STARTED) != StepState.PASSED
        ]

    def are_prerequisites_met(
        self, step_id: str, states: dict[str, StepState]
    ) -> bool:
        return not self.get_blocking_reasons(step_id, states)

    def cascade_block(
        self, failed_step: str, states: dict[str, StepState]
    ) -> list[str]:
        """Mark every NOT_STARTED dependent of *failed_step* BLOCKED.

        Mutates *states* and returns the newly blocked step ids.
        """
        blocked = []
        for dep in self.get_dependents(failed_step):
            if states.get(dep) == StepState.NOT_STARTED:
                states[dep] = StepState.BLOCKED
                blocked.append(dep)
        return blocked
