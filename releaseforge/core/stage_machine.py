"""Deterministic stage state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Prerequisites PASSED before a stage may enter RUNNING
- Cascade blocking of every transitive dependent on failure
- Every transition recorded in order for the run summary
"""

from __future__ import annotations

from collections import deque

from releaseforge.models.stages import (
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
    StageTransition,
)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class PrerequisiteNotMetError(RuntimeError):
    """Raised when a stage cannot run because prerequisites are not met."""


class StageMachine:
    """Tracks stage states for a single pipeline run.

    Parameters
    ----------
    definitions:
        Stage definitions, in execution order.
    """

    def __init__(self, definitions: list[StageDefinition]) -> None:
        self._definitions = {sd.stage_id: sd for sd in definitions}
        self._order = [sd.stage_id for sd in definitions]
        self._dependents: dict[str, list[str]] = {sid: [] for sid in self._order}
        for sd in definitions:
            for prereq in sd.prerequisites:
                if prereq not in self._dependents:
                    raise ValueError(f"{sd.stage_id} depends on unknown stage {prereq}")
                self._dependents[prereq].append(sd.stage_id)
        self._states: dict[str, StageState] = {
            sid: StageState.NOT_STARTED for sid in self._order
        }
        self._history: list[StageTransition] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def stage_ids(self) -> list[str]:
        return list(self._order)

    def definition(self, stage_id: str) -> StageDefinition:
        return self._definitions[stage_id]

    def get_state(self, stage_id: str) -> StageState:
        return self._states[stage_id]

    def get_all_states(self) -> dict[str, StageState]:
        return dict(self._states)

    @property
    def history(self) -> list[StageTransition]:
        return list(self._history)

    def get_dependents(self, stage_id: str) -> list[str]:
        """All transitive dependents of *stage_id* (BFS order)."""
        seen: list[str] = []
        queue = deque(self._dependents.get(stage_id, []))
        while queue:
            sid = queue.popleft()
            if sid in seen:
                continue
            seen.append(sid)
            queue.extend(self._dependents.get(sid, []))
        return seen

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(
        self,
        stage_id: str,
        target_state: StageState,
        *,
        input_hash: str = "",
        output_hash: str = "",
        detail: str = "",
    ) -> StageTransition:
        current = self._states[stage_id]
        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {stage_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == StageState.RUNNING:
            blocking = [
                f"{p} is {self._states[p].value}"
                for p in self._definitions[stage_id].prerequisites
                if self._states[p] != StageState.PASSED
            ]
            if blocking:
                raise PrerequisiteNotMetError(
                    f"Cannot start {stage_id}: {'; '.join(blocking)}"
                )

        record = StageTransition(
            stage_id=stage_id,
            from_state=current,
            to_state=target_state,
            input_hash=input_hash,
            output_hash=output_hash,
            detail=detail,
        )
        self._history.append(record)
        self._states[stage_id] = target_state

        if target_state == StageState.FAILED:
            for blocked_id in self.get_dependents(stage_id):
                if self._states[blocked_id] == StageState.NOT_STARTED:
                    self._states[blocked_id] = StageState.BLOCKED
                    self._history.append(
                        StageTransition(
                            stage_id=blocked_id,
                            from_state=StageState.NOT_STARTED,
                            to_state=StageState.BLOCKED,
                            detail=f"blocked by {stage_id}",
                        )
                    )
        return record
