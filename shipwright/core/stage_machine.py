"""Deterministic stage state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Prerequisites checked before RUNNING
- Cascade blocking on failure
- Every transition recorded in the run ledger
"""

from __future__ import annotations

import logging

from shipwright.core.prerequisite_graph import PrerequisiteGraph, PrerequisiteNotMetError
from shipwright.core.run_ledger import RunLedger
from shipwright.models.ledger import LedgerEntry
from shipwright.models.stages import VALID_TRANSITIONS, StageState

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class StageMachine:
    """Tracks stage states per run and records every transition.

    Parameters
    ----------
    ledger:
        The run ledger to record transitions into.
    graph:
        The prerequisite graph for dependency checking.
    """

    def __init__(self, ledger: RunLedger, graph: PrerequisiteGraph) -> None:
        self._ledger = ledger
        self._graph = graph
        # run_id -> {stage_id -> StageState}
        self._states: dict[str, dict[str, StageState]] = {}

    def initialize_run(self, run_id: str) -> dict[str, StageState]:
        """Initialize all stages to NOT_STARTED for a new run."""
        states = {sid: StageState.NOT_STARTED for sid in self._graph.stage_ids}
        self._states[run_id] = states
        return dict(states)

    def get_current_state(self, run_id: str, stage_id: str) -> StageState:
        return self._run_states(run_id).get(stage_id, StageState.NOT_STARTED)

    def get_all_states(self, run_id: str) -> dict[str, StageState]:
        return dict(self._run_states(run_id))

    def _run_states(self, run_id: str) -> dict[str, StageState]:
        if run_id not in self._states:
            self._states[run_id] = self.states_from_ledger(run_id)
        return self._states[run_id]

    def states_from_ledger(self, run_id: str) -> dict[str, StageState]:
        """Replay a run's ledger entries into a state map."""
        states = {sid: StageState.NOT_STARTED for sid in self._graph.stage_ids}
        for entry in self._ledger.get_run_entries(run_id):
            try:
                states[entry.stage_id] = StageState(entry.to_state)
            except ValueError:
                logger.warning(
                    "ignoring unknown state %r in ledger entry %s",
                    entry.to_state,
                    entry.entry_id,
                )
        return states

    def transition(
        self,
        run_id: str,
        stage_id: str,
        target_state: StageState,
        *,
        input_hash: str = "",
        output_hash: str = "",
        artifact_references: list[str] | None = None,
        detail: dict[str, str] | None = None,
    ) -> LedgerEntry:
        """Move a stage to *target_state*, recording it in the ledger.

        Entering RUNNING requires all prerequisites PASSED.  Entering FAILED
        blocks every transitive dependent.  Returns the sealed LedgerEntry.
        """
        states = self._run_states(run_id)
        current = states.get(stage_id, StageState.NOT_STARTED)

        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {stage_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == StageState.RUNNING and not self._graph.are_prerequisites_met(
            stage_id, states
        ):
            reasons = self._graph.get_blocking_reasons(stage_id, states)
            raise PrerequisiteNotMetError(
                f"Cannot start {stage_id}: prerequisites not met. "
                f"Blocked by: {'; '.join(reasons)}"
            )

        sealed = self._ledger.append(
            LedgerEntry(
                run_id=run_id,
                stage_id=stage_id,
                state_transition=f"{current.value}->{target_state.value}",
                input_hash=input_hash,
                output_hash=output_hash,
                artifact_references=artifact_references or [],
                detail=detail or {},
            )
        )
        states[stage_id] = target_state

        if target_state == StageState.FAILED:
            for blocked_id in self._graph.cascade_block(stage_id, states):
                self._ledger.append(
                    LedgerEntry(
                        run_id=run_id,
                        stage_id=blocked_id,
                        state_transition=(
                            f"{StageState.NOT_STARTED.value}->{StageState.BLOCKED.value}"
                        ),
                        detail={"upstream": stage_id},
                    )
                )
                logger.info("%s blocked by failed %s", blocked_id, stage_id)

        return sealed

    def can_start(self, run_id: str, stage_id: str) -> tuple[bool, list[str]]:
        """Return (can_start, blocking_reasons) for a stage."""
        states = self._run_states(run_id)
        current = states.get(stage_id, StageState.NOT_STARTED)
        if current != StageState.NOT_STARTED:
            return False, [f"Stage is currently {current.value}, not not_started"]
        if not self._graph.are_prerequisites_met(stage_id, states):
            return False, self._graph.get_blocking_reasons(stage_id, states)
        return True, []
