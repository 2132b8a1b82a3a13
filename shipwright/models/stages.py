"""Stage state machine models for the build -> provision -> deploy chain."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class StageState(str, Enum):
    """Strict state model for each pipeline stage."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    BLOCKED = "blocked"
    FAILED = "failed"
    PASSED = "passed"


# Valid state transitions, enforced by StageMachine.
# A run never retries, so everything past RUNNING is terminal.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {StageState.RUNNING, StageState.BLOCKED},
    StageState.RUNNING: {StageState.PASSED, StageState.FAILED},
    StageState.BLOCKED: set(),
    StageState.FAILED: set(),
    StageState.PASSED: set(),
}

TERMINAL_STATES: frozenset[StageState] = frozenset(
    state for state, targets in VALID_TRANSITIONS.items() if not targets
)


class StageDefinition(BaseModel):
    """Defines a pipeline stage and its prerequisites.

    A stage cannot enter RUNNING unless every prerequisite is PASSED.
    """

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    ordinal: int
    prerequisites: list[str] = []


DEFAULT_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(
        stage_id="build",
        display_name="Build",
        ordinal=0,
        prerequisites=[],
    ),
    StageDefinition(
        stage_id="provision",
        display_name="Provision",
        ordinal=1,
        prerequisites=["build"],
    ),
    StageDefinition(
        stage_id="deploy",
        display_name="Deploy",
        ordinal=2,
        prerequisites=["build", "provision"],
    ),
]
