"""Stage state machine models — deterministic transitions."""

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


# There is no retry edge out of FAILED: a broken run is never patched over.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {StageState.RUNNING, StageState.BLOCKED},
    StageState.RUNNING: {StageState.PASSED, StageState.FAILED},
    StageState.BLOCKED: set(),
    StageState.FAILED: set(),
    StageState.PASSED: set(),
}


class StageDefinition(BaseModel):
    """Defines a pipeline stage and its prerequisites."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    ordinal: int
    prerequisites: list[str] = []


class StageTransition(BaseModel):
    """Records a single state transition for the run summary."""

    model_config = ConfigDict(frozen=True)

    stage_id: str
    from_state: StageState
    to_state: StageState
    input_hash: str = ""
    output_hash: str = ""
    detail: str = ""


BUILD_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(stage_id="preflight", display_name="Preflight", ordinal=0),
    StageDefinition(
        stage_id="version",
        display_name="Version Resolution",
        ordinal=1,
        prerequisites=["preflight"],
    ),
    StageDefinition(
        stage_id="snapshot",
        display_name="Source Snapshot",
        ordinal=2,
        prerequisites=["version"],
    ),
    StageDefinition(
        stage_id="container_build",
        display_name="Container Build",
        ordinal=3,
        prerequisites=["snapshot"],
    ),
    StageDefinition(
        stage_id="package",
        display_name="Packaging",
        ordinal=4,
        prerequisites=["container_build"],
    ),
    StageDefinition(
        stage_id="integrity",
        display_name="Checksum & Signature",
        ordinal=5,
        prerequisites=["package"],
    ),
]

UPLOAD_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(stage_id="preflight", display_name="Preflight", ordinal=0),
    StageDefinition(
        stage_id="version",
        display_name="Version Resolution",
        ordinal=1,
        prerequisites=["preflight"],
    ),
    StageDefinition(
        stage_id="verify",
        display_name="Local Verification",
        ordinal=2,
        prerequisites=["version"],
    ),
    StageDefinition(
        stage_id="publish",
        display_name="Publish",
        ordinal=3,
        prerequisites=["verify"],
    ),
]
