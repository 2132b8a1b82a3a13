"""Pipeline orchestrator — runs build, provision and deploy in order.

The Orchestrator wires together the RunLedger, StageMachine,
PrerequisiteGraph, ContentAddressedStore and the stage objects.  Each run is
a fresh build–provision–deploy cycle: nothing from an earlier run is read
back.  The first failing stage aborts the run; its dependants are BLOCKED and
the original exception is re-raised to the caller.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

from shipwright.core.artifact_store import ArtifactSlots, ContentAddressedStore
from shipwright.core.context import PipelineContext
from shipwright.core.prerequisite_graph import PrerequisiteGraph
from shipwright.core.run_ledger import RunLedger
from shipwright.core.runner import CommandRunner
from shipwright.core.stage_machine import StageMachine
from shipwright.models.artifacts import ArtifactHandle
from shipwright.models.config import Credentials, PipelineConfig, RunConfig
from shipwright.models.hosts import ProvisionedHost
from shipwright.models.ledger import LedgerEntry
from shipwright.models.stages import DEFAULT_STAGE_DEFINITIONS, StageState
from shipwright.stages import STAGE_ORDER, build_stages
from shipwright.stages.base import BaseStage

logger = logging.getLogger(__name__)


class RunSummary(BaseModel):
    """Outcome of a run, as seen by the caller."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    states: dict[str, StageState]
    artifact: ArtifactHandle | None = None
    artifact_consumed: bool = False
    host: ProvisionedHost | None = None
    connected_address: str = ""
    app_url: str = ""

    @property
    def succeeded(self) -> bool:
        return all(state == StageState.PASSED for state in self.states.values())


class Orchestrator:
    """Central pipeline coordinator.

    Parameters
    ----------
    config:
        Pipeline configuration.  Uses defaults if not provided.
    credentials:
        The secrets boundary.  Empty if not provided.
    runner:
        Shared command runner for the default stages.
    stages:
        Override the stage objects (keyed by stage id).
    run_id:
        Explicit run id; generated if None.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        credentials: Credentials | None = None,
        *,
        runner: CommandRunner | None = None,
        stages: dict[str, BaseStage] | None = None,
        run_id: str | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.credentials = credentials or Credentials()

        self.ledger = RunLedger(self.config.ledger_db_path)
        self.artifact_store = ContentAddressedStore(self.config.artifact_store_path)
        self.graph = PrerequisiteGraph(DEFAULT_STAGE_DEFINITIONS)
        self.stage_machine = StageMachine(self.ledger, self.graph)

        self.runner = runner or CommandRunner(
            timeout_seconds=self.config.command_timeout_seconds
        )
        self.stages = stages or build_stages(self.runner)

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"sw-{ts}-{uuid.uuid4().hex[:3]}"
        self.run_config: RunConfig | None = None
        self.context: PipelineContext | None = None

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_run(
        self, repo_url: str | None = None, repo_ref: str | None = None
    ) -> PipelineContext:
        """Initialize stage states and a fresh working directory for the run."""
        self.run_config = RunConfig(
            run_id=self.run_id,
            repo_url=repo_url or self.config.repo_url,
            repo_ref=repo_ref or self.config.repo_ref,
            pipeline_config=self.config,
        )
        self.stage_machine.initialize_run(self.run_id)

        workdir = self.config.work_dir / self.run_id
        workdir.mkdir(parents=True, exist_ok=True)

        self.context = PipelineContext(
            run_id=self.run_id,
            repo_url=self.run_config.repo_url,
            repo_ref=self.run_config.repo_ref,
            config=self.config,
            credentials=self.credentials,
            workdir=workdir,
            slots=ArtifactSlots(self.artifact_store, self.run_id),
        )
        logger.info("run %s started for %s", self.run_id, self.run_config.repo_url)
        return self.context

    def execute_stage(self, stage_id: str) -> dict[str, Any]:
        """Run one stage through the stage machine.

        Lifecycle:
        1. Transition to RUNNING (prerequisites checked by the stage machine)
        2. Run the stage
        3. Transition to PASSED, or to FAILED and re-raise

        Returns the stage result dict.
        """
        if self.context is None:
            raise RuntimeError("start_run() must be called before execute_stage()")
        stage = self.stages[stage_id]

        self.stage_machine.transition(self.run_id, stage_id, StageState.RUNNING)

        try:
            result = stage.run_stage(self.context)
        except Exception as exc:
            self.stage_machine.transition(
                self.run_id,
                stage_id,
                StageState.FAILED,
                detail={"error": type(exc).__name__, "message": str(exc)[:500]},
            )
            raise

        self.stage_machine.transition(
            self.run_id,
            stage_id,
            StageState.PASSED,
            input_hash=result.get("_input_hash", ""),
            output_hash=result.get("_output_hash", ""),
            artifact_references=list(result.get("_artifact_refs", [])),
            detail=_ledger_detail(result),
        )
        return result

    def run(
        self,
        repo_url: str | None = None,
        repo_ref: str | None = None,
        *,
        until: str | None = None,
    ) -> RunSummary:
        """Run the pipeline in order, stopping after *until* if given.

        Any stage failure propagates immediately; later stages never start.
        """
        if until is not None and until not in STAGE_ORDER:
            raise ValueError(f"Unknown stage {until!r}; expected one of {STAGE_ORDER}")

        self.start_run(repo_url, repo_ref)
        for stage_id in STAGE_ORDER:
            self.execute_stage(stage_id)
            if stage_id == until:
                break
        return self.summary()

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def summary(self) -> RunSummary:
        """Snapshot of the current run's states and hand-off objects."""
        ctx = self.context
        artifact = ctx.artifact if ctx else None
        deploy_result = ctx.stage_results.get("deploy", {}) if ctx else {}
        return RunSummary(
            run_id=self.run_id,
            states=self.get_states(),
            artifact=artifact,
            artifact_consumed=bool(ctx and artifact and ctx.slots.is_consumed(artifact.name)),
            host=ctx.host if ctx else None,
            connected_address=deploy_result.get("connected_address", ""),
            app_url=deploy_result.get("app_url", ""),
        )

    def get_states(self) -> dict[str, StageState]:
        return self.stage_machine.get_all_states(self.run_id)

    def get_stage_state(self, stage_id: str) -> StageState:
        return self.stage_machine.get_current_state(self.run_id, stage_id)

    def get_run_entries(self) -> list[LedgerEntry]:
        return self.ledger.get_run_entries(self.run_id)

    def verify_chain(self) -> bool:
        return self.ledger.verify_chain(self.run_id)


def _ledger_detail(result: dict[str, Any]) -> dict[str, str]:
    """Scalar, public result fields worth keeping in the ledger."""
    return {
        key: str(value)
        for key, value in result.items()
        if not key.startswith("_") and isinstance(value, (str, int, float, bool))
    }
