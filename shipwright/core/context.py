"""Pipeline context — the explicit hand-off between stages.

Stages never talk to each other through environment variables or shared
files.  Build sets ``artifact``, provision sets ``host``, and deploy reads
both back through ``require_artifact()`` and ``require_host()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from shipwright.core.artifact_store import ArtifactSlots
from shipwright.errors import HandoffError
from shipwright.models.artifacts import ArtifactHandle
from shipwright.models.config import Credentials, PipelineConfig
from shipwright.models.hosts import ProvisionedHost


@dataclass
class PipelineContext:
    """Run-wide state passed to every stage.

    Attributes:
        run_id: Identifier of the current run
        repo_url: Source repository to build
        repo_ref: Optional branch or tag; None means the repository default
        config: Non-secret pipeline configuration
        credentials: The secrets boundary
        workdir: Per-run scratch directory
        slots: Named artifact slots for this run
        artifact: Set by the build stage
        host: Set by the provision stage
        stage_results: Result dicts keyed by stage id
    """

    run_id: str
    repo_url: str
    config: PipelineConfig
    credentials: Credentials
    workdir: Path
    slots: ArtifactSlots
    repo_ref: str | None = None
    artifact: ArtifactHandle | None = None
    host: ProvisionedHost | None = None
    stage_results: dict[str, dict[str, Any]] = field(default_factory=dict)

    def require_artifact(self) -> ArtifactHandle:
        """Return the published artifact or raise ``HandoffError``."""
        if self.artifact is None:
            raise HandoffError(
                f"No artifact published in run {self.run_id}; the build stage "
                "must pass before deploy"
            )
        return self.artifact

    def require_host(self) -> ProvisionedHost:
        """Return the provisioned host or raise ``HandoffError``."""
        if self.host is None:
            raise HandoffError(
                f"No host provisioned in run {self.run_id}; the provision stage "
                "must pass before deploy"
            )
        return self.host
