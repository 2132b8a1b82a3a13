"""Typed exceptions for pipeline stage failures and hand-off violations.

Every stage failure is terminal for the run.  The orchestrator records the
failure, blocks downstream stages and re-raises the original exception; the
CLI converts it into a non-zero exit code.
"""

from __future__ import annotations


class ShipwrightError(Exception):
    """Base exception for all shipwright failures."""


# ---------------------------------------------------------------------------
# Stage failures
# ---------------------------------------------------------------------------


class StageFailure(ShipwrightError):
    """A stage could not complete.

    Attributes:
        stage_id: The stage that failed.
        output: Diagnostic output of the external tool, surfaced as-is.
    """

    stage_id: str = ""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class BuildStageFailure(StageFailure):
    """Failure while cloning or compiling the source repository."""

    stage_id = "build"


class CloneFailure(BuildStageFailure):
    """The source repository could not be cloned."""


class BuildFailure(BuildStageFailure):
    """The build tool failed or produced no usable artifact."""


class ArtifactSelectionError(BuildFailure):
    """The build produced several candidate artifacts and none was selected.

    Attributes:
        candidates: File names of every candidate artifact.
    """

    def __init__(self, message: str, candidates: list[str] | None = None):
        super().__init__(message)
        self.candidates = list(candidates or [])


class ProvisionStageFailure(StageFailure):
    """Failure while applying the infrastructure description."""

    stage_id = "provision"


class ApplyFailure(ProvisionStageFailure):
    """The infrastructure apply failed or returned unusable outputs."""


class CredentialFailure(ProvisionStageFailure):
    """Cloud credentials are missing or were rejected by the provider."""


class QuotaFailure(ProvisionStageFailure):
    """The provider refused the apply because a quota or limit was hit."""


class DeployStageFailure(StageFailure):
    """Failure while running the playbook against the provisioned host."""

    stage_id = "deploy"


class ConnectFailure(DeployStageFailure):
    """The provisioned host could not be reached."""


class AuthFailure(DeployStageFailure):
    """The host refused the login account or private key."""


class PlaybookTaskFailure(DeployStageFailure):
    """A playbook task failed on the host."""


# ---------------------------------------------------------------------------
# Hand-off and artifact errors
# ---------------------------------------------------------------------------


class HandoffError(ShipwrightError):
    """A stage asked for state its predecessor never published."""


class ArtifactError(ShipwrightError):
    """Base class for artifact slot violations."""


class ArtifactPublishError(ArtifactError):
    """The artifact was empty, missing, or its slot already had a producer."""


class ArtifactConsumedError(ArtifactError):
    """The artifact was already consumed in this run."""


class ArtifactIntegrityError(ArtifactError):
    """A stored artifact's bytes no longer match its content address."""


# ---------------------------------------------------------------------------
# Configuration guards
# ---------------------------------------------------------------------------


class OpenIngressNotAcknowledgedError(ShipwrightError):
    """World-open ingress was requested without explicit acknowledgment."""
