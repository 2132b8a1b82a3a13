"""Shipwright data models — all Pydantic v2, all frozen (immutable)."""

from shipwright.models.artifacts import ArtifactHandle, StoredArtifact
from shipwright.models.config import (
    DEFAULT_ARTIFACT_NAME,
    DEFAULT_REPO_URL,
    Credentials,
    PipelineConfig,
    RunConfig,
)
from shipwright.models.hosts import InventoryEntry, ProvisionedHost, is_valid_address
from shipwright.models.infra import InfraVariables, NetworkAccessPolicy
from shipwright.models.ledger import LedgerEntry
from shipwright.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
)
from shipwright.models.triggers import RunRequest

__all__ = [
    # artifacts
    "ArtifactHandle",
    "StoredArtifact",
    # config
    "DEFAULT_ARTIFACT_NAME",
    "DEFAULT_REPO_URL",
    "Credentials",
    "PipelineConfig",
    "RunConfig",
    # hosts
    "InventoryEntry",
    "ProvisionedHost",
    "is_valid_address",
    # infra
    "InfraVariables",
    "NetworkAccessPolicy",
    # ledger
    "LedgerEntry",
    # stages
    "StageState",
    "StageDefinition",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "DEFAULT_STAGE_DEFINITIONS",
    # triggers
    "RunRequest",
]
