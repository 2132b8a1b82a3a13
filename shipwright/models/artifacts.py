"""Artifact models — content-addressed blobs and the named build hand-off."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StoredArtifact(BaseModel):
    """Metadata for bytes held in the content-addressed store.

    The content_address is both the identity and the integrity check.
    """

    model_config = ConfigDict(frozen=True)

    content_address: str  # "sha256:<hex>"
    artifact_type: str
    name: str
    size_bytes: int
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    metadata: dict[str, Any] = {}


class ArtifactHandle(BaseModel):
    """One published build output, consumed exactly once by deploy.

    ``name`` is the stable slot name (``"app-jar"``); ``file_name`` is the
    file the build tool actually produced.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    file_name: str
    content_address: str
    size_bytes: int = Field(gt=0)
    published_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
