"""Resolved pipeline trigger."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from shipwright.models.config import DEFAULT_REPO_URL


class RunRequest(BaseModel):
    """What to build, and why a run was started."""

    model_config = ConfigDict(frozen=True)

    repo_url: str = DEFAULT_REPO_URL
    repo_ref: str | None = None
    reason: str = "manual"
