"""Run ledger entry model — one row per stage state transition."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class LedgerEntry(BaseModel):
    """A single entry in the append-only run ledger.

    ``detail`` carries small, non-secret facts about the transition such as
    the provisioned address or the failure type.
    """

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    run_id: str
    stage_id: str
    state_transition: str  # "from_state->to_state", e.g. "not_started->running"
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    input_hash: str = ""
    output_hash: str = ""
    artifact_references: list[str] = []
    detail: dict[str, str] = {}
    previous_entry_hash: str = ""
    entry_hash: str = ""

    @property
    def to_state(self) -> str:
        return self.state_transition.split("->", 1)[-1]
