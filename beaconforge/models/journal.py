"""Step journal entry model (append-only, hash-chained)."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class JournalEntry(BaseModel):
    """One step transition of a bootstrap run."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    run_id: str
    step_id: str
    state_transition: str  # "from_state->to_state"
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    detail: str = ""
    input_hash: str = ""
    output_hash: str = ""
    artifact_references: list[str] = []
    previous_entry_hash: str = ""
    entry_hash: str = ""
