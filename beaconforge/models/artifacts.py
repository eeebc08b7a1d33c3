"""Named, content-addressed artifact models (write-once per name)."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class StoredArtifact(BaseModel):
    """A named bundle of files produced by exactly one step.

    ``files`` maps each relative file path inside the bundle to the
    content address of its bytes. The bundle's own ``content_address`` is
    the SHA-256 of its canonical file manifest, so two bundles with the
    same files share an address even under different names.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    content_address: str  # "sha256:<hex>"
    files: dict[str, str]
    producer: str
    size_bytes: int = 0
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class ArtifactSlot(BaseModel):
    """A reserved artifact name awaiting its single producing step."""

    model_config = ConfigDict(frozen=True)

    name: str
    producer: str
