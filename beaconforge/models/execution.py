"""Remote execution boundary models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class StoreSpec(BaseModel):
    """Capture the file or directory at ``src`` into artifact ``name``."""

    model_config = ConfigDict(frozen=True)

    src: str
    name: str


class ExecRequest(BaseModel):
    """One remote step: run ``command`` in ``image`` with mounts and env.

    ``files`` maps a mount path to the artifact mounted there.
    """

    model_config = ConfigDict(frozen=True)

    description: str
    image: str
    command: str
    files: dict[str, str] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)
    store: list[StoreSpec] = Field(default_factory=list)


class ExecResult(BaseModel):
    """Captured combined output and exit code of a remote step."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0
