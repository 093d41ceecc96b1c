"""Models for representing file diffs."""

from pydantic import BaseModel, ConfigDict


class DiffResult(BaseModel):
    """Output of the diff engine for one file."""

    model_config = ConfigDict(frozen=True)

    text: str  # Unified diff, empty when contents are identical
    truncated: bool = False  # True when cut at a line boundary to fit the bound
    hunk_count: int = 0
