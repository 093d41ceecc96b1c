"""Models for planned file changes."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from geo_writeback.models.block_models import BlockKind
from geo_writeback.models.path_models import PathFailure


class ChangeAction(str, Enum):
    """What applying a planned change does to its destination file."""

    CREATE = "create"
    UPDATE = "update"
    NO_OP = "no-op"


class PageSuggestion(BaseModel):
    """Upstream suggestions for one target page.

    Block text is opaque: it is wrapped and merged, never interpreted.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    blocks: dict[BlockKind, str] = Field(default_factory=dict)
    priority_notes: list[str] = Field(default_factory=list)


class PlannedFileChange(BaseModel):
    """An exact, immutable file-level change computed before any write."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    destination_file_path: str
    action: ChangeAction
    previous_content: str | None = None  # None when the file does not exist yet
    merged_content: str
    requires_human_review: bool = False
    review_notes: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_action(self) -> "PlannedFileChange":
        if self.previous_content is None:
            if self.action != ChangeAction.CREATE:
                raise ValueError("a change without previous content must be 'create'")
        elif self.previous_content == self.merged_content:
            if self.action != ChangeAction.NO_OP:
                raise ValueError("unchanged content must be planned as 'no-op'")
        elif self.action != ChangeAction.UPDATE:
            raise ValueError("changed content must be planned as 'update'")
        return self


class PlanError(BaseModel):
    """A page that could not be planned, reported instead of aborting."""

    model_config = ConfigDict(frozen=True)

    url: str
    reason: str
    detail: str | None = None


class DiffPreview(BaseModel):
    """Review-facing diff for a single planned file change."""

    model_config = ConfigDict(frozen=True)

    destination_file_path: str  # Relative path from repo root
    action: ChangeAction
    rendered_diff: str
    was_truncated: bool = False


class PlanResult(BaseModel):
    """Everything planning produced, sorted by destination path."""

    model_config = ConfigDict(frozen=True)

    planned_changes: list[PlannedFileChange] = Field(default_factory=list)
    diff_previews: list[DiffPreview] = Field(default_factory=list)
    path_errors: list[PathFailure] = Field(default_factory=list)
    block_errors: list[PlanError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def changed_files(self) -> list[str]:
        return [
            change.destination_file_path
            for change in self.planned_changes
            if change.action != ChangeAction.NO_OP
        ]
