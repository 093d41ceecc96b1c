"""Review session models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from geo_writeback.models.path_models import ProjectType, RouteStrategy
from geo_writeback.models.plan_models import DiffPreview, PlannedFileChange


class SessionStatus(str, Enum):
    """Lifecycle status of a review session."""

    PENDING = "pending"
    APPROVED = "approved"
    APPLIED = "applied"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset({SessionStatus.APPLIED, SessionStatus.EXPIRED})


class DestinationRepository(BaseModel):
    """Where a session's changes are written. Never holds credentials."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    branch: str = "main"
    project_type: ProjectType
    route_strategy: RouteStrategy

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class ReviewSession(BaseModel):
    """Persisted, time-bounded record of a plan awaiting approval."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    created_at: datetime
    expires_at: datetime  # fixed at creation, never extended
    status: SessionStatus = SessionStatus.PENDING
    site_url: str
    selected_target_paths: list[str] = Field(default_factory=list)
    planned_changes: list[PlannedFileChange] = Field(default_factory=list)
    diff_previews: list[DiffPreview] = Field(default_factory=list)
    destination_repository: DestinationRepository
    resulting_commit_ids: list[str] | None = None  # set exactly when applied

    def is_expired_at(self, now: datetime) -> bool:
        return now >= self.expires_at


class SessionCreated(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    expires_at: datetime


class ApprovalResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    previous_status: SessionStatus
    new_status: SessionStatus


class ApplyResult(BaseModel):
    """Outcome of an apply call.

    ``replayed`` is True when the session had already been applied and the
    recorded commit ids were returned without writing anything.
    """

    model_config = ConfigDict(frozen=True)

    applied: bool
    commit_ids: list[str] = Field(default_factory=list)
    replayed: bool = False
