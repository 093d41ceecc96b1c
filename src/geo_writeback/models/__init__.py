"""Data models for geo-writeback."""

from geo_writeback.models.block_models import (
    BLOCK_ORDER,
    BlockKind,
    ContentBlock,
    FaqItem,
    sentinels_for,
)
from geo_writeback.models.diff_models import DiffResult
from geo_writeback.models.path_models import (
    FileKind,
    LayoutConfig,
    PathFailure,
    PathMapping,
    PathResolution,
    ProjectType,
    RouteStrategy,
    UnsafePathReason,
)
from geo_writeback.models.plan_models import (
    ChangeAction,
    DiffPreview,
    PageSuggestion,
    PlanError,
    PlannedFileChange,
    PlanResult,
)
from geo_writeback.models.repo_models import CommitResult, RemoteFile
from geo_writeback.models.session_models import (
    ApplyResult,
    ApprovalResult,
    DestinationRepository,
    ReviewSession,
    SessionCreated,
    SessionStatus,
)

__all__ = [
    "BLOCK_ORDER",
    "ApplyResult",
    "ApprovalResult",
    "BlockKind",
    "ChangeAction",
    "CommitResult",
    "ContentBlock",
    "DestinationRepository",
    "DiffPreview",
    "DiffResult",
    "FaqItem",
    "FileKind",
    "LayoutConfig",
    "PageSuggestion",
    "PathFailure",
    "PathMapping",
    "PathResolution",
    "PlanError",
    "PlannedFileChange",
    "PlanResult",
    "ProjectType",
    "RemoteFile",
    "ReviewSession",
    "RouteStrategy",
    "SessionCreated",
    "SessionStatus",
    "UnsafePathReason",
    "sentinels_for",
]
