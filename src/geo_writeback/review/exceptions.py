"""Exceptions for review session operations.

Each lifecycle violation has its own class and a stable ``code`` so callers
can tell expired, already-applied and not-yet-approved apart.
"""


class ReviewSessionError(Exception):
    """Base exception for all review session operations."""

    code = "SESSION_ERROR"


class SessionNotFoundError(ReviewSessionError):
    """Raised when no session exists for an id (or the id is malformed)."""

    code = "SESSION_NOT_FOUND"


class SessionExpiredError(ReviewSessionError):
    """Raised when approving or applying a session past its expiry."""

    code = "SESSION_EXPIRED"


class SessionAlreadyAppliedError(ReviewSessionError):
    """Raised when approving a session that has already been applied."""

    code = "SESSION_ALREADY_APPLIED"


class SessionNotApprovedError(ReviewSessionError):
    """Raised when applying a session that has not been approved."""

    code = "SESSION_NOT_APPROVED"


class InvalidTransitionError(ReviewSessionError):
    """Raised when a status change is not an allowed edge."""

    code = "INVALID_TRANSITION"


class SessionStoreError(ReviewSessionError):
    """Raised when a stored session record cannot be decoded."""

    code = "SESSION_STORE_ERROR"


class ApplyWriteError(ReviewSessionError):
    """Raised when a repository write fails part-way through an apply.

    The stored session is left unchanged; retrying apply is safe because
    every write is an upsert of identical content.
    """

    code = "APPLY_WRITE_FAILED"

    def __init__(
        self,
        message: str,
        path: str | None = None,
        status: int | None = None,
        written_commit_ids: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.status = status
        self.written_commit_ids = list(written_commit_ids or [])


class StaleContentError(ApplyWriteError):
    """Raised when a destination file changed since the plan was made."""

    code = "STALE_CONTENT"
