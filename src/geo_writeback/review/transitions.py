"""Pure helpers for review session status transitions.

All functions are stateless and have no I/O.
"""

import math
from datetime import datetime, timedelta

from geo_writeback.models.session_models import (
    TERMINAL_STATUSES,
    ReviewSession,
    SessionStatus,
)
from geo_writeback.review.exceptions import (
    InvalidTransitionError,
    SessionAlreadyAppliedError,
    SessionExpiredError,
    SessionNotApprovedError,
)

STORE_TTL_GRACE_SECONDS = 60

ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.APPROVED, SessionStatus.EXPIRED}),
    SessionStatus.APPROVED: frozenset({SessionStatus.APPLIED, SessionStatus.EXPIRED}),
    SessionStatus.APPLIED: frozenset(),
    SessionStatus.EXPIRED: frozenset(),
}


def calculate_expires_at(created_at: datetime, ttl: timedelta) -> datetime:
    """Return the fixed expiry instant for a session created at ``created_at``."""
    return created_at + ttl


def remaining_ttl_seconds(
    session: ReviewSession,
    now: datetime,
    grace_seconds: int = STORE_TTL_GRACE_SECONDS,
) -> int:
    """Store-level TTL mirroring expires_at.

    The grace period keeps an expired record readable for a while so a late
    read reports "expired" rather than "not found".
    """
    remaining = math.ceil((session.expires_at - now).total_seconds())
    return max(1, max(0, remaining) + grace_seconds)


def is_terminal(status: SessionStatus) -> bool:
    return status in TERMINAL_STATUSES


def should_expire(session: ReviewSession, now: datetime) -> bool:
    """True when a non-terminal session has reached its expiry."""
    return not is_terminal(session.status) and session.is_expired_at(now)


def transition(
    session: ReviewSession,
    new_status: SessionStatus,
    commit_ids: list[str] | None = None,
) -> ReviewSession:
    """Return a copy of ``session`` moved to ``new_status``.

    Args:
        session: Current session snapshot.
        new_status: Target status; must be an allowed edge.
        commit_ids: Required when moving to applied, forbidden otherwise.

    Returns:
        New ReviewSession. The input is not modified.

    Raises:
        InvalidTransitionError: If the edge is not allowed or commit ids are
            missing/unexpected.
    """
    if new_status not in ALLOWED_TRANSITIONS[session.status]:
        raise InvalidTransitionError(
            f"Cannot move session {session.session_id} from "
            f"{session.status.value} to {new_status.value}"
        )

    update: dict = {"status": new_status}
    if new_status == SessionStatus.APPLIED:
        if commit_ids is None:
            raise InvalidTransitionError("Applying a session requires commit ids")
        update["resulting_commit_ids"] = list(commit_ids)
    elif commit_ids is not None:
        raise InvalidTransitionError("Commit ids are only recorded when applying")

    return session.model_copy(update=update)


def check_can_approve(session: ReviewSession, now: datetime) -> None:
    """Raise unless the session may be approved (pending or approved).

    Raises:
        SessionAlreadyAppliedError: If the session was applied.
        SessionExpiredError: If the session is expired or past its expiry.
    """
    if session.status == SessionStatus.APPLIED:
        raise SessionAlreadyAppliedError(
            f"Session {session.session_id} has already been applied"
        )
    if session.status == SessionStatus.EXPIRED or session.is_expired_at(now):
        raise SessionExpiredError(f"Session {session.session_id} has expired")


def check_can_apply(session: ReviewSession, now: datetime) -> bool:
    """Decide whether a session may be applied.

    Returns:
        False when the session is already applied (the caller should replay
        the recorded commit ids), True when it is approved and live.

    Raises:
        SessionExpiredError: If the session is expired or past its expiry.
        SessionNotApprovedError: For any other non-approved status.
    """
    if session.status == SessionStatus.APPLIED:
        return False
    if session.status == SessionStatus.EXPIRED or session.is_expired_at(now):
        raise SessionExpiredError(f"Session {session.session_id} has expired")
    if session.status != SessionStatus.APPROVED:
        raise SessionNotApprovedError(
            f"Session {session.session_id} must be approved before applying"
        )
    return True
