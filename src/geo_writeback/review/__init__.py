"""Review session lifecycle and storage."""

from geo_writeback.review.exceptions import (
    ApplyWriteError,
    InvalidTransitionError,
    ReviewSessionError,
    SessionAlreadyAppliedError,
    SessionExpiredError,
    SessionNotApprovedError,
    SessionNotFoundError,
    SessionStoreError,
    StaleContentError,
)
from geo_writeback.review.sessions import DEFAULT_SESSION_TTL, ReviewSessionManager
from geo_writeback.review.store import InMemorySessionStore, SessionStore, utc_now

__all__ = [
    "DEFAULT_SESSION_TTL",
    "ApplyWriteError",
    "InMemorySessionStore",
    "InvalidTransitionError",
    "ReviewSessionError",
    "ReviewSessionManager",
    "SessionAlreadyAppliedError",
    "SessionExpiredError",
    "SessionNotApprovedError",
    "SessionNotFoundError",
    "SessionStore",
    "SessionStoreError",
    "StaleContentError",
    "utc_now",
]
