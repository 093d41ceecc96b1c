"""Review session lifecycle: create, read, approve, apply.

Sessions live in an external key-value store with per-key expiry. Expiry is
applied lazily on read; there is no background sweeper. Status changes are
plain read-modify-write without compare-and-swap, so two concurrent applies
of one session can both write. Writes are idempotent upserts, so the race
yields redundant commits, never corrupted files.
"""

import logging
import uuid
from datetime import timedelta
from typing import Any
from urllib.parse import urlsplit

from pydantic import ValidationError

from geo_writeback.clients.base import RepositoryClient
from geo_writeback.clients.exceptions import RepositoryError
from geo_writeback.models.plan_models import ChangeAction, DiffPreview, PlannedFileChange
from geo_writeback.models.session_models import (
    ApplyResult,
    ApprovalResult,
    DestinationRepository,
    ReviewSession,
    SessionCreated,
    SessionStatus,
)
from geo_writeback.review.exceptions import (
    ApplyWriteError,
    SessionNotFoundError,
    SessionStoreError,
    StaleContentError,
)
from geo_writeback.review.store import Clock, SessionStore, build_session_key, utc_now
from geo_writeback.review.transitions import (
    calculate_expires_at,
    check_can_apply,
    check_can_approve,
    remaining_ttl_seconds,
    should_expire,
    transition,
)

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=24)

_CONTENT_FIELDS = {"previous_content", "merged_content"}


def generate_session_id() -> str:
    return str(uuid.uuid4())


def is_valid_session_id(session_id: str) -> bool:
    try:
        parsed = uuid.UUID(session_id)
    except (ValueError, TypeError, AttributeError):
        return False
    return parsed.version == 4 and str(parsed) == session_id.lower()


def commit_message_for(change: PlannedFileChange) -> str:
    url_path = urlsplit(change.source_url).path or "/"
    return f"GEO improvement: {url_path}"


class ReviewSessionManager:
    """Drives sessions through pending -> approved -> applied.

    The store and clock are explicit handles; nothing is module-global.
    """

    def __init__(
        self,
        store: SessionStore,
        clock: Clock = utc_now,
        default_ttl: timedelta = DEFAULT_SESSION_TTL,
    ) -> None:
        self.store = store
        self.clock = clock
        self.default_ttl = default_ttl

    async def _persist(self, session: ReviewSession) -> None:
        ttl_seconds = remaining_ttl_seconds(session, self.clock())
        await self.store.put(
            build_session_key(session.session_id),
            session.model_dump_json(),
            ttl_seconds,
        )

    async def create(
        self,
        site_url: str,
        selected_target_paths: list[str],
        planned_changes: list[PlannedFileChange],
        diff_previews: list[DiffPreview],
        destination: DestinationRepository,
        ttl: timedelta | None = None,
    ) -> SessionCreated:
        """Persist a new pending session.

        Raises:
            ValueError: If ``ttl`` is not positive.
        """
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= timedelta(0):
            raise ValueError("Session TTL must be positive")

        created_at = self.clock()
        session = ReviewSession(
            session_id=generate_session_id(),
            created_at=created_at,
            expires_at=calculate_expires_at(created_at, ttl),
            status=SessionStatus.PENDING,
            site_url=site_url,
            selected_target_paths=list(selected_target_paths),
            planned_changes=sorted(planned_changes, key=lambda c: c.destination_file_path),
            diff_previews=sorted(diff_previews, key=lambda d: d.destination_file_path),
            destination_repository=destination,
        )
        await self._persist(session)
        logger.info(
            "Created review session %s for %s (%d change(s), expires %s)",
            session.session_id,
            site_url,
            len(session.planned_changes),
            session.expires_at.isoformat(),
        )
        return SessionCreated(session_id=session.session_id, expires_at=session.expires_at)

    async def get(self, session_id: str) -> ReviewSession:
        """Load a session, marking it expired if its time is up.

        Raises:
            SessionNotFoundError: If the id is malformed or nothing is stored.
            SessionStoreError: If the stored record cannot be decoded.
        """
        if not is_valid_session_id(session_id):
            raise SessionNotFoundError(f"Review session not found: {session_id}")

        raw = await self.store.get(build_session_key(session_id))
        if raw is None:
            raise SessionNotFoundError(f"Review session not found: {session_id}")

        try:
            session = ReviewSession.model_validate_json(raw)
        except ValidationError as exc:
            raise SessionStoreError(f"Stored session {session_id} is unreadable") from exc

        if should_expire(session, self.clock()):
            session = transition(session, SessionStatus.EXPIRED)
            await self._persist(session)
            logger.info("Review session %s expired", session_id)
        return session

    async def snapshot(self, session_id: str, include_content: bool = False) -> dict[str, Any]:
        """JSON-ready view of a session; raw file content omitted by default."""
        session = await self.get(session_id)
        exclude = None
        if not include_content:
            exclude = {"planned_changes": {"__all__": _CONTENT_FIELDS}}
        return session.model_dump(mode="json", exclude=exclude)

    async def approve(self, session_id: str) -> ApprovalResult:
        """Approve a pending session. Re-approving is a no-op success.

        Raises:
            SessionExpiredError: If the session has expired.
            SessionAlreadyAppliedError: If the session was already applied.
        """
        session = await self.get(session_id)
        check_can_approve(session, self.clock())

        previous = session.status
        if previous == SessionStatus.APPROVED:
            return ApprovalResult(previous_status=previous, new_status=previous)

        approved = transition(session, SessionStatus.APPROVED)
        await self._persist(approved)
        logger.info("Review session %s approved", session_id)
        return ApprovalResult(previous_status=previous, new_status=approved.status)

    async def apply(self, session_id: str, repository: RepositoryClient) -> ApplyResult:
        """Write an approved session's changes, at most once.

        Files are written in destination-path order. Status ``applied`` and
        the commit ids are persisted together in one store write, after the
        last file. An already-applied session returns its recorded commit
        ids without touching the repository.

        Raises:
            SessionExpiredError: If the session has expired.
            SessionNotApprovedError: If the session is not approved.
            ApplyWriteError: If a repository call fails; the stored session
                is unchanged and apply may be retried.
        """
        session = await self.get(session_id)
        if not check_can_apply(session, self.clock()):
            logger.info("Review session %s already applied; replaying result", session_id)
            return ApplyResult(
                applied=True,
                commit_ids=list(session.resulting_commit_ids or []),
                replayed=True,
            )

        try:
            has_access = await repository.verify_write_access()
        except RepositoryError as exc:
            raise ApplyWriteError(
                f"Write access check failed: {exc}", path=exc.path, status=exc.status
            ) from exc
        if not has_access:
            logger.warning("Review session %s: repository denied write access", session_id)
            raise ApplyWriteError("No write access to the destination repository", status=403)

        changes = sorted(
            (c for c in session.planned_changes if c.action != ChangeAction.NO_OP),
            key=lambda c: c.destination_file_path,
        )
        commit_ids: list[str] = []
        for change in changes:
            commit_ids.append(await self._write_change(repository, change, commit_ids))

        applied = transition(session, SessionStatus.APPLIED, commit_ids=commit_ids)
        await self._persist(applied)
        logger.info(
            "Review session %s applied: %d file(s) written", session_id, len(commit_ids)
        )
        return ApplyResult(applied=True, commit_ids=commit_ids)

    async def _write_change(
        self,
        repository: RepositoryClient,
        change: PlannedFileChange,
        written: list[str],
    ) -> str:
        path = change.destination_file_path
        try:
            remote = await repository.get_file(path)
            remote_content = remote.content if remote is not None else None
            if remote_content not in (change.previous_content, change.merged_content):
                raise StaleContentError(
                    f"{path} changed since the plan was made; re-plan before applying",
                    path=path,
                    status=409,
                    written_commit_ids=written,
                )
            commit = await repository.upsert_file(
                path,
                change.merged_content,
                commit_message_for(change),
                remote.revision_token if remote is not None else None,
            )
        except RepositoryError as exc:
            logger.warning("Write of %s failed (status=%s): %s", path, exc.status, exc)
            raise ApplyWriteError(
                f"Failed to write {path}: {exc}",
                path=path,
                status=exc.status,
                written_commit_ids=written,
            ) from exc
        return commit.commit_id
