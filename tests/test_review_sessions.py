"""Tests for the review session manager lifecycle."""

import asyncio
import json
import uuid
from datetime import timedelta

import pytest

from geo_writeback.clients.exceptions import RepositoryError
from geo_writeback.models import BlockKind, PageSuggestion, SessionStatus
from geo_writeback.review import (
    ApplyWriteError,
    SessionAlreadyAppliedError,
    SessionExpiredError,
    SessionNotApprovedError,
    SessionNotFoundError,
    SessionStoreError,
    StaleContentError,
)
from geo_writeback.review.sessions import commit_message_for, is_valid_session_id
from geo_writeback.review.store import build_session_key
from geo_writeback.writeback import plan_changes

ABOUT_PATH = "src/pages/about/index.astro"
SERVICES_PATH = "src/pages/services/index.astro"


def create_session(manager, plan, destination, **kwargs) -> str:
    created = asyncio.run(
        manager.create(
            "https://x.test",
            ["/about", "/services"],
            plan.planned_changes,
            plan.diff_previews,
            destination,
            **kwargs,
        )
    )
    return created.session_id


def approved_session(manager, plan, destination) -> str:
    session_id = create_session(manager, plan, destination)
    asyncio.run(manager.approve(session_id))
    return session_id


def stored_status(store, session_id: str) -> str:
    raw = asyncio.run(store.get(build_session_key(session_id)))
    return json.loads(raw)["status"]


class TestCreate:
    def test_creates_pending_session(self, manager, store, clock, plan, destination):
        created = asyncio.run(
            manager.create("https://x.test", ["/about"], plan.planned_changes, plan.diff_previews, destination)
        )
        assert uuid.UUID(created.session_id).version == 4
        assert created.expires_at == clock.now + timedelta(hours=24)
        assert stored_status(store, created.session_id) == "pending"

    def test_session_ids_unique(self, manager, plan, destination):
        first = create_session(manager, plan, destination)
        second = create_session(manager, plan, destination)
        assert first != second

    def test_custom_ttl(self, manager, clock, plan, destination):
        session_id = create_session(manager, plan, destination, ttl=timedelta(minutes=5))
        session = asyncio.run(manager.get(session_id))
        assert session.expires_at == clock.now + timedelta(minutes=5)

    def test_non_positive_ttl_rejected(self, manager, plan, destination):
        with pytest.raises(ValueError):
            create_session(manager, plan, destination, ttl=timedelta(0))

    def test_round_trips_plan(self, manager, plan, destination):
        session = asyncio.run(manager.get(create_session(manager, plan, destination)))
        assert session.planned_changes == plan.planned_changes
        assert session.diff_previews == plan.diff_previews
        assert session.destination_repository == destination
        assert session.resulting_commit_ids is None


class TestGet:
    def test_malformed_id(self, manager):
        with pytest.raises(SessionNotFoundError) as exc_info:
            asyncio.run(manager.get("../../etc/passwd"))
        assert exc_info.value.code == "SESSION_NOT_FOUND"

    def test_unknown_id(self, manager):
        with pytest.raises(SessionNotFoundError):
            asyncio.run(manager.get(str(uuid.uuid4())))

    def test_undecodable_record(self, manager, store):
        session_id = str(uuid.uuid4())
        asyncio.run(store.put(build_session_key(session_id), "{not json", 60))
        with pytest.raises(SessionStoreError):
            asyncio.run(manager.get(session_id))

    def test_read_after_expiry_persists_expired(self, manager, store, clock, plan, destination):
        session_id = create_session(manager, plan, destination, ttl=timedelta(milliseconds=1000))
        clock.advance(milliseconds=1100)

        session = asyncio.run(manager.get(session_id))

        assert session.status == SessionStatus.EXPIRED
        assert stored_status(store, session_id) == "expired"

    def test_session_id_validation(self):
        assert is_valid_session_id(str(uuid.uuid4()))
        assert not is_valid_session_id(str(uuid.uuid1()))
        assert not is_valid_session_id("not-a-uuid")


class TestSnapshot:
    def test_content_omitted_by_default(self, manager, plan, destination):
        snapshot = asyncio.run(manager.snapshot(create_session(manager, plan, destination)))
        change = snapshot["planned_changes"][0]
        assert "previous_content" not in change
        assert "merged_content" not in change
        assert change["destination_file_path"] == ABOUT_PATH
        assert snapshot["status"] == "pending"
        json.dumps(snapshot)

    def test_content_included_on_request(self, manager, plan, destination):
        session_id = create_session(manager, plan, destination)
        snapshot = asyncio.run(manager.snapshot(session_id, include_content=True))
        assert "merged_content" in snapshot["planned_changes"][0]


class TestApprove:
    def test_pending_to_approved(self, manager, store, plan, destination):
        session_id = create_session(manager, plan, destination)
        result = asyncio.run(manager.approve(session_id))
        assert result.previous_status == SessionStatus.PENDING
        assert result.new_status == SessionStatus.APPROVED
        assert stored_status(store, session_id) == "approved"

    def test_approve_twice_is_noop(self, manager, store, plan, destination):
        session_id = approved_session(manager, plan, destination)
        writes = store.put_count

        result = asyncio.run(manager.approve(session_id))

        assert result.previous_status == SessionStatus.APPROVED
        assert result.new_status == SessionStatus.APPROVED
        assert store.put_count == writes

    def test_approve_expired(self, manager, clock, plan, destination):
        session_id = create_session(manager, plan, destination, ttl=timedelta(seconds=1))
        clock.advance(seconds=2)
        with pytest.raises(SessionExpiredError) as exc_info:
            asyncio.run(manager.approve(session_id))
        assert exc_info.value.code == "SESSION_EXPIRED"

    def test_approve_applied(self, manager, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        asyncio.run(manager.apply(session_id, repository))
        with pytest.raises(SessionAlreadyAppliedError) as exc_info:
            asyncio.run(manager.approve(session_id))
        assert exc_info.value.code == "SESSION_ALREADY_APPLIED"


class TestApply:
    def test_writes_changes_in_path_order(self, manager, store, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)

        result = asyncio.run(manager.apply(session_id, repository))

        assert result.applied is True
        assert result.replayed is False
        assert result.commit_ids == ["commit-1", "commit-2"]
        assert repository.calls[0] == ("verify_write_access", None)
        assert repository.upserts == [ABOUT_PATH, SERVICES_PATH]
        by_path = {c.destination_file_path: c.merged_content for c in plan.planned_changes}
        assert repository.files == by_path

        session = asyncio.run(manager.get(session_id))
        assert session.status == SessionStatus.APPLIED
        assert session.resulting_commit_ids == ["commit-1", "commit-2"]

    def test_status_and_commit_ids_persisted_in_one_write(self, manager, store, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        writes = store.put_count
        asyncio.run(manager.apply(session_id, repository))
        assert store.put_count == writes + 1

    def test_apply_twice_replays_without_repository_calls(self, manager, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        first = asyncio.run(manager.apply(session_id, repository))
        repository.calls.clear()

        second = asyncio.run(manager.apply(session_id, repository))

        assert second.commit_ids == first.commit_ids
        assert second.replayed is True
        assert repository.calls == []

    def test_pending_session_rejected(self, manager, plan, destination, repository):
        session_id = create_session(manager, plan, destination)
        with pytest.raises(SessionNotApprovedError) as exc_info:
            asyncio.run(manager.apply(session_id, repository))
        assert exc_info.value.code == "SESSION_NOT_APPROVED"
        assert repository.calls == []

    def test_expired_session_rejected(self, manager, clock, plan, destination, repository):
        session_id = create_session(manager, plan, destination, ttl=timedelta(milliseconds=1000))
        clock.advance(milliseconds=1100)
        with pytest.raises(SessionExpiredError):
            asyncio.run(manager.apply(session_id, repository))
        assert repository.calls == []

    def test_approved_then_expired_rejected(self, manager, clock, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        clock.advance(hours=24, seconds=1)
        with pytest.raises(SessionExpiredError):
            asyncio.run(manager.apply(session_id, repository))

    def test_noop_changes_not_written(self, manager, nested_astro, plan, destination, repository):
        merged = {c.destination_file_path: c.merged_content for c in plan.planned_changes}
        noop_plan = plan_changes(
            [
                PageSuggestion(
                    url="https://x.test/about",
                    blocks={BlockKind.ANSWER_CAPSULE: "<p>We fix pipes.</p>"},
                )
            ],
            nested_astro,
            merged,
        )
        repository.files.update(merged)
        session_id = approved_session(manager, noop_plan, destination)

        result = asyncio.run(manager.apply(session_id, repository))

        assert result.commit_ids == []
        assert repository.upserts == []

    def test_stale_remote_content_refused(self, manager, store, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        repository.files[ABOUT_PATH] = "<html>edited by someone else</html>\n"

        with pytest.raises(StaleContentError) as exc_info:
            asyncio.run(manager.apply(session_id, repository))

        assert exc_info.value.path == ABOUT_PATH
        assert exc_info.value.status == 409
        assert repository.upserts == []
        assert stored_status(store, session_id) == "approved"

    def test_write_failure_leaves_session_retryable(self, manager, store, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        repository.fail_on[SERVICES_PATH] = RepositoryError("boom", status=502, path=SERVICES_PATH)

        with pytest.raises(ApplyWriteError) as exc_info:
            asyncio.run(manager.apply(session_id, repository))

        assert exc_info.value.path == SERVICES_PATH
        assert exc_info.value.status == 502
        assert exc_info.value.written_commit_ids == ["commit-1"]
        assert stored_status(store, session_id) == "approved"

        repository.fail_on.clear()
        result = asyncio.run(manager.apply(session_id, repository))
        assert len(result.commit_ids) == 2
        assert stored_status(store, session_id) == "applied"

    def test_missing_write_access(self, manager, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        repository.deny_write = True

        with pytest.raises(ApplyWriteError) as exc_info:
            asyncio.run(manager.apply(session_id, repository))

        assert exc_info.value.status == 403
        assert repository.upserts == []

    def test_write_access_reported_false(self, manager, store, plan, destination, repository):
        session_id = approved_session(manager, plan, destination)
        repository.has_write_access = False

        with pytest.raises(ApplyWriteError) as exc_info:
            asyncio.run(manager.apply(session_id, repository))

        assert exc_info.value.status == 403
        assert repository.upserts == []
        assert stored_status(store, session_id) == "approved"


def test_commit_message_uses_url_path(plan):
    assert commit_message_for(plan.planned_changes[0]) == "GEO improvement: /about"
