import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from geo_writeback.clients.exceptions import RepositoryError, RepositoryPermissionError
from geo_writeback.models import (
    BlockKind,
    CommitResult,
    DestinationRepository,
    LayoutConfig,
    PageSuggestion,
    ProjectType,
    RemoteFile,
    RouteStrategy,
)
from geo_writeback.review import InMemorySessionStore, ReviewSessionManager
from geo_writeback.writeback import plan_changes

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

ABOUT_PATH = "src/pages/about/index.astro"
SERVICES_PATH = "src/pages/services/index.astro"

ABOUT_PAGE = """---
title: About
---
<html>
<body>
  <main>
    <h1>About us</h1>
  </main>
</body>
</html>
"""


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeRepository:
    """In-memory RepositoryClient that records every call."""

    def __init__(self, files: dict[str, str] | None = None):
        self.files = dict(files or {})
        self.calls: list[tuple[str, str | None]] = []
        self.fail_on: dict[str, RepositoryError] = {}
        self.deny_write = False
        self.has_write_access = True
        self._commits = 0

    @staticmethod
    def token_for(content: str) -> str:
        return hashlib.sha1(content.encode("utf-8")).hexdigest()

    async def get_file(self, path: str) -> RemoteFile | None:
        self.calls.append(("get_file", path))
        if path not in self.files:
            return None
        content = self.files[path]
        return RemoteFile(path=path, content=content, revision_token=self.token_for(content))

    async def upsert_file(self, path, content, message, previous_revision_token=None):
        self.calls.append(("upsert_file", path))
        if path in self.fail_on:
            raise self.fail_on[path]
        if previous_revision_token is not None:
            assert previous_revision_token == self.token_for(self.files[path])
        self.files[path] = content
        self._commits += 1
        return CommitResult(commit_id=f"commit-{self._commits}", path=path, message=message)

    async def verify_write_access(self) -> bool:
        self.calls.append(("verify_write_access", None))
        if self.deny_write:
            raise RepositoryPermissionError("No push access", status=403)
        return self.has_write_access

    @property
    def upserts(self) -> list[str]:
        return [path for name, path in self.calls if name == "upsert_file"]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def manager(store, clock):
    return ReviewSessionManager(store, clock=clock)


@pytest.fixture
def nested_astro():
    return LayoutConfig(
        project_type=ProjectType.ASTRO_PAGES, route_strategy=RouteStrategy.PATH_INDEX
    )


@pytest.fixture
def flat_static():
    return LayoutConfig(
        project_type=ProjectType.STATIC_HTML, route_strategy=RouteStrategy.FLAT_HTML
    )


@pytest.fixture
def destination():
    return DestinationRepository(
        owner="acme",
        repo="site",
        branch="main",
        project_type=ProjectType.ASTRO_PAGES,
        route_strategy=RouteStrategy.PATH_INDEX,
    )


@pytest.fixture
def plan(nested_astro):
    """One update (about) and one create (services)."""
    pages = [
        PageSuggestion(
            url="https://x.test/services",
            blocks={BlockKind.FAQ: "<section>Services FAQ</section>"},
        ),
        PageSuggestion(
            url="https://x.test/about",
            blocks={BlockKind.ANSWER_CAPSULE: "<p>We fix pipes.</p>"},
        ),
    ]
    return plan_changes(pages, nested_astro, {ABOUT_PATH: ABOUT_PAGE})


@pytest.fixture
def repository():
    return FakeRepository({ABOUT_PATH: ABOUT_PAGE})


@pytest.fixture
def about_page():
    return ABOUT_PAGE
