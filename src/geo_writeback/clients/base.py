"""Interface every destination repository client implements."""

from typing import Protocol

from geo_writeback.models.repo_models import CommitResult, RemoteFile


class RepositoryClient(Protocol):
    async def get_file(self, path: str) -> RemoteFile | None:
        """Return the current file, or None if it does not exist."""
        ...

    async def upsert_file(
        self,
        path: str,
        content: str,
        message: str,
        previous_revision_token: str | None = None,
    ) -> CommitResult:
        """Create or replace a file. Writing identical content is harmless."""
        ...

    async def verify_write_access(self) -> bool:
        """Return True or raise RepositoryError."""
        ...
