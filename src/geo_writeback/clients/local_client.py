"""Repository client backed by a local checkout."""

import hashlib
import logging
import os
from pathlib import Path

from geo_writeback.clients.exceptions import (
    RepositoryConfigError,
    RepositoryError,
    RepositoryPermissionError,
)
from geo_writeback.models.repo_models import CommitResult, RemoteFile

logger = logging.getLogger(__name__)


def content_digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class LocalRepositoryClient:
    """Writes planned content straight into a working tree.

    Revision tokens are SHA-256 digests of the file content; commit ids are
    digests of path plus content, so rewriting identical content yields the
    same id.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise RepositoryConfigError(f"Not a directory: {root}", status=400)

    def _resolve(self, relative_path: str) -> Path:
        # Reject paths with traversal sequences
        if ".." in Path(relative_path).parts:
            raise RepositoryError(
                f"Path escapes repository root: {relative_path}", status=400, path=relative_path
            )
        file_path = (self.root / relative_path).resolve()
        if not file_path.is_relative_to(self.root):
            raise RepositoryError(
                f"Path escapes repository root: {relative_path}", status=400, path=relative_path
            )
        return file_path

    def read_text(self, relative_path: str) -> str | None:
        file_path = self._resolve(relative_path)
        if not file_path.is_file():
            return None
        return file_path.read_text(encoding="utf-8")

    async def get_file(self, path: str) -> RemoteFile | None:
        content = self.read_text(path)
        if content is None:
            return None
        return RemoteFile(path=path, content=content, revision_token=content_digest(content))

    async def upsert_file(
        self,
        path: str,
        content: str,
        message: str,
        previous_revision_token: str | None = None,
    ) -> CommitResult:
        current = self.read_text(path)
        if previous_revision_token is not None:
            if current is None or content_digest(current) != previous_revision_token:
                raise RepositoryError(
                    f"Revision mismatch for {path}", status=409, path=path
                )

        file_path = self._resolve(path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise RepositoryError(f"Failed to write {path}: {exc}", path=path) from exc

        logger.info("Wrote %s (%s)", path, message)
        return CommitResult(
            commit_id=content_digest(f"{path}\0{content}"),
            path=path,
            message=message,
        )

    async def verify_write_access(self) -> bool:
        if not self.root.is_dir():
            raise RepositoryError(f"Repository root missing: {self.root}", status=404)
        if not os.access(self.root, os.W_OK):
            raise RepositoryPermissionError(f"No write access to {self.root}", status=403)
        return True
