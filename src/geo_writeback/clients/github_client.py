"""GitHub Contents API client for write-back.

Tokens are passed at runtime (argument or ``GITHUB_TOKEN``) and never
stored in sessions. Every write is a single-file commit.
"""

import base64
import logging
import os
from typing import Any
from urllib.parse import quote

import httpx

from geo_writeback.clients.exceptions import (
    RepositoryConfigError,
    RepositoryError,
    RepositoryPermissionError,
)
from geo_writeback.models.repo_models import CommitResult, RemoteFile
from geo_writeback.models.session_models import DestinationRepository

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "geo-writeback/0.1 (GitHub Write-Back)"
API_VERSION = "2022-11-28"

_STATUS_MESSAGES = {
    401: "GitHub authentication failed. Check that the token is valid.",
    403: "GitHub permission denied. Token may lack write access to the repository.",
    404: "GitHub resource not found. Check repository name, owner, and branch.",
    409: "GitHub reported a conflict. The branch may have moved; retry the write.",
    422: "GitHub rejected the request. The file SHA may be out of date.",
}


def decode_content(encoded: str) -> str:
    """Decode the base64 payload GitHub returns (it contains newlines)."""
    return base64.b64decode("".join(encoded.split())).decode("utf-8")


def encode_content(content: str) -> str:
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


class GitHubRepositoryClient:
    """Async client for one repository branch."""

    def __init__(
        self,
        owner: str,
        repo: str,
        branch: str = "main",
        token: str | None = None,
        api_base: str | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            owner: Repository owner or organisation.
            repo: Repository name.
            branch: Branch to read from and commit to.
            token: GitHub token. Falls back to GITHUB_TOKEN env var.
            api_base: API root. Falls back to GITHUB_API_BASE, then api.github.com.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport (used by tests).

        Raises:
            RepositoryConfigError: If the token or target is missing.
        """
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.token: str | None = token or os.getenv("GITHUB_TOKEN")
        self.api_base = (api_base or os.getenv("GITHUB_API_BASE") or DEFAULT_API_BASE).rstrip("/")

        if not self.token:
            raise RepositoryConfigError(
                "GitHub token is required for write-back. "
                "Provide via parameter or GITHUB_TOKEN env var.",
                status=401,
            )
        if not (owner and repo and branch):
            raise RepositoryConfigError(
                "Target repository owner, name and branch are required", status=400
            )

        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": USER_AGENT,
                "X-GitHub-Api-Version": API_VERSION,
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    @classmethod
    def for_destination(
        cls,
        destination: DestinationRepository,
        **kwargs: Any,
    ) -> "GitHubRepositoryClient":
        return cls(
            owner=destination.owner,
            repo=destination.repo,
            branch=destination.branch,
            **kwargs,
        )

    async def __aenter__(self) -> "GitHubRepositoryClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(path, safe='/')}"

    async def _request(
        self,
        method: str,
        url: str,
        path: str | None = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RepositoryError(
                f"GitHub request failed: {exc}", status=None, path=path
            ) from exc

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return {}
            return response.json()

        try:
            body: object = response.json()
        except ValueError:
            body = response.text

        message = _STATUS_MESSAGES.get(
            response.status_code,
            f"GitHub API error: {response.status_code} {response.reason_phrase}",
        )
        if path:
            message = f"{message} (path: {path})"
        error_cls = RepositoryPermissionError if response.status_code == 403 else RepositoryError
        raise error_cls(message, status=response.status_code, path=path, response=body)

    async def get_file(self, path: str) -> RemoteFile | None:
        try:
            data = await self._request(
                "GET", self._contents_url(path), path=path, params={"ref": self.branch}
            )
        except RepositoryError as exc:
            if exc.status == 404:
                return None
            raise

        if not isinstance(data, dict) or data.get("type") != "file":
            raise RepositoryError(f"Not a file: {path}", status=422, path=path)
        try:
            # binascii.Error and UnicodeDecodeError are both ValueErrors
            content = decode_content(data.get("content", ""))
            revision_token = data["sha"]
        except (ValueError, KeyError) as exc:
            logger.warning("Unreadable contents response for %s: %s", path, exc)
            raise RepositoryError(
                f"Unreadable file contents for {path}: {exc}",
                status=422,
                path=path,
                response=data,
            ) from exc
        return RemoteFile(path=data.get("path", path), content=content, revision_token=revision_token)

    async def upsert_file(
        self,
        path: str,
        content: str,
        message: str,
        previous_revision_token: str | None = None,
    ) -> CommitResult:
        body: dict[str, Any] = {
            "message": message,
            "content": encode_content(content),
            "branch": self.branch,
        }
        if previous_revision_token:
            body["sha"] = previous_revision_token

        data = await self._request("PUT", self._contents_url(path), path=path, json=body)
        commit = data.get("commit") or {}
        if not commit.get("sha"):
            raise RepositoryError("GitHub response did not include a commit", path=path)
        logger.info("Committed %s to %s/%s@%s", path, self.owner, self.repo, self.branch)
        return CommitResult(
            commit_id=commit["sha"],
            path=(data.get("content") or {}).get("path", path),
            message=message,
            url=commit.get("html_url"),
        )

    async def verify_write_access(self) -> bool:
        data = await self._request("GET", f"/repos/{self.owner}/{self.repo}")
        permissions = (data.get("permissions") if isinstance(data, dict) else None) or {}
        if not (permissions.get("push") or permissions.get("admin")):
            raise RepositoryPermissionError(
                "Token does not have write access to the repository", status=403
            )
        return True
