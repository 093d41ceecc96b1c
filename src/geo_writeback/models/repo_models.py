"""Models exchanged with destination repository clients."""

from pydantic import BaseModel, ConfigDict


class RemoteFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    revision_token: str  # e.g. the blob SHA on GitHub


class CommitResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    commit_id: str
    path: str
    message: str = ""
    url: str | None = None
