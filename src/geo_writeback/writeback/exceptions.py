"""Exceptions for planning and merge operations."""

from geo_writeback.models.path_models import UnsafePathReason


class WriteBackError(Exception):
    """Base exception for all planning and merge operations."""


class PathContractError(WriteBackError):
    """Base exception for URL-to-path mapping."""


class InvalidLayoutError(PathContractError):
    """Raised when a project type or route strategy is not supported."""


class UnsafePathError(PathContractError):
    """Raised when a URL cannot be safely mapped to a repository file."""

    def __init__(self, message: str, url: str, reason: UnsafePathReason) -> None:
        super().__init__(message)
        self.url = url
        self.reason = reason
