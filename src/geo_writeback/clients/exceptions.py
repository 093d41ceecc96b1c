"""Exceptions for destination repository clients."""


class RepositoryError(Exception):
    """Raised when a repository read or write fails.

    Carries the HTTP-like status and the file path (when known) so callers
    can decide whether a retry makes sense.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        path: str | None = None,
        response: object | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.path = path
        self.response = response


class RepositoryConfigError(RepositoryError):
    """Raised when a client is missing its token or target repository."""


class RepositoryPermissionError(RepositoryError):
    """Raised when the credentials lack write access."""
