"""Destination repository clients."""

from geo_writeback.clients.base import RepositoryClient
from geo_writeback.clients.exceptions import (
    RepositoryConfigError,
    RepositoryError,
    RepositoryPermissionError,
)
from geo_writeback.clients.github_client import GitHubRepositoryClient
from geo_writeback.clients.local_client import LocalRepositoryClient

__all__ = [
    "GitHubRepositoryClient",
    "LocalRepositoryClient",
    "RepositoryClient",
    "RepositoryConfigError",
    "RepositoryError",
    "RepositoryPermissionError",
]
