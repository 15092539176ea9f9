"""Remote repository access shared by publishing and template sync."""

from .async_utils import run_sync
from .client import GitHubClient
from .repository import Release, RemoteFile, RemoteRepository

__all__ = [
    "GitHubClient",
    "Release",
    "RemoteFile",
    "RemoteRepository",
    "run_sync",
]
