"""Remote repository contract consumed by publishing and template sync.

The workflow and the publisher only depend on ``RemoteRepository``; the
GitHub adapter in ``client.py`` is one implementation and the test suite
provides an in-memory one.  Failures are reported with the typed
exceptions from ``errors.py``, never with ``None`` returns.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel


class RemoteFile(BaseModel):
    """A file read from a remote branch.

    Attributes:
        path: Repository-relative path.
        address: Content address reported by the remote (git blob id).
        content: Raw file bytes, already decoded from the wire encoding.
    """

    path: str
    address: str
    content: bytes

    model_config = {"frozen": True}


class Release(BaseModel):
    """Latest published release of the upstream template.

    Attributes:
        version: Release tag name (e.g. ``"3.2.0"``).
        url: Link to the release notes page, when the remote provides one.
    """

    version: str
    url: str | None = None

    model_config = {"frozen": True}


class RemoteRepository(Protocol):
    """Operations the core needs from a hosted git repository.

    Every method is a single blocking round-trip; async callers wrap them
    with ``run_sync``.
    """

    def get_file(self, path: str, ref: str | None = None) -> RemoteFile:
        """Return the file at *path* on *ref* (default branch when ``None``).

        Raises:
            NotFoundError: The path does not exist on *ref*.
        """
        ...

    def put_file(
        self,
        path: str,
        content: bytes,
        branch: str,
        address: str | None = None,
        message: str | None = None,
    ) -> str:
        """Create or replace *path* on *branch*; return the new address.

        *address* is the current address of the file on the branch and is
        required when replacing an existing file.

        Raises:
            ConflictError: *address* does not match the branch.
            NotFoundError: *branch* does not exist.
        """
        ...

    def delete_file(
        self,
        path: str,
        branch: str,
        address: str | None = None,
        message: str | None = None,
    ) -> None:
        """Delete *path* from *branch*.

        Raises:
            NotFoundError: The path is not on the branch.
        """
        ...

    def create_branch(self, name: str, base_commit: str) -> None:
        """Create branch *name* pointing at *base_commit*.

        Raises:
            AlreadyExistsError: A ref with that name already exists.
        """
        ...

    def get_default_branch(self) -> str:
        """Return the name of the repository's default branch."""
        ...

    def get_branch_head(self, branch: str) -> str:
        """Return the commit id at the tip of *branch*."""
        ...

    def get_default_branch_head(self) -> str:
        """Return the commit id at the tip of the default branch."""
        ...

    def get_latest_release(self) -> Release:
        """Return the latest published release.

        Raises:
            NotFoundError: The repository has no published release.
        """
        ...

    def open_pull_request(
        self, head: str, base: str, title: str, body: str
    ) -> str:
        """Open a pull request from *head* into *base*; return its URL.

        Raises:
            NoChangesError: There is nothing to propose.
        """
        ...

    def get_tree_addresses(
        self,
        ref: str = "HEAD",
        prefix: str = "",
        exclude: frozenset[str] = frozenset(),
    ) -> dict[str, str]:
        """Return ``{path: address}`` for every file under *prefix* on *ref*.

        Paths are returned relative to *prefix*; names listed in *exclude*
        (relative paths) are omitted.
        """
        ...
