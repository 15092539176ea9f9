"""Shared pytest fixtures for garden-sync tests."""

from __future__ import annotations

import threading

import pytest

from garden_sync.config import Config
from garden_sync.core.errors import (
    AlreadyExistsError,
    ConflictError,
    NoChangesError,
    NotFoundError,
)
from garden_sync.core.repository import Release, RemoteFile
from garden_sync.hashing import content_address


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live GitHub repository",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a live GitHub repository"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        token="ghp_test",
        owner="alice",
        repository="garden",
    )


class FakeRepository:
    """In-memory ``RemoteRepository`` with GitHub's precondition rules.

    Each branch maps paths to bytes.  Writes to an existing file must carry
    its current address and writes to a new file must carry none, otherwise
    ``ConflictError`` is raised.  ``fail`` queues exceptions that the next
    call of the named operation raises instead of running.
    """

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        default_branch: str = "main",
        release: Release | None = None,
        name: str = "alice/garden",
    ) -> None:
        self.name = name
        self.default_branch = default_branch
        self.branches: dict[str, dict[str, bytes]] = {
            default_branch: dict(files or {})
        }
        self.release = release
        self.pull_requests: list[tuple[str, str, str, str]] = []
        self.calls: list[tuple] = []
        self.writes: list[tuple] = []
        self._failures: dict[str, list[Exception]] = {}
        self._lock = threading.Lock()

    # Test helpers

    def fail(self, operation: str, *errors: Exception) -> None:
        self._failures.setdefault(operation, []).extend(errors)

    def files_on(self, branch: str | None = None) -> dict[str, bytes]:
        return self.branches[branch or self.default_branch]

    def head_of(self, branch: str) -> str:
        return f"commit-{branch}"

    def _enter(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _branch(self, ref: str | None) -> dict[str, bytes]:
        name = self.default_branch if ref in (None, "HEAD") else ref
        if name not in self.branches:
            raise NotFoundError(f"No such branch: {name}", 404)
        return self.branches[name]

    # RemoteRepository

    def get_file(self, path: str, ref: str | None = None) -> RemoteFile:
        with self._lock:
            self._enter("get_file", path, ref)
            files = self._branch(ref)
            if path not in files:
                raise NotFoundError("Not Found", 404)
            content = files[path]
            return RemoteFile(
                path=path, address=content_address(content), content=content
            )

    def put_file(
        self,
        path: str,
        content: bytes,
        branch: str,
        address: str | None = None,
        message: str | None = None,
    ) -> str:
        with self._lock:
            self._enter("put_file", path, branch, address)
            files = self._branch(branch)
            current = files.get(path)
            current_address = (
                content_address(current) if current is not None else None
            )
            if address != current_address:
                raise ConflictError(f"{path} does not match {address}", 409)
            files[path] = content
            self.writes.append(("put", path, branch))
            return content_address(content)

    def delete_file(
        self,
        path: str,
        branch: str,
        address: str | None = None,
        message: str | None = None,
    ) -> None:
        with self._lock:
            self._enter("delete_file", path, branch, address)
            files = self._branch(branch)
            if path not in files:
                raise NotFoundError("Not Found", 404)
            if address is not None and address != content_address(files[path]):
                raise ConflictError(f"{path} does not match {address}", 409)
            del files[path]
            self.writes.append(("delete", path, branch))

    def create_branch(self, name: str, base_commit: str) -> None:
        with self._lock:
            self._enter("create_branch", name, base_commit)
            if name in self.branches:
                raise AlreadyExistsError("Reference already exists", 422)
            source = next(
                (b for b in self.branches if self.head_of(b) == base_commit),
                None,
            )
            if source is None:
                raise NotFoundError(f"No commit {base_commit}", 422)
            self.branches[name] = dict(self.branches[source])
            self.writes.append(("branch", name, base_commit))

    def get_default_branch(self) -> str:
        self._enter("get_default_branch")
        return self.default_branch

    def get_branch_head(self, branch: str) -> str:
        self._enter("get_branch_head", branch)
        self._branch(branch)
        return self.head_of(branch)

    def get_default_branch_head(self) -> str:
        return self.get_branch_head(self.get_default_branch())

    def get_latest_release(self) -> Release:
        self._enter("get_latest_release")
        if self.release is None:
            raise NotFoundError("Not Found", 404)
        return self.release

    def open_pull_request(
        self, head: str, base: str, title: str, body: str
    ) -> str:
        with self._lock:
            self._enter("open_pull_request", head, base)
            if self._branch(head) == self._branch(base):
                raise NoChangesError(f"No commits between {base} and {head}", 422)
            if any(pr[0] == head and pr[1] == base for pr in self.pull_requests):
                raise NoChangesError(
                    f"A pull request already exists for {head}.", 422
                )
            self.pull_requests.append((head, base, title, body))
            self.writes.append(("pull_request", head, base))
            return f"https://github.com/{self.name}/pull/{len(self.pull_requests)}"

    def get_tree_addresses(
        self,
        ref: str = "HEAD",
        prefix: str = "",
        exclude: frozenset[str] = frozenset(),
    ) -> dict[str, str]:
        self._enter("get_tree_addresses", ref, prefix)
        addresses: dict[str, str] = {}
        for path, content in self._branch(ref).items():
            if not path.startswith(prefix):
                continue
            relative = path[len(prefix) :]
            if relative in exclude:
                continue
            addresses[relative] = content_address(content)
        return addresses


@pytest.fixture
def garden():
    """An empty garden repository on ``main``."""
    return FakeRepository()
