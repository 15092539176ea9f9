import base64
import logging
import threading
from typing import Any
from urllib.parse import quote

import requests

from ..config import Config
from .errors import NotFoundError, RemoteError, translate_http_error
from .repository import Release, RemoteFile

logger = logging.getLogger(__name__)


class GitHubClient:
    """``RemoteRepository`` implementation backed by the GitHub REST API.

    One instance talks to one repository; the template sync workflow uses
    two (the user's garden and the upstream template).
    """

    def __init__(self, config: Config, owner: str, repository: str):
        self.config = config
        self.owner = owner
        self.repository = repository
        self._thread_local = threading.local()
        self.repo_url = self._get_repo_url()

    @classmethod
    def for_garden(cls, config: Config) -> "GitHubClient":
        """Client for the user's own garden repository."""
        return cls(config, config.owner, config.repository)

    @classmethod
    def for_template(cls, config: Config) -> "GitHubClient":
        """Client for the upstream template repository."""
        return cls(
            config, config.template_owner, config.template_repository
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repository}"

    @property
    def session(self) -> requests.Session:
        """Session for the calling thread."""
        return self._get_session()

    def _get_repo_url(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/repos/{self.owner}/{self.repository}"

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self.config.token}",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "garden-sync",
            }
        )
        return session

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make one API request relative to the repository URL.

        Raises the ``RemoteError`` subclass matching any failure status.
        """
        url = f"{self.repo_url}{endpoint}"
        session = self._get_session()
        response = session.request(
            method,
            url,
            params=params,
            json=payload,
            timeout=(10, 60),
        )
        logger.debug(
            "%s %s -> %s", method, url, response.status_code
        )

        if response.status_code >= 400:
            raise translate_http_error(response)

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _contents_endpoint(path: str) -> str:
        return f"/contents/{quote(path.lstrip('/'))}"

    # Files

    def get_file(self, path: str, ref: str | None = None) -> RemoteFile:
        """
        Get a file's content and address from a branch.

        Args:
            path: Repository-relative file path
            ref: Branch, tag or commit (default: repository default branch)

        Returns:
            RemoteFile with decoded bytes

        Raises:
            NotFoundError: If the path is missing or is not a regular file
        """
        params = {"ref": ref} if ref else None
        data = self._request(
            "GET", self._contents_endpoint(path), params=params
        )

        if not isinstance(data, dict) or data.get("type") != "file":
            raise NotFoundError(f"'{path}' is not a file in {self.full_name}")

        address = data["sha"]
        encoded = data.get("content") or ""
        if data.get("encoding") == "base64":
            content = base64.b64decode(encoded)
        elif data.get("size", 0) > 0:
            # Files over 1 MB come back without inline content
            content = self._get_blob(address)
        else:
            content = b""

        return RemoteFile(path=path, address=address, content=content)

    def _get_blob(self, address: str) -> bytes:
        data = self._request("GET", f"/git/blobs/{address}")
        return base64.b64decode(data.get("content") or "")

    def put_file(
        self,
        path: str,
        content: bytes,
        branch: str,
        address: str | None = None,
        message: str | None = None,
    ) -> str:
        """
        Create or replace a file on a branch.

        Args:
            path: Repository-relative file path
            content: Raw bytes to store
            branch: Target branch
            address: Current address of the file (required to replace it)
            message: Commit message (default: "Update file <path>")

        Returns:
            Address of the stored content

        Raises:
            ConflictError: If address is stale or missing for an existing file
            NotFoundError: If the branch does not exist
        """
        body: dict[str, Any] = {
            "message": message or f"Update file {path}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if address is not None:
            body["sha"] = address

        data = self._request(
            "PUT", self._contents_endpoint(path), payload=body
        )
        logger.info("Wrote %s to %s@%s", path, self.full_name, branch)
        return data["content"]["sha"]

    def delete_file(
        self,
        path: str,
        branch: str,
        address: str | None = None,
        message: str | None = None,
    ) -> None:
        """
        Delete a file from a branch.

        When address is not given it is looked up on the branch first.

        Raises:
            NotFoundError: If the file is not on the branch
            ConflictError: If address is stale
        """
        if address is None:
            address = self.get_file(path, ref=branch).address

        self._request(
            "DELETE",
            self._contents_endpoint(path),
            payload={
                "message": message or f"Delete content {path}",
                "sha": address,
                "branch": branch,
            },
        )
        logger.info("Deleted %s from %s@%s", path, self.full_name, branch)

    def get_tree_addresses(
        self,
        ref: str = "HEAD",
        prefix: str = "",
        exclude: frozenset[str] = frozenset(),
    ) -> dict[str, str]:
        """
        Get the address of every file under a path prefix.

        Args:
            ref: Branch, tag or commit to list
            prefix: Only include paths starting with this prefix (stripped)
            exclude: Relative paths to leave out (e.g. {"notes.json"})

        Returns:
            Dict of relative path -> address, in tree order
        """
        data = self._request(
            "GET", f"/git/trees/{quote(ref)}", params={"recursive": "1"}
        )
        if data.get("truncated"):
            logger.warning(
                "Tree listing for %s@%s was truncated; snapshot is incomplete",
                self.full_name,
                ref,
            )

        addresses: dict[str, str] = {}
        for entry in data.get("tree", []):
            if entry.get("type") != "blob":
                continue
            path = entry["path"]
            if not path.startswith(prefix):
                continue
            relative = path[len(prefix) :]
            if relative in exclude:
                continue
            addresses[relative] = entry["sha"]
        return addresses

    # Branches and commits

    def get_default_branch(self) -> str:
        """
        Get the repository's default branch name.
        """
        data = self._request("GET", "")
        return data["default_branch"]

    def get_branch_head(self, branch: str) -> str:
        """
        Get the commit id at the tip of a branch.
        """
        data = self._request("GET", f"/commits/{quote(branch)}")
        return data["sha"]

    def get_default_branch_head(self) -> str:
        """
        Get the commit id at the tip of the default branch.
        """
        return self.get_branch_head(self.get_default_branch())

    def create_branch(self, name: str, base_commit: str) -> None:
        """
        Create a branch ref.

        Raises:
            AlreadyExistsError: If the ref already exists
            AuthError: If the token cannot push to the repository
        """
        self._request(
            "POST",
            "/git/refs",
            payload={"ref": f"refs/heads/{name}", "sha": base_commit},
        )
        logger.info("Created branch %s in %s", name, self.full_name)

    # Releases and pull requests

    def get_latest_release(self) -> Release:
        """
        Get the latest published release.

        Raises:
            NotFoundError: If the repository has no published release
        """
        data = self._request("GET", "/releases/latest")
        tag = data.get("tag_name") if isinstance(data, dict) else None
        if not tag:
            raise RemoteError(
                f"Latest release of {self.full_name} has no tag name"
            )
        return Release(version=tag, url=data.get("html_url"))

    def open_pull_request(
        self, head: str, base: str, title: str, body: str
    ) -> str:
        """
        Open a pull request.

        Returns:
            URL of the pull request page

        Raises:
            NoChangesError: If head has no commits over base, or a pull
                request for head is already open
        """
        data = self._request(
            "POST",
            "/pulls",
            payload={
                "title": title,
                "head": head,
                "base": base,
                "body": body,
            },
        )
        return data["html_url"]
