"""Pull request history persistence.

Records every pull request a template sync opened in
``.garden_sync/pull_requests.json`` so the user can find earlier
proposals again.  The file is a JSON object::

    {"version": 1, "pull_requests": [{"url": ..., "version": ..., "branch": ..., "created_at": ...}]}

Writes are atomic: the new document goes to a temp file in the same
directory which then replaces the target with ``os.replace()``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

HISTORY_FILENAME = "pull_requests.json"


class PullRequestHistory:
    """Append-only list of pull requests opened by template syncs.

    Args:
        state_dir: Directory holding the history file
            (typically ``.garden_sync/``).
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    @property
    def path(self) -> Path:
        return self._state_dir / HISTORY_FILENAME

    def load(self) -> list[dict]:
        """Return the recorded pull requests, oldest first.

        A missing file is an empty history.

        Raises:
            ValueError: The file exists but is not a history document.
        """
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict) or not isinstance(
            data.get("pull_requests"), list
        ):
            raise ValueError(f"Malformed pull request history: {self.path}")
        return data["pull_requests"]

    def urls(self) -> list[str]:
        return [entry["url"] for entry in self.load()]

    def record(self, url: str, version: str, branch: str) -> bool:
        """Append *url* unless it is already recorded.

        Returns:
            ``True`` if a new entry was written.
        """
        entries = self.load()
        if any(entry.get("url") == url for entry in entries):
            logger.debug("Pull request %s already recorded", url)
            return False

        entries.append(
            {
                "url": url,
                "version": version,
                "branch": branch,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        self._save({"version": 1, "pull_requests": entries})
        logger.info("Recorded pull request %s", url)
        return True

    def _save(self, data: dict) -> None:
        self._state_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
