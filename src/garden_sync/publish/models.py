"""Pydantic models for publish-status reconciliation.

- ``ContentUnit``: a locally authored file and its raw bytes.
- ``PublishState``: the four publish states a path can be in.
- ``PublishItem``: one path with its local and remote addresses.
- ``PublishPartition``: the four-way partition produced by ``reconcile``.
- ``PublishResult``: outcome of publishing or deleting one item.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from ..hashing import content_address


class ContentUnit(BaseModel):
    """A local content file to be mirrored to the remote.

    Attributes:
        path: Remote-relative path, unique within a local set.
        content: Raw bytes exactly as they will be published.
    """

    path: str
    content: bytes

    model_config = {"frozen": True}

    @property
    def address(self) -> str:
        """Content address of ``content`` (git blob id)."""
        return content_address(self.content)


class PublishState(str, Enum):
    """Publish state of a single path."""

    PUBLISHED = "published"
    CHANGED = "changed"
    UNPUBLISHED = "unpublished"
    DELETED = "deleted"


class PublishItem(BaseModel):
    """A path classified by ``reconcile``.

    Attributes:
        path: Remote-relative path.
        local_address: Address of the local content (``None`` for deleted).
        remote_address: Address in the remote snapshot (``None`` for unpublished).
    """

    path: str
    local_address: str | None = None
    remote_address: str | None = None

    model_config = {"frozen": True}


class PublishPartition(BaseModel):
    """Four disjoint lists covering every local and remote path.

    ``published``/``changed``/``unpublished`` keep the order of the local
    input; ``deleted`` keeps the snapshot's order.
    """

    published: list[PublishItem] = []
    changed: list[PublishItem] = []
    unpublished: list[PublishItem] = []
    deleted: list[PublishItem] = []

    model_config = {"frozen": True}

    def items(self, state: PublishState) -> list[PublishItem]:
        """Items in the bucket for *state*."""
        return getattr(self, state.value)

    def paths(self, state: PublishState) -> list[str]:
        """Paths in the bucket for *state*, in bucket order."""
        return [item.path for item in self.items(state)]

    def state_of(self, path: str) -> PublishState | None:
        """Return the state *path* was classified into, if any."""
        for state in PublishState:
            if path in self.paths(state):
                return state
        return None

    @property
    def to_publish(self) -> list[PublishItem]:
        """Items whose local content must be uploaded (unpublished, then changed)."""
        return [*self.unpublished, *self.changed]

    @property
    def in_sync(self) -> bool:
        """True when nothing needs uploading or deleting."""
        return not (self.changed or self.unpublished or self.deleted)

    def summary(self) -> str:
        """One line per state with its count."""
        lines = [
            f"  Published:   {len(self.published)}",
            f"  Changed:     {len(self.changed)}",
            f"  Unpublished: {len(self.unpublished)}",
            f"  Deleted:     {len(self.deleted)}",
        ]
        return "\n".join(lines)


class PublishResult(BaseModel):
    """Outcome of applying one partition item to the remote.

    Attributes:
        path: Remote-relative path.
        state: The state that triggered the action.
        success: Whether the remote accepted the change.
        address: Resulting remote address after an upload.
        error: Error message when ``success`` is False.
    """

    path: str
    state: PublishState
    success: bool
    address: str | None = None
    error: str | None = None

    model_config = {"frozen": True}
