"""Publish-status reconciliation.

``reconcile`` is a pure function: it compares the content address of
every local unit with the address the remote snapshot holds for the same
path and partitions all paths into published / changed / unpublished /
deleted.  Addresses use the remote's own blob hashing, so no remote
content is downloaded.

``PublishStatusManager`` is the I/O shell around it: it fetches the
snapshot for a path prefix from a ``RemoteRepository`` and reconciles.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ..core.async_utils import run_sync
from ..core.repository import RemoteRepository
from .models import ContentUnit, PublishItem, PublishPartition

logger = logging.getLogger(__name__)

# Paths under the notes prefix that the site generator owns
DEFAULT_NOTE_EXCLUDES = frozenset({"notes.json"})


def reconcile(
    local_units: Iterable[ContentUnit],
    remote_snapshot: Mapping[str, str],
) -> PublishPartition:
    """Partition local and remote paths by publish state.

    Args:
        local_units: Local content, in display order.  When a path occurs
            more than once only the first unit is considered.
        remote_snapshot: ``{path: address}`` of the remote mirror.

    Returns:
        A ``PublishPartition`` whose four lists are disjoint and together
        cover every local and every remote path.
    """
    published: list[PublishItem] = []
    changed: list[PublishItem] = []
    unpublished: list[PublishItem] = []
    seen: set[str] = set()

    for unit in local_units:
        if unit.path in seen:
            logger.debug("Ignoring duplicate local path %s", unit.path)
            continue
        seen.add(unit.path)

        local_address = unit.address
        remote_address = remote_snapshot.get(unit.path)
        item = PublishItem(
            path=unit.path,
            local_address=local_address,
            remote_address=remote_address,
        )

        if remote_address is None:
            unpublished.append(item)
        elif remote_address == local_address:
            published.append(item)
        else:
            changed.append(item)

    deleted = [
        PublishItem(path=path, remote_address=address)
        for path, address in remote_snapshot.items()
        if path not in seen
    ]

    return PublishPartition(
        published=published,
        changed=changed,
        unpublished=unpublished,
        deleted=deleted,
    )


class PublishStatusManager:
    """Report the publish status of local content against a remote prefix.

    Args:
        repository: The garden repository holding published content.
        ref: Branch or commit to compare against.
    """

    def __init__(
        self, repository: RemoteRepository, ref: str = "HEAD"
    ) -> None:
        self.repository = repository
        self.ref = ref

    async def get_snapshot(
        self,
        prefix: str,
        exclude: frozenset[str] = DEFAULT_NOTE_EXCLUDES,
    ) -> dict[str, str]:
        """Fetch ``{path: address}`` for every remote file under *prefix*."""
        snapshot = await run_sync(
            self.repository.get_tree_addresses,
            self.ref,
            prefix,
            exclude,
        )
        logger.info(
            "Fetched %d remote addresses under %s", len(snapshot), prefix
        )
        return snapshot

    async def get_status(
        self,
        local_units: Iterable[ContentUnit],
        prefix: str,
        exclude: frozenset[str] = DEFAULT_NOTE_EXCLUDES,
    ) -> PublishPartition:
        """Fetch the remote snapshot for *prefix* and reconcile *local_units*."""
        snapshot = await self.get_snapshot(prefix, exclude)
        partition = reconcile(local_units, snapshot)
        logger.info(
            "Publish status under %s:\n%s", prefix, partition.summary()
        )
        return partition
