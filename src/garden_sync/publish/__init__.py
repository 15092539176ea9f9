"""Publish-status diffing between local content and the garden repository.

Modules:

- ``models``     -- ``ContentUnit``, ``PublishState``, ``PublishItem``,
  ``PublishPartition``, ``PublishResult``.
- ``reconciler`` -- ``reconcile`` (pure four-way partition) and
  ``PublishStatusManager`` (fetches the remote snapshot, then reconciles).
- ``local``      -- ``discover_content_units``: local files as content units.
- ``publisher``  -- ``ContentPublisher``: uploads and deletes per partition.

Usage example
-------------
::

    units = discover_content_units(Path("vault"), patterns=["*.md"])
    manager = PublishStatusManager(GitHubClient.for_garden(config))
    partition = await manager.get_status(units, prefix="src/site/notes/")
    print(partition.paths(PublishState.CHANGED))
"""

from .local import PathRewriteRule, discover_content_units, rewrite_path
from .models import (
    ContentUnit,
    PublishItem,
    PublishPartition,
    PublishResult,
    PublishState,
)
from .publisher import ContentPublisher
from .reconciler import PublishStatusManager, reconcile

__all__ = [
    "ContentPublisher",
    "ContentUnit",
    "PathRewriteRule",
    "PublishItem",
    "PublishPartition",
    "PublishResult",
    "PublishState",
    "PublishStatusManager",
    "discover_content_units",
    "reconcile",
    "rewrite_path",
]
