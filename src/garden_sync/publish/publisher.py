"""Apply a publish partition to the garden repository.

Uploads every ``unpublished`` and ``changed`` item and deletes every
``deleted`` item, one conditional write per path.  The snapshot address
of each item is sent as the write precondition; when the remote has moved
on (``ConflictError``) the current address is re-read and the write is
retried once.

Error handling is per-item: a failed path is reported in its
``PublishResult`` and the run continues.  Authentication and rate-limit
failures abort the run because every later call would fail the same way.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.async_utils import run_sync
from ..core.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    RemoteError,
)
from ..core.repository import RemoteRepository
from .models import (
    ContentUnit,
    PublishItem,
    PublishPartition,
    PublishResult,
    PublishState,
)

logger = logging.getLogger(__name__)


class ContentPublisher:
    """Mirror local content units to a path prefix of the garden repository.

    Args:
        repository: The garden repository.
        prefix: Remote folder the unit paths are relative to
            (e.g. ``"src/site/notes/"``).
        branch: Branch to write to; the default branch when ``None``.
    """

    def __init__(
        self,
        repository: RemoteRepository,
        prefix: str,
        branch: str | None = None,
    ) -> None:
        self.repository = repository
        self.prefix = prefix
        self.branch = branch

    async def apply(
        self,
        partition: PublishPartition,
        local_units: Iterable[ContentUnit],
        dry_run: bool = False,
    ) -> list[PublishResult]:
        """Upload new and changed items, then delete removed ones.

        Args:
            partition: Result of ``reconcile`` for the same units.
            local_units: Local content providing the bytes to upload.
            dry_run: If ``True``, report the planned actions only.

        Returns:
            One ``PublishResult`` per uploaded or deleted item.

        Raises:
            AuthError: Credentials or permissions were rejected.
        """
        contents = {unit.path: unit.content for unit in local_units}
        results: list[PublishResult] = []

        if dry_run:
            for item in partition.unpublished:
                results.append(self._planned(item, PublishState.UNPUBLISHED))
            for item in partition.changed:
                results.append(self._planned(item, PublishState.CHANGED))
            for item in partition.deleted:
                results.append(self._planned(item, PublishState.DELETED))
            return results

        branch = self.branch or await run_sync(
            self.repository.get_default_branch
        )

        for state, items in (
            (PublishState.UNPUBLISHED, partition.unpublished),
            (PublishState.CHANGED, partition.changed),
        ):
            for item in items:
                content = contents.get(item.path)
                if content is None:
                    results.append(
                        PublishResult(
                            path=item.path,
                            state=state,
                            success=False,
                            error="No local content for path",
                        )
                    )
                    continue
                results.append(
                    await self._upload(item, state, content, branch)
                )

        for item in partition.deleted:
            results.append(await self._delete(item, branch))

        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Published %d items to %s (%d failed)",
            len(results) - failed,
            branch,
            failed,
        )
        return results

    # ------------------------------------------------------------------
    # Per-item actions
    # ------------------------------------------------------------------

    async def _upload(
        self,
        item: PublishItem,
        state: PublishState,
        content: bytes,
        branch: str,
    ) -> PublishResult:
        remote_path = self.prefix + item.path
        try:
            try:
                address = await run_sync(
                    self.repository.put_file,
                    remote_path,
                    content,
                    branch,
                    item.remote_address,
                )
            except ConflictError:
                logger.info(
                    "Address of %s changed remotely; retrying once",
                    remote_path,
                )
                current = await self._current_address(remote_path, branch)
                address = await run_sync(
                    self.repository.put_file,
                    remote_path,
                    content,
                    branch,
                    current,
                )
        except AuthError:
            raise
        except RemoteError as exc:
            logger.error("Failed to publish %s: %s", remote_path, exc)
            return PublishResult(
                path=item.path, state=state, success=False, error=str(exc)
            )

        return PublishResult(
            path=item.path, state=state, success=True, address=address
        )

    async def _delete(
        self, item: PublishItem, branch: str
    ) -> PublishResult:
        remote_path = self.prefix + item.path
        try:
            try:
                await run_sync(
                    self.repository.delete_file,
                    remote_path,
                    branch,
                    item.remote_address,
                )
            except ConflictError:
                current = await self._current_address(remote_path, branch)
                if current is not None:
                    await run_sync(
                        self.repository.delete_file,
                        remote_path,
                        branch,
                        current,
                    )
        except NotFoundError:
            logger.info("%s already absent from %s", remote_path, branch)
        except AuthError:
            raise
        except RemoteError as exc:
            logger.error("Failed to delete %s: %s", remote_path, exc)
            return PublishResult(
                path=item.path,
                state=PublishState.DELETED,
                success=False,
                error=str(exc),
            )

        return PublishResult(
            path=item.path, state=PublishState.DELETED, success=True
        )

    async def _current_address(
        self, remote_path: str, branch: str
    ) -> str | None:
        try:
            remote = await run_sync(
                self.repository.get_file, remote_path, branch
            )
        except NotFoundError:
            return None
        return remote.address

    @staticmethod
    def _planned(item: PublishItem, state: PublishState) -> PublishResult:
        return PublishResult(
            path=item.path,
            state=state,
            success=True,
            address=item.local_address,
        )
