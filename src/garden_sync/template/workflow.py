"""Template sync workflow: propose upstream template updates to a garden fork.

``TemplateSyncWorkflow.run`` is a strictly ordered pipeline:

1. Resolve the latest upstream release.
2. Derive the sync branch name from the version.
3. Ensure the branch exists (an existing branch is fine).
4. Delete deprecated files from the branch.
5. Create the customization file if absent; never overwrite it.
6. Bring every tracked file in line with the upstream default branch.
7. Open a pull request; "nothing to propose" yields no URL.

Every step is idempotent: a second run against an unchanged release
writes nothing and returns a proposal without a URL.  Only the typed
benign failures (``NotFoundError``, ``AlreadyExistsError``,
``NoChangesError``) are absorbed; a ``ConflictError`` is retried once
with a fresh address and everything else propagates.

The file updates are not transactional.  ``SyncProgress`` records which
tracked files have been reconciled so an interrupted run can be resumed;
re-running from scratch converges to the same result.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from ..core.async_utils import gather_limited, run_sync, run_sync_limited
from ..core.errors import (
    AlreadyExistsError,
    ConflictError,
    NoChangesError,
    NotFoundError,
    TemplateSyncError,
)
from ..core.repository import Release, RemoteFile, RemoteRepository
from ..hashing import content_address
from .manifest import TemplateManifest
from .models import (
    ChangeProposal,
    FileAction,
    FileResult,
    SyncProgress,
    SyncStage,
    TemplateSyncReport,
)

logger = logging.getLogger(__name__)


class TemplateSyncWorkflow:
    """Stage upstream template changes on a branch of the garden repository.

    Args:
        garden: The user's repository (the fork being updated).
        template: The upstream template repository.
        manifest: Files to manage; the built-in template manifest by default.
        max_parallel: Tracked files processed concurrently in step 6.
            ``1`` keeps the loop strictly sequential.
    """

    def __init__(
        self,
        garden: RemoteRepository,
        template: RemoteRepository,
        manifest: TemplateManifest | None = None,
        max_parallel: int = 1,
    ) -> None:
        self.garden = garden
        self.template = template
        self.manifest = manifest or TemplateManifest()
        self.max_parallel = max(1, max_parallel)
        self.progress = SyncProgress()
        self._limit: asyncio.Semaphore | None = None

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def run(
        self,
        dry_run: bool = False,
        resume: SyncProgress | None = None,
    ) -> TemplateSyncReport:
        """Execute the full workflow.

        Args:
            dry_run: If ``True``, plan against the default branch without
                creating a branch, writing files, or opening a pull request.
            resume: Progress from an interrupted run; tracked files it lists
                as completed are skipped when the version is unchanged.

        Returns:
            A ``TemplateSyncReport``; ``report.pull_request_url`` is ``None``
            when the fork was already up to date.

        Raises:
            TemplateSyncError: The template has no published release.
            AuthError: Credentials or permissions were rejected.
            ConflictError: A write kept conflicting after one retry.
        """
        started_at = datetime.now(timezone.utc).isoformat()

        release = await self.resolve_latest_version()
        branch = self.manifest.branch_name(release.version)
        self._start_progress(release.version, branch, resume)
        self.progress.stage = SyncStage.VERSION_RESOLVED

        default_branch = await run_sync(self.garden.get_default_branch)

        if dry_run:
            target = default_branch
        else:
            await self.ensure_branch(branch, default_branch)
            self.progress.stage = SyncStage.BRANCH_ENSURED
            target = branch

        results: list[FileResult] = []
        results.extend(await self.delete_deprecated_files(target, dry_run))
        customization = self.manifest.customization_file
        if customization:
            results.append(
                await self.ensure_customization_file(
                    customization, target, dry_run
                )
            )
        results.extend(await self.sync_tracked_files(target, dry_run))
        self.progress.stage = SyncStage.FILES_RECONCILED

        proposal: ChangeProposal | None = None
        if not dry_run:
            proposal = await self.propose_change(
                branch, default_branch, release
            )
            self.progress.stage = (
                SyncStage.NO_CHANGE_NEEDED
                if proposal.is_noop
                else SyncStage.PROPOSED
            )

        return TemplateSyncReport(
            version=release.version,
            branch=branch,
            dry_run=dry_run,
            results=results,
            proposal=proposal,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def resolve_latest_version(self) -> Release:
        """Step 1: latest upstream release; fatal when there is none."""
        try:
            release = await run_sync(self.template.get_latest_release)
        except NotFoundError as exc:
            raise TemplateSyncError(
                "Unable to get latest release of the template repository",
                exc.status_code,
            ) from exc
        logger.info("Latest template version: %s", release.version)
        return release

    async def ensure_branch(self, branch: str, default_branch: str) -> None:
        """Step 3: create *branch* at the head of *default_branch* unless it exists."""
        head = await run_sync(self.garden.get_branch_head, default_branch)
        logger.info(
            "Creating branch %s from %s (%s)", branch, default_branch, head
        )
        try:
            await run_sync(self.garden.create_branch, branch, head)
        except AlreadyExistsError:
            logger.info("Branch %s already exists, reusing it", branch)

    async def delete_deprecated_files(
        self, ref: str, dry_run: bool = False
    ) -> list[FileResult]:
        """Step 4: remove files dropped from newer template versions."""
        results: list[FileResult] = []
        for path in self.manifest.deprecated_files:
            if dry_run:
                current = await self._find(self.garden, path, ref)
                if current is None:
                    results.append(self._absent(path))
                else:
                    results.append(
                        FileResult(
                            path=path,
                            action=FileAction.DELETE,
                            address=current.address,
                        )
                    )
                continue

            try:
                try:
                    await run_sync(self.garden.delete_file, path, ref)
                except ConflictError:
                    logger.info("%s changed during delete; retrying", path)
                    await run_sync(self.garden.delete_file, path, ref)
            except NotFoundError:
                results.append(self._absent(path))
                continue

            logger.info("Deleted deprecated file %s", path)
            results.append(FileResult(path=path, action=FileAction.DELETE))
        return results

    async def ensure_customization_file(
        self, path: str, ref: str, dry_run: bool = False
    ) -> FileResult:
        """Step 5: copy *path* from upstream only if *ref* lacks it."""
        existing = await self._find(self.garden, path, ref)
        if existing is not None:
            logger.info("Keeping existing customization file %s", path)
            return FileResult(
                path=path,
                action=FileAction.PRESERVE,
                address=existing.address,
            )

        upstream = await self._find(self.template, path)
        if upstream is None:
            logger.warning("Template has no customization file %s", path)
            return FileResult(
                path=path,
                action=FileAction.MISSING,
                note="not present in template",
            )

        if dry_run:
            return FileResult(
                path=path,
                action=FileAction.CREATE,
                address=content_address(upstream.content),
            )

        message = "Add customization file from template"
        try:
            address = await run_sync(
                self.garden.put_file, path, upstream.content, ref, None, message
            )
        except ConflictError:
            existing = await self._find(self.garden, path, ref)
            if existing is not None:
                # Created concurrently; whoever wrote it owns it now
                return FileResult(
                    path=path,
                    action=FileAction.PRESERVE,
                    address=existing.address,
                )
            logger.info("%s conflicted on create; retrying once", path)
            address = await run_sync(
                self.garden.put_file, path, upstream.content, ref, None, message
            )

        logger.info("Created customization file %s", path)
        return FileResult(path=path, action=FileAction.CREATE, address=address)

    async def sync_tracked_files(
        self, ref: str, dry_run: bool = False
    ) -> list[FileResult]:
        """Step 6: write every tracked file whose address differs from upstream.

        Each path is handled by exactly one coroutine, so writes to the
        same path never overlap even when files are processed in parallel.
        At most ``max_parallel`` remote calls are in flight at once.
        """
        self._limit = asyncio.Semaphore(self.max_parallel)
        already_done = set(self.progress.completed)
        results: dict[str, FileResult] = {}
        pending: list[str] = []

        for path in self.manifest.tracked_files:
            if path in already_done and not dry_run:
                results[path] = FileResult(
                    path=path,
                    action=FileAction.SKIP,
                    note="completed in an earlier run",
                )
            else:
                pending.append(path)

        if self.max_parallel > 1 and len(pending) > 1:
            synced = await gather_limited(
                [self._sync_tracked_file(p, ref, dry_run) for p in pending]
            )
        else:
            synced = []
            for path in pending:
                synced.append(await self._sync_tracked_file(path, ref, dry_run))

        for result in synced:
            results[result.path] = result

        return [results[path] for path in self.manifest.tracked_files]

    async def propose_change(
        self, branch: str, base: str, release: Release
    ) -> ChangeProposal:
        """Step 7: open the pull request; no URL when there is nothing to propose."""
        title = f"Update template to version {release.version}"
        if release.url:
            body = (
                "Update to latest template version.\n"
                f" [Release Notes]({release.url})"
            )
        else:
            body = f"Update to latest template version {release.version}."

        logger.info("Creating pull request for branch %s", branch)
        try:
            url = await run_sync(
                self.garden.open_pull_request, branch, base, title, body
            )
        except NoChangesError as exc:
            logger.info("No changes to propose: %s", exc)
            return ChangeProposal(version=release.version, branch=branch)

        logger.info("Opened pull request %s", url)
        return ChangeProposal(
            version=release.version, branch=branch, url=url
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _sync_tracked_file(
        self, path: str, ref: str, dry_run: bool
    ) -> FileResult:
        """Fetch, compare and (if needed) conditionally write one tracked file."""
        upstream = await self._find(self.template, path, limited=True)
        if upstream is None:
            logger.warning("Tracked file %s is missing upstream", path)
            return FileResult(
                path=path,
                action=FileAction.MISSING,
                note="not present in template",
            )

        expected = content_address(upstream.content)
        if expected != upstream.address:
            logger.debug(
                "Upstream address of %s (%s) differs from its content address %s",
                path,
                upstream.address,
                expected,
            )

        current = await self._find(self.garden, path, ref, limited=True)
        current_address = current.address if current else None

        if current_address == expected:
            logger.debug("%s is up to date", path)
            if not dry_run:
                self.progress.mark_completed(path)
            return FileResult(path=path, action=FileAction.SKIP, address=expected)

        action = FileAction.CREATE if current is None else FileAction.UPDATE
        if dry_run:
            return FileResult(path=path, action=action, address=expected)

        logger.info(
            "Updating %s because %s",
            path,
            "it does not exist yet" if current is None else "it has changed",
        )
        try:
            address = await run_sync_limited(
                self.garden.put_file,
                path,
                upstream.content,
                ref,
                current_address,
                f"Update file {path}",
                semaphore=self._limit,
            )
        except ConflictError:
            logger.info("%s changed on %s; re-reading and retrying once", path, ref)
            current = await self._find(self.garden, path, ref, limited=True)
            if current is not None and current.address == expected:
                self.progress.mark_completed(path)
                return FileResult(
                    path=path, action=FileAction.SKIP, address=expected
                )
            address = await run_sync_limited(
                self.garden.put_file,
                path,
                upstream.content,
                ref,
                current.address if current else None,
                f"Update file {path}",
                semaphore=self._limit,
            )
            action = FileAction.CREATE if current is None else FileAction.UPDATE

        self.progress.mark_completed(path)
        return FileResult(path=path, action=action, address=address)

    async def _find(
        self,
        repository: RemoteRepository,
        path: str,
        ref: str | None = None,
        limited: bool = False,
    ) -> RemoteFile | None:
        """Read *path*, mapping ``NotFoundError`` to ``None``.

        Only absence is mapped; any other failure propagates.
        """
        try:
            if limited:
                return await run_sync_limited(
                    repository.get_file, path, ref, semaphore=self._limit
                )
            return await run_sync(repository.get_file, path, ref)
        except NotFoundError:
            return None

    @staticmethod
    def _absent(path: str) -> FileResult:
        return FileResult(
            path=path, action=FileAction.SKIP, note="already absent"
        )

    def _start_progress(
        self, version: str, branch: str, resume: SyncProgress | None
    ) -> None:
        if (
            resume is not None
            and resume.version == version
            and resume.branch == branch
        ):
            logger.info(
                "Resuming sync of %s: %d tracked files already done",
                version,
                len(resume.completed),
            )
            self.progress = SyncProgress(
                version=version,
                branch=branch,
                completed=list(resume.completed),
            )
        else:
            self.progress = SyncProgress(version=version, branch=branch)


async def update_template(
    garden: RemoteRepository,
    template: RemoteRepository,
    manifest: TemplateManifest | None = None,
) -> str | None:
    """Run the workflow once and return the pull request URL, or ``None`` if up to date."""
    report = await TemplateSyncWorkflow(garden, template, manifest).run()
    return report.pull_request_url
