"""Pydantic models for the template sync workflow.

- ``SyncStage``: the workflow state machine.
- ``FileAction``: what happened (or would happen) to one file.
- ``FileResult``: outcome for one managed file.
- ``SyncProgress``: resumable cursor over the tracked-file manifest.
- ``ChangeProposal``: the pull request produced, or ``None`` when up to date.
- ``TemplateSyncReport``: aggregate results for one run.

All models except ``SyncProgress`` are frozen.  ``SyncProgress`` is
updated as the run advances so that a caller holding it after a failure
sees exactly how far the run got.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class SyncStage(str, Enum):
    """Stages of one workflow run, in order."""

    START = "start"
    VERSION_RESOLVED = "version_resolved"
    BRANCH_ENSURED = "branch_ensured"
    FILES_RECONCILED = "files_reconciled"
    PROPOSED = "proposed"
    NO_CHANGE_NEEDED = "no_change_needed"


class FileAction(str, Enum):
    """Action taken for a managed file."""

    SKIP = "skip"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    PRESERVE = "preserve"
    MISSING = "missing"


class FileResult(BaseModel):
    """Outcome for one managed file.

    Attributes:
        path: Repository-relative path.
        action: Action taken (or planned in a dry run).
        address: Address of the file after the action, when known.
        note: Extra detail, e.g. why a file was skipped.
    """

    path: str
    action: FileAction
    address: str | None = None
    note: str | None = None

    model_config = {"frozen": True}


class SyncProgress(BaseModel):
    """How far a run got.

    Multi-file updates are not transactional; after an interrupted run
    the branch holds a subset of the updates.  Passing this object back
    to ``TemplateSyncWorkflow.run(resume=...)`` skips the tracked files
    listed in ``completed`` when the resolved version is unchanged.

    Attributes:
        version: Template version the run resolved.
        branch: Sync branch name.
        stage: Last stage reached.
        completed: Tracked files already reconciled on the branch.
    """

    version: str | None = None
    branch: str | None = None
    stage: SyncStage = SyncStage.START
    completed: list[str] = []

    def mark_completed(self, path: str) -> None:
        if path not in self.completed:
            self.completed.append(path)


class ChangeProposal(BaseModel):
    """Result of the proposal step.

    Attributes:
        version: Template version proposed.
        branch: Branch holding the changes.
        url: Pull request URL, or ``None`` when the fork is up to date.
    """

    version: str
    branch: str
    url: str | None = None

    model_config = {"frozen": True}

    @property
    def is_noop(self) -> bool:
        return self.url is None


class TemplateSyncReport(BaseModel):
    """Aggregate report for one workflow run.

    Attributes:
        version: Template version synced to.
        branch: Sync branch name.
        dry_run: Whether changes were only planned.
        results: Per-file results in workflow order.
        proposal: The change proposal (``None`` for dry runs).
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run completed.
    """

    version: str
    branch: str
    dry_run: bool = False
    results: list[FileResult] = []
    proposal: ChangeProposal | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_action(self, action: FileAction) -> list[FileResult]:
        return [r for r in self.results if r.action == action]

    @property
    def created(self) -> list[FileResult]:
        return self._with_action(FileAction.CREATE)

    @property
    def updated(self) -> list[FileResult]:
        return self._with_action(FileAction.UPDATE)

    @property
    def deleted(self) -> list[FileResult]:
        return self._with_action(FileAction.DELETE)

    @property
    def preserved(self) -> list[FileResult]:
        return self._with_action(FileAction.PRESERVE)

    @property
    def skipped(self) -> list[FileResult]:
        return self._with_action(FileAction.SKIP)

    @property
    def missing(self) -> list[FileResult]:
        """Managed files the template itself does not have."""
        return self._with_action(FileAction.MISSING)

    @property
    def writes(self) -> list[FileResult]:
        """Results that changed (or would change) the branch."""
        return [
            r
            for r in self.results
            if r.action
            in (FileAction.CREATE, FileAction.UPDATE, FileAction.DELETE)
        ]

    @property
    def pull_request_url(self) -> str | None:
        return self.proposal.url if self.proposal else None

    def summary(self) -> str:
        """Format a short summary of the run."""
        lines = [
            f"Template sync to version {self.version} on '{self.branch}'"
            + (" (dry run)" if self.dry_run else ""),
            f"  Created:   {len(self.created)}",
            f"  Updated:   {len(self.updated)}",
            f"  Deleted:   {len(self.deleted)}",
            f"  Preserved: {len(self.preserved)}",
            f"  Unchanged: {len(self.skipped)}",
            f"  Missing:   {len(self.missing)}",
        ]
        return "\n".join(lines)
