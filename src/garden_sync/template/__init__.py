"""Template sync: propose upstream template updates to a garden repository.

Modules:

- ``manifest`` -- ``TemplateManifest``: tracked, deprecated and
  customization files plus the sync branch naming rule.
- ``models``   -- ``SyncStage``, ``FileAction``, ``FileResult``,
  ``SyncProgress``, ``ChangeProposal``, ``TemplateSyncReport``.
- ``workflow`` -- ``TemplateSyncWorkflow``: the seven-step pipeline.
- ``history``  -- ``PullRequestHistory``: pull requests opened so far.
- ``reporter`` -- text and JSON formatting of reports.
"""

from .history import PullRequestHistory
from .manifest import TemplateManifest
from .models import (
    ChangeProposal,
    FileAction,
    FileResult,
    SyncProgress,
    SyncStage,
    TemplateSyncReport,
)
from .workflow import TemplateSyncWorkflow, update_template

__all__ = [
    "ChangeProposal",
    "FileAction",
    "FileResult",
    "PullRequestHistory",
    "SyncProgress",
    "SyncStage",
    "TemplateManifest",
    "TemplateSyncReport",
    "TemplateSyncWorkflow",
    "update_template",
]
