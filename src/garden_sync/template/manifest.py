"""The fixed list of template files the sync workflow manages.

Files not named here are never touched by a template sync.  The
customization file is kept apart from the tracked files: it is created
from the template once and never overwritten afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_BRANCH_PREFIX = "update-template-to-v"

DEFAULT_TRACKED_FILES: tuple[str, ...] = (
    ".eleventy.js",
    "README.md",
    "netlify.toml",
    "package-lock.json",
    "package.json",
    "src/site/404.njk",
    "src/site/index.njk",
    "src/site/versionednote.njk",
    "src/site/styles/style.scss",
    "src/site/notes/notes.json",
    "src/site/_includes/layouts/note.njk",
    "src/site/_includes/layouts/versionednote.njk",
    "src/site/_includes/components/notegrowthhistory.njk",
    "src/site/_includes/components/pageheader.njk",
    "src/site/_data/versionednotes.js",
)

DEFAULT_DEPRECATED_FILES: tuple[str, ...] = ("src/site/styles/style.css",)

DEFAULT_CUSTOMIZATION_FILE = "src/site/styles/custom-style.scss"


class TemplateManifest(BaseModel):
    """Which template files to update, delete, or create once.

    Attributes:
        tracked_files: Files kept identical to the template, in sync order.
        deprecated_files: Files removed from newer template versions.
        customization_file: User-owned file created only when absent.
        branch_prefix: Prefix of the per-version sync branch name.
    """

    tracked_files: tuple[str, ...] = DEFAULT_TRACKED_FILES
    deprecated_files: tuple[str, ...] = DEFAULT_DEPRECATED_FILES
    customization_file: str | None = DEFAULT_CUSTOMIZATION_FILE
    branch_prefix: str = Field(default=DEFAULT_BRANCH_PREFIX, min_length=1)

    model_config = {"frozen": True}

    @field_validator("tracked_files", "deprecated_files")
    @classmethod
    def _dedupe(cls, paths: tuple[str, ...]) -> tuple[str, ...]:
        # First occurrence wins so sync order stays stable
        cleaned = (p.strip().lstrip("/") for p in paths)
        return tuple(dict.fromkeys(p for p in cleaned if p))

    @model_validator(mode="after")
    def _check_disjoint(self) -> TemplateManifest:
        overlap = set(self.tracked_files) & set(self.deprecated_files)
        if overlap:
            raise ValueError(
                f"Paths cannot be both tracked and deprecated: {sorted(overlap)}"
            )
        custom = self.customization_file
        if custom and (
            custom in self.tracked_files or custom in self.deprecated_files
        ):
            raise ValueError(
                f"Customization file '{custom}' cannot also be tracked or deprecated"
            )
        return self

    def branch_name(self, version: str) -> str:
        """Sync branch name for *version*; the same version always gives the same name."""
        cleaned = "-".join(version.strip().split())
        return f"{self.branch_prefix}{cleaned}"
