"""Unified configuration schema for garden_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the GitHub connection, the template manifest, publishing,
and logging.  Adapter functions turn it into the ``Config`` dataclass and
a ``TemplateManifest``.

Usage:
    from garden_sync.config_schema import (
        UnifiedConfig, build_config, to_legacy_config, to_manifest,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_legacy_config(unified, cli_overrides={"owner": "alice"})
    manifest = to_manifest(unified)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from .publish.local import PathRewriteRule
from .template.manifest import TemplateManifest

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """Repository connection settings.

    All fields are optional: env vars and CLI args can supply them at
    runtime instead.
    """

    token: str | None = Field(default=None, description="GitHub API token")
    owner: str | None = Field(
        default=None, description="Owner of the garden repository"
    )
    repository: str | None = Field(
        default=None, description="Name of the garden repository"
    )
    template_owner: str | None = Field(
        default=None, description="Owner of the upstream template"
    )
    template_repository: str | None = Field(
        default=None, description="Name of the upstream template"
    )
    api_url: str | None = Field(default=None, description="API base URL")
    branch: str | None = Field(
        default=None, description="Branch content is published to"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    max_parallel_requests: int = Field(
        default=1,
        ge=1,
        le=20,
        description="Maximum concurrent file requests (1-20)",
    )

    model_config = {"frozen": True}


class TemplateConfig(BaseModel):
    """Overrides for the template manifest; unset fields keep the defaults."""

    tracked_files: list[str] | None = None
    deprecated_files: list[str] | None = None
    customization_file: str | None = None
    branch_prefix: str | None = None

    model_config = {"frozen": True}


class PublishConfig(BaseModel):
    """Which local files are published, and where.

    Attributes:
        root: Local content root (the vault).
        prefix: Remote folder notes are published under.
        patterns: Glob patterns of local files to publish.
        exclude: Glob patterns of local files to leave out.
        remote_exclude: Remote names ignored when diffing (e.g. ``notes.json``).
        rewrite_rules: Ordered local-to-published folder rewrites.
    """

    root: str | None = None
    prefix: str = "src/site/notes/"
    patterns: list[str] = Field(default_factory=lambda: ["*.md"])
    exclude: list[str] = Field(default_factory=list)
    remote_exclude: list[str] = Field(default_factory=lambda: ["notes.json"])
    rewrite_rules: list[PathRewriteRule] = Field(default_factory=list)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    template: TemplateConfig = Field(default_factory=TemplateConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.  Null sections (``github:`` with no
    body in YAML) are treated as missing.
    """
    if not raw_data:
        return UnifiedConfig()

    sections = {k: v for k, v in raw_data.items() if v is not None}
    return UnifiedConfig(**sections)


def github_fallbacks(unified: UnifiedConfig) -> dict:
    """The non-None ``github`` values, as ``load_config(yaml_fallbacks=...)`` expects."""
    return {
        k: v for k, v in unified.github.model_dump().items() if v is not None
    }


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > built-in default

    CLI overrides dict keys: token, owner, repository, debug.

    Returns:
        ``Config`` instance (NOT validated; run ``validate_config()``
        separately if needed).
    """
    # Import here to avoid circular imports
    from .config import (
        DEFAULT_API_URL,
        DEFAULT_TEMPLATE_OWNER,
        DEFAULT_TEMPLATE_REPOSITORY,
        Config,
    )

    overrides = cli_overrides or {}
    gh = unified.github

    return Config(
        token=overrides.get("token") or gh.token or "",
        owner=overrides.get("owner") or gh.owner or "",
        repository=overrides.get("repository") or gh.repository or "",
        template_owner=gh.template_owner or DEFAULT_TEMPLATE_OWNER,
        template_repository=gh.template_repository
        or DEFAULT_TEMPLATE_REPOSITORY,
        api_url=gh.api_url or DEFAULT_API_URL,
        branch=gh.branch,
        debug=overrides.get("debug", False) or gh.debug,
        max_parallel_requests=gh.max_parallel_requests,
    )


def to_manifest(unified: UnifiedConfig) -> TemplateManifest:
    """Build the ``TemplateManifest``, keeping defaults for unset fields.

    Raises:
        pydantic.ValidationError: The overrides produce an inconsistent
            manifest (e.g. a path both tracked and deprecated).
    """
    overrides = unified.template.model_dump(exclude_none=True)
    if overrides:
        logger.debug("Template manifest overrides: %s", sorted(overrides))
    return TemplateManifest(**overrides)
