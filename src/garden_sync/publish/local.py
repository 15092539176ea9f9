"""Local content discovery for publish-status reconciliation.

Scans a content root for files matching glob patterns and turns each into
a ``ContentUnit`` whose path is the remote-relative path the file is
published under.

Path resolution:

1. **Exclude check** -- a path matching any exclude glob is skipped.
2. **Pattern check** -- only paths matching at least one pattern are kept.
3. **Rewrite rules** -- the first rule whose ``source`` prefix matches the
   local path replaces that prefix with ``target``.

Bytes are read verbatim: any normalisation here would make local
addresses disagree with the remote blob ids.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Sequence
from pathlib import Path, PurePosixPath

from pydantic import BaseModel

from .models import ContentUnit

logger = logging.getLogger(__name__)


class PathRewriteRule(BaseModel):
    """Rewrite a local folder prefix to a published folder prefix.

    Attributes:
        source: Local prefix, e.g. ``"Garden/"``.
        target: Published prefix, e.g. ``""`` to publish at the root.
    """

    source: str
    target: str = ""

    model_config = {"frozen": True}


def rewrite_path(
    local_path: str, rules: Sequence[PathRewriteRule]
) -> str:
    """Apply the first matching rewrite rule to *local_path*.

    Returns *local_path* unchanged when no rule matches.
    """
    for rule in rules:
        source = rule.source.strip("/")
        if not source:
            continue
        if local_path == source or local_path.startswith(source + "/"):
            remainder = local_path[len(source) :].lstrip("/")
            target = rule.target.strip("/")
            return f"{target}/{remainder}" if target else remainder
    return local_path


def _matches_any(path: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatch(path, pattern) for pattern in patterns)


def discover_local_paths(
    root: Path,
    patterns: Sequence[str] = ("*.md",),
    exclude: Sequence[str] = (),
) -> list[str]:
    """Return sorted POSIX paths (relative to *root*) of files to publish."""
    if not root.is_dir():
        return []

    result: list[str] = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        rel = PurePosixPath(path.relative_to(root)).as_posix()
        if _matches_any(rel, exclude):
            continue
        # Match on the full relative path or the bare filename
        if _matches_any(rel, patterns) or _matches_any(path.name, patterns):
            result.append(rel)
    return result


def discover_content_units(
    root: Path,
    patterns: Sequence[str] = ("*.md",),
    exclude: Sequence[str] = (),
    rewrite_rules: Sequence[PathRewriteRule] = (),
) -> list[ContentUnit]:
    """Read every publishable file under *root* as a ``ContentUnit``.

    When two local files rewrite to the same remote path the first one
    (in sorted local order) wins and the other is logged and skipped.

    Args:
        root: Content root directory.
        patterns: Glob patterns selecting files to publish.
        exclude: Glob patterns of files to leave out.
        rewrite_rules: Ordered local-to-published prefix rewrites.

    Returns:
        Units in sorted local-path order.
    """
    units: list[ContentUnit] = []
    claimed: dict[str, str] = {}

    for rel in discover_local_paths(root, patterns, exclude):
        remote_path = rewrite_path(rel, rewrite_rules)
        if remote_path in claimed:
            logger.warning(
                "Skipping %s: publishes to %s, already used by %s",
                rel,
                remote_path,
                claimed[remote_path],
            )
            continue
        claimed[remote_path] = rel
        units.append(
            ContentUnit(
                path=remote_path, content=(root / rel).read_bytes()
            )
        )

    logger.debug("Discovered %d content units under %s", len(units), root)
    return units
