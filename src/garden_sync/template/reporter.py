"""Report formatting functions.

Provides human-readable and machine-readable output:

- ``format_sync_report`` -- template sync summary (real or dry run).
- ``format_publish_status`` -- the four-way publish partition.
- ``format_publish_results`` -- outcome of a publish run.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import FileAction

if TYPE_CHECKING:
    from ..publish.models import PublishPartition, PublishResult
    from .models import TemplateSyncReport

_SECTION_LABELS = (
    (FileAction.CREATE, "Created"),
    (FileAction.UPDATE, "Updated"),
    (FileAction.DELETE, "Deleted"),
    (FileAction.PRESERVE, "Preserved"),
    (FileAction.MISSING, "Missing from template"),
)

# ------------------------------------------------------------------
# Template sync report
# ------------------------------------------------------------------


def format_sync_report(report: TemplateSyncReport) -> str:
    """Format a template sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Unchanged files are summarised by count only.

    Args:
        report: The completed (or planned) sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Template update to version {report.version}"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Branch: {report.branch}")
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    prefix = "Would change" if report.dry_run else "Changed"
    lines.append(
        f"{prefix} {len(report.writes)} of {len(report.results)} files: "
        f"{len(report.created)} created, {len(report.updated)} updated, "
        f"{len(report.deleted)} deleted"
    )
    lines.append("")

    for action, label in _SECTION_LABELS:
        group = [r for r in report.results if r.action == action]
        if not group:
            continue
        lines.append(f"{label}:")
        for r in group:
            suffix = f" ({r.note})" if r.note else ""
            lines.append(f"  {r.path}{suffix}")
        lines.append("")

    if report.skipped:
        lines.append(f"Unchanged: {len(report.skipped)} files")
        lines.append("")

    if report.dry_run:
        if not report.writes:
            lines.append("Already up to date.")
    elif report.pull_request_url:
        lines.append(f"Pull request: {report.pull_request_url}")
    else:
        lines.append("No changes to propose; the garden is up to date.")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Publish status
# ------------------------------------------------------------------


def format_publish_status(partition: PublishPartition) -> str:
    """Format a publish partition, listing every path that needs action."""
    lines: list[str] = [partition.summary(), ""]

    for title, items in (
        ("Unpublished", partition.unpublished),
        ("Changed", partition.changed),
        ("Deleted", partition.deleted),
    ):
        if not items:
            continue
        lines.append(f"{title}:")
        for item in items:
            lines.append(f"  {item.path}")
        lines.append("")

    if partition.in_sync:
        lines.append("Everything is published.")

    return "\n".join(lines).rstrip()


def format_publish_results(
    results: list[PublishResult], dry_run: bool = False
) -> str:
    """Format per-item publish outcomes."""
    if not results:
        return "Nothing to publish."

    lines: list[str] = []
    if dry_run:
        lines.append("DRY RUN -- No changes will be made")
    for r in results:
        marker = "ok" if r.success else "FAILED"
        line = f"[{r.state.value.upper()}] {r.path}: {marker}"
        if r.error:
            line += f" ({r.error})"
        lines.append(line)

    failed = sum(1 for r in results if not r.success)
    lines.append("")
    lines.append(f"{len(results) - failed} succeeded, {failed} failed")
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: TemplateSyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with version info, counts, and per-file results.
    """
    results_list = []
    for r in report.results:
        entry: dict = {"path": r.path, "action": r.action.value}
        if r.address:
            entry["address"] = r.address
        if r.note:
            entry["note"] = r.note
        results_list.append(entry)

    return {
        "version": report.version,
        "branch": report.branch,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "pull_request_url": report.pull_request_url,
        "counts": {
            "total": len(report.results),
            "created": len(report.created),
            "updated": len(report.updated),
            "deleted": len(report.deleted),
            "preserved": len(report.preserved),
            "skipped": len(report.skipped),
            "missing": len(report.missing),
        },
        "results": results_list,
    }
