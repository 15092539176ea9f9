"""Command line entry point: ``garden-sync``.

Subcommands:

- ``status ROOT``                 -- show which notes are published, changed,
  unpublished, or deleted.
- ``publish ROOT [--dry-run]``    -- upload new and changed notes, delete removed ones.
- ``update-template [--dry-run]`` -- propose the latest template release as a
  pull request on the garden repository.
- ``history``                     -- list pull requests opened so far.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import Config, load_config
from .config_loader import load_hierarchical_config, project_state_dir
from .config_schema import (
    UnifiedConfig,
    build_config,
    github_fallbacks,
    to_manifest,
)
from .core.async_utils import init_semaphore
from .core.client import GitHubClient
from .core.errors import AuthError, RemoteError
from .logger import setup_logging
from .publish import (
    ContentPublisher,
    PublishStatusManager,
    discover_content_units,
)
from .template import PullRequestHistory, TemplateSyncWorkflow
from .template.reporter import (
    format_publish_results,
    format_publish_status,
    format_sync_report,
    report_to_json,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="garden-sync",
        description="Publish notes to a digital garden repository and keep it on the latest template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Which notes differ from the published site
  garden-sync status ~/vault

  # Preview, then publish
  garden-sync publish ~/vault --dry-run
  garden-sync publish ~/vault

  # Open a pull request updating the site to the latest template
  garden-sync update-template

Connection settings come from --token/--owner/--repository, then
GARDEN_GITHUB_TOKEN, GARDEN_OWNER, GARDEN_REPOSITORY (or a .env file),
then .garden_sync/config.yml.
        """,
    )
    parser.add_argument("--token", help="GitHub API token (prefer GARDEN_GITHUB_TOKEN)")
    parser.add_argument("--owner", help="Owner of the garden repository")
    parser.add_argument("--repository", help="Name of the garden repository")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Log record format on stderr (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"garden-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    status = sub.add_parser("status", help="Show publish status of local notes")
    status.add_argument("root", nargs="?", help="Local content root (default: publish.root)")

    publish = sub.add_parser("publish", help="Publish local notes")
    publish.add_argument("root", nargs="?", help="Local content root (default: publish.root)")
    publish.add_argument("--dry-run", action="store_true", help="Show what would change")

    update = sub.add_parser("update-template", help="Propose the latest template release")
    update.add_argument("--dry-run", action="store_true", help="Plan against the default branch only")
    update.add_argument("--json", action="store_true", help="Print the report as JSON")

    sub.add_parser("history", help="List pull requests opened by update-template")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _content_root(args: argparse.Namespace, unified: UnifiedConfig) -> Path:
    root = args.root or unified.publish.root
    if not root:
        raise ValueError(
            "No content root given. Pass ROOT or set 'publish.root' in config.yml."
        )
    path = Path(root).expanduser()
    if not path.is_dir():
        raise ValueError(f"Content root {path} is not a directory")
    return path


async def _publish_status(
    args: argparse.Namespace, config: Config, unified: UnifiedConfig
):
    settings = unified.publish
    units = discover_content_units(
        _content_root(args, unified),
        settings.patterns,
        settings.exclude,
        settings.rewrite_rules,
    )
    garden = GitHubClient.for_garden(config)
    manager = PublishStatusManager(garden, ref=config.branch or "HEAD")
    partition = await manager.get_status(
        units, settings.prefix, frozenset(settings.remote_exclude)
    )
    return garden, units, partition


async def cmd_status(
    args: argparse.Namespace, config: Config, unified: UnifiedConfig
) -> int:
    _, _, partition = await _publish_status(args, config, unified)
    print(format_publish_status(partition))
    return 0


async def cmd_publish(
    args: argparse.Namespace, config: Config, unified: UnifiedConfig
) -> int:
    garden, units, partition = await _publish_status(args, config, unified)
    publisher = ContentPublisher(
        garden, unified.publish.prefix, branch=config.branch
    )
    results = await publisher.apply(partition, units, dry_run=args.dry_run)
    print(format_publish_results(results, dry_run=args.dry_run))
    return 0 if all(r.success for r in results) else 1


async def cmd_update_template(
    args: argparse.Namespace, config: Config, unified: UnifiedConfig
) -> int:
    workflow = TemplateSyncWorkflow(
        GitHubClient.for_garden(config),
        GitHubClient.for_template(config),
        to_manifest(unified),
        max_parallel=config.max_parallel_requests,
    )
    report = await workflow.run(dry_run=args.dry_run)

    if report.pull_request_url:
        PullRequestHistory(project_state_dir()).record(
            report.pull_request_url, report.version, report.branch
        )

    if args.json:
        print(json.dumps(report_to_json(report), indent=2))
    else:
        print(format_sync_report(report))
    return 0


def cmd_history() -> int:
    entries = PullRequestHistory(project_state_dir()).load()
    if not entries:
        print("No pull requests recorded.")
        return 0
    for entry in entries:
        print(f"{entry['created_at']}  {entry['version']}  {entry['url']}")
    return 0


async def main(args: argparse.Namespace) -> int:
    """Load configuration and dispatch *args* to its command."""
    load_dotenv()
    unified = build_config(load_hierarchical_config())
    setup_logging(
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=args.log_format,
        level=unified.logging.level,
    )

    if args.command == "history":
        return cmd_history()

    config = load_config(
        token=args.token,
        owner=args.owner,
        repository=args.repository,
        debug=args.debug,
        yaml_fallbacks=github_fallbacks(unified),
    )
    logger.info("Garden repository: %s/%s", config.owner, config.repository)
    init_semaphore(config.max_parallel_requests)

    match args.command:
        case "status":
            return await cmd_status(args, config, unified)
        case "publish":
            return await cmd_publish(args, config, unified)
        case "update-template":
            return await cmd_update_template(args, config, unified)
        case _:
            raise ValueError(f"Unknown command: {args.command}")


def run(argv: list[str] | None = None) -> None:
    """Entry point that parses arguments and maps failures to exit codes."""
    args = build_parser().parse_args(argv)

    try:
        code = asyncio.run(main(args))
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    except AuthError as e:
        print(f"ERROR: GitHub rejected the credentials: {e}", file=sys.stderr)
        print("  Check GARDEN_GITHUB_TOKEN and its repository permissions.", file=sys.stderr)
        sys.exit(1)
    except RemoteError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)

    sys.exit(code)


if __name__ == "__main__":
    run()
