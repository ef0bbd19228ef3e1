"""
Command-line interface for the GitHub issue transfer tool.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import (
    DEFAULT_ENDPOINT,
    DEFAULT_REPLACE_FILE,
    DESTINATION_TOKEN_ENV_VAR,
    SOURCE_TOKEN_ENV_VAR,
    TransferConfig,
    get_token,
    parse_repo_path,
)
from .exceptions import MigrationError
from .migrator import IssueTransfer, TransferStats
from .utils import setup_logging

logger: logging.Logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Transfer issues, pull requests, labels and milestones between GitHub repositories, "
        "keeping the original issue numbers"
    )

    _ = parser.add_argument("src", help="Source repository (owner/repo)")
    _ = parser.add_argument("dst", help="Destination repository (owner/repo)")

    _ = parser.add_argument(
        "--src-endpoint", default=DEFAULT_ENDPOINT, help=f"Source API endpoint (default: {DEFAULT_ENDPOINT})"
    )
    _ = parser.add_argument(
        "--dst-endpoint",
        default=DEFAULT_ENDPOINT,
        help=f"Destination API endpoint, e.g. https://ghe.example.com/api/v3 (default: {DEFAULT_ENDPOINT})",
    )
    _ = parser.add_argument(
        "--strategy",
        choices=["import", "create"],
        default="import",
        help="'import' uses the issue import API; 'create' creates issues and comments one call at a time",
    )
    _ = parser.add_argument("--skip-labels", action="store_true", help="Do not create labels")
    _ = parser.add_argument("--skip-milestones", action="store_true", help="Do not create milestones")
    _ = parser.add_argument("--skip-avatars", action="store_true", help="Leave author avatars out of bodies")
    _ = parser.add_argument(
        "--no-sync",
        dest="synchronous",
        action="store_false",
        help="Do not wait for each import to finish. Issue numbers are not preserved and gaps are not filled.",
    )
    _ = parser.add_argument(
        "--dry-run", action="store_true", help="Read and build everything, but make no changes on the destination"
    )
    _ = parser.add_argument(
        "--replace-file",
        type=Path,
        default=Path(DEFAULT_REPLACE_FILE),
        help=f"YAML file with user and body replacement rules (default: {DEFAULT_REPLACE_FILE})",
    )
    _ = parser.add_argument(
        "--show-assignees",
        action="store_true",
        help="Only list the assignees that would be set on the destination, then exit",
    )
    _ = parser.add_argument(
        "--src-pass-token", help=f"Path for the source token in pass utility (default: ${SOURCE_TOKEN_ENV_VAR})"
    )
    _ = parser.add_argument(
        "--dst-pass-token",
        help=f"Path for the destination token in pass utility (default: ${DESTINATION_TOKEN_ENV_VAR})",
    )
    _ = parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Increase console verbosity (-v info, -vv debug)"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TransferConfig:
    """Build the run configuration from parsed arguments."""
    return TransferConfig(
        source_repo=parse_repo_path(args.src),
        destination_repo=parse_repo_path(args.dst),
        source_endpoint=args.src_endpoint,
        destination_endpoint=args.dst_endpoint,
        strategy=args.strategy,
        skip_labels=args.skip_labels,
        skip_milestones=args.skip_milestones,
        skip_avatars=args.skip_avatars,
        synchronous=args.synchronous,
        dry_run=args.dry_run,
        replace_file=args.replace_file,
    )


def _print_report(config: TransferConfig, stats: TransferStats) -> None:
    print(f"Transfer {config.source_repo} -> {config.destination_repo}{' (dry run)' if config.dry_run else ''}")
    print(f"  Labels created:      {stats.labels_created}")
    print(f"  Milestones created:  {stats.milestones_created}")
    print(f"  Issues/PRs migrated: {stats.records_migrated}")
    print(f"  Placeholders:        {stats.placeholders_created}")
    print(f"  Comments migrated:   {stats.comments_created}")
    if stats.comments_dropped:
        print(f"  Comments dropped:    {stats.comments_dropped} (see log)")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(verbosity=args.verbose)

    try:
        config = build_config(args)
        transfer = IssueTransfer.from_config(
            config,
            source_token=get_token(SOURCE_TOKEN_ENV_VAR, args.src_pass_token),
            destination_token=get_token(DESTINATION_TOKEN_ENV_VAR, args.dst_pass_token),
        )

        if args.show_assignees:
            for number, login in transfer.show_assignees():
                print(f"{number} {login}")
            sys.exit(0)

        stats = transfer.migrate()
    except MigrationError:
        logger.exception("Transfer failed")
        sys.exit(1)

    _print_report(config, stats)
    sys.exit(0)
