"""
Move assets from a working storage to an archive storage.

Per asset, in order (each step is skipped when already done):
1. Locate the reference file record
2. Copy the file to the archive mount and verify its size
3. Create the archive file set
4. Create the archive file record
5. Set asset + formats -> ARCHIVED
6. Delete source file sets and source files on disk

Safe to re-run after an interruption. Dry-run by default. Add --live to apply.

Usage:
    python scripts/archive_assets_to_storage.py --profile=<name> \
        --source-mount=/mnt/source --archive-mount=/mnt/archive \
        --archive-storage=<storage_id> [--live] <asset_id> [...]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

sys.path.append(str(Path(__file__).resolve().parents[1]))

from connectors.iconik.iconik_client import create_client
from connectors.iconik.iconik_config import ConfigurationError
from core.models.refs import RunReport
from core.models.results import MigrationSummary, RunMode
from core.observability.logging import configure_logging
from core.storage.artifacts import write_run_report
from reconciliation.context import RunContext
from reconciliation.errors import PreconditionError
from reconciliation.reporting import format_migration_summary
from workflows.archive_migration_workflow import ArchiveMigrationWorkflow

TOOL_NAME = "archive_assets_to_storage"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Move Iconik assets to an archive storage")
    parser.add_argument("--profile", help="Iconik profile to use (default profile if omitted)")
    parser.add_argument("--source-mount", type=Path, help="Local mount point for source (working) storage")
    parser.add_argument("--archive-mount", type=Path, help="Local mount point for archive storage")
    parser.add_argument("--archive-storage", help="Iconik storage ID for the archive destination")
    parser.add_argument("--live", action="store_true", help="Apply changes (default: dry-run)")
    parser.add_argument("--report", type=Path, help="Write a JSON run report to this path")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("asset_ids", nargs="*", metavar="asset_id")
    return parser


async def run_migration(args: argparse.Namespace) -> Tuple[RunContext, MigrationSummary]:
    mode = RunMode.LIVE if args.live else RunMode.DRY_RUN

    async with create_client(args.profile) as client:
        ctx = RunContext.for_client(client, mode=mode)
        workflow = ArchiveMigrationWorkflow(
            ctx,
            source_mount=args.source_mount,
            dest_mount=args.archive_mount,
            dest_storage_id=args.archive_storage,
        )
        storage = await workflow.check_preconditions()
        print(f"Archive storage: {storage.name} ({storage.purpose})")
        print(f"Mode: {mode.value}, {len(args.asset_ids)} asset(s)")

        summary = await workflow.run(args.asset_ids)

    return ctx, summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_format=args.json_logs,
        force=True,
    )

    if not (args.source_mount and args.archive_mount and args.archive_storage and args.asset_ids):
        parser.print_usage(sys.stderr)
        print(
            "error: --source-mount, --archive-mount, --archive-storage and at least one asset_id are required",
            file=sys.stderr,
        )
        return 1
    for label, mount in (("source", args.source_mount), ("archive", args.archive_mount)):
        if not mount.is_dir():
            print(f"Error: {label} storage not mounted at {mount}", file=sys.stderr)
            return 1

    try:
        ctx, summary = asyncio.run(run_migration(args))
    except (ConfigurationError, PreconditionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print()
    for line in format_migration_summary(summary):
        print(line)

    if args.report:
        report = RunReport(
            tool=TOOL_NAME,
            run_id=ctx.run_id,
            mode=ctx.mode.value,
            roots=list(args.asset_ids),
            summary=summary.model_dump(mode="json", exclude={"results"}),
            items=[r.model_dump(mode="json") for r in summary.results],
        )
        ref = write_run_report(report, args.report)
        print(f"\nReport written to {ref.storage_uri}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
