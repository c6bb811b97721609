"""
Fix archive status metadata for assets already sitting on archive storage.

Walks the given collections and, for every asset whose file is on an archive
storage and present on the mount, sets the asset and its formats to ARCHIVED
and closes MISSING file records. Nothing is ever reset.

Dry-run by default. Add --live to apply changes.

Usage:
    python scripts/fix_archive_status.py --profile=tm --mount=/Volumes/vault <collection_id> [...]
    python scripts/fix_archive_status.py --profile=tm --mount=/Volumes/vault --live <collection_id> [...]
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
from core.models.results import RemediationAction, RunMode
from core.observability.logging import configure_logging
from core.storage.artifacts import write_run_report
from reconciliation.context import ReconcileConfig, RunContext
from reconciliation.errors import PreconditionError
from reconciliation.reporting import RULE, format_scan_report
from workflows.archive_health_workflow import ArchiveHealthWorkflow, HealthRunResult

TOOL_NAME = "fix_archive_status"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fix archive status of assets already on archive storage")
    parser.add_argument("--profile", help="Iconik profile to use (default profile if omitted)")
    parser.add_argument("--mount", type=Path, help="Local mount point for archive storage")
    parser.add_argument("--storage", help="Only count archive storages with this exact name")
    parser.add_argument("--live", action="store_true", help="Apply changes (default: dry-run)")
    parser.add_argument("--report", type=Path, help="Write a JSON run report to this path")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("collection_ids", nargs="*", metavar="collection_id")
    return parser


async def run_fix(args: argparse.Namespace) -> Tuple[RunContext, HealthRunResult]:
    mode = RunMode.LIVE if args.live else RunMode.DRY_RUN
    config = ReconcileConfig(storage_name_filter=args.storage)

    async with create_client(args.profile) as client:
        ctx = RunContext.for_client(client, mode=mode, config=config)
        workflow = ArchiveHealthWorkflow(ctx, args.mount)
        result = await workflow.run(
            args.collection_ids,
            fix=True,
            enabled_actions=[RemediationAction.FIX_METADATA],
        )

    return ctx, result


def print_totals(result: HealthRunResult) -> None:
    summary = result.summary
    print(f"\n{RULE}\nCOLLECTIONS\n{RULE}")
    for report in result.scan_reports:
        for line in format_scan_report(report):
            print(line)

    fixable = len(result.by_action(RemediationAction.FIX_METADATA))
    print(f"\n{RULE}\nGRAND TOTAL ({summary.mode.value})\n{RULE}")
    print(f"Non-ARCHIVED assets: {summary.found}")
    print(f"On archive storage:  {fixable}")
    print(f"Assets fixed:        {summary.fixed}")
    print(f"Formats fixed:       {summary.formats_updated}")
    print(f"Files closed:        {summary.files_closed}")
    print(f"Errors:              {summary.errors}")
    for message in summary.error_messages:
        print(f"  - {message}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_format=args.json_logs,
        force=True,
    )

    if args.mount is None or not args.collection_ids:
        parser.print_usage(sys.stderr)
        print("error: --mount and at least one collection_id are required", file=sys.stderr)
        return 1
    if not args.mount.is_dir():
        print(f"Error: archive storage not mounted at {args.mount}", file=sys.stderr)
        return 1

    try:
        ctx, result = asyncio.run(run_fix(args))
    except (ConfigurationError, PreconditionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_totals(result)

    if args.report:
        report = RunReport(
            tool=TOOL_NAME,
            run_id=ctx.run_id,
            mode=ctx.mode.value,
            roots=list(args.collection_ids),
            summary=result.summary.model_dump(mode="json"),
            items=[c.model_dump(mode="json") for c in result.by_action(RemediationAction.FIX_METADATA)],
        )
        ref = write_run_report(report, args.report)
        print(f"\nReport written to {ref.storage_uri}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
