"""
Verify archive health of one or more Iconik collections.

Scans the collections recursively and classifies every non-ARCHIVED asset:
- fix_metadata: file is on archive storage and on disk, only status is wrong
- reset_failed: FAILED_TO_ARCHIVE or stuck ARCHIVING, not on archive storage
- stale_cache: collection view lags, the asset record already says ARCHIVED
- skip: unable to classify

With --fix the remediation is applied (dry-run unless --live is also given).

Usage:
    python scripts/verify_archive_health.py --profile=tm --mount=/Volumes/vault <collection_id> [...]
    python scripts/verify_archive_health.py --profile=tm --mount=/Volumes/vault --fix --live <collection_id> [...]
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
from core.models.results import RunMode
from core.observability.logging import configure_logging
from core.storage.artifacts import write_run_report
from reconciliation.context import ReconcileConfig, RunContext
from reconciliation.errors import PreconditionError
from reconciliation.reporting import (
    RULE,
    format_classifications,
    format_remediation_summary,
    format_scan_report,
)
from workflows.archive_health_workflow import ArchiveHealthWorkflow, HealthRunResult

TOOL_NAME = "verify_archive_health"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify archive health of Iconik collections")
    parser.add_argument("--profile", help="Iconik profile to use (default profile if omitted)")
    parser.add_argument("--mount", type=Path, help="Local mount point for archive storage")
    parser.add_argument("--storage", help="Only count archive storages with this exact name")
    parser.add_argument("--fix", action="store_true", help="Apply remediation (default: report only)")
    parser.add_argument("--live", action="store_true", help="Execute changes when --fix is set (default: dry-run)")
    parser.add_argument("--report", type=Path, help="Write a JSON run report to this path")
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("collection_ids", nargs="*", metavar="collection_id")
    return parser


async def run_health_check(args: argparse.Namespace) -> Tuple[RunContext, HealthRunResult]:
    mode = RunMode.LIVE if args.live else RunMode.DRY_RUN
    config = ReconcileConfig(storage_name_filter=args.storage)

    async with create_client(args.profile) as client:
        ctx = RunContext.for_client(client, mode=mode, config=config)
        workflow = ArchiveHealthWorkflow(ctx, args.mount)
        result = await workflow.run(args.collection_ids, fix=args.fix)

    return ctx, result


def print_result(result: HealthRunResult, fix: bool, live: bool) -> None:
    print(f"\n{RULE}\nCOLLECTIONS\n{RULE}")
    for report in result.scan_reports:
        for line in format_scan_report(report):
            print(line)

    print(f"\nTotal non-ARCHIVED: {len(result.candidates)} unique assets")
    if result.classifications:
        print(f"\n{RULE}\nCLASSIFICATION\n{RULE}")
        for line in format_classifications(result.classifications):
            print(line)

    print()
    for line in format_remediation_summary(result.summary):
        print(line)

    if not fix and result.candidates:
        print("\nRe-run with --fix to apply remediation (add --live to execute).")
    elif fix and not live:
        print("\nDry run only. Re-run with --fix --live to apply.")


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
        ctx, result = asyncio.run(run_health_check(args))
    except (ConfigurationError, PreconditionError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print_result(result, fix=args.fix, live=args.live)

    if args.report:
        report = RunReport(
            tool=TOOL_NAME,
            run_id=ctx.run_id,
            mode=ctx.mode.value,
            roots=list(args.collection_ids),
            summary=result.summary.model_dump(mode="json"),
            items=[c.model_dump(mode="json") for c in result.classifications],
        )
        ref = write_run_report(report, args.report)
        print(f"\nReport written to {ref.storage_uri}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
