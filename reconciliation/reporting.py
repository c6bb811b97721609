"""Plain-text run summaries for the CLIs.

Dry-run and live runs render through the same functions so their output can
be diffed line for line.
"""

from typing import Iterable, List

from core.models.results import (
    ClassificationResult,
    MigrationResult,
    MigrationSummary,
    RemediationAction,
    RemediationSummary,
    ScanReport,
)

RULE = "=" * 60


def format_scan_report(report: ScanReport) -> List[str]:
    """One headline per root plus any abandoned subtrees."""
    marker = "[OK]" if report.non_archived == 0 else "[!!]"
    counts = ", ".join(f"{status}={n}" for status, n in sorted(report.status_counts.items()))
    lines = [f'{marker} "{report.title}" -- {report.total_assets} assets -- {counts or "empty"}']
    for collection_id in report.failed_collections:
        lines.append(f"     skipped collection {collection_id} (listing failed)")
    return lines


def format_classifications(results: Iterable[ClassificationResult]) -> List[str]:
    results = list(results)
    lines: List[str] = []

    for action in RemediationAction:
        group = [r for r in results if r.action == action]
        if not group:
            continue
        lines.append(f"{action.value}: {len(group)}")
        for r in group:
            evidence = r.evidence
            detail = evidence.fetch_error or evidence.authoritative_status
            line = f'  {r.item.id} "{r.item.title}" [{r.item.container_observed_status} -> {detail}]'
            if evidence.storages:
                line += f" storages: {', '.join(evidence.storages)}"
            if evidence.is_partial:
                line += f" (partial: {', '.join(evidence.degraded_lookups)})"
            lines.append(line)

    return lines


def format_remediation_summary(summary: RemediationSummary) -> List[str]:
    lines = [
        RULE,
        f"SUMMARY ({summary.mode.value})",
        RULE,
        f"Found:           {summary.found}",
    ]
    for action in RemediationAction:
        lines.append(f"  {action.value + ':':15} {summary.by_action.get(action.value, 0)}")
    lines += [
        f"Fixed:           {summary.fixed}",
        f"Reset:           {summary.reset}",
        f"Formats updated: {summary.formats_updated}",
        f"Files closed:    {summary.files_closed}",
        f"Stale:           {summary.stale}",
        f"Skipped:         {summary.skipped}",
        f"Errors:          {summary.errors}",
    ]
    for message in summary.error_messages:
        lines.append(f"  - {message}")
    return lines


def failed_steps(results: Iterable[MigrationResult]) -> List[str]:
    """Asset ids paired with the step that stopped them."""
    return [
        f"{r.asset_id}: {r.error}"
        for r in results
        if not r.done and r.error
    ]


def format_migration_summary(summary: MigrationSummary) -> List[str]:
    lines = [
        RULE,
        f"SUMMARY ({summary.mode.value})",
        RULE,
        f"Success: {summary.success}",
        f"Errors:  {summary.errors}",
    ]
    for failure in failed_steps(summary.results):
        lines.append(f"  - {failure}")
    return lines
