"""Remediation executor.

Applies classification results:

- fix_metadata: asset -> ARCHIVED, pending formats -> ARCHIVED,
  MISSING file placements -> CLOSED
- reset_failed: asset and pending formats -> NOT_ARCHIVED so a later archive
  job can run cleanly
- stale_cache / skip: counted and reported, never acted on

Every sub-step is attempted independently and failures are counted, not
raised. Dry-run performs the same steps and logging as live, minus the write
requests themselves.
"""

from typing import Awaitable, Callable, Collection, Iterable, List, Optional

from connectors.mam_base import MAMApiError
from core.models.assets import ArchiveStatus, FileStatus
from core.models.results import (
    ClassificationResult,
    RemediationAction,
    RemediationSummary,
)
from core.observability.logging import get_logger, with_correlation
from reconciliation.context import RunContext

logger = get_logger(__name__)

ACTIONABLE = (RemediationAction.FIX_METADATA, RemediationAction.RESET_FAILED)


class RemediationExecutor:
    """Applies fix_metadata and reset_failed results in dry-run or live mode."""

    def __init__(
        self,
        ctx: RunContext,
        enabled_actions: Optional[Collection[RemediationAction]] = None,
    ):
        self.ctx = ctx
        self.enabled_actions = set(enabled_actions) if enabled_actions is not None else set(ACTIONABLE)

    async def apply(self, results: Iterable[ClassificationResult]) -> RemediationSummary:
        results = list(results)
        summary = summarize_classifications(results, self.ctx.mode)

        fix_group = self._group(results, RemediationAction.FIX_METADATA)
        reset_group = self._group(results, RemediationAction.RESET_FAILED)

        with with_correlation(phase="remediate", mode=self.ctx.mode.value):
            if fix_group:
                logger.info(
                    f"{self.ctx.prefix}Fixing metadata for {len(fix_group)} assets on archive storage"
                )
                await self.ctx.run_windowed(fix_group, lambda r: self._fix_metadata(r, summary))

            if reset_group:
                logger.info(
                    f"{self.ctx.prefix}Resetting {len(reset_group)} failed/stuck archives"
                )
                await self.ctx.run_windowed(reset_group, lambda r: self._reset_failed(r, summary))

        logger.info(
            f"Remediation complete: fixed={summary.fixed} reset={summary.reset} "
            f"errors={summary.errors}",
            extra_fields=summary.model_dump(exclude={"error_messages"}, mode="json"),
        )
        return summary

    def _group(self, results: List[ClassificationResult], action: RemediationAction) -> List[ClassificationResult]:
        if action not in self.enabled_actions:
            return []
        return [r for r in results if r.action == action]

    async def _write(
        self,
        summary: RemediationSummary,
        description: str,
        call: Callable[[], Awaitable],
    ) -> bool:
        """Issue one write (live) or just log it (dry-run). Returns success."""
        try:
            if self.ctx.live:
                await call()
            logger.info(f"{self.ctx.prefix}{description}")
            return True
        except MAMApiError as e:
            message = f"ERROR {description}: {e}"
            logger.error(message)
            summary.record_error(message)
            return False

    async def _fix_metadata(self, result: ClassificationResult, summary: RemediationSummary) -> None:
        api = self.ctx.api
        asset_id = result.item.id

        with with_correlation(asset_id=asset_id):
            if await self._write(
                summary,
                f'Asset {asset_id} "{result.item.title}" -> ARCHIVED',
                lambda: api.set_asset_archive_status(asset_id, ArchiveStatus.ARCHIVED),
            ):
                summary.fixed += 1

            for format_id in result.pending_component_ids:
                if await self._write(
                    summary,
                    f"  Format {format_id} -> ARCHIVED",
                    lambda fid=format_id: api.set_format_archive_status(asset_id, fid, ArchiveStatus.ARCHIVED),
                ):
                    summary.formats_updated += 1

            for placement in result.pending_placements:
                if await self._write(
                    summary,
                    f'  File {placement.file_id} "{placement.name}" -> CLOSED',
                    lambda pid=placement.file_id: api.set_file_status(asset_id, pid, FileStatus.CLOSED),
                ):
                    summary.files_closed += 1

    async def _reset_failed(self, result: ClassificationResult, summary: RemediationSummary) -> None:
        api = self.ctx.api
        asset_id = result.item.id

        with with_correlation(asset_id=asset_id):
            if await self._write(
                summary,
                f'Asset {asset_id} "{result.item.title}" '
                f"[{result.evidence.authoritative_status}] -> NOT_ARCHIVED",
                lambda: api.set_asset_archive_status(asset_id, ArchiveStatus.NOT_ARCHIVED),
            ):
                summary.reset += 1
            logger.info(f"{self.ctx.prefix}  Storages: {', '.join(result.evidence.storages) or '(none)'}")

            for format_id in result.pending_component_ids:
                if await self._write(
                    summary,
                    f"  Format {format_id} -> NOT_ARCHIVED",
                    lambda fid=format_id: api.set_format_archive_status(asset_id, fid, ArchiveStatus.NOT_ARCHIVED),
                ):
                    summary.formats_updated += 1


def summarize_classifications(results: Iterable[ClassificationResult], mode) -> RemediationSummary:
    """Summary with classification counts filled in and no writes counted."""
    results = list(results)
    summary = RemediationSummary(mode=mode, found=len(results))
    for result in results:
        key = result.action.value
        summary.by_action[key] = summary.by_action.get(key, 0) + 1
    summary.stale = summary.by_action.get(RemediationAction.STALE_CACHE.value, 0)
    summary.skipped = summary.by_action.get(RemediationAction.SKIP.value, 0)
    return summary
