"""Item classifier.

For each candidate asset, gathers authoritative evidence (asset record, file
placements, storages, local mount, formats) and maps it to one remediation
action:

    fix_metadata  file is on target archive storage and present on the mount
    reset_failed  FAILED_TO_ARCHIVE or stuck ARCHIVING, not verifiably archived
    stale_cache   asset record already says ARCHIVED
    skip          anything else, including a failed asset fetch

Assumption (authoritative record wins): the individual asset record is more
current than the collection contents view. This matches the observed
eventual consistency of the remote search index but is not guaranteed by the
API; if it ever stops holding, stale_cache results would hide real problems.

Placement, storage and format lookups are best-effort. A failure in one of
them leaves that part of the evidence empty, is listed in
evidence.degraded_lookups, and classification continues.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Union

from connectors.mam_base import MAMApiError
from core.models.assets import ArchiveStatus, FileStatus
from core.models.results import (
    CandidateItem,
    ClassificationEvidence,
    ClassificationResult,
    PendingPlacement,
    RemediationAction,
)
from core.observability.logging import get_logger, with_correlation
from core.storage.mounts import MountFilesystem, mount_path
from reconciliation.context import RunContext

logger = get_logger(__name__)

RESETTABLE_STATUSES = (ArchiveStatus.FAILED, ArchiveStatus.ARCHIVING)


def decide_action(evidence: ClassificationEvidence) -> RemediationAction:
    """Map gathered evidence to an action. Precedence matters."""
    if evidence.fetch_error is not None:
        return RemediationAction.SKIP
    if evidence.authoritative_status == ArchiveStatus.ARCHIVED:
        return RemediationAction.STALE_CACHE
    if evidence.on_archive_storage and evidence.archive_file_exists:
        return RemediationAction.FIX_METADATA
    if evidence.authoritative_status in RESETTABLE_STATUSES:
        return RemediationAction.RESET_FAILED
    return RemediationAction.SKIP


class ItemClassifier:
    """Classifies candidate assets against the archive mount."""

    def __init__(
        self,
        ctx: RunContext,
        mount_root: Union[str, Path],
        fs: Optional[MountFilesystem] = None,
    ):
        self.ctx = ctx
        self.mount_root = Path(mount_root)
        self.fs = fs or MountFilesystem()

    async def classify(self, candidate: CandidateItem) -> ClassificationResult:
        with with_correlation(asset_id=candidate.id, phase="classify"):
            result = ClassificationResult(item=candidate)
            evidence = result.evidence

            try:
                asset = await self.ctx.api.get_asset(candidate.id)
            except MAMApiError as e:
                evidence.fetch_error = str(e)
                logger.warning(f"Asset fetch failed, skipping: {e}")
                return result

            evidence.authoritative_status = asset.archive_status or "UNKNOWN"

            if evidence.authoritative_status == ArchiveStatus.ARCHIVED:
                result.action = decide_action(evidence)
                logger.info(
                    f"Stale collection view: listed {candidate.container_observed_status}, "
                    f"asset record says ARCHIVED"
                )
                return result

            await self._gather_placements(result)
            await self._gather_components(result)

            result.action = decide_action(evidence)
            self._log_decision(result)
            return result

    async def classify_all(self, candidates: Iterable[CandidateItem]) -> List[ClassificationResult]:
        """Classify candidates in fixed concurrent windows."""
        candidates = list(candidates)
        outcomes = await self.ctx.run_windowed(candidates, self.classify)

        results = []
        for candidate, outcome in zip(candidates, outcomes):
            if isinstance(outcome, Exception):
                failed = ClassificationResult(item=candidate)
                failed.evidence.fetch_error = f"{type(outcome).__name__}: {outcome}"
                results.append(failed)
            else:
                results.append(outcome)
        return results

    async def _gather_placements(self, result: ClassificationResult) -> None:
        evidence = result.evidence
        asset_id = result.item.id

        try:
            files = await self.ctx.api.list_files(asset_id)
        except MAMApiError as e:
            evidence.degraded_lookups.append("placements")
            logger.warning(f"File lookup failed: {e}")
            return

        for f in files:
            storage = await self.ctx.get_storage(f.storage_id)
            if storage is None and f.storage_id:
                lookup = f"storage:{f.storage_id}"
                if lookup not in evidence.degraded_lookups:
                    evidence.degraded_lookups.append(lookup)

            storage_name = storage.name if storage else (f.storage_id or "?")
            storage_purpose = (storage.purpose if storage else None) or "UNKNOWN"
            evidence.storages.append(f"{storage_name}({storage_purpose}):{f.status}")

            if f.is_deleted or not self.ctx.is_target_archive_storage(storage):
                continue

            evidence.on_archive_storage = True
            local_path = mount_path(self.mount_root, f.directory_path, f.name)
            if await self.fs.exists(local_path):
                evidence.archive_file_exists = True
                if f.status == FileStatus.MISSING:
                    result.pending_placements.append(PendingPlacement(file_id=f.id, name=f.name))
            else:
                logger.debug(f"Archive placement {f.id} not found on mount at {local_path}")

    async def _gather_components(self, result: ClassificationResult) -> None:
        try:
            formats = await self.ctx.api.list_formats(result.item.id)
        except MAMApiError as e:
            result.evidence.degraded_lookups.append("components")
            logger.warning(f"Format lookup failed: {e}")
            return

        result.pending_component_ids = [
            fmt.id for fmt in formats if fmt.archive_status != ArchiveStatus.ARCHIVED
        ]

    def _log_decision(self, result: ClassificationResult) -> None:
        evidence = result.evidence
        message = (
            f"Classified {result.action.value}: status={evidence.authoritative_status} "
            f"on_archive={evidence.on_archive_storage} file_exists={evidence.archive_file_exists}"
        )
        extra = {
            "action": result.action.value,
            "storages": evidence.storages,
            "degraded_lookups": evidence.degraded_lookups,
        }
        if evidence.is_partial:
            logger.warning(
                f"{message} (partial evidence, degraded: {', '.join(evidence.degraded_lookups)})",
                extra_fields=extra,
            )
        else:
            logger.info(message, extra_fields=extra)
