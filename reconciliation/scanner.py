"""Container scanner.

Walks collection trees depth-first and collects every asset whose
collection-listed archive status is not ARCHIVED.

The listed status comes from the collection contents view, which can lag
behind the asset record. The filter is therefore deliberately over-inclusive;
the classifier weeds out false positives as stale_cache.
"""

from typing import Dict, Iterable, List, Set

from connectors.mam_base import MAMApiError
from core.models.assets import ArchiveStatus, ObjectType
from core.models.results import CandidateItem, ScanReport
from core.observability.logging import get_logger, with_correlation
from reconciliation.context import RunContext

logger = get_logger(__name__)


class ContainerScanner:
    """Collects non-ARCHIVED candidate assets from collection trees."""

    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    async def scan(self, root_id: str) -> ScanReport:
        """Scan one root collection.

        Each root is walked in full, even when it also sits inside an earlier
        root's tree, so status_counts covers every asset below it. Assets
        already emitted earlier in the run are counted but not emitted again.
        """
        title = root_id
        try:
            collection = await self.ctx.api.get_collection(root_id)
            title = collection.title or root_id
        except MAMApiError as e:
            logger.warning(f"Could not fetch collection title for {root_id}: {e}")

        report = ScanReport(collection_id=root_id, title=title)
        with with_correlation(collection_id=root_id, phase="scan"):
            await self._scan_collection(root_id, report, depth=0, visited=set())
            logger.info(
                f'Scanned "{title}": {report.total_assets} assets, '
                f"{len(report.candidates)} new non-ARCHIVED candidates"
            )
        return report

    async def scan_many(self, root_ids: Iterable[str]) -> List[ScanReport]:
        return [await self.scan(root_id) for root_id in root_ids]

    async def _scan_collection(
        self, collection_id: str, report: ScanReport, depth: int, visited: Set[str]
    ) -> None:
        # The root is level 0, so max_depth levels are walked in total.
        if depth >= self.ctx.config.max_depth:
            logger.warning(
                f"Max depth {self.ctx.config.max_depth} reached at collection {collection_id}; not descending"
            )
            return
        if collection_id in visited:
            logger.debug(f"Collection {collection_id} already visited")
            return
        visited.add(collection_id)

        page = 1
        while True:
            try:
                items, envelope = await self.ctx.api.list_collection_contents(
                    collection_id, page=page, per_page=self.ctx.config.page_size
                )
            except MAMApiError as e:
                # Abandon this subtree only; siblings continue.
                logger.warning(f"Skipping collection {collection_id} at page {page}: {e}")
                report.failed_collections.append(collection_id)
                return

            for item in items:
                if item.object_type == ObjectType.COLLECTIONS:
                    await self._scan_collection(item.id, report, depth + 1, visited)
                elif item.object_type == ObjectType.ASSETS:
                    self._record_asset(item, report)

            if not envelope.has_more:
                return
            page += 1
            await self.ctx.page_pause(page)

    def _record_asset(self, item, report: ScanReport) -> None:
        status = item.archive_status or "UNKNOWN"
        report.status_counts[status] = report.status_counts.get(status, 0) + 1

        if status == ArchiveStatus.ARCHIVED:
            return
        if item.id in self.ctx.seen_assets:
            return
        self.ctx.seen_assets.add(item.id)
        report.candidates.append(
            CandidateItem(
                id=item.id,
                title=item.title or "(no title)",
                container_observed_status=status,
                collection_title=report.title,
            )
        )


def unique_candidates(reports: Iterable[ScanReport]) -> List[CandidateItem]:
    """Flatten scan reports into one id-deduplicated candidate list."""
    unique: Dict[str, CandidateItem] = {}
    for report in reports:
        for candidate in report.candidates:
            unique.setdefault(candidate.id, candidate)
    return list(unique.values())
