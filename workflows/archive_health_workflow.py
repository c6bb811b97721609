"""
Archive Health Workflow

Scan → Classify → (optionally) Remediate, over one or more root collections.

Data flows one way: the scanner only reads, the classifier only reads, and
only the executor writes (and only in live mode).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Collection, Iterable, List, Optional, Union

from core.models.results import (
    CandidateItem,
    ClassificationResult,
    RemediationAction,
    RemediationSummary,
    ScanReport,
)
from core.observability.logging import get_logger, with_correlation
from core.storage.mounts import MountFilesystem
from reconciliation.classifier import ItemClassifier
from reconciliation.context import RunContext
from reconciliation.errors import PreconditionError
from reconciliation.executor import RemediationExecutor, summarize_classifications
from reconciliation.scanner import ContainerScanner, unique_candidates

logger = get_logger(__name__)


@dataclass
class HealthRunResult:
    """Everything one health run produced."""
    scan_reports: List[ScanReport] = field(default_factory=list)
    candidates: List[CandidateItem] = field(default_factory=list)
    classifications: List[ClassificationResult] = field(default_factory=list)
    summary: Optional[RemediationSummary] = None
    remediated: bool = False

    def by_action(self, action: RemediationAction) -> List[ClassificationResult]:
        return [c for c in self.classifications if c.action == action]


class ArchiveHealthWorkflow:
    """Finds and optionally repairs archive bookkeeping drift."""

    def __init__(
        self,
        ctx: RunContext,
        mount_root: Union[str, Path],
        fs: Optional[MountFilesystem] = None,
    ):
        self.ctx = ctx
        self.mount_root = Path(mount_root)
        self.fs = fs or MountFilesystem()
        self.scanner = ContainerScanner(ctx)
        self.classifier = ItemClassifier(ctx, self.mount_root, self.fs)

    def check_preconditions(self) -> None:
        if not self.fs.is_mounted(self.mount_root):
            raise PreconditionError(f"Archive storage not mounted at {self.mount_root}")

    async def run(
        self,
        root_ids: Iterable[str],
        fix: bool = False,
        enabled_actions: Optional[Collection[RemediationAction]] = None,
    ) -> HealthRunResult:
        """Run all phases.

        Args:
            root_ids: Collection ids to scan
            fix: Apply remediation (dry-run or live per the context's mode)
            enabled_actions: Restrict which actions the executor applies

        Raises:
            PreconditionError: if the archive mount is missing
        """
        self.check_preconditions()
        result = HealthRunResult()

        with with_correlation(run_id=self.ctx.run_id, mode=self.ctx.mode.value):
            result.scan_reports = await self.scanner.scan_many(root_ids)
            result.candidates = unique_candidates(result.scan_reports)
            logger.info(f"Total non-ARCHIVED: {len(result.candidates)} unique assets")

            with with_correlation(phase="classify"):
                result.classifications = await self.classifier.classify_all(result.candidates)

            if fix:
                executor = RemediationExecutor(self.ctx, enabled_actions=enabled_actions)
                result.summary = await executor.apply(result.classifications)
                result.remediated = True
            else:
                result.summary = summarize_classifications(result.classifications, self.ctx.mode)

        return result
