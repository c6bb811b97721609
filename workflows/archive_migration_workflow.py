"""
Archive Migration Workflow

Per-asset pipeline that moves an asset's file to an archive storage:
LOCATE → COPY → FILE_SET → FILE_RECORD → FLIP_STATUS → RETIRE_SOURCE

Every step is idempotent, so the workflow can be re-run after any
interruption and resumes where it stopped. The source is retired last: it is
only touched once the destination copy, its records and the status flip have
all succeeded for that asset.
"""

from pathlib import Path
from typing import Iterable, Optional, Union

from activities.migrate import (
    MIGRATION_PIPELINE,
    MigrationState,
    MigrationTarget,
)
from connectors.mam_base import MAMApiError
from core.models.assets import Storage
from core.models.results import (
    MigrationResult,
    MigrationSummary,
    StepOutcome,
    StepStatus,
)
from core.observability.logging import get_logger, with_correlation
from core.storage.mounts import MountFilesystem
from reconciliation.context import RunContext
from reconciliation.errors import MigrationError, PreconditionError

logger = get_logger(__name__)


class ArchiveMigrationWorkflow:
    """Runs the six-step migration for one or many assets."""

    def __init__(
        self,
        ctx: RunContext,
        source_mount: Union[str, Path],
        dest_mount: Union[str, Path],
        dest_storage_id: str,
        fs: Optional[MountFilesystem] = None,
    ):
        self.ctx = ctx
        self.target = MigrationTarget(
            source_mount=Path(source_mount),
            dest_mount=Path(dest_mount),
            dest_storage_id=dest_storage_id,
            fs=fs or MountFilesystem(),
        )

    async def check_preconditions(self) -> Storage:
        """Verify both mounts and the destination storage before any work.

        Raises:
            PreconditionError: if a mount is missing or the storage is unknown
        """
        fs = self.target.fs
        if not fs.is_mounted(self.target.source_mount):
            raise PreconditionError(f"Source storage not mounted at {self.target.source_mount}")
        if not fs.is_mounted(self.target.dest_mount):
            raise PreconditionError(f"Archive storage not mounted at {self.target.dest_mount}")

        storage = await self.ctx.get_storage(self.target.dest_storage_id)
        if storage is None:
            raise PreconditionError(f"Archive storage {self.target.dest_storage_id} not found")
        return storage

    async def migrate(self, asset_id: str) -> MigrationResult:
        """Run the pipeline for one asset; stops at the first failed step."""
        state = MigrationState(asset_id=asset_id)
        result = MigrationResult(asset_id=asset_id)
        prefix = self.ctx.prefix

        with with_correlation(asset_id=asset_id, phase="migrate", mode=self.ctx.mode.value):
            for step_fn in MIGRATION_PIPELINE:
                try:
                    outcome = await step_fn(self.ctx, self.target, state)
                except MigrationError as e:
                    outcome = StepOutcome(step=e.step, status=StepStatus.FAILED, message=str(e))
                except MAMApiError as e:
                    outcome = StepOutcome(step=step_fn.__name__, status=StepStatus.FAILED, message=str(e))

                if state.asset is not None and result.title is None:
                    result.title = state.asset.title
                    logger.info(f'{prefix}{asset_id} "{state.asset.title}" [{state.asset.archive_status}]')

                result.steps.append(outcome)
                self._log_outcome(outcome)

                if not outcome.ok:
                    result.error = f"{outcome.step}: {outcome.message}"
                    logger.error(f"ERROR: {outcome.message} -- skipping remaining steps")
                    return result

            result.done = True
            logger.info(f"{prefix}DONE")
            return result

    async def run(self, asset_ids: Iterable[str]) -> MigrationSummary:
        """Migrate a batch in fixed concurrent windows."""
        asset_ids = list(asset_ids)
        summary = MigrationSummary(mode=self.ctx.mode)

        outcomes = await self.ctx.run_windowed(asset_ids, self.migrate)
        for asset_id, outcome in zip(asset_ids, outcomes):
            if isinstance(outcome, Exception):
                outcome = MigrationResult(asset_id=asset_id, error=f"FATAL: {outcome}")
            summary.results.append(outcome)
            if outcome.done:
                summary.success += 1
            else:
                summary.errors += 1

        return summary

    def _log_outcome(self, outcome: StepOutcome) -> None:
        label = {
            StepStatus.ALREADY_DONE: "already done",
            StepStatus.DONE: "done",
            StepStatus.PLANNED: "[DRY RUN] planned",
            StepStatus.FAILED: "FAILED",
        }[outcome.status]
        extra = {"step": outcome.step, "status": outcome.status.value}
        if outcome.status == StepStatus.FAILED:
            logger.warning(f"  {outcome.step} ({label}): {outcome.message}", extra_fields=extra)
        else:
            logger.info(f"  {outcome.step} ({label}): {outcome.message}", extra_fields=extra)
