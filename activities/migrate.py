"""
Migration Activities for cross-storage archiving

The six steps of moving one asset's file to a destination (archive) storage.
Each step checks before it acts and reports whether it found the work
already done, did it, or (dry-run) would have done it:

- locate_reference_file: load records, pick the file to migrate
- ensure_destination_copy: copy to the destination mount and verify size
- ensure_destination_file_set: file set record on the destination storage
- ensure_destination_file_record: file record on the destination storage
- flip_archive_status: asset and formats -> ARCHIVED (always re-applied)
- retire_source: soft-delete source file sets, delete source files on disk

Hard failures raise MigrationError (or MAMApiError from the API); the
workflow turns them into a FAILED outcome and stops the pipeline for that
asset.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from connectors.mam_base import MAMApiError
from core.models.assets import ArchiveStatus, Asset, FileRecord, FileSet, Format
from core.models.results import StepOutcome, StepStatus
from core.observability.logging import get_logger
from core.storage.mounts import CopySizeMismatch, MountFilesystem, mount_path
from reconciliation.context import RunContext
from reconciliation.errors import (
    MigrationError,
    NoReferenceFileError,
    SizeConflictError,
    SizeMismatchError,
    SourceMissingError,
)

logger = get_logger(__name__)

DRY_RUN_FILE_SET_ID = "(dry-run)"
ORIGINAL_FORMAT_NAME = "ORIGINAL"


# =============================================================================
# Inputs and per-asset state
# =============================================================================

class MigrationStep:
    """Step names, in pipeline order."""
    LOCATE = "locate_reference_file"
    COPY = "ensure_destination_copy"
    FILE_SET = "ensure_destination_file_set"
    FILE_RECORD = "ensure_destination_file_record"
    FLIP_STATUS = "flip_archive_status"
    RETIRE_SOURCE = "retire_source"


@dataclass
class MigrationTarget:
    """Where an asset is being moved from and to."""
    source_mount: Path
    dest_mount: Path
    dest_storage_id: str
    fs: MountFilesystem = field(default_factory=MountFilesystem)


@dataclass
class MigrationState:
    """Records gathered and produced while migrating one asset."""
    asset_id: str
    asset: Optional[Asset] = None
    files: List[FileRecord] = field(default_factory=list)
    file_sets: List[FileSet] = field(default_factory=list)
    formats: List[Format] = field(default_factory=list)
    original_format: Optional[Format] = None

    source_file: Optional[FileRecord] = None
    reference_file: Optional[FileRecord] = None
    dest_file_record: Optional[FileRecord] = None
    dest_file_set: Optional[FileSet] = None
    source_storage_ids: Set[str] = field(default_factory=set)

    dest_disk_path: Optional[Path] = None
    source_disk_path: Optional[Path] = None
    file_set_id: Optional[str] = None

    @property
    def directory_path(self) -> str:
        return (self.reference_file.directory_path or "") if self.reference_file else ""

    @property
    def file_name(self) -> str:
        return self.reference_file.name if self.reference_file else ""


def _outcome(step: str, status: StepStatus, message: str, **details) -> StepOutcome:
    return StepOutcome(step=step, status=status, message=message, details=details)


# =============================================================================
# Step 1: locate_reference_file
# =============================================================================

async def locate_reference_file(
    ctx: RunContext, target: MigrationTarget, state: MigrationState
) -> StepOutcome:
    """
    Load the asset's records and choose the reference file.

    Prefers a file on a non-destination storage (the source), then the
    destination record, then any record. Deleted records are ignored.
    Unlike classification, lookups here are not best-effort: an API failure
    fails the asset.
    """
    step = MigrationStep.LOCATE
    api = ctx.api

    state.asset = await api.get_asset(state.asset_id)
    state.files = [f for f in await api.list_files(state.asset_id) if not f.is_deleted]
    state.file_sets = [fs for fs in await api.list_file_sets(state.asset_id) if not fs.is_deleted]
    state.formats = await api.list_formats(state.asset_id)

    state.original_format = next(
        (fmt for fmt in state.formats if fmt.name == ORIGINAL_FORMAT_NAME),
        state.formats[0] if state.formats else None,
    )
    if state.original_format is None:
        raise NoReferenceFileError(step, "No format found")

    for f in state.files:
        storage = await ctx.get_storage(f.storage_id)
        if storage and not storage.is_archive and f.storage_id != target.dest_storage_id:
            state.source_storage_ids.add(f.storage_id)

    dest_storage_id = target.dest_storage_id
    state.dest_file_record = next((f for f in state.files if f.storage_id == dest_storage_id), None)
    state.dest_file_set = next((fs for fs in state.file_sets if fs.storage_id == dest_storage_id), None)

    non_dest = [f for f in state.files if f.storage_id != dest_storage_id]
    state.source_file = next(
        (f for f in non_dest if f.format_id == state.original_format.id),
        non_dest[0] if non_dest else None,
    )
    state.reference_file = state.source_file or state.dest_file_record or (state.files[0] if state.files else None)

    if state.reference_file is None:
        raise NoReferenceFileError(step, "No file records at all")

    state.dest_disk_path = mount_path(target.dest_mount, state.directory_path, state.file_name)
    if state.source_file is not None:
        state.source_disk_path = mount_path(
            target.source_mount, state.source_file.directory_path, state.source_file.name
        )

    origin = "source" if state.source_file else "destination"
    return _outcome(
        step,
        StepStatus.DONE,
        f'Reference file "{state.file_name}" ({origin} record {state.reference_file.id})',
        reference_file_id=state.reference_file.id,
        source_storage_ids=sorted(state.source_storage_ids),
    )


# =============================================================================
# Step 2: ensure_destination_copy
# =============================================================================

async def ensure_destination_copy(
    ctx: RunContext, target: MigrationTarget, state: MigrationState
) -> StepOutcome:
    """
    Make sure the file is physically present on the destination mount.

    An existing destination file is accepted as-is unless the source copy is
    also present with a different size, which is a conflict an operator has
    to resolve. MountFilesystem.copy only ever renames a verified copy into
    place, so an interrupted copy leaves nothing at the destination path.
    """
    step = MigrationStep.COPY
    fs = target.fs
    dest = state.dest_disk_path
    source = state.source_disk_path

    dest_exists = await fs.exists(dest)
    source_exists = source is not None and await fs.exists(source)

    if dest_exists:
        dest_size = await fs.size(dest)
        if source_exists:
            source_size = await fs.size(source)
            if source_size != dest_size:
                raise SizeConflictError(step, source_size, dest_size)
        return _outcome(
            step,
            StepStatus.ALREADY_DONE,
            f"Destination disk: already present ({dest_size} bytes)",
            size=dest_size,
        )

    if not source_exists:
        checked = f"destination={dest}" + (f", source={source}" if source else "")
        raise SourceMissingError(step, f"File not on destination or source disk ({checked})")

    if not ctx.live:
        return _outcome(step, StepStatus.PLANNED, f"Would copy {source} -> {dest}")

    try:
        dest_size = await fs.copy(source, dest)
    except CopySizeMismatch as e:
        raise SizeMismatchError(step, e.source_size, e.copied_size) from e
    except OSError as e:
        raise MigrationError(step, f"Copy failed: {e}") from e

    return _outcome(step, StepStatus.DONE, f"Copied {dest_size} bytes", size=dest_size)


# =============================================================================
# Step 3: ensure_destination_file_set
# =============================================================================

async def ensure_destination_file_set(
    ctx: RunContext, target: MigrationTarget, state: MigrationState
) -> StepOutcome:
    """Reuse or create the file set on the destination storage."""
    step = MigrationStep.FILE_SET

    if state.dest_file_set is not None:
        state.file_set_id = state.dest_file_set.id
        return _outcome(
            step,
            StepStatus.ALREADY_DONE,
            f"Destination file set: already exists ({state.file_set_id})",
            file_set_id=state.file_set_id,
        )

    format_id = state.original_format.id
    component_ids = [format_id]
    try:
        components = await ctx.api.list_format_components(state.asset_id, format_id)
        if components:
            component_ids = [c["id"] for c in components if c.get("id")] or component_ids
    except MAMApiError as e:
        logger.warning(f"Component lookup failed for format {format_id}, using format id: {e}")

    if not ctx.live:
        state.file_set_id = DRY_RUN_FILE_SET_ID
        return _outcome(
            step,
            StepStatus.PLANNED,
            "Would create destination file set",
            component_ids=component_ids,
        )

    file_set = await ctx.api.create_file_set(
        state.asset_id,
        storage_id=target.dest_storage_id,
        format_id=format_id,
        component_ids=component_ids,
        name=state.file_name,
        base_dir=state.directory_path,
    )
    state.file_set_id = file_set.id
    state.dest_file_set = file_set
    return _outcome(
        step,
        StepStatus.DONE,
        f"Created file set: {file_set.id}",
        file_set_id=file_set.id,
        component_ids=component_ids,
    )


# =============================================================================
# Step 4: ensure_destination_file_record
# =============================================================================

async def ensure_destination_file_record(
    ctx: RunContext, target: MigrationTarget, state: MigrationState
) -> StepOutcome:
    """Reuse or create the file record on the destination storage."""
    step = MigrationStep.FILE_RECORD

    if state.dest_file_record is not None:
        return _outcome(
            step,
            StepStatus.ALREADY_DONE,
            f"Destination file record: already exists ({state.dest_file_record.id})",
            file_id=state.dest_file_record.id,
        )

    if await target.fs.exists(state.dest_disk_path):
        size = await target.fs.size(state.dest_disk_path)
    else:
        size = (state.source_file.size if state.source_file else None) or 0

    if not ctx.live:
        return _outcome(
            step, StepStatus.PLANNED, f"Would create destination file record ({size} bytes)", size=size
        )

    record = await ctx.api.create_file(
        state.asset_id,
        file_set_id=state.file_set_id,
        format_id=state.original_format.id,
        storage_id=target.dest_storage_id,
        name=state.file_name,
        directory_path=state.directory_path,
        size=size,
    )
    state.dest_file_record = record
    return _outcome(
        step, StepStatus.DONE, f"Created file record: {record.id} ({size} bytes)", file_id=record.id, size=size
    )


# =============================================================================
# Step 5: flip_archive_status
# =============================================================================

async def flip_archive_status(
    ctx: RunContext, target: MigrationTarget, state: MigrationState
) -> StepOutcome:
    """Set ARCHIVED on the asset and every format. Safe to repeat."""
    step = MigrationStep.FLIP_STATUS

    if not ctx.live:
        return _outcome(
            step,
            StepStatus.PLANNED,
            f"Would set asset + {len(state.formats)} format(s) -> ARCHIVED",
        )

    await ctx.api.set_asset_archive_status(state.asset_id, ArchiveStatus.ARCHIVED)
    for fmt in state.formats:
        await ctx.api.set_format_archive_status(state.asset_id, fmt.id, ArchiveStatus.ARCHIVED)

    return _outcome(
        step,
        StepStatus.DONE,
        f"Asset + {len(state.formats)} format(s) -> ARCHIVED",
        formats=len(state.formats),
    )


# =============================================================================
# Step 6: retire_source
# =============================================================================

async def retire_source(
    ctx: RunContext, target: MigrationTarget, state: MigrationState
) -> StepOutcome:
    """
    Soft-delete source file sets, then delete source files from disk.

    Individual delete failures are warnings; the remaining deletes still run.
    """
    step = MigrationStep.RETIRE_SOURCE
    prefix = ctx.prefix
    warnings: List[str] = []
    deleted_sets = 0
    deleted_files = 0

    source_sets = [fs for fs in state.file_sets if fs.storage_id in state.source_storage_ids]
    source_files = [f for f in state.files if f.storage_id in state.source_storage_ids]

    for file_set in source_sets:
        storage = await ctx.get_storage(file_set.storage_id)
        storage_name = storage.name if storage else file_set.storage_id
        if not ctx.live:
            logger.info(f"{prefix}Delete file set {file_set.id} ({storage_name})")
            continue
        try:
            await ctx.api.delete_file_set(state.asset_id, file_set.id)
            deleted_sets += 1
            logger.info(f"Deleted file set {file_set.id} ({storage_name})")
        except MAMApiError as e:
            warnings.append(f"file set {file_set.id} ({storage_name}): {e}")
            logger.warning(f"WARN: file set {file_set.id} ({storage_name}): {e}")

    for f in source_files:
        path = mount_path(target.source_mount, f.directory_path, f.name)
        if not await target.fs.exists(path):
            continue
        if not ctx.live:
            logger.info(f'{prefix}rm "{path}"')
            continue
        try:
            await target.fs.delete(path)
            deleted_files += 1
            logger.info(f"Deleted: {path}")
        except OSError as e:
            warnings.append(f"{path}: {e}")
            logger.warning(f"WARN: could not delete {path}: {e}")

    if not source_sets and not source_files:
        return _outcome(step, StepStatus.ALREADY_DONE, "No source file sets or files left")
    if not ctx.live:
        return _outcome(
            step,
            StepStatus.PLANNED,
            f"Would delete {len(source_sets)} source file set(s) and their files",
        )
    return _outcome(
        step,
        StepStatus.DONE,
        f"Deleted {deleted_sets} file set(s) and {deleted_files} file(s)",
        deleted_file_sets=deleted_sets,
        deleted_files=deleted_files,
        warnings=warnings,
    )


MIGRATION_PIPELINE = (
    locate_reference_file,
    ensure_destination_copy,
    ensure_destination_file_set,
    ensure_destination_file_record,
    flip_archive_status,
    retire_source,
)
