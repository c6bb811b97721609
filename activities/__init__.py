"""Activity definitions module."""

from activities.migrate import (
    MIGRATION_PIPELINE,
    MigrationState,
    MigrationStep,
    MigrationTarget,
    ensure_destination_copy,
    ensure_destination_file_record,
    ensure_destination_file_set,
    flip_archive_status,
    locate_reference_file,
    retire_source,
)

__all__ = [
    # Migration steps, in pipeline order
    "locate_reference_file",
    "ensure_destination_copy",
    "ensure_destination_file_set",
    "ensure_destination_file_record",
    "flip_archive_status",
    "retire_source",
    "MIGRATION_PIPELINE",
    # Inputs / state
    "MigrationStep",
    "MigrationTarget",
    "MigrationState",
]
