"""Workflow definitions module."""

from workflows.archive_health_workflow import ArchiveHealthWorkflow, HealthRunResult
from workflows.archive_migration_workflow import ArchiveMigrationWorkflow

__all__ = [
    "ArchiveHealthWorkflow",
    "HealthRunResult",
    "ArchiveMigrationWorkflow",
]
