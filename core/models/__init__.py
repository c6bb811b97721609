"""Core data models - remote records and engine results."""

from core.models.assets import (
    ArchiveStatus,
    FileStatus,
    StoragePurpose,
    ObjectType,
    Storage,
    Collection,
    CollectionItem,
    Asset,
    Format,
    FileSet,
    FileRecord,
)

from core.models.results import (
    RunMode,
    RemediationAction,
    CandidateItem,
    ScanReport,
    PendingPlacement,
    ClassificationEvidence,
    ClassificationResult,
    RemediationSummary,
    StepStatus,
    StepOutcome,
    MigrationResult,
    MigrationSummary,
)

from core.models.refs import (
    DataReference,
    RunReport,
)

__all__ = [
    # Records
    "ArchiveStatus",
    "FileStatus",
    "StoragePurpose",
    "ObjectType",
    "Storage",
    "Collection",
    "CollectionItem",
    "Asset",
    "Format",
    "FileSet",
    "FileRecord",

    # Results
    "RunMode",
    "RemediationAction",
    "CandidateItem",
    "ScanReport",
    "PendingPlacement",
    "ClassificationEvidence",
    "ClassificationResult",
    "RemediationSummary",
    "StepStatus",
    "StepOutcome",
    "MigrationResult",
    "MigrationSummary",

    # Refs
    "DataReference",
    "RunReport",
]
