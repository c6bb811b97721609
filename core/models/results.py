"""Engine result models: scan candidates, classifications, summaries.

None of these are persisted remotely; they exist for the duration of a run
and for the optional JSON run report.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RunMode(str, Enum):
    DRY_RUN = "DRY_RUN"
    LIVE = "LIVE"


class RemediationAction(str, Enum):
    """Classification outcome for a candidate asset."""
    FIX_METADATA = "fix_metadata"
    RESET_FAILED = "reset_failed"
    STALE_CACHE = "stale_cache"
    SKIP = "skip"


# =============================================================================
# Scanner
# =============================================================================

class CandidateItem(BaseModel):
    """An asset seen while walking collections whose listed status is not ARCHIVED."""
    id: str
    title: str = "(no title)"
    container_observed_status: str = "UNKNOWN"
    collection_title: Optional[str] = None


class ScanReport(BaseModel):
    """Per-root scan outcome."""
    collection_id: str
    title: str
    candidates: List[CandidateItem] = Field(default_factory=list)
    status_counts: Dict[str, int] = Field(default_factory=dict)
    failed_collections: List[str] = Field(default_factory=list)

    @property
    def total_assets(self) -> int:
        return sum(self.status_counts.values())

    @property
    def non_archived(self) -> int:
        return self.total_assets - self.status_counts.get("ARCHIVED", 0)


# =============================================================================
# Classifier
# =============================================================================

class PendingPlacement(BaseModel):
    """A file record whose physical status must be flipped to CLOSED."""
    file_id: str
    name: str


class ClassificationEvidence(BaseModel):
    """Facts that produced a classification decision."""
    authoritative_status: str = "FETCH_ERROR"
    fetch_error: Optional[str] = None
    on_archive_storage: bool = False
    archive_file_exists: bool = False
    storages: List[str] = Field(default_factory=list)
    degraded_lookups: List[str] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        """True when some sub-fetch failed and the decision used partial evidence."""
        return bool(self.degraded_lookups)


class ClassificationResult(BaseModel):
    item: CandidateItem
    action: RemediationAction = RemediationAction.SKIP
    evidence: ClassificationEvidence = Field(default_factory=ClassificationEvidence)
    pending_component_ids: List[str] = Field(default_factory=list)
    pending_placements: List[PendingPlacement] = Field(default_factory=list)


# =============================================================================
# Executor
# =============================================================================

class RemediationSummary(BaseModel):
    """Counts produced by a remediation pass (identical shape in both modes)."""
    mode: RunMode = RunMode.DRY_RUN
    found: int = 0
    by_action: Dict[str, int] = Field(default_factory=dict)
    fixed: int = 0
    reset: int = 0
    formats_updated: int = 0
    files_closed: int = 0
    stale: int = 0
    skipped: int = 0
    errors: int = 0
    error_messages: List[str] = Field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.errors += 1
        self.error_messages.append(message)


# =============================================================================
# Migration
# =============================================================================

class StepStatus(str, Enum):
    ALREADY_DONE = "ALREADY_DONE"
    DONE = "DONE"
    PLANNED = "PLANNED"  # dry-run: would have acted
    FAILED = "FAILED"


class StepOutcome(BaseModel):
    """Result of one idempotent migration step."""
    step: str
    status: StepStatus
    message: str = ""
    details: Dict = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status != StepStatus.FAILED


class MigrationResult(BaseModel):
    asset_id: str
    title: Optional[str] = None
    done: bool = False
    steps: List[StepOutcome] = Field(default_factory=list)
    error: Optional[str] = None

    def step(self, name: str) -> Optional[StepOutcome]:
        for outcome in self.steps:
            if outcome.step == name:
                return outcome
        return None


class MigrationSummary(BaseModel):
    mode: RunMode = RunMode.DRY_RUN
    success: int = 0
    errors: int = 0
    results: List[MigrationResult] = Field(default_factory=list)
