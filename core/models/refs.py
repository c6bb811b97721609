"""Reference and report models for run artifacts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class DataReference(BaseModel):
    """Reference to a stored artifact with metadata for retrieval and verification.

    Attributes:
        storage_uri: Absolute file path to the artifact
        content_hash: SHA256 hash of the content for integrity verification
        content_type: MIME type (e.g., "application/json")
        size_bytes: Size of the artifact in bytes
        stored_at: Timestamp when the artifact was stored
    """
    storage_uri: str = Field(..., description="Absolute file path to the artifact")
    content_hash: str = Field(..., description="SHA256 hash of content")
    content_type: str = Field(default="application/json", description="MIME type")
    size_bytes: int = Field(..., description="Size in bytes")
    stored_at: datetime = Field(default_factory=datetime.utcnow, description="Storage timestamp")


class RunReport(BaseModel):
    """Everything a CLI run produced, exported with --report.

    Attributes:
        tool: Name of the CLI that produced the report
        run_id: Correlation id of the run
        mode: DRY_RUN or LIVE
        roots: Collection or asset ids the run was started with
        summary: Summary counts (RemediationSummary / MigrationSummary dump)
        items: Per-item results (classifications or migration results)
    """
    tool: str = Field(..., description="CLI that produced the report")
    run_id: str = Field(..., description="Run correlation id")
    mode: str = Field(..., description="DRY_RUN or LIVE")
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    roots: List[str] = Field(default_factory=list)
    summary: Dict[str, Any] = Field(default_factory=dict)
    items: List[Dict[str, Any]] = Field(default_factory=list)
