"""Remote record models for assets, collections and their storage placements.

These models map the MAM API schema the engine reads. Status fields stay
plain strings so that unknown values coming back from the API never break
validation; compare them against the str-valued enums below.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Status Enums
# =============================================================================

class ArchiveStatus(str, Enum):
    """Archival bookkeeping status of an asset or format."""
    NOT_ARCHIVED = "NOT_ARCHIVED"
    ARCHIVING = "ARCHIVING"
    FAILED = "FAILED_TO_ARCHIVE"
    ARCHIVED = "ARCHIVED"


class FileStatus(str, Enum):
    """Physical status of a file record or file set."""
    CLOSED = "CLOSED"
    MISSING = "MISSING"
    FAILED = "FAILED"
    DELETED = "DELETED"


class StoragePurpose(str, Enum):
    ARCHIVE = "ARCHIVE"
    FILES = "FILES"
    PROXIES = "PROXIES"
    KEYFRAMES = "KEYFRAMES"


class ObjectType(str, Enum):
    """Kinds of entries in a collection's contents listing."""
    ASSETS = "assets"
    COLLECTIONS = "collections"


# =============================================================================
# Records
# =============================================================================

class RecordBase(BaseModel):
    """Base model for API records; unknown fields are ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Storage(RecordBase):
    """A storage backend.

    Maps to: files/v1/storages/{id}/
    """
    id: str
    name: str = ""
    purpose: Optional[str] = None
    status: Optional[str] = None

    @property
    def is_archive(self) -> bool:
        return self.purpose == StoragePurpose.ARCHIVE


class CollectionItem(RecordBase):
    """One entry of a collection contents page (asset or sub-collection)."""
    id: str
    object_type: Optional[str] = None
    title: Optional[str] = None
    archive_status: Optional[str] = None


class Collection(RecordBase):
    id: str
    title: Optional[str] = None


class Asset(RecordBase):
    """Authoritative asset record.

    Maps to: assets/v1/assets/{id}/
    """
    id: str
    title: Optional[str] = None
    archive_status: Optional[str] = None
    status: Optional[str] = None


class Format(RecordBase):
    """A component (rendition) of an asset.

    Maps to: files/v1/assets/{asset_id}/formats/
    """
    id: str
    name: Optional[str] = None
    status: Optional[str] = None
    archive_status: Optional[str] = None


class FileSet(RecordBase):
    """Placement grouping of files on one storage.

    Maps to: files/v1/assets/{asset_id}/file_sets/
    """
    id: str
    name: Optional[str] = None
    status: Optional[str] = None
    storage_id: Optional[str] = None
    format_id: Optional[str] = None
    base_dir: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.status == FileStatus.DELETED


class FileRecord(RecordBase):
    """A single physical file placement.

    Maps to: files/v1/assets/{asset_id}/files/
    """
    id: str
    name: str = ""
    status: Optional[str] = None
    storage_id: Optional[str] = None
    file_set_id: Optional[str] = None
    format_id: Optional[str] = None
    directory_path: Optional[str] = Field(default="")
    size: Optional[int] = None

    @property
    def is_deleted(self) -> bool:
        return self.status == FileStatus.DELETED
