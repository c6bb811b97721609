"""Core storage - local mounts and report artifacts."""

from core.storage.artifacts import (
    put_json,
    write_run_report,
)
from core.storage.mounts import (
    CopySizeMismatch,
    MountFilesystem,
    mount_path,
)

__all__ = [
    "put_json",
    "write_run_report",
    "CopySizeMismatch",
    "MountFilesystem",
    "mount_path",
]
