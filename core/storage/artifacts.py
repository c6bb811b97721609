"""Artifact storage for JSON run reports.

Stores report artifacts and returns a DataReference carrying the content
hash, so a report handed on can be checked against what was written.
"""

import hashlib
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Union

from core.models.refs import DataReference, RunReport


def _compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash of bytes."""
    return hashlib.sha256(data).hexdigest()


def put_json(obj: Any, path: Path, ensure_parent: bool = True) -> DataReference:
    """Store a JSON-serializable object and return a DataReference.

    Args:
        obj: Object to serialize to JSON (dict, Pydantic model, etc.)
        path: File path where the artifact will be stored
        ensure_parent: Create parent directories if they don't exist

    Returns:
        DataReference with artifact metadata for retrieval

    Raises:
        TypeError: If object is not JSON-serializable
    """
    path = Path(path)
    if ensure_parent:
        path.parent.mkdir(parents=True, exist_ok=True)

    if hasattr(obj, "model_dump"):
        obj_dict = obj.model_dump(mode="json")
    else:
        obj_dict = obj

    json_bytes = json.dumps(obj_dict, indent=2, default=str).encode("utf-8")
    path.write_bytes(json_bytes)

    return DataReference(
        storage_uri=str(path.absolute()),
        content_hash=_compute_sha256(json_bytes),
        content_type="application/json",
        size_bytes=len(json_bytes),
        stored_at=datetime.utcnow(),
    )


def write_run_report(report: RunReport, path: Union[str, Path]) -> DataReference:
    """Write a run report; the returned reference carries its hash."""
    return put_json(report, Path(path))
