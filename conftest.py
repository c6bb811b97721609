"""
Shared test fixtures.

FakeIconik serves collections, assets, formats, file sets, files and storages
from memory through the same MAMClient.request() boundary the real client
implements, records every call, and can be told to fail selected paths.
"""

import asyncio
import math
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent))

from connectors.mam_base import MAMApiError, MAMClient, MAMNotFoundError
from core.models.results import RunMode
from core.storage.mounts import MountFilesystem, mount_path
from reconciliation.context import ReconcileConfig, RunContext


# =============================================================================
# In-memory Iconik
# =============================================================================

class FakeIconik(MAMClient):
    """In-memory MAM API with call recording and failure injection."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Any]] = {}
        self.contents: Dict[str, List[Dict[str, Any]]] = {}
        self.assets: Dict[str, Dict[str, Any]] = {}
        self.formats: Dict[str, List[Dict[str, Any]]] = {}
        self.components: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        self.file_sets: Dict[str, List[Dict[str, Any]]] = {}
        self.files: Dict[str, List[Dict[str, Any]]] = {}
        self.storages: Dict[str, Dict[str, Any]] = {}

        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self._failures: List[Tuple[str, Optional[str]]] = []
        self._next_id = 0
        # When set, every request yields to the event loop like a real round trip
        self.yield_on_request = False
        self.closed = False

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def add_storage(self, storage_id: str, name: str, purpose: str = "ARCHIVE") -> None:
        self.storages[storage_id] = {"id": storage_id, "name": name, "purpose": purpose, "status": "ACTIVE"}

    def add_collection(self, collection_id: str, title: str = "", children: Optional[List[Dict]] = None) -> None:
        self.collections[collection_id] = {"id": collection_id, "title": title or collection_id}
        self.contents[collection_id] = list(children or [])

    @staticmethod
    def asset_entry(asset_id: str, archive_status: str = "NOT_ARCHIVED", title: str = "") -> Dict[str, Any]:
        return {
            "id": asset_id,
            "object_type": "assets",
            "title": title or asset_id,
            "archive_status": archive_status,
        }

    @staticmethod
    def collection_entry(collection_id: str) -> Dict[str, Any]:
        return {"id": collection_id, "object_type": "collections", "title": collection_id}

    def add_asset(
        self,
        asset_id: str,
        archive_status: str = "NOT_ARCHIVED",
        title: str = "",
        formats: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.assets[asset_id] = {
            "id": asset_id,
            "title": title or asset_id,
            "archive_status": archive_status,
            "status": "ACTIVE",
        }
        self.formats[asset_id] = list(formats or [])
        self.file_sets.setdefault(asset_id, [])
        self.files.setdefault(asset_id, [])

    def add_format(self, asset_id: str, format_id: str, name: str = "ORIGINAL", archive_status: str = "NOT_ARCHIVED") -> None:
        self.formats.setdefault(asset_id, []).append(
            {"id": format_id, "name": name, "status": "ACTIVE", "archive_status": archive_status}
        )

    def add_file_set(self, asset_id: str, file_set_id: str, storage_id: str, format_id: str = "", base_dir: str = "", status: str = "ACTIVE") -> None:
        self.file_sets.setdefault(asset_id, []).append(
            {
                "id": file_set_id,
                "name": file_set_id,
                "status": status,
                "storage_id": storage_id,
                "format_id": format_id,
                "base_dir": base_dir,
            }
        )

    def add_file(
        self,
        asset_id: str,
        file_id: str,
        storage_id: str,
        name: str,
        directory_path: str = "",
        status: str = "CLOSED",
        size: int = 0,
        format_id: str = "",
        file_set_id: str = "",
    ) -> None:
        self.files.setdefault(asset_id, []).append(
            {
                "id": file_id,
                "name": name,
                "status": status,
                "storage_id": storage_id,
                "file_set_id": file_set_id,
                "format_id": format_id,
                "directory_path": directory_path,
                "size": size,
            }
        )

    def fail(self, path_fragment: str, method: Optional[str] = None) -> None:
        """Make every matching request raise MAMApiError."""
        self._failures.append((path_fragment, method))

    # -------------------------------------------------------------------------
    # Call inspection
    # -------------------------------------------------------------------------

    def reads(self) -> List[Tuple[str, str]]:
        return [(method, path) for method, path, _ in self.calls if method == "GET"]

    def writes(self) -> List[Tuple[str, str, Optional[Dict[str, Any]]]]:
        return [call for call in self.calls if call[0] != "GET"]

    def writes_to(self, method: str, fragment: str) -> List[Tuple[str, str, Optional[Dict[str, Any]]]]:
        return [call for call in self.writes() if call[0] == method and fragment in call[1]]

    # -------------------------------------------------------------------------
    # MAMClient
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        self.closed = True

    async def request(self, path: str, method: str = "GET", body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.calls.append((method, path, body))
        if self.yield_on_request:
            await asyncio.sleep(0)
        for fragment, fail_method in self._failures:
            if fragment in path and (fail_method is None or fail_method == method):
                raise MAMApiError(f"Injected failure: {method} {path}", 500)

        base, _, query = path.partition("?")
        params = {k: v[0] for k, v in parse_qs(query).items()}
        return self._route(method, base, params, body or {})

    def _route(self, method: str, path: str, params: Dict[str, str], body: Dict[str, Any]) -> Dict[str, Any]:
        m = re.fullmatch(r"assets/v1/collections/([^/]+)/contents/", path)
        if m:
            return self._page(self._get(self.contents, m.group(1), path), params)

        m = re.fullmatch(r"assets/v1/collections/([^/]+)/", path)
        if m:
            return dict(self._get(self.collections, m.group(1), path))

        m = re.fullmatch(r"assets/v1/assets/([^/]+)/", path)
        if m:
            asset = self._get(self.assets, m.group(1), path)
            if method == "PATCH":
                asset.update(body)
            return dict(asset)

        m = re.fullmatch(r"files/v1/assets/([^/]+)/formats/([^/]+)/components/", path)
        if m:
            return {"objects": self.components.get((m.group(1), m.group(2)), [])}

        m = re.fullmatch(r"files/v1/assets/([^/]+)/formats/([^/]+)/", path)
        if m:
            record = self._find(self.formats.get(m.group(1), []), m.group(2), path)
            record.update(body)
            return dict(record)

        m = re.fullmatch(r"files/v1/assets/([^/]+)/formats/", path)
        if m:
            return self._page(self.formats.get(m.group(1), []), params)

        m = re.fullmatch(r"files/v1/assets/([^/]+)/file_sets/([^/]+)/", path)
        if m and method == "DELETE":
            asset_id, file_set_id = m.groups()
            record = self._find(self.file_sets.get(asset_id, []), file_set_id, path)
            record["status"] = "DELETED"
            # Deleting a file set takes its file records with it
            for f in self.files.get(asset_id, []):
                if f.get("file_set_id") == file_set_id or f.get("storage_id") == record["storage_id"]:
                    f["status"] = "DELETED"
            return {}

        m = re.fullmatch(r"files/v1/assets/([^/]+)/file_sets/", path)
        if m:
            if method == "POST":
                record = dict(body, id=self._new_id("fs"), status="ACTIVE")
                self.file_sets.setdefault(m.group(1), []).append(record)
                return dict(record)
            return self._page(self.file_sets.get(m.group(1), []), params)

        m = re.fullmatch(r"files/v1/assets/([^/]+)/files/([^/]+)/", path)
        if m:
            record = self._find(self.files.get(m.group(1), []), m.group(2), path)
            record.update(body)
            return dict(record)

        m = re.fullmatch(r"files/v1/assets/([^/]+)/files/", path)
        if m:
            if method == "POST":
                record = dict(body, id=self._new_id("file"))
                self.files.setdefault(m.group(1), []).append(record)
                return dict(record)
            return self._page(self.files.get(m.group(1), []), params)

        m = re.fullmatch(r"files/v1/storages/([^/]+)/", path)
        if m:
            return dict(self._get(self.storages, m.group(1), path))

        raise MAMNotFoundError(f"Resource not found: {path}", 404)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    @staticmethod
    def _get(table: Dict[str, Any], key: str, path: str) -> Any:
        if key not in table:
            raise MAMNotFoundError(f"Resource not found: {path}", 404)
        return table[key]

    @staticmethod
    def _find(records: List[Dict[str, Any]], record_id: str, path: str) -> Dict[str, Any]:
        for record in records:
            if record["id"] == record_id:
                return record
        raise MAMNotFoundError(f"Resource not found: {path}", 404)

    @staticmethod
    def _page(objects: List[Dict[str, Any]], params: Dict[str, str]) -> Dict[str, Any]:
        page = int(params.get("page", 1))
        per_page = int(params.get("per_page", 100))
        start = (page - 1) * per_page
        return {
            "objects": [dict(o) for o in objects[start:start + per_page]],
            "page": page,
            "pages": max(1, math.ceil(len(objects) / per_page)),
            "per_page": per_page,
            "total": len(objects),
        }


# =============================================================================
# Filesystem
# =============================================================================

class RecordingFilesystem(MountFilesystem):
    """Real filesystem access that counts copies and deletes.

    fail_copy writes the first few bytes and then runs out of space;
    truncate_copy drops the last byte without raising.
    """

    def __init__(self, fail_copy: bool = False, truncate_copy: bool = False):
        self.copies: List[Tuple[Path, Path]] = []
        self.deletes: List[Path] = []
        self.fail_copy = fail_copy
        self.truncate_copy = truncate_copy

    async def copy(self, src, dst) -> int:
        self.copies.append((Path(src), Path(dst)))
        return await super().copy(src, dst)

    async def delete(self, path) -> None:
        self.deletes.append(Path(path))
        await super().delete(path)

    def _write_bytes(self, src: Path, dst: Path) -> None:
        data = src.read_bytes()
        if self.fail_copy:
            dst.write_bytes(data[:5])
            raise OSError("No space left on device")
        dst.write_bytes(data[:-1] if self.truncate_copy else data)


def place_file(mount_root: Path, directory_path: str, name: str, size: int = 16) -> Path:
    """Create a file of the given size under a mount."""
    path = mount_path(mount_root, directory_path, name)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_api() -> FakeIconik:
    return FakeIconik()


@pytest.fixture
def recording_fs() -> RecordingFilesystem:
    return RecordingFilesystem()


@pytest.fixture
def archive_mount(tmp_path) -> Path:
    mount = tmp_path / "archive"
    mount.mkdir()
    return mount


@pytest.fixture
def source_mount(tmp_path) -> Path:
    mount = tmp_path / "source"
    mount.mkdir()
    return mount


@pytest.fixture
def fast_config() -> ReconcileConfig:
    return ReconcileConfig(page_pause_seconds=0, window_size=4)


@pytest.fixture
def make_ctx(fake_api, fast_config):
    """Factory for a fresh RunContext over the shared fake."""
    def _make(mode: RunMode = RunMode.DRY_RUN, **config_overrides) -> RunContext:
        config = ReconcileConfig(**{**fast_config.__dict__, **config_overrides})
        return RunContext.for_client(fake_api, mode=mode, config=config)
    return _make


@pytest.fixture
def place():
    return place_file
