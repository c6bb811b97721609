"""Iconik endpoint wrapper.

Typed access to the asset, collection, format, file-set, file and storage
endpoints the reconciliation engine consumes. Works over any MAMClient, so
tests can substitute an in-memory client.
"""

from typing import Any, Dict, List, Optional, Tuple

from connectors.mam_base import MAMClient, PaginatedResponse
from core.models.assets import (
    Asset,
    Collection,
    CollectionItem,
    FileRecord,
    FileSet,
    Format,
    Storage,
)


def normalize_dir(directory_path: Optional[str]) -> str:
    """Directory paths sent on creation always end with '/'."""
    directory_path = directory_path or ""
    return directory_path if directory_path.endswith("/") else directory_path + "/"


class IconikArchiveApi:
    """Archive-related Iconik endpoints.

    Read methods return models; write methods return the raw response (or
    the created record as a model).
    """

    def __init__(self, client: MAMClient):
        self.client = client

    # =========================================================================
    # Collections
    # =========================================================================

    async def get_collection(self, collection_id: str) -> Collection:
        data = await self.client.request(f"assets/v1/collections/{collection_id}/")
        return Collection.model_validate(data)

    async def list_collection_contents(
        self,
        collection_id: str,
        page: int = 1,
        per_page: int = 100,
    ) -> Tuple[List[CollectionItem], PaginatedResponse]:
        """Fetch one page of a collection's contents.

        Returns:
            (items, envelope) so callers can drive pagination themselves
        """
        raw = await self.client.request(
            f"assets/v1/collections/{collection_id}/contents/?page={page}&per_page={per_page}"
        )
        envelope = PaginatedResponse.parse(raw)
        items = [CollectionItem.model_validate(obj) for obj in envelope.objects]
        return items, envelope

    # =========================================================================
    # Assets
    # =========================================================================

    async def get_asset(self, asset_id: str) -> Asset:
        data = await self.client.request(f"assets/v1/assets/{asset_id}/")
        return Asset.model_validate(data)

    async def set_asset_archive_status(self, asset_id: str, status: str) -> Dict[str, Any]:
        return await self.client.request(
            f"assets/v1/assets/{asset_id}/",
            method="PATCH",
            body={"archive_status": str(getattr(status, "value", status))},
        )

    # =========================================================================
    # Formats (components)
    # =========================================================================

    async def list_formats(self, asset_id: str) -> List[Format]:
        objects = await self.client.list_all(f"files/v1/assets/{asset_id}/formats/")
        return [Format.model_validate(obj) for obj in objects]

    async def list_format_components(self, asset_id: str, format_id: str) -> List[Dict[str, Any]]:
        data = await self.client.request(
            f"files/v1/assets/{asset_id}/formats/{format_id}/components/"
        )
        return PaginatedResponse.parse(data).objects

    async def set_format_archive_status(
        self, asset_id: str, format_id: str, status: str
    ) -> Dict[str, Any]:
        return await self.client.request(
            f"files/v1/assets/{asset_id}/formats/{format_id}/",
            method="PATCH",
            body={"archive_status": str(getattr(status, "value", status))},
        )

    # =========================================================================
    # File sets and files (placements)
    # =========================================================================

    async def list_file_sets(self, asset_id: str) -> List[FileSet]:
        objects = await self.client.list_all(f"files/v1/assets/{asset_id}/file_sets/")
        return [FileSet.model_validate(obj) for obj in objects]

    async def list_files(self, asset_id: str) -> List[FileRecord]:
        objects = await self.client.list_all(f"files/v1/assets/{asset_id}/files/")
        return [FileRecord.model_validate(obj) for obj in objects]

    async def set_file_status(self, asset_id: str, file_id: str, status: str) -> Dict[str, Any]:
        return await self.client.request(
            f"files/v1/assets/{asset_id}/files/{file_id}/",
            method="PATCH",
            body={"status": str(getattr(status, "value", status))},
        )

    async def create_file_set(
        self,
        asset_id: str,
        storage_id: str,
        format_id: str,
        component_ids: List[str],
        name: str,
        base_dir: Optional[str],
    ) -> FileSet:
        data = await self.client.request(
            f"files/v1/assets/{asset_id}/file_sets/",
            method="POST",
            body={
                "storage_id": storage_id,
                "format_id": format_id,
                "component_ids": component_ids,
                "name": name,
                "base_dir": normalize_dir(base_dir),
            },
        )
        return FileSet.model_validate(data)

    async def create_file(
        self,
        asset_id: str,
        file_set_id: str,
        format_id: str,
        storage_id: str,
        name: str,
        directory_path: Optional[str],
        size: int,
        status: str = "CLOSED",
    ) -> FileRecord:
        data = await self.client.request(
            f"files/v1/assets/{asset_id}/files/",
            method="POST",
            body={
                "file_set_id": file_set_id,
                "format_id": format_id,
                "storage_id": storage_id,
                "name": name,
                "original_name": name,
                "directory_path": normalize_dir(directory_path),
                "size": size,
                "type": "FILE",
                "status": status,
            },
        )
        return FileRecord.model_validate(data)

    async def delete_file_set(self, asset_id: str, file_set_id: str) -> Dict[str, Any]:
        return await self.client.request(
            f"files/v1/assets/{asset_id}/file_sets/{file_set_id}/",
            method="DELETE",
        )

    # =========================================================================
    # Storages
    # =========================================================================

    async def get_storage(self, storage_id: str) -> Storage:
        data = await self.client.request(f"files/v1/storages/{storage_id}/")
        return Storage.model_validate(data)
