"""Local mount filesystem access.

The only filesystem operations the engine uses: existence, size, copy and
delete of paths composed from a mount root, a directory path and a file name.
Blocking calls run in a worker thread so each one is an await point.
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

PARTIAL_SUFFIX = ".partial"


class CopySizeMismatch(OSError):
    """The bytes written differ in size from the source file."""

    def __init__(self, source_size: int, copied_size: int):
        super().__init__(f"Copy size mismatch (src={source_size} dst={copied_size})")
        self.source_size = source_size
        self.copied_size = copied_size


def mount_path(mount_root: PathLike, directory_path: Optional[str], name: str) -> Path:
    """Compose mount_root/directory_path/name.

    directory_path comes from API records and may carry leading or trailing
    slashes; it is always treated as relative to the mount root.
    """
    relative = (directory_path or "").strip("/")
    root = Path(mount_root)
    return root / relative / name if relative else root / name


def partial_path(dst: PathLike) -> Path:
    """Hidden sibling of dst that receives bytes until the copy is verified."""
    dst = Path(dst)
    return dst.with_name(f".{dst.name}{PARTIAL_SUFFIX}")


class MountFilesystem:
    """Async wrapper over the local filesystem calls the engine needs."""

    async def exists(self, path: PathLike) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def size(self, path: PathLike) -> int:
        return await asyncio.to_thread(os.path.getsize, path)

    async def copy(self, src: PathLike, dst: PathLike) -> int:
        """Copy src to dst and return the verified size.

        Bytes go to a partial sibling first and are renamed into place only
        once their size matches the source, so dst never holds an incomplete
        copy. The partial file is removed on any failure.

        Raises:
            CopySizeMismatch: The written size differs from the source
            OSError: The copy itself failed
        """
        return await asyncio.to_thread(self._copy_verified, Path(src), Path(dst))

    async def delete(self, path: PathLike) -> None:
        await asyncio.to_thread(os.unlink, path)

    def is_mounted(self, mount_root: PathLike) -> bool:
        """Synchronous precondition check used before any work begins."""
        return os.path.isdir(mount_root)

    def _copy_verified(self, src: Path, dst: Path) -> int:
        dst.parent.mkdir(parents=True, exist_ok=True)
        partial = partial_path(dst)
        try:
            self._write_bytes(src, partial)
            source_size = os.path.getsize(src)
            copied_size = os.path.getsize(partial)
            if copied_size != source_size:
                raise CopySizeMismatch(source_size, copied_size)
            os.replace(partial, dst)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        return copied_size

    def _write_bytes(self, src: Path, dst: Path) -> None:
        shutil.copyfile(src, dst)
