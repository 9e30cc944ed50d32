"""
Filesystem Blob Store
Files stored under a root directory, written atomically via rename
"""

import asyncio
import os
import re
import shutil
from pathlib import Path
from typing import Optional

from docvault.core.logging import get_logger
from docvault.core.exceptions import BlobNotFoundException, BlobUnavailableException
from docvault.monitoring.metrics import track_blob_operation
from docvault.storage.base import BlobData, BlobStore, BlobStream, read_chunks, DEFAULT_READ_CHUNK_SIZE

logger = get_logger(__name__)

_KEY_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class FilesystemBlobStore(BlobStore):
    """
    Local disk backend

    Layout: ``<root>/<key[:2]>/<key>``. Content is written to a hidden temp file
    in the same directory and renamed into place, so readers never observe a
    partial file.
    """

    def __init__(self, root: Path, read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE):
        super().__init__(name="filesystem", read_chunk_size=read_chunk_size)
        self.root = Path(root)

    def _path(self, storage_key: str) -> Path:
        if not _KEY_PATTERN.match(storage_key or ""):
            raise BlobNotFoundException(storage_key, backend=self.name)
        return self.root / storage_key[:2] / storage_key

    async def initialize(self) -> None:
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, lambda: self.root.mkdir(parents=True, exist_ok=True))
        except OSError as e:
            logger.error(f"Failed to create storage root {self.root}: {e}")
            raise BlobUnavailableException(
                message="Failed to initialize file storage",
                backend=self.name,
            ) from e
        await super().initialize()

    async def health_check(self) -> bool:
        return self._is_initialized and os.access(self.root, os.W_OK)

    async def put(
        self,
        data: BlobData,
        size_hint: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> str:
        storage_key = self.new_key()
        path = self._path(storage_key)
        tmp_path = path.with_name(f".{storage_key}.tmp")

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(tmp_path, "wb") as fh:
                    if isinstance(data, (bytes, bytearray, memoryview)):
                        fh.write(data)
                    else:
                        shutil.copyfileobj(data, fh, self.read_chunk_size)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_path, path)
            except BaseException:
                tmp_path.unlink(missing_ok=True)
                raise

        loop = asyncio.get_event_loop()
        try:
            async with track_blob_operation(self.name, "put"):
                await loop.run_in_executor(None, _write)
        except OSError as e:
            logger.error(f"Failed to write blob {storage_key}: {e}")
            raise BlobUnavailableException(
                message="Failed to store file",
                backend=self.name,
            ) from e

        logger.debug(f"Stored blob {storage_key} ({size_hint if size_hint is not None else 'unknown'} bytes)")
        return storage_key

    async def get(self, storage_key: str) -> BlobStream:
        path = self._path(storage_key)
        loop = asyncio.get_event_loop()

        def _open():
            fh = open(path, "rb")
            return fh, os.fstat(fh.fileno()).st_size

        try:
            async with track_blob_operation(self.name, "get"):
                fh, length = await loop.run_in_executor(None, _open)
        except FileNotFoundError as e:
            raise BlobNotFoundException(storage_key, backend=self.name) from e
        except OSError as e:
            logger.error(f"Failed to open blob {storage_key}: {e}")
            raise BlobUnavailableException(
                message="Failed to read stored file",
                backend=self.name,
            ) from e

        return BlobStream(
            read_chunks(fh.read, self.read_chunk_size, self.name, (OSError,)),
            length=length,
            close=fh.close,
        )

    async def delete(self, storage_key: str) -> None:
        path = self._path(storage_key)
        loop = asyncio.get_event_loop()
        try:
            async with track_blob_operation(self.name, "delete"):
                await loop.run_in_executor(None, lambda: path.unlink(missing_ok=True))
        except OSError as e:
            logger.error(f"Failed to delete blob {storage_key}: {e}")
            raise BlobUnavailableException(
                message="Failed to delete stored file",
                backend=self.name,
            ) from e
        logger.debug(f"Deleted blob {storage_key}")
