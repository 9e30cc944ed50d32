"""
Base Blob Store Interface
Abstract base class for binary storage backends
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import AsyncIterator, BinaryIO, Callable, Optional, Tuple, Type, Union

from docvault.core.logging import get_logger
from docvault.core.exceptions import BlobUnavailableException

logger = get_logger(__name__)

BlobData = Union[bytes, BinaryIO]

DEFAULT_READ_CHUNK_SIZE = 64 * 1024


class BlobStream:
    """
    Byte stream returned by BlobStore.get()

    Iterate it with ``async for`` and always close it (``aclose()`` or
    ``async with``) so the backend read handle is released.
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        length: Optional[int] = None,
        close: Optional[Callable[[], None]] = None,
    ):
        self._chunks = chunks
        self.length = length
        self._close = close
        self._closed = False

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks

    async def __aenter__(self) -> "BlobStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    async def read(self) -> bytes:
        """Read the remaining content and close the stream"""
        try:
            return b"".join([chunk async for chunk in self._chunks])
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Release the underlying read handle (idempotent)"""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._close is not None:
            self._close()


async def read_chunks(
    read: Callable[[int], bytes],
    chunk_size: int,
    backend: str,
    errors: Tuple[Type[BaseException], ...],
) -> AsyncIterator[bytes]:
    """Pull chunks from a blocking ``read(n)`` callable without blocking the loop"""
    loop = asyncio.get_event_loop()
    while True:
        try:
            chunk = await loop.run_in_executor(None, read, chunk_size)
        except errors as e:
            logger.error(f"{backend} read failed: {e}")
            raise BlobUnavailableException(
                message="Failed to read stored file",
                backend=backend,
            ) from e
        if not chunk:
            return
        yield chunk


class BlobStore(ABC):
    """
    Abstract base class for blob storage backends

    Storage keys are opaque to callers. put() never reuses an existing key.
    """

    def __init__(self, name: str, read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE):
        """
        Initialize the blob store

        Args:
            name: Backend name (e.g., "filesystem", "minio")
            read_chunk_size: Chunk size used when streaming reads
        """
        self.name = name
        self.read_chunk_size = read_chunk_size
        self._is_initialized = False

    @staticmethod
    def new_key() -> str:
        """Generate a fresh random storage key"""
        return uuid.uuid4().hex

    @abstractmethod
    async def put(
        self,
        data: BlobData,
        size_hint: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Persist content and return its storage key

        Args:
            data: Bytes or a readable binary file object
            size_hint: Content length when data is a file object
            content_type: Mime type recorded by backends that support it

        Raises:
            BlobUnavailableException: If the backend write fails
        """
        pass

    @abstractmethod
    async def get(self, storage_key: str) -> BlobStream:
        """
        Open a read stream for storage_key

        Raises:
            BlobNotFoundException: If the key is absent
            BlobUnavailableException: If the backend read fails
        """
        pass

    @abstractmethod
    async def delete(self, storage_key: str) -> None:
        """Best-effort removal; absent keys are ignored"""
        pass

    async def initialize(self) -> None:
        """Prepare the backend (create directories, buckets, ...)"""
        self._is_initialized = True
        logger.info(f"{self.name} blob store initialized")

    async def shutdown(self) -> None:
        self._is_initialized = False
        logger.info(f"{self.name} blob store shutdown")

    async def health_check(self) -> bool:
        return self._is_initialized
