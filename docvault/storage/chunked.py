"""
MinIO Object Storage Blob Store
Chunked (multipart) uploads into a single bucket
"""

import asyncio
import io
from typing import Optional

from minio import Minio
from minio.error import MinioException, S3Error
from urllib3.exceptions import HTTPError

from docvault.core.logging import get_logger
from docvault.core.exceptions import BlobNotFoundException, BlobUnavailableException
from docvault.monitoring.metrics import track_blob_operation
from docvault.storage.base import BlobData, BlobStore, BlobStream, read_chunks, DEFAULT_READ_CHUNK_SIZE

logger = get_logger(__name__)

_MISSING_CODES = {"NoSuchKey", "NoSuchObject"}

_BACKEND_ERRORS = (MinioException, HTTPError, OSError)


def create_minio_client(endpoint: str, access_key: str, secret_key: str, secure: bool) -> Minio:
    """Build a MinIO client from an endpoint that may carry a scheme"""
    if "://" in endpoint:
        endpoint = endpoint.split("://")[1]
    return Minio(
        endpoint,
        access_key=access_key,
        secret_key=secret_key,
        secure=secure,
    )


class MinioBlobStore(BlobStore):
    """
    Chunked object store backend

    put() streams the content as a multipart upload of ``part_size`` chunks; the
    object name assigned to the upload is the storage key. get() reports the
    stored length from the object's stat so callers can send Content-Length.
    """

    def __init__(
        self,
        client: Minio,
        bucket: str,
        part_size: int,
        read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ):
        super().__init__(name="minio", read_chunk_size=read_chunk_size)
        self.client = client
        self.bucket = bucket
        self.part_size = part_size

    async def initialize(self) -> None:
        """Create the bucket if it doesn't exist"""
        loop = asyncio.get_event_loop()

        def _ensure_bucket() -> None:
            if not self.client.bucket_exists(bucket_name=self.bucket):
                self.client.make_bucket(bucket_name=self.bucket)
                logger.info(f"Created bucket: {self.bucket}")
            else:
                logger.debug(f"Bucket exists: {self.bucket}")

        try:
            await loop.run_in_executor(None, _ensure_bucket)
        except _BACKEND_ERRORS as e:
            logger.error(f"Failed to initialize MinIO bucket {self.bucket}: {e}")
            raise BlobUnavailableException(
                message="Failed to initialize object storage",
                backend=self.name,
            ) from e
        await super().initialize()

    async def health_check(self) -> bool:
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, lambda: self.client.bucket_exists(bucket_name=self.bucket))
        except _BACKEND_ERRORS as e:
            logger.warning(f"MinIO health check failed: {e}")
            return False

    async def put(
        self,
        data: BlobData,
        size_hint: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> str:
        object_name = self.new_key()
        if isinstance(data, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(data)
            length = len(data)
        else:
            stream = data
            # Unknown length streams the upload part by part
            length = size_hint if size_hint is not None else -1

        loop = asyncio.get_event_loop()

        def _upload():
            return self.client.put_object(
                bucket_name=self.bucket,
                object_name=object_name,
                data=stream,
                length=length,
                content_type=content_type or "application/octet-stream",
                part_size=self.part_size,
            )

        try:
            async with track_blob_operation(self.name, "put"):
                result = await loop.run_in_executor(None, _upload)
        except _BACKEND_ERRORS as e:
            logger.error(f"Failed to upload object {self.bucket}/{object_name}: {e}")
            raise BlobUnavailableException(
                message="Failed to store file",
                backend=self.name,
            ) from e

        logger.debug(f"Uploaded object: {self.bucket}/{result.object_name}")
        return result.object_name

    async def get(self, storage_key: str) -> BlobStream:
        loop = asyncio.get_event_loop()

        def _open():
            stat = self.client.stat_object(bucket_name=self.bucket, object_name=storage_key)
            response = self.client.get_object(bucket_name=self.bucket, object_name=storage_key)
            return response, stat.size

        try:
            async with track_blob_operation(self.name, "get"):
                response, length = await loop.run_in_executor(None, _open)
        except S3Error as e:
            if e.code in _MISSING_CODES:
                raise BlobNotFoundException(storage_key, backend=self.name) from e
            logger.error(f"Failed to open object {self.bucket}/{storage_key}: {e}")
            raise BlobUnavailableException(
                message="Failed to read stored file",
                backend=self.name,
            ) from e
        except _BACKEND_ERRORS as e:
            logger.error(f"Failed to open object {self.bucket}/{storage_key}: {e}")
            raise BlobUnavailableException(
                message="Failed to read stored file",
                backend=self.name,
            ) from e

        def _release() -> None:
            response.close()
            response.release_conn()

        return BlobStream(
            read_chunks(response.read, self.read_chunk_size, self.name, _BACKEND_ERRORS),
            length=length,
            close=_release,
        )

    async def delete(self, storage_key: str) -> None:
        loop = asyncio.get_event_loop()
        try:
            async with track_blob_operation(self.name, "delete"):
                await loop.run_in_executor(
                    None,
                    lambda: self.client.remove_object(bucket_name=self.bucket, object_name=storage_key),
                )
        except _BACKEND_ERRORS as e:
            logger.error(f"Failed to delete object {self.bucket}/{storage_key}: {e}")
            raise BlobUnavailableException(
                message="Failed to delete stored file",
                backend=self.name,
            ) from e
        logger.debug(f"Deleted object: {self.bucket}/{storage_key}")
