"""
Blob Storage
Interchangeable binary storage backends behind one interface
"""

from pathlib import Path

from docvault.core.config import Settings
from docvault.storage.base import BlobStore, BlobStream
from docvault.storage.chunked import MinioBlobStore, create_minio_client
from docvault.storage.filesystem import FilesystemBlobStore


def create_blob_store(config: Settings) -> BlobStore:
    """Construct the configured backend (not yet initialized)"""
    if config.STORAGE_BACKEND == "minio":
        client = create_minio_client(
            config.MINIO_ENDPOINT,
            access_key=config.MINIO_ACCESS_KEY,
            secret_key=config.MINIO_SECRET_KEY,
            secure=config.MINIO_USE_SSL,
        )
        return MinioBlobStore(
            client=client,
            bucket=config.MINIO_BUCKET,
            part_size=config.MINIO_PART_SIZE,
            read_chunk_size=config.BLOB_READ_CHUNK_SIZE,
        )
    return FilesystemBlobStore(
        root=Path(config.STORAGE_ROOT),
        read_chunk_size=config.BLOB_READ_CHUNK_SIZE,
    )


__all__ = [
    "BlobStore",
    "BlobStream",
    "FilesystemBlobStore",
    "MinioBlobStore",
    "create_blob_store",
]
