"""
Unit Tests for Filesystem Blob Store
Tests for docvault/storage/filesystem.py
"""

import io
import os
from unittest.mock import patch

import pytest

from docvault.core.exceptions import BlobNotFoundException, BlobUnavailableException
from docvault.storage.filesystem import FilesystemBlobStore


@pytest.mark.unit
class TestFilesystemBlobStore:
    """Test put/get/delete against a temp directory"""

    @pytest.mark.asyncio
    async def test_put_get_bytes(self, blob_store):
        """Test stored bytes read back identically with known length"""
        data = os.urandom(200_000)
        key = await blob_store.put(data, size_hint=len(data))

        stream = await blob_store.get(key)
        assert stream.length == len(data)
        assert await stream.read() == data
        assert stream.closed

    @pytest.mark.asyncio
    async def test_put_file_object(self, blob_store):
        """Test file-like input is copied"""
        key = await blob_store.put(io.BytesIO(b"hello world"))
        assert await (await blob_store.get(key)).read() == b"hello world"

    @pytest.mark.asyncio
    async def test_keys_are_unique(self, blob_store):
        """Test identical content gets distinct keys"""
        first = await blob_store.put(b"same")
        second = await blob_store.put(b"same")
        assert first != second

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, blob_store):
        """Test the atomic write leaves only the final file"""
        key = await blob_store.put(b"content")
        files = os.listdir(blob_store.root / key[:2])
        assert files == [key]

    @pytest.mark.asyncio
    async def test_failed_write_cleans_up(self, blob_store):
        """Test a failing rename surfaces BlobUnavailable and removes the temp file"""
        with patch("docvault.storage.filesystem.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(BlobUnavailableException):
                await blob_store.put(b"content")

        leftovers = [name for _, _, names in os.walk(blob_store.root) for name in names]
        assert leftovers == []

    @pytest.mark.asyncio
    async def test_get_missing_key(self, blob_store):
        """Test absent key raises BlobNotFound"""
        with pytest.raises(BlobNotFoundException):
            await blob_store.get("0" * 32)

    @pytest.mark.asyncio
    async def test_get_malformed_key(self, blob_store):
        """Test keys outside the generated format are never resolved to paths"""
        with pytest.raises(BlobNotFoundException):
            await blob_store.get("../../etc/passwd")

    @pytest.mark.asyncio
    async def test_streaming_in_chunks(self, tmp_path):
        """Test reads are chunked by read_chunk_size"""
        store = FilesystemBlobStore(root=tmp_path / "chunks", read_chunk_size=4)
        await store.initialize()
        key = await store.put(b"0123456789")

        async with await store.get(key) as stream:
            chunks = [chunk async for chunk in stream]
        assert chunks == [b"0123", b"4567", b"89"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_close_without_reading(self, blob_store):
        """Test an abandoned stream releases its handle"""
        key = await blob_store.put(b"abc")
        stream = await blob_store.get(key)
        await stream.aclose()
        await stream.aclose()
        assert stream.closed

    @pytest.mark.asyncio
    async def test_delete(self, blob_store):
        """Test delete is best-effort and idempotent"""
        key = await blob_store.put(b"abc")
        await blob_store.delete(key)
        await blob_store.delete(key)
        with pytest.raises(BlobNotFoundException):
            await blob_store.get(key)

    @pytest.mark.asyncio
    async def test_health_check(self, tmp_path):
        """Test health reflects initialization"""
        store = FilesystemBlobStore(root=tmp_path / "health")
        assert await store.health_check() is False
        await store.initialize()
        assert await store.health_check() is True
